"""Governance core exceptions.

Business-rule failures are never raised; they come back as result
objects. Only contract violations and caller bugs end up here.
"""

from typing import Any


class FirmOSError(Exception):
    """Base exception for the governance core."""

    pass


class PolicyInputError(FirmOSError):
    """Malformed input rejected before any rule logic runs."""

    def __init__(self, model: str, errors: list[dict[str, Any]]):
        self.model = model
        self.errors = errors
        fields = ", ".join(".".join(str(p) for p in e.get("loc", ())) or "<root>" for e in errors)
        super().__init__(f"Invalid {model}: {fields}")


class ReleaseConflictError(FirmOSError):
    """A release workflow with this id already exists."""

    pass
