"""Shared enums and input validation helpers."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from firmos_policies.exceptions import PolicyInputError

ModelT = TypeVar("ModelT", bound=BaseModel)


class Jurisdiction(str, Enum):
    """Supported jurisdictions."""

    MT = "MT"
    RW = "RW"


class ServiceCategory(str, Enum):
    """Service lines offered by the firm."""

    AUDIT = "AUDIT"
    TAX = "TAX"
    ACCOUNTING = "ACCOUNTING"
    ADVISORY = "ADVISORY"
    RISK = "RISK"
    CSP = "CSP"
    PRIVATE_NOTARY = "PRIVATE_NOTARY"


class Severity(str, Enum):
    """Check severity."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def validate_input(model: type[ModelT], value: Any) -> ModelT:
    """
    Coerce a public-entry-point argument into its input model.

    Already-constructed models are returned as is (they validated on
    construction); anything else is validated and schema violations are
    re-raised as PolicyInputError.
    """
    if isinstance(value, model):
        return value
    try:
        return model.model_validate(value)
    except ValidationError as e:
        raise PolicyInputError(
            model.__name__, e.errors(include_url=False, include_context=False)
        ) from e
