"""Audit Sink.

The governance core emits one audit record per state-changing operation
(decision made, release transitioned, incident logged or resolved). It
does not persist them; a sink does.
"""

import threading
from datetime import datetime, timezone
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from firmos_obs.logging import get_logger

logger = get_logger(__name__)


class AuditRecord(BaseModel):
    """Single audit entry."""

    model_config = ConfigDict(frozen=True)

    action: str
    actor: str
    resource_type: str
    resource_id: str
    details: dict[str, Any] = Field(default_factory=dict)
    previous_state: dict[str, Any] | None = None
    new_state: dict[str, Any] | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


@runtime_checkable
class AuditSink(Protocol):
    """Audit sink interface."""

    def record(self, entry: AuditRecord) -> None:
        """Accept one audit record."""
        ...


class InMemoryAuditSink:
    """Keeps audit records in process memory (tests, single-node dev)."""

    def __init__(self):
        self._records: list[AuditRecord] = []
        self._lock = threading.Lock()

    def record(self, entry: AuditRecord) -> None:
        with self._lock:
            self._records.append(entry)

    @property
    def records(self) -> list[AuditRecord]:
        with self._lock:
            return list(self._records)

    def query(
        self,
        resource_id: str | None = None,
        resource_type: str | None = None,
        action: str | None = None,
        actor: str | None = None,
    ) -> list[AuditRecord]:
        """Filter records; all filters are optional and combined with AND."""
        result = self.records
        if resource_id is not None:
            result = [r for r in result if r.resource_id == resource_id]
        if resource_type is not None:
            result = [r for r in result if r.resource_type == resource_type]
        if action is not None:
            result = [r for r in result if r.action == action]
        if actor is not None:
            result = [r for r in result if r.actor == actor]
        return result


class LoggingAuditSink:
    """Writes audit records to the structured log."""

    def record(self, entry: AuditRecord) -> None:
        logger.info("audit_record", audit=entry.model_dump(mode="json"))
