"""Incident Log.

Append-only record of governance incidents. Severity defaults from the
incident type; unresolved CRITICAL incidents block every release
execution until resolved (system-wide circuit breaker).

Storage is injected (IncidentStore) so tests get isolated logs.
"""

from __future__ import annotations

import uuid
from collections import Counter
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from firmos_memory.audit import AuditRecord, AuditSink
from firmos_memory.stores import IncidentStore
from firmos_obs.logging import get_logger
from firmos_obs.metrics import incidents_total
from firmos_policies.guardian import GuardianReport
from firmos_policies.types import utcnow, validate_input

logger = get_logger(__name__)


class IncidentType(str, Enum):
    PACK_LEAKAGE = "PACK_LEAKAGE"
    GATE_BYPASS_ATTEMPT = "GATE_BYPASS_ATTEMPT"
    RELEASE_BYPASS_ATTEMPT = "RELEASE_BYPASS_ATTEMPT"
    EVIDENCE_MISSING_PATTERN = "EVIDENCE_MISSING_PATTERN"
    REPEATED_CONTRADICTION = "REPEATED_CONTRADICTION"
    UNAUTHORIZED_TOOL_ACCESS = "UNAUTHORIZED_TOOL_ACCESS"
    POLICY_VIOLATION = "POLICY_VIOLATION"


class IncidentSeverity(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


SEVERITY_BY_TYPE: dict[IncidentType, IncidentSeverity] = {
    IncidentType.PACK_LEAKAGE: IncidentSeverity.CRITICAL,
    IncidentType.GATE_BYPASS_ATTEMPT: IncidentSeverity.HIGH,
    IncidentType.RELEASE_BYPASS_ATTEMPT: IncidentSeverity.HIGH,
    IncidentType.EVIDENCE_MISSING_PATTERN: IncidentSeverity.MEDIUM,
    IncidentType.REPEATED_CONTRADICTION: IncidentSeverity.MEDIUM,
    IncidentType.UNAUTHORIZED_TOOL_ACCESS: IncidentSeverity.HIGH,
    IncidentType.POLICY_VIOLATION: IncidentSeverity.MEDIUM,
}

_LOUD_SEVERITIES = (IncidentSeverity.CRITICAL, IncidentSeverity.HIGH)


class Incident(BaseModel):
    """Single incident record. Immutable; resolution produces a new copy."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    type: IncidentType
    severity: IncidentSeverity
    description: str = Field(min_length=1)
    workstream_id: str | None = None
    agent_id: str = Field(min_length=1)
    pack_id: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)
    resolved_at: datetime | None = None
    resolution: str | None = None

    @property
    def is_resolved(self) -> bool:
        return self.resolved_at is not None


class IncidentCounts(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int
    by_type: dict[str, int]
    by_severity: dict[str, int]


class IncidentLog:
    """
    Incident logging and querying over an injected store.

    Every logged or resolved incident emits one audit record when an
    audit sink is configured.
    """

    def __init__(self, store: IncidentStore, audit_sink: AuditSink | None = None):
        self.store = store
        self.audit_sink = audit_sink

    # ========================================================================
    # LOGGING
    # ========================================================================

    def log(
        self,
        type: IncidentType | str,
        description: str,
        agent_id: str,
        details: dict[str, Any] | None = None,
        workstream_id: str | None = None,
        pack_id: str | None = None,
        severity_override: IncidentSeverity | str | None = None,
    ) -> Incident:
        """
        Log an incident.

        Args:
            type: Incident type
            description: Human-readable description (non-empty)
            agent_id: Agent that caused or detected the incident
            details: Free-form structured context
            workstream_id: Related workstream, if any
            pack_id: Related country pack, if any
            severity_override: Use this instead of the type's default severity

        Returns:
            Incident: The stored incident

        Raises:
            PolicyInputError: If the incident is malformed (nothing is stored)
        """
        raw: dict[str, Any] = {
            "type": type,
            "description": description,
            "agent_id": agent_id,
            "details": details or {},
            "workstream_id": workstream_id,
            "pack_id": pack_id,
        }
        if severity_override is not None:
            raw["severity"] = severity_override
        elif isinstance(type, str) and type in SEVERITY_BY_TYPE:
            raw["severity"] = SEVERITY_BY_TYPE[type]

        incident = validate_input(Incident, raw)
        self.store.append(incident)

        emit = logger.error if incident.severity in _LOUD_SEVERITIES else logger.warning
        emit(
            "incident_logged",
            incident_id=incident.id,
            type=incident.type.value,
            severity=incident.severity.value,
            agent_id=incident.agent_id,
            workstream_id=incident.workstream_id,
            pack_id=incident.pack_id,
            description=incident.description,
        )
        incidents_total.labels(type=incident.type.value, severity=incident.severity.value).inc()

        self._audit(
            action="incident_logged",
            actor=incident.agent_id,
            incident=incident,
            details={"type": incident.type.value, "severity": incident.severity.value},
        )
        return incident

    def log_pack_leakage(
        self,
        agent_id: str,
        pack_id: str,
        target_jurisdiction: str,
        workstream_id: str | None = None,
    ) -> Incident:
        return self.log(
            IncidentType.PACK_LEAKAGE,
            f"Pack leakage detected: agent {agent_id} attempted to use pack {pack_id} "
            f"in {target_jurisdiction}",
            agent_id,
            details={"pack_id": pack_id, "target_jurisdiction": target_jurisdiction},
            workstream_id=workstream_id,
            pack_id=pack_id,
        )

    def log_gate_bypass_attempt(
        self,
        agent_id: str,
        gate: Literal["GUARDIAN", "RELEASE"],
        action: str,
        workstream_id: str | None = None,
    ) -> Incident:
        """Guardian bypasses and release bypasses are separate incident types."""
        incident_type = (
            IncidentType.GATE_BYPASS_ATTEMPT
            if gate == "GUARDIAN"
            else IncidentType.RELEASE_BYPASS_ATTEMPT
        )
        return self.log(
            incident_type,
            f"{gate} gate bypass attempt by {agent_id}: {action}",
            agent_id,
            details={"gate": gate, "action": action},
            workstream_id=workstream_id,
        )

    def log_unauthorized_tool_access(
        self,
        agent_id: str,
        tool_name: str,
        reason: str,
        workstream_id: str | None = None,
    ) -> Incident:
        return self.log(
            IncidentType.UNAUTHORIZED_TOOL_ACCESS,
            f"Unauthorized tool access: {agent_id} attempted {tool_name}",
            agent_id,
            details={"tool_name": tool_name, "reason": reason},
            workstream_id=workstream_id,
        )

    def log_guardian_failures(
        self,
        report: GuardianReport,
        agent_id: str,
        pack_id: str | None = None,
        hash_mismatch_severity: IncidentSeverity | str = IncidentSeverity.HIGH,
    ) -> list[Incident]:
        """
        Turn security-relevant Guardian failures into incidents.

        COUNTRY_PACK_MISMATCH becomes PACK_LEAKAGE; HASH_INTEGRITY becomes
        POLICY_VIOLATION at `hash_mismatch_severity`. Other failed checks
        are business failures and are not logged here.
        """
        incidents: list[Incident] = []

        pack_check = report.check("COUNTRY_PACK_MISMATCH")
        if pack_check is not None and not pack_check.passed:
            incidents.append(
                self.log(
                    IncidentType.PACK_LEAKAGE,
                    pack_check.message,
                    agent_id,
                    details=dict(pack_check.details),
                    workstream_id=report.workstream_id,
                    pack_id=pack_id,
                )
            )

        hash_check = report.check("HASH_INTEGRITY")
        if hash_check is not None and not hash_check.passed:
            incidents.append(
                self.log(
                    IncidentType.POLICY_VIOLATION,
                    hash_check.message,
                    agent_id,
                    details=dict(hash_check.details),
                    workstream_id=report.workstream_id,
                    pack_id=pack_id,
                    severity_override=hash_mismatch_severity,
                )
            )

        return incidents

    # ========================================================================
    # RESOLUTION
    # ========================================================================

    def resolve(self, incident_id: str, resolution: str, actor: str = "operator") -> Incident | None:
        """Mark an incident resolved. Unknown ids return None."""
        previous = self.store.get(incident_id)
        resolved = self.store.resolve(incident_id, resolution, utcnow())
        if resolved is None:
            logger.warning("incident_resolve_unknown", incident_id=incident_id)
            return None

        logger.info(
            "incident_resolved",
            incident_id=incident_id,
            type=resolved.type.value,
            severity=resolved.severity.value,
            actor=actor,
        )
        self._audit(
            action="incident_resolved",
            actor=actor,
            incident=resolved,
            details={"resolution": resolution},
            previous=previous,
        )
        return resolved

    # ========================================================================
    # QUERIES
    # ========================================================================

    def get(self, incident_id: str) -> Incident | None:
        return self.store.get(incident_id)

    def list(
        self,
        type: IncidentType | str | None = None,
        severity: IncidentSeverity | str | None = None,
        resolved: bool | None = None,
        agent_id: str | None = None,
        workstream_id: str | None = None,
    ) -> list[Incident]:
        """Filter incidents; all filters optional, combined with AND."""
        result = self.store.all()
        if type is not None:
            result = [i for i in result if i.type == IncidentType(type)]
        if severity is not None:
            result = [i for i in result if i.severity == IncidentSeverity(severity)]
        if resolved is not None:
            result = [i for i in result if i.is_resolved == resolved]
        if agent_id is not None:
            result = [i for i in result if i.agent_id == agent_id]
        if workstream_id is not None:
            result = [i for i in result if i.workstream_id == workstream_id]
        return result

    def unresolved(self) -> list[Incident]:
        return self.list(resolved=False)

    def critical(self) -> list[Incident]:
        return self.list(severity=IncidentSeverity.CRITICAL)

    def counts(self) -> IncidentCounts:
        incidents = self.store.all()
        return IncidentCounts(
            total=len(incidents),
            by_type=dict(Counter(i.type.value for i in incidents)),
            by_severity=dict(Counter(i.severity.value for i in incidents)),
        )

    def has_blocking_incidents(self) -> bool:
        """True iff an unresolved CRITICAL incident exists."""
        return any(
            i.severity == IncidentSeverity.CRITICAL and not i.is_resolved
            for i in self.store.all()
        )

    # ========================================================================
    # AUDIT
    # ========================================================================

    def _audit(
        self,
        action: str,
        actor: str,
        incident: Incident,
        details: dict[str, Any],
        previous: Incident | None = None,
    ) -> None:
        if self.audit_sink is None:
            return
        self.audit_sink.record(
            AuditRecord(
                action=action,
                actor=actor,
                resource_type="incident",
                resource_id=incident.id,
                details=details,
                previous_state=previous.model_dump(mode="json") if previous else None,
                new_state=incident.model_dump(mode="json"),
            )
        )
