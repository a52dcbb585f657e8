"""
FirmOS Memory Package.

In-memory stores for incidents and release workflows plus the audit
sink. Each store is an explicit object handed to the component that
owns the state, so tests get isolated stores per case.
"""

from firmos_memory.audit import AuditRecord, AuditSink, InMemoryAuditSink, LoggingAuditSink
from firmos_memory.stores import (
    IncidentStore,
    InMemoryIncidentStore,
    InMemoryReleaseStore,
    ReleaseStore,
)

__all__ = [
    "AuditRecord",
    "AuditSink",
    "InMemoryAuditSink",
    "LoggingAuditSink",
    "IncidentStore",
    "InMemoryIncidentStore",
    "ReleaseStore",
    "InMemoryReleaseStore",
]
