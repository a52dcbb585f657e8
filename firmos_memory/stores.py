"""Governance State Stores.

In-memory adapters for the two stateful components:

- Incident store: append-only list. One lock serializes appends and
  resolutions; records are replaced on resolution, never removed.
- Release store: workflows keyed by release_id. One lock per known release so
  transitions on the same release are serialized while different
  releases never contend.

Stores hand out deep copies; callers mutate their copy and save it back.
"""

from __future__ import annotations

import threading
from datetime import datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from firmos_policies.incident_log import Incident
    from firmos_policies.release_workflow import ReleaseWorkflow


# ============================================================================
# INTERFACES
# ============================================================================


@runtime_checkable
class IncidentStore(Protocol):
    """Append-only incident storage interface."""

    def append(self, incident: Incident) -> None:
        """Store a new incident."""
        ...

    def get(self, incident_id: str) -> Incident | None:
        """Point lookup by id."""
        ...

    def resolve(self, incident_id: str, resolution: str, resolved_at: datetime) -> Incident | None:
        """Set resolution fields on an existing incident; None if unknown."""
        ...

    def all(self) -> list[Incident]:
        """Snapshot of every incident in insertion order."""
        ...


@runtime_checkable
class ReleaseStore(Protocol):
    """Release workflow storage interface."""

    def lock(self, release_id: str, create: bool = False) -> threading.Lock | None:
        """
        Mutual-exclusion lock for one release id.

        Returns None for an id that was never saved unless `create` is set.
        """
        ...

    def get(self, release_id: str) -> ReleaseWorkflow | None:
        ...

    def save(self, workflow: ReleaseWorkflow) -> None:
        ...

    def all(self) -> list[ReleaseWorkflow]:
        ...


# ============================================================================
# IN-MEMORY IMPLEMENTATIONS
# ============================================================================


class InMemoryIncidentStore:
    """Append-only incident list guarded by a single lock."""

    def __init__(self):
        self._incidents: list[Incident] = []
        self._lock = threading.Lock()

    def append(self, incident: Incident) -> None:
        with self._lock:
            self._incidents.append(incident)

    def get(self, incident_id: str) -> Incident | None:
        with self._lock:
            return next((i for i in self._incidents if i.id == incident_id), None)

    def resolve(self, incident_id: str, resolution: str, resolved_at: datetime) -> Incident | None:
        with self._lock:
            for index, incident in enumerate(self._incidents):
                if incident.id == incident_id:
                    resolved = incident.model_copy(
                        update={"resolved_at": resolved_at, "resolution": resolution}
                    )
                    self._incidents[index] = resolved
                    return resolved
        return None

    def all(self) -> list[Incident]:
        with self._lock:
            return list(self._incidents)


class InMemoryReleaseStore:
    """Release workflows keyed by release_id with per-release locks."""

    def __init__(self):
        self._workflows: dict[str, ReleaseWorkflow] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def lock(self, release_id: str, create: bool = False) -> threading.Lock | None:
        with self._registry_lock:
            lock = self._locks.get(release_id)
            if lock is None and (create or release_id in self._workflows):
                lock = self._locks[release_id] = threading.Lock()
            return lock

    def get(self, release_id: str) -> ReleaseWorkflow | None:
        with self._registry_lock:
            workflow = self._workflows.get(release_id)
        return workflow.model_copy(deep=True) if workflow else None

    def save(self, workflow: ReleaseWorkflow) -> None:
        snapshot = workflow.model_copy(deep=True)
        with self._registry_lock:
            self._workflows[snapshot.request.release_id] = snapshot

    def all(self) -> list[ReleaseWorkflow]:
        with self._registry_lock:
            workflows = list(self._workflows.values())
        return [w.model_copy(deep=True) for w in workflows]
