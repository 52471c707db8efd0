"""Published in-memory snapshot of the build and its observers.

A Snapshot is immutable. The reconciler builds a new one for every change and
publishes it with a single reference swap, so readers see either the old or
the new snapshot, never a mix.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

from streemrealm.models import BuildSession, Material, Structure, Zone
from streemrealm.stats import ProjectStats, compute_stats

logger = logging.getLogger(__name__)

SnapshotListener = Callable[["Snapshot"], None]


@dataclass(frozen=True)
class Snapshot:
    """All records of the build plus their rollup stats."""

    zones: tuple[Zone, ...] = ()
    structures: tuple[Structure, ...] = ()
    materials: tuple[Material, ...] = ()
    sessions: tuple[BuildSession, ...] = ()  # newest first
    stats: ProjectStats = field(default_factory=ProjectStats)
    loaded_at: datetime | None = None

    @classmethod
    def build(
        cls,
        zones: tuple[Zone, ...] | list[Zone],
        structures: tuple[Structure, ...] | list[Structure],
        materials: tuple[Material, ...] | list[Material],
        sessions: tuple[BuildSession, ...] | list[BuildSession],
        loaded_at: datetime | None = None,
    ) -> Snapshot:
        """Assemble a snapshot and compute its stats."""
        zones = tuple(zones)
        sessions = tuple(sessions)
        return cls(
            zones=zones,
            structures=tuple(structures),
            materials=tuple(materials),
            sessions=sessions,
            stats=compute_stats(zones, sessions),
            loaded_at=loaded_at or datetime.now(timezone.utc),
        )

    def with_records(self, **changes) -> Snapshot:
        """Copy with some collections replaced and stats recomputed."""
        updated = replace(self, **changes)
        return replace(updated, stats=compute_stats(updated.zones, updated.sessions))

    def zone(self, zone_id: str) -> Zone | None:
        return next((z for z in self.zones if z.id == zone_id), None)

    def structure(self, structure_id: str) -> Structure | None:
        return next((s for s in self.structures if s.id == structure_id), None)

    def for_kids(self) -> Snapshot:
        """Kid-facing view: records hidden from the kids are dropped.

        Stats stay those of the whole build, hidden zones included.
        """
        return replace(
            self,
            zones=tuple(z for z in self.zones if z.is_visible_to_kids),
            structures=tuple(s for s in self.structures if s.is_visible_to_kids),
            sessions=tuple(s for s in self.sessions if s.is_visible_to_kids),
        )


class SnapshotStore:
    """Holds the current snapshot; one writer, any number of subscribers.

    Usage:
        store = SnapshotStore()
        unsubscribe = store.subscribe(lambda snap: print(snap.stats))
        store.publish(new_snapshot)
    """

    def __init__(self, initial: Snapshot | None = None):
        self._current = initial or Snapshot()
        self._listeners: list[SnapshotListener] = []

    @property
    def current(self) -> Snapshot:
        return self._current

    def publish(self, snapshot: Snapshot) -> None:
        """Replace the current snapshot and notify subscribers."""
        self._current = snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("snapshot_listener_failed: %r", listener)

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
