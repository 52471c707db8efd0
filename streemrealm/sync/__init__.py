"""Snapshot publishing and Airtable reconciliation."""

from streemrealm.sync.reconciler import Reconciler, WriteOutcome
from streemrealm.sync.snapshot import Snapshot, SnapshotStore

__all__ = ["Reconciler", "WriteOutcome", "Snapshot", "SnapshotStore"]
