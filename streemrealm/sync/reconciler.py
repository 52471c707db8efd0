"""Reconciliation of Airtable records with locally held zone overrides.

The Reconciler is the only writer of the published snapshot.

Read path: the four tables are fetched concurrently, decoded, local zone
overrides are applied on top (local always wins for visibility, status and
teaser), stats are computed and the new snapshot is published in one swap.

Write path: records are encoded and sent to Airtable. When Airtable rejects a
zone write because the base does not have a column yet (HTTP 422 or an
"Unknown field" message), the write is not lost: the zone's triple goes to the
LocalOverrideStore, the snapshot is updated, and the caller gets a successful
LOCALLY_COMMITTED outcome. Any other failure propagates and leaves the
snapshot untouched. Nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum

from streemrealm.airtable.client import AirtableClient, SortSpec
from streemrealm.airtable.codec import (
    decode_material,
    decode_session,
    decode_structure,
    decode_zone,
    encode_session,
    encode_structure,
    encode_zone,
)
from streemrealm.airtable.errors import AirtableAPIError, AirtableNotFoundError
from streemrealm.config import TableNames
from streemrealm.models import BuildSession, Structure, Zone, ZoneStatus
from streemrealm.storage.local_store import LocalOverrideStore
from streemrealm.sync.snapshot import Snapshot, SnapshotStore

logger = logging.getLogger(__name__)

ZONE_SORT = [SortSpec("Zone_Number", "asc")]
SESSION_SORT = [SortSpec("Session_Date", "desc")]


class WriteOutcome(str, Enum):
    """Where an update ended up."""

    REMOTE_COMMITTED = "remote_committed"
    LOCALLY_COMMITTED = "locally_committed"


class Reconciler:
    """Owns the build snapshot and every read and write against Airtable.

    Usage:
        reconciler = Reconciler(client, LocalOverrideStore(path))
        snapshot = await reconciler.load_all()
        await reconciler.set_zone_status(zone_id, ZoneStatus.BUILDING)
    """

    def __init__(
        self,
        client: AirtableClient,
        overrides: LocalOverrideStore,
        store: SnapshotStore | None = None,
        *,
        tables: TableNames | None = None,
        kids_session_limit: int = 10,
    ):
        self.client = client
        self.overrides = overrides
        self.store = store or SnapshotStore()
        self.tables = tables or TableNames()
        self.kids_session_limit = kids_session_limit

    @property
    def snapshot(self) -> Snapshot:
        return self.store.current

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    async def load_all(self) -> Snapshot:
        """Caregiver load: every record, every session."""
        return await self._load(session_limit=None)

    async def load_filtered(self) -> Snapshot:
        """Kids load: same records, only the most recent sessions kept.

        Visibility filtering is applied by readers via Snapshot.for_kids().
        """
        return await self._load(session_limit=self.kids_session_limit)

    async def _load(self, session_limit: int | None) -> Snapshot:
        t = self.tables
        # First failure aborts the join; sibling results are discarded.
        zone_rows, structure_rows, session_rows, material_rows = await asyncio.gather(
            self.client.list_all(t.zones, sort=ZONE_SORT),
            self.client.list_all(t.structures),
            self.client.list_all(t.sessions, sort=SESSION_SORT),
            self.client.list_all(t.materials),
        )

        zones = self._apply_overrides([decode_zone(r) for r in zone_rows])
        sessions = [decode_session(r) for r in session_rows]
        if session_limit is not None:
            sessions = sessions[:session_limit]

        snapshot = Snapshot.build(
            zones=zones,
            structures=[decode_structure(r) for r in structure_rows],
            materials=[decode_material(r) for r in material_rows],
            sessions=sessions,
        )
        self.store.publish(snapshot)

        logger.info(
            "snapshot_loaded: zones=%s structures=%s sessions=%s materials=%s",
            len(snapshot.zones),
            len(snapshot.structures),
            len(snapshot.sessions),
            len(snapshot.materials),
        )
        return snapshot

    def _apply_overrides(self, zones: list[Zone]) -> list[Zone]:
        local = self.overrides.get_all()
        if not local:
            return zones
        return [z.with_local_state(local[z.id]) if z.id in local else z for z in zones]

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    async def update_zone(self, zone: Zone) -> WriteOutcome:
        """Write a zone to Airtable, falling back to local storage on schema rejection."""
        try:
            await self.client.update_record(self.tables.zones, zone.id, encode_zone(zone))
        except AirtableAPIError as e:
            if not e.is_schema_rejection:
                raise
            logger.warning(
                "zone_write_schema_rejected: zone=%s status=%s message=%s; saving locally",
                zone.id,
                e.status_code,
                e.api_message,
            )
            state = zone.to_local_state()
            self.overrides.set(zone.id, state)
            self._replace_zone(zone.with_local_state(state))
            return WriteOutcome.LOCALLY_COMMITTED

        # A held override would shadow this write on the next load; refresh it.
        if self.overrides.get(zone.id) is not None:
            self.overrides.set(zone.id, zone.to_local_state())

        self._replace_zone(zone)
        logger.info("zone_updated: zone=%s", zone.id)
        return WriteOutcome.REMOTE_COMMITTED

    async def update_structure(self, structure: Structure) -> WriteOutcome:
        """Write a structure; a schema rejection keeps the change in memory only."""
        try:
            await self.client.update_record(
                self.tables.structures, structure.id, encode_structure(structure)
            )
        except AirtableAPIError as e:
            if not e.is_schema_rejection:
                raise
            logger.warning(
                "structure_write_schema_rejected: structure=%s message=%s; kept in memory",
                structure.id,
                e.api_message,
            )
            self._replace_structure(structure)
            return WriteOutcome.LOCALLY_COMMITTED

        self._replace_structure(structure)
        logger.info("structure_updated: structure=%s", structure.id)
        return WriteOutcome.REMOTE_COMMITTED

    async def create_session(self, session: BuildSession) -> BuildSession:
        """Create a build session; it becomes the most recent session."""
        record = await self.client.create_record(self.tables.sessions, encode_session(session))
        created = decode_session(record)

        current = self.snapshot
        self.store.publish(current.with_records(sessions=(created, *current.sessions)))
        logger.info(
            "session_created: id=%s blocks=%s minutes=%s",
            created.id,
            created.blocks_placed,
            created.duration_minutes,
        )
        return created

    # ------------------------------------------------------------------
    # Zone conveniences
    # ------------------------------------------------------------------

    def _require_zone(self, zone_id: str) -> Zone:
        zone = self.snapshot.zone(zone_id)
        if zone is None:
            raise AirtableNotFoundError(f"Zone {zone_id} not found")
        return zone

    async def edit_zone(
        self,
        zone_id: str,
        *,
        status: ZoneStatus | None = None,
        is_visible_to_kids: bool | None = None,
        teaser_message: str | None = None,
    ) -> WriteOutcome:
        """Change any of the zone's status, visibility or teaser in one write."""
        zone = self._require_zone(zone_id)
        update: dict = {}
        if status is not None:
            update["status"] = status
        if is_visible_to_kids is not None:
            update["is_visible_to_kids"] = is_visible_to_kids
        if teaser_message is not None:
            update["teaser_message"] = teaser_message
        return await self.update_zone(zone.model_copy(update=update))

    async def toggle_zone_visibility(self, zone_id: str) -> WriteOutcome:
        zone = self._require_zone(zone_id)
        return await self.update_zone(
            zone.model_copy(update={"is_visible_to_kids": not zone.is_visible_to_kids})
        )

    async def set_zone_status(self, zone_id: str, status: ZoneStatus) -> WriteOutcome:
        zone = self._require_zone(zone_id)
        return await self.update_zone(zone.model_copy(update={"status": status}))

    async def update_teaser_message(self, zone_id: str, message: str | None) -> WriteOutcome:
        zone = self._require_zone(zone_id)
        return await self.update_zone(zone.model_copy(update={"teaser_message": message}))

    # ------------------------------------------------------------------

    def _replace_zone(self, zone: Zone) -> None:
        current = self.snapshot
        zones = tuple(zone if z.id == zone.id else z for z in current.zones)
        self.store.publish(current.with_records(zones=zones))

    def _replace_structure(self, structure: Structure) -> None:
        current = self.snapshot
        structures = tuple(
            structure if s.id == structure.id else s for s in current.structures
        )
        self.store.publish(current.with_records(structures=structures))
