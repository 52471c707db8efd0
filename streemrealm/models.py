"""Streem Realm Pydantic models for the five record kinds and chat turns.

Zones, structures, materials and build sessions mirror Airtable tables;
ZoneLocalState is the local-only shadow record for zone fields the remote
schema rejects.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from streemrealm.catalog import BlockData, BlockRarity, lookup_block

__all__ = [
    "BlockRarity",
    "BuildMood",
    "BuildSession",
    "ChatRole",
    "ChatTurn",
    "Material",
    "OverrideReason",
    "Structure",
    "StructureType",
    "Zone",
    "ZoneLocalState",
    "ZoneStatus",
]


class ZoneStatus(str, Enum):
    """Zone lifecycle as shown to the kids."""

    LOCKED = "locked"
    BUILDING = "building"
    COMPLETE = "complete"

    @property
    def display_text(self) -> str:
        return {
            ZoneStatus.LOCKED: "🔒 Mystery",
            ZoneStatus.BUILDING: "⚒️ BUILDING",
            ZoneStatus.COMPLETE: "✅ COMPLETE",
        }[self]

    @classmethod
    def parse(cls, value: str | None) -> ZoneStatus | None:
        """Return the matching status, or None for unknown values."""
        try:
            return cls(value)
        except ValueError:
            return None


class StructureType(str, Enum):
    """Structure categories used in the Structure_Type single-select."""

    PLATFORM = "Platform"
    TOWER = "Tower"
    CHAMBER = "Chamber"
    SYSTEM = "System"
    BRIDGE = "Bridge"
    MONUMENT = "Monument"
    OTHER = "Other"

    @property
    def icon(self) -> str:
        return {
            StructureType.PLATFORM: "🏗️",
            StructureType.TOWER: "🗼",
            StructureType.CHAMBER: "🏛️",
            StructureType.SYSTEM: "⚙️",
            StructureType.BRIDGE: "🌉",
            StructureType.MONUMENT: "🗿",
            StructureType.OTHER: "🧱",
        }[self]


class BuildMood(str, Enum):
    """How the session went. Values are the Airtable single-select labels."""

    MASTER_BUILDER = "🏆 Master Builder"
    ON_FIRE = "🔥 On Fire"
    BRICK_BY_BRICK = "🧱 Brick by Brick"
    CREEPER_PROBLEMS = "😤 Creeper Problems"
    MINED_OUT = "😴 Mined Out"

    @property
    def emoji(self) -> str:
        return self.value.split(" ", 1)[0]

    @property
    def short_name(self) -> str:
        return self.value.split(" ", 1)[1]

    @property
    def color(self) -> str:
        return {
            BuildMood.MASTER_BUILDER: "gold",
            BuildMood.ON_FIRE: "red",
            BuildMood.BRICK_BY_BRICK: "grey50",
            BuildMood.CREEPER_PROBLEMS: "green",
            BuildMood.MINED_OUT: "blue",
        }[self]


class OverrideReason(str, Enum):
    """Why a value is held locally instead of in Airtable."""

    SCHEMA_MISMATCH = "schema_mismatch"


class Zone(BaseModel):
    """A large tracked region of the build."""

    id: str
    zone_display: str | None = None  # kid-facing name
    zone_prod: str | None = None  # internal name
    zone_number: int | None = None
    y_start: int | None = None
    y_end: int | None = None
    total_layers: int | None = None
    layer_progress_count: int | None = None
    blocks_planned_rollup: int | None = None
    blocks_placed_rollup: int | None = None
    blocks_remaining: int | None = None
    progress_from_api: float | None = None
    hours_rollup: float | None = None

    # UI control
    is_visible_to_kids: bool = True
    status: ZoneStatus = ZoneStatus.LOCKED
    teaser_message: str | None = None

    @property
    def display_name(self) -> str:
        """Display name without the "Zone N:" prefix."""
        if self.zone_display:
            if ":" in self.zone_display:
                return self.zone_display.split(":")[-1].strip()
            return self.zone_display
        return f"Zone {self.zone_number or 0}"

    @property
    def full_display_name(self) -> str:
        return self.zone_display or f"Zone {self.zone_number or 0}"

    @property
    def progress(self) -> float:
        if self.progress_from_api is not None:
            return self.progress_from_api
        planned = self.blocks_planned_rollup
        placed = self.blocks_placed_rollup
        if not planned or planned <= 0 or placed is None:
            return 0.0
        return placed / planned

    @property
    def layer_progress(self) -> float:
        total = self.total_layers
        if not total or total <= 0 or self.layer_progress_count is None:
            return 0.0
        return self.layer_progress_count / total

    @property
    def is_locked(self) -> bool:
        return not self.is_visible_to_kids or self.status == ZoneStatus.LOCKED

    def to_local_state(
        self, reason: OverrideReason = OverrideReason.SCHEMA_MISMATCH
    ) -> ZoneLocalState:
        """Capture the visibility/status/teaser triple for local persistence."""
        return ZoneLocalState(
            is_visible_to_kids=self.is_visible_to_kids,
            status=self.status.value,
            teaser_message=self.teaser_message,
            reason=reason,
        )

    def with_local_state(self, state: ZoneLocalState) -> Zone:
        """Return a copy with the local triple applied; local values always win."""
        update: dict = {
            "is_visible_to_kids": state.is_visible_to_kids,
            "teaser_message": state.teaser_message,
        }
        status = ZoneStatus.parse(state.status)
        if status is not None:
            update["status"] = status
        return self.model_copy(update=update)


class Structure(BaseModel):
    """A named sub-build inside one or more zones."""

    id: str
    structure_display: str | None = None
    structure_prod: str | None = None
    structure_type: StructureType = StructureType.OTHER
    blocks_planned: int | None = None
    blocks_placed_rollup: int | None = None
    blocks_remaining: int | None = None
    progress_from_api: float | None = None
    estimated_hours: float | None = None
    hours_rollup: float | None = None
    forecast_hours_remaining: float | None = None
    what_we_tell_the_kids: str | None = None
    what_really_happens: str | None = None
    is_visible_to_kids: bool = True
    zone_ids: list[str] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.structure_display or "Secret Build"

    @property
    def progress(self) -> float:
        if self.progress_from_api is not None:
            return self.progress_from_api
        planned = self.blocks_planned
        placed = self.blocks_placed_rollup
        if not planned or planned <= 0 or placed is None:
            return 0.0
        return placed / planned

    @property
    def blocks_remaining_count(self) -> int:
        if self.blocks_remaining is not None:
            return self.blocks_remaining
        return max(0, (self.blocks_planned or 0) - (self.blocks_placed_rollup or 0))

    @property
    def kids_description(self) -> str:
        return self.what_we_tell_the_kids or "Something awesome is being built here!"

    @property
    def icon(self) -> str:
        return self.structure_type.icon


class Material(BaseModel):
    """A block type with planned and remaining quantities."""

    id: str
    material_name: str = "Unknown"
    category: str | None = None
    qty_planned: int = 0
    qty_remaining: int = 0
    progress_from_api: float | None = None
    notes: str | None = None

    @property
    def qty_placed(self) -> int:
        return max(0, self.qty_planned - self.qty_remaining)

    @property
    def is_complete(self) -> bool:
        return self.qty_placed >= self.qty_planned

    @property
    def progress(self) -> float:
        if self.progress_from_api is not None:
            return self.progress_from_api
        if self.qty_planned <= 0:
            return 0.0
        return self.qty_placed / self.qty_planned

    @property
    def block(self) -> BlockData:
        """Static encyclopedia entry for this material."""
        return lookup_block(self.material_name)

    @property
    def emoji(self) -> str:
        return self.block.emoji

    @property
    def rarity(self) -> BlockRarity:
        return self.block.rarity


class BuildSession(BaseModel):
    """One logged building episode."""

    id: str
    session_date: date | None = None
    duration_minutes: int | None = None
    blocks_placed: int | None = None
    mood: BuildMood = BuildMood.BRICK_BY_BRICK
    notes_display: str | None = None  # kid-visible
    notes_internal: str | None = None
    photo_url: str | None = None
    is_visible_to_kids: bool = True
    zone_ids: list[str] = Field(default_factory=list)
    structure_ids: list[str] = Field(default_factory=list)

    @field_validator("duration_minutes", "blocks_placed")
    @classmethod
    def validate_non_negative(cls, v: int | None) -> int | None:
        if v is not None and v < 0:
            raise ValueError("must be non-negative")
        return v

    @classmethod
    def new(
        cls,
        *,
        blocks_placed: int | None = None,
        duration_minutes: int | None = None,
        mood: BuildMood = BuildMood.BRICK_BY_BRICK,
        notes_display: str | None = None,
        zone_ids: list[str] | None = None,
        session_date: date | None = None,
    ) -> BuildSession:
        """Fresh session dated today with a provisional local id."""
        return cls(
            id=str(uuid4()),
            session_date=session_date or date.today(),
            duration_minutes=duration_minutes,
            blocks_placed=blocks_placed,
            mood=mood,
            notes_display=notes_display,
            zone_ids=zone_ids or [],
        )

    @property
    def formatted_date(self) -> str:
        if self.session_date is None:
            return "Unknown"
        return f"{self.session_date:%a, %b} {self.session_date.day}"

    @property
    def formatted_duration(self) -> str:
        if self.duration_minutes is None:
            return "--"
        hours, mins = divmod(self.duration_minutes, 60)
        if hours:
            return f"{hours}h {mins}m" if mins else f"{hours}h"
        return f"{mins}m"

    @property
    def blocks_per_minute(self) -> float | None:
        if self.blocks_placed is None or not self.duration_minutes:
            return None
        return self.blocks_placed / self.duration_minutes


class ZoneLocalState(BaseModel):
    """Locally persisted zone triple the Airtable schema could not accept."""

    is_visible_to_kids: bool
    status: str
    teaser_message: str | None = None
    reason: OverrideReason = OverrideReason.SCHEMA_MISMATCH
    recorded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ChatTurn(BaseModel):
    """One persisted message of the build assistant conversation."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    role: ChatRole
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
