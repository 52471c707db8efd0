"""Project rollup statistics derived from a snapshot.

Pure functions over zones and sessions. Recomputed after every snapshot
replace; nothing here talks to Airtable.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from streemrealm.models import BuildSession, Zone, ZoneStatus


@dataclass(frozen=True)
class ProjectStats:
    """Dashboard numbers for the whole build."""

    total_blocks_placed: int = 0
    total_blocks_planned: int = 0
    total_build_minutes: int = 0
    overall_progress: float = 0.0  # 0..1
    zone_count: int = 0
    completed_zones: int = 0
    active_zone_id: str | None = None
    recent_session_id: str | None = None

    @property
    def progress_percent(self) -> float:
        return round(self.overall_progress * 100, 1)

    @property
    def formatted_build_time(self) -> str:
        return format_duration(self.total_build_minutes)


def total_blocks_placed(zones: Sequence[Zone]) -> int:
    return sum(z.blocks_placed_rollup or 0 for z in zones)


def total_blocks_planned(zones: Sequence[Zone]) -> int:
    return sum(z.blocks_planned_rollup or 0 for z in zones)


def total_build_minutes(sessions: Sequence[BuildSession]) -> int:
    return sum(s.duration_minutes or 0 for s in sessions)


def overall_progress(placed: int, planned: int) -> float:
    """Fraction placed/planned; 0 when nothing is planned, never above 1."""
    if planned <= 0 or placed <= 0:
        return 0.0
    return min(1.0, placed / planned)


def format_duration(minutes: int) -> str:
    """Format minutes as "Xh Ym", omitting hours when zero.

    Example:
        >>> format_duration(125)
        '2h 5m'
        >>> format_duration(45)
        '45m'
    """
    hours, mins = divmod(max(0, minutes), 60)
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins}m"


def active_zone(zones: Sequence[Zone]) -> Zone | None:
    """First zone, in snapshot order, that is currently being built."""
    return next((z for z in zones if z.status == ZoneStatus.BUILDING), None)


def completed_zones_count(zones: Sequence[Zone]) -> int:
    return sum(1 for z in zones if z.status == ZoneStatus.COMPLETE)


def recent_session(sessions: Sequence[BuildSession]) -> BuildSession | None:
    """Most recent session; sessions are kept sorted newest first."""
    return sessions[0] if sessions else None


def compute_stats(zones: Sequence[Zone], sessions: Sequence[BuildSession]) -> ProjectStats:
    placed = total_blocks_placed(zones)
    planned = total_blocks_planned(zones)
    active = active_zone(zones)
    recent = recent_session(sessions)
    return ProjectStats(
        total_blocks_placed=placed,
        total_blocks_planned=planned,
        total_build_minutes=total_build_minutes(sessions),
        overall_progress=overall_progress(placed, planned),
        zone_count=len(zones),
        completed_zones=completed_zones_count(zones),
        active_zone_id=active.id if active else None,
        recent_session_id=recent.id if recent else None,
    )
