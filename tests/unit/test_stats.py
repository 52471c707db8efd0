"""Unit tests for project rollup statistics."""

from __future__ import annotations

import pytest

from streemrealm.models import BuildSession, Zone, ZoneStatus
from streemrealm.stats import (
    ProjectStats,
    active_zone,
    compute_stats,
    format_duration,
    overall_progress,
)


def zone(zone_id: str, planned: int | None, placed: int | None, status=ZoneStatus.LOCKED) -> Zone:
    return Zone(
        id=zone_id,
        blocks_planned_rollup=planned,
        blocks_placed_rollup=placed,
        status=status,
    )


def session(session_id: str, minutes: int | None) -> BuildSession:
    return BuildSession(id=session_id, duration_minutes=minutes)


class TestOverallProgress:
    def test_fraction(self):
        assert overall_progress(250, 1000) == pytest.approx(0.25)

    def test_nothing_planned(self):
        assert overall_progress(10, 0) == 0.0

    def test_nothing_placed(self):
        assert overall_progress(0, 1000) == 0.0

    def test_capped_at_one(self):
        """Overbuilding never reports more than 100%."""
        assert overall_progress(1200, 1000) == 1.0


class TestFormatDuration:
    @pytest.mark.parametrize(
        "minutes, expected",
        [(0, "0m"), (45, "45m"), (60, "1h 0m"), (125, "2h 5m"), (-3, "0m")],
    )
    def test_format(self, minutes, expected):
        assert format_duration(minutes) == expected


class TestComputeStats:
    """Whole-build stats."""

    def test_empty(self):
        stats = compute_stats([], [])

        assert stats == ProjectStats()
        assert stats.formatted_build_time == "0m"

    def test_totals_treat_missing_as_zero(self):
        zones = [
            zone("a", 1000, 1000, ZoneStatus.COMPLETE),
            zone("b", 2000, 500, ZoneStatus.BUILDING),
            zone("c", None, None),
        ]
        sessions = [session("s1", 60), session("s2", None), session("s3", 45)]

        stats = compute_stats(zones, sessions)

        assert stats.total_blocks_placed == 1500
        assert stats.total_blocks_planned == 3000
        assert stats.total_build_minutes == 105
        assert stats.overall_progress == pytest.approx(0.5)
        assert stats.progress_percent == 50.0
        assert stats.formatted_build_time == "1h 45m"
        assert stats.zone_count == 3
        assert stats.completed_zones == 1

    def test_active_zone_is_first_building(self):
        zones = [
            zone("a", 1, 1, ZoneStatus.COMPLETE),
            zone("b", 1, 0, ZoneStatus.BUILDING),
            zone("c", 1, 0, ZoneStatus.BUILDING),
        ]

        assert active_zone(zones).id == "b"
        assert compute_stats(zones, []).active_zone_id == "b"

    def test_recent_session_is_first(self):
        stats = compute_stats([], [session("newest", 10), session("older", 20)])
        assert stats.recent_session_id == "newest"
