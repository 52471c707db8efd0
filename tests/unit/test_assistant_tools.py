"""Unit tests for the build assistant tools.

Tool calls run against a real Reconciler over the fake base, so each tool is
checked for its effect on Airtable and on the snapshot.
"""

from __future__ import annotations

import json

import httpx
import pytest
import pytest_asyncio

from streemrealm.assistant.tools import TOOL_SCHEMA, ToolDispatcher, parse_zone_ids
from streemrealm.models import BuildMood, ZoneStatus


@pytest_asyncio.fixture
async def dispatcher(seeded_airtable, reconciler) -> ToolDispatcher:
    await reconciler.load_all()
    return ToolDispatcher(reconciler)


class TestToolSchema:
    def test_exactly_four_tools(self):
        assert [t["name"] for t in TOOL_SCHEMA] == [
            "log_session",
            "update_zone",
            "get_stats",
            "toggle_visibility",
        ]

    def test_required_inputs(self):
        required = {t["name"]: t["input_schema"]["required"] for t in TOOL_SCHEMA}

        assert required["log_session"] == ["blocks_placed", "duration_minutes", "mood"]
        assert required["update_zone"] == ["zone_id"]
        assert required["get_stats"] == []
        assert required["toggle_visibility"] == ["type", "id"]

    def test_mood_enum_matches_model(self):
        log_session = TOOL_SCHEMA[0]["input_schema"]["properties"]
        assert log_session["mood"]["enum"] == [m.value for m in BuildMood]


class TestParseZoneIds:
    def test_splits_and_trims(self):
        assert parse_zone_ids(" recA, recB ,,recC ") == ["recA", "recB", "recC"]

    def test_empty(self):
        assert parse_zone_ids(None) == []
        assert parse_zone_ids("") == []


class TestDispatch:
    """Tool calls map onto Reconciler operations."""

    @pytest.mark.asyncio
    async def test_unknown_tool(self, dispatcher):
        assert await dispatcher.dispatch("delete_everything", {}) == "Unknown tool: delete_everything"

    @pytest.mark.asyncio
    async def test_log_session(self, dispatcher, seeded_airtable):
        result = await dispatcher.dispatch(
            "log_session",
            {
                "blocks_placed": 120,
                "duration_minutes": 45,
                "mood": "🔥 On Fire",
                "notes": "Bridge is halfway!",
                "zone_ids": "recZone2, recZone3",
            },
        )

        assert result.startswith("✅ **Session Logged!**")
        assert "- Blocks: 120" in result
        assert "- Mood: 🔥 On Fire" in result

        (request,) = seeded_airtable.writes("POST")
        fields = json.loads(request.content)["fields"]
        assert fields["Zone_Worked"] == ["recZone2", "recZone3"]
        assert fields["Notes_Display"] == "Bridge is halfway!"
        assert dispatcher.reconciler.snapshot.sessions[0].blocks_placed == 120

    @pytest.mark.asyncio
    async def test_log_session_unknown_mood_defaults(self, dispatcher):
        await dispatcher.dispatch(
            "log_session", {"blocks_placed": "30", "duration_minutes": 10, "mood": "meh"}
        )

        session = dispatcher.reconciler.snapshot.sessions[0]
        assert session.mood == BuildMood.BRICK_BY_BRICK
        assert session.blocks_placed == 30

    @pytest.mark.asyncio
    async def test_log_session_reports_saved_values(self, dispatcher):
        result = await dispatcher.dispatch(
            "log_session", {"blocks_placed": -5, "duration_minutes": 20, "mood": "🔥 On Fire"}
        )

        assert "- Blocks: 0" in result
        assert "- Duration: 20 minutes" in result
        assert dispatcher.reconciler.snapshot.sessions[0].blocks_placed == 0

    @pytest.mark.asyncio
    async def test_log_session_failure_is_reported(self, dispatcher, seeded_airtable, tables):
        seeded_airtable.failures[tables.sessions] = httpx.Response(429)

        result = await dispatcher.dispatch(
            "log_session", {"blocks_placed": 1, "duration_minutes": 1, "mood": "🔥 On Fire"}
        )

        assert result == "❌ Failed to log session: Rate limited - please wait"

    @pytest.mark.asyncio
    async def test_update_zone(self, dispatcher):
        result = await dispatcher.dispatch(
            "update_zone",
            {"zone_id": "recZone3", "status": "building", "is_visible": True,
             "teaser_message": "Coming soon"},
        )

        assert result == "✅ Zone updated successfully!"
        zone = dispatcher.reconciler.snapshot.zone("recZone3")
        assert zone.status == ZoneStatus.BUILDING
        assert zone.is_visible_to_kids is True
        assert zone.teaser_message == "Coming soon"

    @pytest.mark.asyncio
    async def test_update_zone_saved_locally(self, dispatcher, seeded_airtable):
        seeded_airtable.missing_columns = {"Status"}

        result = await dispatcher.dispatch("update_zone", {"zone_id": "recZone3", "status": "complete"})

        assert "saved on this device" in result
        assert dispatcher.reconciler.overrides.get("recZone3").status == "complete"

    @pytest.mark.asyncio
    async def test_update_zone_requires_id(self, dispatcher):
        assert await dispatcher.dispatch("update_zone", {}) == "❌ Zone ID is required"

    @pytest.mark.asyncio
    async def test_update_unknown_zone(self, dispatcher):
        result = await dispatcher.dispatch("update_zone", {"zone_id": "recNope"})
        assert result.startswith("❌ Failed to update zone:")

    @pytest.mark.asyncio
    async def test_get_stats(self, dispatcher):
        result = await dispatcher.dispatch("get_stats", None)

        assert "**Zones:** 1/3 complete" in result
        assert "**Blocks:** 1,500 / 4,000" in result
        assert "**Progress:** 37.5%" in result
        assert "**Build Time:** 3h 0m" in result
        assert "**Recent Sessions:** 3" in result

    @pytest.mark.asyncio
    async def test_toggle_zone(self, dispatcher):
        result = await dispatcher.dispatch("toggle_visibility", {"type": "zone", "id": "recZone1"})

        assert result == "✅ Zone visibility toggled!"
        assert dispatcher.reconciler.snapshot.zone("recZone1").is_visible_to_kids is False

    @pytest.mark.asyncio
    async def test_toggle_structure_not_supported(self, dispatcher, seeded_airtable):
        result = await dispatcher.dispatch(
            "toggle_visibility", {"type": "structure", "id": "recStruct1"}
        )

        assert result == "❌ Structure visibility toggle not implemented yet"
        assert seeded_airtable.writes() == []
