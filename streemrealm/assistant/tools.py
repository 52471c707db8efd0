"""Build assistant tool schema and dispatcher.

Claude can call exactly four tools. Each one maps onto a single Reconciler
operation; the assistant never touches Airtable directly. Results are short
markdown strings fed back into the conversation, and failures are reported
the same way instead of being raised into the chat flow.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from streemrealm.airtable.errors import AirtableError
from streemrealm.models import BuildMood, BuildSession, ZoneStatus
from streemrealm.sync.reconciler import Reconciler, WriteOutcome

logger = logging.getLogger(__name__)

MOOD_VALUES = [mood.value for mood in BuildMood]
STATUS_VALUES = [status.value for status in ZoneStatus]

TOOL_SCHEMA: list[dict[str, Any]] = [
    {
        "name": "log_session",
        "description": "Log a new build session to the database",
        "input_schema": {
            "type": "object",
            "properties": {
                "blocks_placed": {
                    "type": "integer",
                    "description": "Number of blocks placed this session",
                },
                "duration_minutes": {
                    "type": "integer",
                    "description": "Duration of the session in minutes",
                },
                "mood": {
                    "type": "string",
                    "description": "Builder's mood",
                    "enum": MOOD_VALUES,
                },
                "notes": {
                    "type": "string",
                    "description": "Notes to share with the kids (optional)",
                },
                "zone_ids": {
                    "type": "string",
                    "description": "Comma-separated zone IDs worked on",
                },
            },
            "required": ["blocks_placed", "duration_minutes", "mood"],
        },
    },
    {
        "name": "update_zone",
        "description": "Update a zone's status, visibility, or teaser message",
        "input_schema": {
            "type": "object",
            "properties": {
                "zone_id": {"type": "string", "description": "The zone record ID"},
                "status": {
                    "type": "string",
                    "description": "New status (optional)",
                    "enum": STATUS_VALUES,
                },
                "is_visible": {
                    "type": "boolean",
                    "description": "Whether kids can see this zone (optional)",
                },
                "teaser_message": {
                    "type": "string",
                    "description": "Mystery teaser for locked zones (optional)",
                },
            },
            "required": ["zone_id"],
        },
    },
    {
        "name": "get_stats",
        "description": "Get current project statistics",
        "input_schema": {"type": "object", "properties": {}, "required": []},
    },
    {
        "name": "toggle_visibility",
        "description": "Toggle visibility of a zone or structure for the kids",
        "input_schema": {
            "type": "object",
            "properties": {
                "type": {
                    "type": "string",
                    "description": "Type of item",
                    "enum": ["zone", "structure"],
                },
                "id": {"type": "string", "description": "Record ID"},
            },
            "required": ["type", "id"],
        },
    },
]


def _int_arg(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return default
    return default


def _str_arg(value: Any) -> str | None:
    return value if isinstance(value, str) and value.strip() else None


def parse_zone_ids(value: str | None) -> list[str]:
    """Split a comma-separated id list, dropping blanks."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


class ToolDispatcher:
    """Runs assistant tool calls against the Reconciler."""

    def __init__(self, reconciler: Reconciler):
        self.reconciler = reconciler
        self._handlers = {
            "log_session": self.log_session,
            "update_zone": self.update_zone,
            "get_stats": self.get_stats,
            "toggle_visibility": self.toggle_visibility,
        }

    async def dispatch(self, name: str, tool_input: Mapping[str, Any] | None) -> str:
        handler = self._handlers.get(name)
        if handler is None:
            logger.warning("assistant_unknown_tool: %s", name)
            return f"Unknown tool: {name}"
        logger.info("assistant_tool_call: %s", name)
        return await handler(dict(tool_input or {}))

    async def log_session(self, args: dict[str, Any]) -> str:
        blocks = _int_arg(args.get("blocks_placed"))
        minutes = _int_arg(args.get("duration_minutes"))
        try:
            mood = BuildMood(args.get("mood"))
        except ValueError:
            mood = BuildMood.BRICK_BY_BRICK

        session = BuildSession.new(
            blocks_placed=max(0, blocks),
            duration_minutes=max(0, minutes),
            mood=mood,
            notes_display=_str_arg(args.get("notes")),
            zone_ids=parse_zone_ids(_str_arg(args.get("zone_ids"))),
        )

        try:
            created = await self.reconciler.create_session(session)
        except AirtableError as e:
            return f"❌ Failed to log session: {e}"

        return (
            "✅ **Session Logged!**\n"
            f"- Blocks: {created.blocks_placed or 0}\n"
            f"- Duration: {created.duration_minutes or 0} minutes\n"
            f"- Mood: {mood.emoji} {mood.short_name}\n\n"
            "The kids will see this update! 🎉"
        )

    async def update_zone(self, args: dict[str, Any]) -> str:
        zone_id = _str_arg(args.get("zone_id"))
        if zone_id is None:
            return "❌ Zone ID is required"

        is_visible = args.get("is_visible")
        try:
            outcome = await self.reconciler.edit_zone(
                zone_id,
                status=ZoneStatus.parse(args.get("status")),
                is_visible_to_kids=is_visible if isinstance(is_visible, bool) else None,
                teaser_message=_str_arg(args.get("teaser_message")),
            )
        except AirtableError as e:
            return f"❌ Failed to update zone: {e}"

        if outcome == WriteOutcome.LOCALLY_COMMITTED:
            return "✅ Zone updated successfully! (saved on this device)"
        return "✅ Zone updated successfully!"

    async def get_stats(self, args: dict[str, Any]) -> str:
        snapshot = self.reconciler.snapshot
        stats = snapshot.stats
        recent = len(snapshot.sessions[:3])
        return (
            "📊 **Project Stats**\n\n"
            f"**Zones:** {stats.completed_zones}/{stats.zone_count} complete\n"
            f"**Blocks:** {stats.total_blocks_placed:,} / {stats.total_blocks_planned:,}\n"
            f"**Progress:** {stats.overall_progress * 100:.1f}%\n"
            f"**Build Time:** {stats.formatted_build_time}\n\n"
            f"**Recent Sessions:** {recent}"
        )

    async def toggle_visibility(self, args: dict[str, Any]) -> str:
        kind = _str_arg(args.get("type"))
        record_id = _str_arg(args.get("id"))
        if kind is None or record_id is None:
            return "❌ Type and ID are required"

        if kind != "zone":
            return "❌ Structure visibility toggle not implemented yet"

        try:
            await self.reconciler.toggle_zone_visibility(record_id)
        except AirtableError as e:
            return f"❌ Failed to toggle visibility: {e}"
        return "✅ Zone visibility toggled!"
