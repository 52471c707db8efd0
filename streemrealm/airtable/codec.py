"""Record codec: Airtable field maps <-> typed records.

Decoding is best effort per field. Each field is read through an ordered
coercion (e.g. checkbox values arrive as bool or as 0/1); a value that fails
coercion is skipped and the documented default is used instead, so one bad
cell never drops a whole record.

Encoding emits only writable columns. Rollups, formulas and attachments are
server-computed and never sent.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from typing import Any

from streemrealm.models import (
    BuildMood,
    BuildSession,
    Material,
    Structure,
    StructureType,
    Zone,
    ZoneStatus,
)


# Duration arrives from a formula column when the base has one, and from the
# raw input column otherwise. Writes always target the input column.
DURATION_FORMULA_FIELD = "Duration_Minutes"
DURATION_INPUT_FIELD = "Duration_Input_Minutes"

VISIBILITY_FIELD = "Is_Visible_To_Kids"


# ---------------------------------------------------------------------------
# Field coercions. Each returns None when the value has the wrong shape.
# ---------------------------------------------------------------------------


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _as_count(value: Any) -> int | None:
    """Non-negative integer (block counts, minutes)."""
    number = _as_int(value)
    if number is None or number < 0:
        return None
    return number


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


def _as_bool(value: Any) -> bool | None:
    """Checkbox value: real booleans, or integers where 1 means checked."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value == 1
    return None


def _as_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _as_str_list(value: Any) -> list[str] | None:
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return list(value)
    return None


def _as_date(value: Any) -> date | None:
    text = _as_str(value)
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def _photo_url(value: Any) -> str | None:
    """Unwrap Photo[0].thumbnails.large.url; any missing link means no photo."""
    if not isinstance(value, list) or not value:
        return None
    first = value[0]
    if not isinstance(first, Mapping):
        return None
    thumbnails = first.get("thumbnails")
    if not isinstance(thumbnails, Mapping):
        return None
    large = thumbnails.get("large")
    if not isinstance(large, Mapping):
        return None
    return _as_str(large.get("url"))


def _fields(record: Mapping[str, Any]) -> Mapping[str, Any]:
    fields = record.get("fields")
    return fields if isinstance(fields, Mapping) else {}


def _record_id(record: Mapping[str, Any]) -> str:
    return str(record.get("id", ""))


def _visible(fields: Mapping[str, Any]) -> bool:
    visible = _as_bool(fields.get(VISIBILITY_FIELD))
    return True if visible is None else visible


# ---------------------------------------------------------------------------
# Decoders
# ---------------------------------------------------------------------------


def infer_zone_status(progress: float, zone_number: int | None) -> ZoneStatus:
    """Status for zones without an explicit Status column value.

    The first zone is always treated as under construction.
    """
    if progress >= 1.0:
        return ZoneStatus.COMPLETE
    if progress > 0 or zone_number == 1:
        return ZoneStatus.BUILDING
    return ZoneStatus.LOCKED


def decode_zone(record: Mapping[str, Any]) -> Zone:
    f = _fields(record)
    zone = Zone(
        id=_record_id(record),
        zone_display=_as_str(f.get("Zone_Display")),
        zone_prod=_as_str(f.get("Zone_Prod")),
        zone_number=_as_int(f.get("Zone_Number")),
        y_start=_as_int(f.get("Y_Start_Prod")),
        y_end=_as_int(f.get("Y_End_Prod")),
        total_layers=_as_int(f.get("Total_Layers")),
        layer_progress_count=_as_int(f.get("Layer_Progress")),
        blocks_planned_rollup=_as_int(f.get("Blocks_Planned_Rollup")),
        blocks_placed_rollup=_as_int(f.get("Blocks_Placed_Rollup")),
        blocks_remaining=_as_int(f.get("Blocks_Remaining")),
        progress_from_api=_as_float(f.get("Progress")),
        hours_rollup=_as_float(f.get("Hours_Rollup")),
        teaser_message=_as_str(f.get("Teaser_Message")),
        is_visible_to_kids=_visible(f),
    )

    status = ZoneStatus.parse(_as_str(f.get("Status")))
    if status is None:
        status = infer_zone_status(zone.progress, zone.zone_number)
    zone.status = status
    return zone


def decode_structure(record: Mapping[str, Any]) -> Structure:
    f = _fields(record)
    try:
        structure_type = StructureType(_as_str(f.get("Structure_Type")))
    except ValueError:
        structure_type = StructureType.OTHER

    return Structure(
        id=_record_id(record),
        structure_display=_as_str(f.get("Structure_Display")),
        structure_prod=_as_str(f.get("Structure_Prod")),
        structure_type=structure_type,
        blocks_planned=_as_int(f.get("Blocks_Planned")),
        blocks_placed_rollup=_as_int(f.get("Blocks_Placed_Rollup")),
        blocks_remaining=_as_int(f.get("Blocks_Remaining")),
        progress_from_api=_as_float(f.get("Progress")),
        estimated_hours=_as_float(f.get("Estimated_Hours")),
        hours_rollup=_as_float(f.get("Hours_Rollup")),
        forecast_hours_remaining=_as_float(f.get("Forecast_Hours_Remaining")),
        what_we_tell_the_kids=_as_str(f.get("What_We_Tell_The_Kids")),
        what_really_happens=_as_str(f.get("What_Really_Happens")),
        is_visible_to_kids=_visible(f),
        zone_ids=_as_str_list(f.get("Zone")) or [],
    )


def decode_material(record: Mapping[str, Any]) -> Material:
    f = _fields(record)
    return Material(
        id=_record_id(record),
        material_name=_as_str(f.get("Material_Name")) or "Unknown",
        category=_as_str(f.get("Category")),
        qty_planned=_as_int(f.get("Qty_Planned")) or 0,
        qty_remaining=_as_int(f.get("Qty_Remaining")) or 0,
        progress_from_api=_as_float(f.get("Progress")),
        notes=_as_str(f.get("Notes")),
    )


def decode_session(record: Mapping[str, Any]) -> BuildSession:
    f = _fields(record)

    duration = _as_count(f.get(DURATION_FORMULA_FIELD))
    if duration is None:
        duration = _as_count(f.get(DURATION_INPUT_FIELD))

    try:
        mood = BuildMood(_as_str(f.get("Mood")))
    except ValueError:
        mood = BuildMood.BRICK_BY_BRICK

    return BuildSession(
        id=_record_id(record),
        session_date=_as_date(f.get("Session_Date")),
        duration_minutes=duration,
        blocks_placed=_as_count(f.get("Blocks_Placed_This_Session")),
        mood=mood,
        notes_display=_as_str(f.get("Notes_Display")),
        notes_internal=_as_str(f.get("Notes_Prod")),
        photo_url=_photo_url(f.get("Photo")),
        is_visible_to_kids=_visible(f),
        zone_ids=_as_str_list(f.get("Zone_Worked")) or [],
        structure_ids=_as_str_list(f.get("Structures_Worked")) or [],
    )


# ---------------------------------------------------------------------------
# Encoders (writable columns only)
# ---------------------------------------------------------------------------


def encode_zone(zone: Zone) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    if zone.zone_display is not None:
        fields["Zone_Display"] = zone.zone_display
    if zone.zone_number is not None:
        fields["Zone_Number"] = zone.zone_number
    if zone.layer_progress_count is not None:
        fields["Layer_Progress"] = zone.layer_progress_count
    fields[VISIBILITY_FIELD] = zone.is_visible_to_kids
    fields["Status"] = zone.status.value
    # null clears the remote teaser
    fields["Teaser_Message"] = zone.teaser_message
    return fields


def encode_structure(structure: Structure) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    if structure.structure_display is not None:
        fields["Structure_Display"] = structure.structure_display
    if structure.blocks_planned is not None:
        fields["Blocks_Planned"] = structure.blocks_planned
    fields["Structure_Type"] = structure.structure_type.value
    if structure.what_we_tell_the_kids is not None:
        fields["What_We_Tell_The_Kids"] = structure.what_we_tell_the_kids
    if structure.what_really_happens is not None:
        fields["What_Really_Happens"] = structure.what_really_happens
    fields[VISIBILITY_FIELD] = structure.is_visible_to_kids
    return fields


def encode_material(material: Material) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "Material_Name": material.material_name,
        "Qty_Planned": material.qty_planned,
    }
    if material.category is not None:
        fields["Category"] = material.category
    if material.notes is not None:
        fields["Notes"] = material.notes
    return fields


def encode_session(session: BuildSession) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    if session.session_date is not None:
        fields["Session_Date"] = session.session_date.isoformat()
    if session.duration_minutes is not None:
        fields[DURATION_INPUT_FIELD] = session.duration_minutes
    if session.blocks_placed is not None:
        fields["Blocks_Placed_This_Session"] = session.blocks_placed
    fields["Mood"] = session.mood.value
    if session.notes_display is not None:
        fields["Notes_Display"] = session.notes_display
    if session.notes_internal is not None:
        fields["Notes_Prod"] = session.notes_internal
    fields[VISIBILITY_FIELD] = session.is_visible_to_kids
    if session.zone_ids:
        fields["Zone_Worked"] = session.zone_ids
    if session.structure_ids:
        fields["Structures_Worked"] = session.structure_ids
    return fields
