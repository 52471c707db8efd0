"""Local JSON persistence for state that does not live in Airtable.

Three single-blob stores:
- LocalOverrideStore: zone visibility/status/teaser triples that the
  Airtable schema rejected, keyed by zone record id
- ChatHistoryStore: build assistant conversation turns
- TokenStore: one secret string (API key)

Each blob carries a schema_version. A missing, corrupt or unknown-version
blob reads as empty; it is replaced on the next write. Single writer, single
process: there is no locking.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from streemrealm.models import ChatTurn, ZoneLocalState

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


class _OverrideBlob(BaseModel):
    schema_version: int = SCHEMA_VERSION
    overrides: dict[str, ZoneLocalState] = Field(default_factory=dict)


class _ChatBlob(BaseModel):
    schema_version: int = SCHEMA_VERSION
    turns: list[ChatTurn] = Field(default_factory=list)


class _TokenBlob(BaseModel):
    schema_version: int = SCHEMA_VERSION
    token: str | None = None


def _write_atomic(path: Path, payload: str) -> None:
    """Replace path with payload via a temp file in the same directory."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def _read_blob(path: Path, model: type[BaseModel]) -> Any:
    """Load a versioned blob, or None when it is absent or unusable."""
    if not path.exists():
        return None
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("local_store_unreadable: %s (%s)", path, e)
        return None

    if not isinstance(raw, dict) or raw.get("schema_version") != SCHEMA_VERSION:
        logger.warning("local_store_unknown_version: %s", path)
        return None

    try:
        return model.model_validate(raw)
    except ValidationError as e:
        logger.warning("local_store_invalid: %s (%s)", path, e)
        return None


class LocalOverrideStore:
    """Zone overrides held locally because Airtable rejected the columns.

    Example:
        >>> store = LocalOverrideStore(Path("~/.streemrealm/zone_local_state.json"))
        >>> store.set("recZone1", zone.to_local_state())
        >>> store.get("recZone1").status
        'building'
    """

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()

    def _load(self) -> dict[str, ZoneLocalState]:
        blob = _read_blob(self.path, _OverrideBlob)
        return dict(blob.overrides) if blob else {}

    def get(self, zone_id: str) -> ZoneLocalState | None:
        return self._load().get(zone_id)

    def get_all(self) -> dict[str, ZoneLocalState]:
        return self._load()

    def set(self, zone_id: str, state: ZoneLocalState) -> None:
        """Persist the override for a zone, replacing any previous one."""
        overrides = self._load()
        overrides[zone_id] = state
        _write_atomic(self.path, _OverrideBlob(overrides=overrides).model_dump_json(indent=2))
        logger.info("zone_override_saved: zone=%s reason=%s", zone_id, state.reason.value)

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
            logger.info("zone_overrides_cleared")


class ChatHistoryStore:
    """Persisted build assistant conversation."""

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()

    def load(self) -> list[ChatTurn]:
        blob = _read_blob(self.path, _ChatBlob)
        return list(blob.turns) if blob else []

    def save(self, turns: list[ChatTurn]) -> None:
        _write_atomic(self.path, _ChatBlob(turns=turns).model_dump_json(indent=2))

    def append(self, turn: ChatTurn) -> list[ChatTurn]:
        turns = self.load()
        turns.append(turn)
        self.save(turns)
        return turns

    def clear(self) -> None:
        self.save([])


class TokenStore:
    """A single secret kept on disk (Airtable token or Claude API key)."""

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()

    def get(self) -> str | None:
        blob = _read_blob(self.path, _TokenBlob)
        return blob.token if blob and blob.token else None

    def set(self, token: str) -> None:
        _write_atomic(self.path, _TokenBlob(token=token.strip()).model_dump_json())
        try:
            os.chmod(self.path, 0o600)
        except OSError:
            logger.debug("token_store_chmod_failed: %s", self.path)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
