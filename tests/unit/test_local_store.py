"""Unit tests for the local JSON stores."""

from __future__ import annotations

import json
import os
import stat

import pytest

from streemrealm.models import ChatRole, ChatTurn, OverrideReason, ZoneLocalState
from streemrealm.storage.local_store import (
    SCHEMA_VERSION,
    ChatHistoryStore,
    LocalOverrideStore,
    TokenStore,
)


@pytest.fixture
def state() -> ZoneLocalState:
    return ZoneLocalState(is_visible_to_kids=False, status="building", teaser_message="Soon!")


class TestLocalOverrideStore:
    """Zone override persistence."""

    def test_missing_file_reads_empty(self, override_store):
        assert override_store.get_all() == {}
        assert override_store.get("recZ") is None

    def test_set_then_get_in_new_instance(self, override_store, state):
        """Overrides survive a restart."""
        override_store.set("recZ", state)

        reloaded = LocalOverrideStore(override_store.path).get("recZ")

        assert reloaded.is_visible_to_kids is False
        assert reloaded.status == "building"
        assert reloaded.teaser_message == "Soon!"
        assert reloaded.reason == OverrideReason.SCHEMA_MISMATCH

    def test_blob_is_versioned(self, override_store, state):
        override_store.set("recZ", state)

        raw = json.loads(override_store.path.read_text())

        assert raw["schema_version"] == SCHEMA_VERSION
        assert raw["overrides"]["recZ"]["reason"] == "schema_mismatch"

    def test_set_replaces_only_that_zone(self, override_store, state):
        override_store.set("recA", state)
        override_store.set("recB", state)
        override_store.set("recA", state.model_copy(update={"status": "complete"}))

        held = override_store.get_all()

        assert set(held) == {"recA", "recB"}
        assert held["recA"].status == "complete"
        assert held["recB"].status == "building"

    def test_corrupt_blob_reads_empty(self, override_store):
        override_store.path.write_text("{not json")
        assert override_store.get_all() == {}

    def test_unknown_version_reads_empty(self, override_store):
        override_store.path.write_text(json.dumps({"schema_version": 99, "overrides": {}}))
        assert override_store.get_all() == {}

    def test_invalid_entries_read_empty(self, override_store):
        override_store.path.write_text(
            json.dumps({"schema_version": SCHEMA_VERSION, "overrides": {"recZ": {"status": 5}}})
        )
        assert override_store.get_all() == {}

    def test_corrupt_blob_is_replaced_on_next_write(self, override_store, state):
        override_store.path.write_text("garbage")

        override_store.set("recZ", state)

        assert set(override_store.get_all()) == {"recZ"}

    def test_write_leaves_no_temp_files(self, override_store, state):
        override_store.set("recZ", state)
        assert os.listdir(override_store.path.parent) == [override_store.path.name]

    def test_clear(self, override_store, state):
        override_store.set("recZ", state)
        override_store.clear()

        assert not override_store.path.exists()
        assert override_store.get_all() == {}


class TestChatHistoryStore:
    def test_append_and_load(self, chat_history):
        chat_history.append(ChatTurn(role=ChatRole.USER, content="Hi"))
        chat_history.append(ChatTurn(role=ChatRole.ASSISTANT, content="Hello builder!"))

        turns = ChatHistoryStore(chat_history.path).load()

        assert [(t.role, t.content) for t in turns] == [
            (ChatRole.USER, "Hi"),
            (ChatRole.ASSISTANT, "Hello builder!"),
        ]

    def test_clear(self, chat_history):
        chat_history.append(ChatTurn(role=ChatRole.USER, content="Hi"))
        chat_history.clear()
        assert chat_history.load() == []


class TestTokenStore:
    def test_round_trip_strips_whitespace(self, tmp_path):
        store = TokenStore(tmp_path / "token.json")
        store.set("  patSECRET\n")
        assert TokenStore(store.path).get() == "patSECRET"

    def test_file_is_private(self, tmp_path):
        store = TokenStore(tmp_path / "token.json")
        store.set("patSECRET")
        assert stat.S_IMODE(store.path.stat().st_mode) == 0o600

    def test_missing_token(self, tmp_path):
        assert TokenStore(tmp_path / "token.json").get() is None
