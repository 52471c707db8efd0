"""Pytest configuration and fixtures for Streem Realm tests.

Provides record factories and an in-memory Airtable base served through
httpx.MockTransport, so the real client code runs end to end without network.
"""

from __future__ import annotations

import json
from collections import defaultdict
from itertools import count
from typing import Any
from urllib.parse import unquote

import httpx
import pytest

from streemrealm.airtable.client import AirtableClient
from streemrealm.config import TableNames
from streemrealm.storage.local_store import ChatHistoryStore, LocalOverrideStore
from streemrealm.sync.reconciler import Reconciler

TEST_BASE_URL = "https://api.airtable.test/v0"
TEST_BASE_ID = "appTEST"


def make_record(record_id: str, **fields: Any) -> dict[str, Any]:
    """Raw Airtable record as returned by the REST API."""
    return {"id": record_id, "createdTime": "2024-06-01T12:00:00.000Z", "fields": fields}


class FakeAirtable:
    """In-memory Airtable base answering the REST calls the client makes.

    - GET /{table} pages through records, honouring sort[0] and offset
    - GET/PATCH /{table}/{id}, POST /{table}; a field PATCHed to null is cleared
    - Columns listed in ``missing_columns`` are rejected with 422
      UNKNOWN_FIELD_NAME, as Airtable does for fields the base lacks
    - ``failures[table]`` forces a canned response for every call on a table
    """

    def __init__(self, page_size: int = 100):
        self.page_size = page_size
        self.tables: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self.missing_columns: set[str] = set()
        self.failures: dict[str, httpx.Response] = {}
        self.requests: list[httpx.Request] = []
        self._ids = count(1)

    def add(self, table: str, record_id: str | None = None, **fields: Any) -> dict[str, Any]:
        record = make_record(record_id or f"rec{next(self._ids):04d}", **fields)
        self.tables[table].append(record)
        return record

    def find(self, table: str, record_id: str) -> dict[str, Any] | None:
        return next((r for r in self.tables[table] if r["id"] == record_id), None)

    def writes(self, method: str | None = None) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.method in ("POST", "PATCH") and (method is None or r.method == method)
        ]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        parts = request.url.path.split("/")
        table = unquote(parts[3])
        record_id = unquote(parts[4]) if len(parts) > 4 else None

        if table in self.failures:
            return self.failures[table]

        if request.method == "GET" and record_id is None:
            return self._list(table, request)
        if request.method == "GET":
            record = self.find(table, record_id)
            return httpx.Response(200, json=record) if record else _not_found()

        fields = json.loads(request.content)["fields"]
        unknown = [name for name in fields if name in self.missing_columns]
        if unknown:
            return httpx.Response(
                422,
                json={
                    "error": {
                        "type": "UNKNOWN_FIELD_NAME",
                        "message": f'Unknown field name: "{unknown[0]}"',
                    }
                },
            )

        if request.method == "POST":
            return httpx.Response(200, json=self.add(table, **fields))

        record = self.find(table, record_id)
        if record is None:
            return _not_found()
        for name, value in fields.items():
            if value is None:
                record["fields"].pop(name, None)
            else:
                record["fields"][name] = value
        return httpx.Response(200, json=record)

    def _list(self, table: str, request: httpx.Request) -> httpx.Response:
        records = list(self.tables[table])
        params = request.url.params
        sort_field = params.get("sort[0][field]")
        if sort_field:
            present = [r for r in records if r["fields"].get(sort_field) is not None]
            absent = [r for r in records if r["fields"].get(sort_field) is None]
            present.sort(
                key=lambda r: r["fields"][sort_field],
                reverse=params.get("sort[0][direction]") == "desc",
            )
            records = present + absent

        start = int(params.get("offset", "0"))
        page = records[start : start + self.page_size]
        body: dict[str, Any] = {"records": page}
        if start + self.page_size < len(records):
            body["offset"] = str(start + self.page_size)
        return httpx.Response(200, json=body)


def _not_found() -> httpx.Response:
    return httpx.Response(404, json={"error": "NOT_FOUND"})


@pytest.fixture
def tables() -> TableNames:
    """Default table names."""
    return TableNames()


@pytest.fixture
def fake_airtable() -> FakeAirtable:
    """Empty fake base."""
    return FakeAirtable()


@pytest.fixture
def airtable_client(fake_airtable: FakeAirtable) -> AirtableClient:
    """Real client wired to the fake base."""
    return AirtableClient(
        "patTEST",
        TEST_BASE_ID,
        TEST_BASE_URL,
        transport=httpx.MockTransport(fake_airtable.handler),
    )


@pytest.fixture
def override_store(tmp_path) -> LocalOverrideStore:
    """Override store in a temp directory."""
    return LocalOverrideStore(tmp_path / "zone_local_state.json")


@pytest.fixture
def chat_history(tmp_path) -> ChatHistoryStore:
    """Chat history store in a temp directory."""
    return ChatHistoryStore(tmp_path / "chat_history.json")


@pytest.fixture
def reconciler(airtable_client: AirtableClient, override_store: LocalOverrideStore) -> Reconciler:
    """Reconciler over the fake base; nothing loaded yet."""
    return Reconciler(airtable_client, override_store)


@pytest.fixture
def seeded_airtable(fake_airtable: FakeAirtable, tables: TableNames) -> FakeAirtable:
    """Fake base with a small but complete build.

    Zones 1-3 (zone 3 hidden from the kids), one structure, two materials and
    three sessions on distinct dates.
    """
    fake_airtable.add(
        tables.zones, "recZone1",
        Zone_Display="Zone 1: The Foundation", Zone_Number=1,
        Blocks_Planned_Rollup=1000, Blocks_Placed_Rollup=1000,
        Is_Visible_To_Kids=True, Status="complete",
    )
    fake_airtable.add(
        tables.zones, "recZone2",
        Zone_Display="Zone 2: Sky Bridge", Zone_Number=2,
        Blocks_Planned_Rollup=2000, Blocks_Placed_Rollup=500,
        Is_Visible_To_Kids=1,
    )
    fake_airtable.add(
        tables.zones, "recZone3",
        Zone_Display="Zone 3: The Vault", Zone_Number=3,
        Blocks_Planned_Rollup=1000, Blocks_Placed_Rollup=0,
        Is_Visible_To_Kids=False, Teaser_Message="Something shiny...",
    )
    fake_airtable.add(
        tables.structures, "recStruct1",
        Structure_Display="Lava Moat", Structure_Type="System",
        Blocks_Planned=400, Blocks_Placed_Rollup=100, Zone=["recZone2"],
    )
    fake_airtable.add(
        tables.materials, "recMat1",
        Material_Name="Stone Bricks", Qty_Planned=640, Qty_Remaining=64,
    )
    fake_airtable.add(
        tables.materials, "recMat2",
        Material_Name="Mystery Goo", Qty_Planned=10, Qty_Remaining=10,
    )
    fake_airtable.add(
        tables.sessions, "recSess1",
        Session_Date="2024-06-01", Duration_Minutes=60,
        Blocks_Placed_This_Session=300, Mood="🔥 On Fire",
    )
    fake_airtable.add(
        tables.sessions, "recSess3",
        Session_Date="2024-06-10", Duration_Input_Minutes=30,
        Blocks_Placed_This_Session=100, Mood="😴 Mined Out",
        Is_Visible_To_Kids=False,
    )
    fake_airtable.add(
        tables.sessions, "recSess2",
        Session_Date="2024-06-05", Duration_Minutes=90,
        Blocks_Placed_This_Session=600, Mood="🏆 Master Builder",
        Notes_Display="Finished the foundation!",
    )
    return fake_airtable
