"""
Shared test fixtures for the job tracker API.

Storage is replaced by an in-memory StorageAdapter so handlers run end to end
through `main.api_handler` without touching AWS. The clock is pinned so
timestamps and the reminder window are deterministic.
"""

import base64
import json
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest

from models.dynamodb import PARTITION_KEY, SORT_KEY
from services import storage as storage_module
from services.storage import QueryPage, StorageAdapter
from utils import clock

FIXED_NOW = datetime(2025, 3, 10, 9, 30, tzinfo=timezone.utc)


class InMemoryStorage(StorageAdapter):
    """Dict-backed adapter keyed by table, then (userId, cardId)."""

    def __init__(self):
        self.tables: Dict[str, Dict[tuple, Dict[str, Any]]] = {}
        self.calls: List[str] = []

    def _rows(self, table: str) -> Dict[tuple, Dict[str, Any]]:
        return self.tables.setdefault(table, {})

    def point_get(self, table, user_id, sort_key=None):
        self.calls.append("point_get")
        item = self._rows(table).get((user_id, sort_key))
        return dict(item) if item else None

    def query(self, table, user_id, limit=None, exclusive_start=None):
        self.calls.append("query")
        rows = sorted(
            (item for (owner, _), item in self._rows(table).items() if owner == user_id),
            key=lambda item: str(item.get(SORT_KEY) or ""),
        )
        if exclusive_start:
            rows = [row for row in rows if row[SORT_KEY] > exclusive_start[SORT_KEY]]
        last = None
        if limit and len(rows) > limit:
            rows = rows[:limit]
            last = {PARTITION_KEY: user_id, SORT_KEY: rows[-1][SORT_KEY]}
        return QueryPage(items=[dict(row) for row in rows], last_evaluated=last)

    def scan_partition(self, table, user_id):
        self.calls.append("scan_partition")
        return [
            dict(item) for (owner, _), item in self._rows(table).items() if owner == user_id
        ]

    def put(self, table, item):
        self.calls.append("put")
        self._rows(table)[(item[PARTITION_KEY], item.get(SORT_KEY))] = dict(item)
        return item

    def update(self, table, user_id, sort_key, patch, set_if_missing=None):
        self.calls.append("update")
        key = (user_id, sort_key)
        item = dict(self._rows(table).get(key) or {PARTITION_KEY: user_id, SORT_KEY: sort_key})
        item.update(patch)
        for field, value in (set_if_missing or {}).items():
            item.setdefault(field, value)
        self._rows(table)[key] = item
        return dict(item)

    def delete(self, table, user_id, sort_key=None):
        self.calls.append("delete")
        self._rows(table).pop((user_id, sort_key), None)

    def items(self, table: str, user_id: Optional[str] = None) -> List[Dict[str, Any]]:
        return [
            item
            for (owner, _), item in self._rows(table).items()
            if user_id is None or owner == user_id
        ]


@pytest.fixture
def env(monkeypatch):
    monkeypatch.setenv("CARDS_TABLE", "cards-test")
    monkeypatch.setenv("PROFILES_TABLE", "profiles-test")
    monkeypatch.setenv("ALLOW_DEV_HEADER", "true")
    monkeypatch.delenv("STAGES_TABLE", raising=False)
    monkeypatch.delenv("REMINDER_DEFAULT_DAYS", raising=False)


@pytest.fixture
def fixed_clock(monkeypatch):
    monkeypatch.setattr(clock, "utc_now", lambda: FIXED_NOW)
    return FIXED_NOW


@pytest.fixture
def memory_storage(monkeypatch):
    adapter = InMemoryStorage()
    monkeypatch.setattr(storage_module, "_storage", adapter)
    return adapter


@pytest.fixture
def lambda_context():
    return SimpleNamespace(function_name="jobcopilot-api-test", aws_request_id="req-1")


def make_event(
    method: str,
    path: str,
    body: Any = None,
    user: Optional[str] = "u1",
    query: Optional[Dict[str, str]] = None,
    headers: Optional[Dict[str, str]] = None,
    claims: Optional[Dict[str, Any]] = None,
    base64_body: bool = False,
) -> Dict[str, Any]:
    """Build an HTTP API (payload v2) event."""
    event_headers = {"content-type": "application/json"}
    if user is not None:
        event_headers["x-user-id"] = user
    event_headers.update(headers or {})

    request_context: Dict[str, Any] = {
        "http": {"method": method, "path": path, "sourceIp": "127.0.0.1"},
        "stage": "$default",
    }
    if claims is not None:
        request_context["authorizer"] = {"jwt": {"claims": claims}}

    event: Dict[str, Any] = {
        "version": "2.0",
        "rawPath": path,
        "rawQueryString": "",
        "headers": event_headers,
        "requestContext": request_context,
        "isBase64Encoded": base64_body,
    }
    if query is not None:
        event["queryStringParameters"] = query
    if body is not None:
        raw = body if isinstance(body, str) else json.dumps(body)
        event["body"] = base64.b64encode(raw.encode()).decode() if base64_body else raw
    return event


def body_of(response: Dict[str, Any]) -> Dict[str, Any]:
    return json.loads(response["body"]) if response["body"] else {}


@pytest.fixture
def call_api(env, fixed_clock, memory_storage, lambda_context):
    """Invoke the API entry point and return (status, body, response)."""
    from main import api_handler

    def _call(method, path, body=None, **kwargs):
        response = api_handler(make_event(method, path, body, **kwargs), lambda_context)
        return response["statusCode"], body_of(response), response

    return _call
