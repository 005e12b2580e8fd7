"""Pytest bootstrap helpers shared by all test domains."""

from __future__ import annotations

import json
import os
import sys
from collections import defaultdict
from pathlib import Path
from typing import Any

import pytest


def _append_repo_root() -> None:
    """Ensure repository root is present in import path."""
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_text = str(repo_root)
    if repo_root_text in sys.path:
        return
    sys.path.insert(0, repo_root_text)


_append_repo_root()

# Run Qt headless when no display is available.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


from farmview.errors import BackendError  # noqa: E402


class FakeResponse:
    """Stand-in for ``requests.Response`` with a JSON body."""

    def __init__(self, status_code: int = 200, payload: Any = None, text: str | None = None) -> None:
        self.status_code = status_code
        self._payload = payload
        if text is not None:
            self.content = text.encode("utf-8")
        elif payload is None:
            self.content = b""
        else:
            self.content = json.dumps(payload).encode("utf-8")

    def json(self) -> Any:
        return json.loads(self.content.decode("utf-8"))


class FakeSession:
    """Records requests and replays queued responses."""

    def __init__(self, responses: list | None = None) -> None:
        self.responses = list(responses or [])
        self.calls: list[dict[str, Any]] = []

    def _next(self, call: dict[str, Any]):
        self.calls.append(call)
        response = self.responses.pop(0) if self.responses else FakeResponse(200, [])
        if isinstance(response, Exception):
            raise response
        return response

    def request(self, method, url, **kwargs):
        return self._next({"method": method, "url": url, **kwargs})

    def get(self, url, **kwargs):
        return self._next({"method": "GET", "url": url, **kwargs})


class MemoryClient:
    """In-memory table client with the ``RestClient`` call surface."""

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self.failing: set[tuple[str, str]] = set()
        self._seq = 0

    def is_configured(self) -> bool:
        return True

    def _check(self, method: str, table: str) -> None:
        if (method, table) in self.failing:
            raise BackendError(f"{method} {table} rejected", 500)

    @staticmethod
    def _matches(row: dict[str, Any], filters: dict[str, Any] | None) -> bool:
        return all(row.get(k) == v for k, v in (filters or {}).items())

    def select(self, table, filters=None, order=None, ascending=True):
        self._check("select", table)
        rows = [dict(r) for r in self.tables[table] if self._matches(r, filters)]
        if order:
            rows.sort(key=lambda r: str(r.get(order) or ""), reverse=not ascending)
        return rows

    def insert(self, table, rows):
        self._check("insert", table)
        if isinstance(rows, dict):
            rows = [rows]
        stored = []
        for row in rows:
            self._seq += 1
            row = {"id": f"{table}-{self._seq}", "criado_em": f"2024-01-01T00:00:{self._seq:02d}", **row}
            self.tables[table].append(row)
            stored.append(dict(row))
        return stored

    def update(self, table, values, filters):
        self._check("update", table)
        updated = []
        for row in self.tables[table]:
            if self._matches(row, filters):
                row.update(values)
                updated.append(dict(row))
        return updated

    def delete(self, table, filters):
        self._check("delete", table)
        kept = [r for r in self.tables[table] if not self._matches(r, filters)]
        removed = len(self.tables[table]) - len(kept)
        self.tables[table] = kept
        return [{}] * removed


@pytest.fixture
def memory_client() -> MemoryClient:
    """Empty in-memory backend."""
    return MemoryClient()


@pytest.fixture
def fake_session_factory():
    """Build a ``FakeSession`` replaying the given responses."""
    return FakeSession


@pytest.fixture
def fake_response_factory():
    """Build a ``FakeResponse``."""
    return FakeResponse


class FakeGeocoder:
    """Geocoder returning canned results and recording queries."""

    def __init__(self, results=None, postal=None) -> None:
        self.results = list(results or [])
        self.postal = postal
        self.queries: list[str] = []

    def search(self, text, limit=5):
        self.queries.append(text)
        return list(self.results)

    def lookup_postal_code(self, code):
        self.queries.append(code)
        return self.postal


@pytest.fixture
def fake_geocoder() -> FakeGeocoder:
    return FakeGeocoder()


@pytest.fixture
def app_context(qtbot, memory_client, fake_geocoder, tmp_path):
    """Application context over the in-memory backend and a temp roster."""
    from farmview.core.team import TeamRoster
    from farmview.gui.context import AppContext

    return AppContext(
        memory_client,
        TeamRoster(tmp_path / "team.json"),
        geocoder=fake_geocoder,
        user_id="u1",
    )
