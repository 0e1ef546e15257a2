"""Pytest configuration and fixtures for EstateBook tests.

Most tests run against ``FakeRecordStore``, an in-memory record store
with the same filter, upsert and not-found behaviour as the SQL one.
Postgres and Redis tests skip when those services are unreachable.
"""

from datetime import date
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from estatebook.config import settings
from estatebook.main import app
from estatebook.middleware.exceptions import ResourceNotFoundError, StoreError
from estatebook.store.base import COLLECTIONS, RecordFilter
from estatebook.store.sql import get_store

# Columns filled in when a test row leaves them out
DEFAULTS = {
    "fields": {"area_acres": None, "notes": None},
    "harvests": {
        "field_id": None, "crop_type": "tea", "weight": 0, "rate": None,
        "collector_id": None, "total_amount": 0,
    },
    "transactions": {
        "field_id": None, "category_id": None, "description": None,
        "quantity": 1, "hours_worked": None, "rate": 0, "total_amount": 0,
    },
    "collector_rates": {},
    "collector_advances": {"description": None},
    "tea_collectors": {"contact": None},
    "activity_master": {"default_rate": 0},
    "inventory_master": {"unit": None, "unit_price": 0},
}


class FakeRecordStore:
    """In-memory record store.

    Collections named in ``fail_on`` raise ``StoreError`` on every call.
    """

    def __init__(self, fail_on=()):
        self.tables: dict[str, dict[int, dict]] = {c: {} for c in COLLECTIONS}
        self._next_id = {c: 1 for c in COLLECTIONS}
        self.fail_on = set(fail_on)

    def _check(self, collection: str):
        if collection not in self.tables:
            raise StoreError(collection, "unknown collection")
        if collection in self.fail_on:
            raise StoreError(collection, "connection refused")

    def _add(self, collection: str, row: dict) -> dict:
        stored = {**DEFAULTS[collection], **row}
        if "id" not in stored:
            stored["id"] = self._next_id[collection]
        self._next_id[collection] = max(self._next_id[collection], stored["id"]) + 1
        self.tables[collection][stored["id"]] = stored
        return dict(stored)

    def seed(self, collection: str, *rows: dict) -> list[dict]:
        return [self._add(collection, row) for row in rows]

    def rows(self, collection: str) -> list[dict]:
        return [dict(r) for r in self.tables[collection].values()]

    async def list(self, collection, flt=None, *, timeout=None):
        self._check(collection)
        flt = flt or RecordFilter()
        rows = [dict(r) for r in self.tables[collection].values() if flt.matches(r)]
        if flt.order_by:
            rows.sort(
                key=lambda r: (r.get(flt.order_by) is None, r.get(flt.order_by)),
                reverse=flt.descending,
            )
        return rows

    async def insert(self, collection, rows, *, timeout=None):
        single = isinstance(rows, dict)
        inserted = await self.insert_batch({collection: [rows] if single else rows})
        return inserted[collection][0] if single else inserted[collection]

    async def insert_batch(self, batch, *, timeout=None):
        for collection in batch:
            self._check(collection)
        return {
            collection: [self._add(collection, dict(row)) for row in rows]
            for collection, rows in batch.items()
        }

    async def update(self, collection, record_id, patch, *, timeout=None):
        self._check(collection)
        row = self.tables[collection].get(record_id)
        if row is None:
            raise ResourceNotFoundError(collection, record_id)
        row.update(patch)
        return dict(row)

    async def upsert(self, collection, rows, conflict_key, *, timeout=None):
        self._check(collection)
        rows = [rows] if isinstance(rows, dict) else rows
        affected = []
        for row in rows:
            key = tuple(row[k] for k in conflict_key)
            existing = next(
                (r for r in self.tables[collection].values()
                 if tuple(r[k] for k in conflict_key) == key),
                None,
            )
            if existing is None:
                affected.append(self._add(collection, dict(row)))
            else:
                existing.update({k: v for k, v in row.items() if k != "id"})
                affected.append(dict(existing))
        return affected

    async def delete(self, collection, record_id, *, timeout=None):
        self._check(collection)
        if self.tables[collection].pop(record_id, None) is None:
            raise ResourceNotFoundError(collection, record_id)


def seed_estate(store: FakeRecordStore) -> FakeRecordStore:
    """Two fields, one tea collector with a January 2024 rate of 40,
    a 100 kg tea harvest on field A, labor on A and a general overhead."""
    store.seed("fields", {"id": 1, "name": "Field A"}, {"id": 2, "name": "Field B"})
    store.seed("tea_collectors", {"id": 1, "name": "Ravi"})
    store.seed("collector_rates", {"id": 1, "collector_id": 1, "month": 1, "year": 2024, "rate": 40})
    store.seed("harvests", {
        "id": 1, "date": date(2024, 1, 10), "field_id": 1, "crop_type": "tea",
        "weight": 100, "rate": None, "collector_id": 1, "total_amount": 0,
    })
    store.seed(
        "transactions",
        {
            "id": 1, "date": date(2024, 1, 10), "field_id": 1, "type": "labor_cost",
            "quantity": 2, "rate": 500, "total_amount": 1000,
        },
        {
            "id": 2, "date": date(2024, 1, 15), "field_id": None, "type": "overhead",
            "description": "Electricity", "quantity": 1, "rate": 300, "total_amount": 300,
        },
    )
    store.seed("activity_master", {"id": 1, "name": "Plucking", "default_rate": 150})
    store.seed("inventory_master", {"id": 1, "name": "Fertilizer", "unit": "bag", "unit_price": 2400})
    return store


JANUARY_2024 = {"start": "2024-01-01", "end": "2024-01-31"}


# ── Fixtures ─────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def no_cache(monkeypatch):
    """Run without Redis unless a test turns caching back on."""
    monkeypatch.setattr(settings, "cache_enabled", False)


@pytest.fixture
def store() -> FakeRecordStore:
    return FakeRecordStore()


@pytest.fixture
def estate(store) -> FakeRecordStore:
    return seed_estate(store)


@pytest_asyncio.fixture
async def client(store) -> AsyncGenerator[AsyncClient, None]:
    """Test client with the record store dependency overridden."""
    app.dependency_overrides[get_store] = lambda: store

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "cache: Tests that need Redis")
    config.addinivalue_line("markers", "store: Tests that need Postgres")
