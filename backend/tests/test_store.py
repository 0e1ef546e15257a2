"""SQLAlchemy record store tests against a real Postgres database.

Uses ``TEST_DATABASE_URL``; skipped when the database is unreachable.
"""

from datetime import date

import pytest
import pytest_asyncio
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import estatebook.models  # noqa: F401
from estatebook.config import settings
from estatebook.database import Base
from estatebook.middleware.exceptions import ResourceNotFoundError, StoreError
from estatebook.store.base import RecordFilter
from estatebook.store.sql import SQLAlchemyRecordStore


@pytest_asyncio.fixture
async def sql_store():
    engine = create_async_engine(settings.test_database_url, echo=False)
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
    except Exception as e:
        await engine.dispose()
        pytest.skip(f"Postgres not reachable: {e}")

    yield SQLAlchemyRecordStore(async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.mark.store
@pytest.mark.asyncio
class TestSQLAlchemyRecordStore:

    async def test_insert_and_filtered_list(self, sql_store):
        field = await sql_store.insert("fields", {"name": "Field A"})
        await sql_store.insert("harvests", [
            {"date": date(2024, 1, d), "field_id": field["id"], "crop_type": "pepper",
             "weight": 1, "rate": 10, "total_amount": 10}
            for d in (5, 15, 25)
        ])

        rows = await sql_store.list("harvests", RecordFilter(
            ranges={"date": (date(2024, 1, 10), None)}, order_by="date", descending=True,
        ))

        assert [r["date"].day for r in rows] == [25, 15]
        assert "created_at" not in rows[0]

    async def test_insert_batch_is_one_transaction(self, sql_store):
        collector = await sql_store.insert("tea_collectors", {"name": "Ravi"})
        with pytest.raises(IntegrityError):
            await sql_store.insert_batch({
                "collector_advances": [{"collector_id": collector["id"], "date": date(2024, 1, 2), "amount": 10}],
                "harvests": [{"date": date(2024, 1, 2), "field_id": 999, "crop_type": "tea", "weight": 1}],
            })
        assert await sql_store.list("collector_advances") == []

    async def test_upsert_replaces_rate_for_same_month(self, sql_store):
        collector = await sql_store.insert("tea_collectors", {"name": "Ravi"})
        key = ("collector_id", "month", "year")
        row = {"collector_id": collector["id"], "month": 1, "year": 2024, "rate": 40}

        first = await sql_store.upsert("collector_rates", row, key)
        second = await sql_store.upsert("collector_rates", {**row, "rate": 45}, key)

        assert first[0]["id"] == second[0]["id"]
        rates = await sql_store.list("collector_rates")
        assert [r["rate"] for r in rates] == [45]

    async def test_update_and_delete_missing_rows(self, sql_store):
        with pytest.raises(ResourceNotFoundError):
            await sql_store.update("fields", 12345, {"name": "Nope"})
        with pytest.raises(ResourceNotFoundError):
            await sql_store.delete("fields", 12345)

    async def test_unknown_collection_and_column(self, sql_store):
        with pytest.raises(StoreError):
            await sql_store.list("invoices")
        with pytest.raises(StoreError):
            await sql_store.list("fields", RecordFilter(equals={"colour": "green"}))
