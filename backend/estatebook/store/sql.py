"""SQLAlchemy implementation of the record store."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from sqlalchemy import delete as sa_delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from estatebook.config import settings
from estatebook.database import Base, async_session
from estatebook.middleware.exceptions import ResourceNotFoundError, StoreError
from estatebook.models import (
    ActivityMaster, CollectorAdvance, CollectorRate, Field, Harvest,
    InventoryMaster, TeaCollector, Transaction,
)
from estatebook.store.base import RecordFilter

logger = logging.getLogger(__name__)

MODELS: dict[str, type[Base]] = {
    "fields": Field,
    "harvests": Harvest,
    "transactions": Transaction,
    "collector_rates": CollectorRate,
    "collector_advances": CollectorAdvance,
    "tea_collectors": TeaCollector,
    "activity_master": ActivityMaster,
    "inventory_master": InventoryMaster,
}

# Bookkeeping columns not exposed in row dicts
_HIDDEN = {"created_at"}


def _model(collection: str) -> type[Base]:
    try:
        return MODELS[collection]
    except KeyError:
        raise StoreError(collection, "unknown collection") from None


def _columns(model) -> list[str]:
    return [c.key for c in model.__table__.columns if c.key not in _HIDDEN]


def _column(model, collection: str, name: str):
    if name not in model.__table__.columns:
        raise StoreError(collection, f"unknown column {name!r}")
    return model.__table__.columns[name]


def _to_row(obj) -> dict:
    return {key: getattr(obj, key) for key in _columns(type(obj))}


class SQLAlchemyRecordStore:
    """Record store over the async engine.

    Each call opens its own session, so calls issued together with
    ``asyncio.gather`` run on separate connections.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = async_session):
        self._session_factory = session_factory

    async def _run(self, collection: str, op, timeout: float | None) -> Any:
        limit = timeout if timeout is not None else settings.store_timeout_seconds
        try:
            return await asyncio.wait_for(op(), limit)
        except asyncio.TimeoutError:
            logger.error("Store call on %s timed out after %.1fs", collection, limit)
            raise StoreError(collection, f"timed out after {limit}s") from None
        except IntegrityError:
            # Rendered as a 422 by the integrity error handler
            raise
        except SQLAlchemyError as e:
            logger.error("Store call on %s failed: %s", collection, e)
            raise StoreError(collection, type(e).__name__) from e

    # ── Reads ────────────────────────────────────────────────

    async def list(
        self, collection: str, flt: RecordFilter | None = None, *, timeout: float | None = None
    ) -> list[dict]:
        model = _model(collection)
        flt = flt or RecordFilter()

        stmt = select(model)
        for name, value in flt.equals.items():
            stmt = stmt.where(_column(model, collection, name) == value)
        for name, (low, high) in flt.ranges.items():
            column = _column(model, collection, name)
            if low is not None:
                stmt = stmt.where(column >= low)
            if high is not None:
                stmt = stmt.where(column <= high)
        if flt.order_by:
            column = _column(model, collection, flt.order_by)
            stmt = stmt.order_by(column.desc() if flt.descending else column.asc())

        async def op():
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return [_to_row(obj) for obj in result.scalars().all()]

        return await self._run(collection, op, timeout)

    # ── Writes ───────────────────────────────────────────────

    async def insert(
        self, collection: str, rows: dict | list[dict], *, timeout: float | None = None
    ) -> dict | list[dict]:
        single = isinstance(rows, dict)
        inserted = await self.insert_batch(
            {collection: [rows] if single else list(rows)}, timeout=timeout
        )
        return inserted[collection][0] if single else inserted[collection]

    async def insert_batch(
        self, batch: dict[str, list[dict]], *, timeout: float | None = None
    ) -> dict[str, list[dict]]:
        """Insert rows into several collections in one transaction."""
        label = ",".join(batch)
        models = {collection: _model(collection) for collection in batch}

        async def op():
            async with self._session_factory() as session:
                objects = {
                    collection: [models[collection](**row) for row in rows]
                    for collection, rows in batch.items()
                }
                for objs in objects.values():
                    session.add_all(objs)
                await session.flush()
                result = {
                    collection: [_to_row(obj) for obj in objs]
                    for collection, objs in objects.items()
                }
                await session.commit()
                return result

        inserted = await self._run(label, op, timeout)
        logger.info(
            "Inserted %s",
            ", ".join(f"{len(rows)} {collection}" for collection, rows in inserted.items()),
        )
        return inserted

    async def update(
        self, collection: str, record_id: int, patch: dict, *, timeout: float | None = None
    ) -> dict:
        model = _model(collection)
        for name in patch:
            _column(model, collection, name)

        async def op():
            async with self._session_factory() as session:
                obj = await session.get(model, record_id)
                if obj is None:
                    raise ResourceNotFoundError(collection, record_id)
                for name, value in patch.items():
                    setattr(obj, name, value)
                await session.flush()
                row = _to_row(obj)
                await session.commit()
                return row

        return await self._run(collection, op, timeout)

    async def upsert(
        self,
        collection: str,
        rows: dict | list[dict],
        conflict_key: tuple[str, ...],
        *,
        timeout: float | None = None,
    ) -> list[dict]:
        """INSERT ... ON CONFLICT (conflict_key) DO UPDATE."""
        model = _model(collection)
        rows = [rows] if isinstance(rows, dict) else list(rows)
        if not rows:
            return []

        stmt = pg_insert(model.__table__).values(rows)
        updatable = [
            name for name in rows[0]
            if name not in conflict_key and name != "id" and name not in _HIDDEN
        ]
        stmt = stmt.on_conflict_do_update(
            index_elements=list(conflict_key),
            set_={name: stmt.excluded[name] for name in updatable},
        ).returning(*(model.__table__.columns[name] for name in _columns(model)))

        async def op():
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                affected = [dict(row) for row in result.mappings().all()]
                await session.commit()
                return affected

        return await self._run(collection, op, timeout)

    async def delete(
        self, collection: str, record_id: int, *, timeout: float | None = None
    ) -> None:
        model = _model(collection)

        async def op():
            async with self._session_factory() as session:
                result = await session.execute(
                    sa_delete(model).where(model.id == record_id)
                )
                if result.rowcount == 0:
                    raise ResourceNotFoundError(collection, record_id)
                await session.commit()

        await self._run(collection, op, timeout)
        logger.info("Deleted %s %s", collection, record_id)


_store = SQLAlchemyRecordStore()


def get_store() -> SQLAlchemyRecordStore:
    """FastAPI dependency returning the process-wide record store."""
    return _store
