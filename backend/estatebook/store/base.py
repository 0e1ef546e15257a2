"""Record store contract shared by the SQL adapter and test doubles.

Services never touch SQLAlchemy sessions.  They read and write plain
row dicts through a ``RecordStore``, one collection at a time:

    fields, harvests, transactions, collector_rates, collector_advances,
    tea_collectors, activity_master, inventory_master

Every call is asynchronous, may fail independently, and is bounded by a
timeout (``settings.store_timeout_seconds`` unless overridden).
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from estatebook.middleware.exceptions import UpstreamFetchError

logger = logging.getLogger(__name__)

COLLECTIONS = (
    "fields",
    "harvests",
    "transactions",
    "collector_rates",
    "collector_advances",
    "tea_collectors",
    "activity_master",
    "inventory_master",
)


@dataclass
class RecordFilter:
    """Equality and inclusive range predicates plus ordering.

    ``ranges`` maps a column to ``(low, high)``; either bound may be None.
    """
    equals: dict[str, Any] = field(default_factory=dict)
    ranges: dict[str, tuple[Any, Any]] = field(default_factory=dict)
    order_by: str | None = "id"
    descending: bool = False

    def matches(self, row: dict) -> bool:
        for column, value in self.equals.items():
            if row.get(column) != value:
                return False
        for column, (low, high) in self.ranges.items():
            value = row.get(column)
            if value is None:
                return False
            if low is not None and value < low:
                return False
            if high is not None and value > high:
                return False
        return True


class RecordStore(Protocol):
    async def list(
        self, collection: str, flt: RecordFilter | None = None, *, timeout: float | None = None
    ) -> list[dict]: ...

    async def insert(
        self, collection: str, rows: dict | list[dict], *, timeout: float | None = None
    ) -> dict | list[dict]: ...

    async def insert_batch(
        self, batch: dict[str, list[dict]], *, timeout: float | None = None
    ) -> dict[str, list[dict]]: ...

    async def update(
        self, collection: str, record_id: int, patch: dict, *, timeout: float | None = None
    ) -> dict: ...

    async def upsert(
        self,
        collection: str,
        rows: dict | list[dict],
        conflict_key: tuple[str, ...],
        *,
        timeout: float | None = None,
    ) -> list[dict]: ...

    async def delete(
        self, collection: str, record_id: int, *, timeout: float | None = None
    ) -> None: ...


async def fetch_collections(
    store: RecordStore,
    requests: dict[str, tuple[str, RecordFilter | None]],
) -> dict[str, list[dict]]:
    """Run independent ``list`` calls concurrently and join them.

    ``requests`` maps a result name to ``(collection, filter)``.  If any
    fetch fails the whole call fails with ``UpstreamFetchError`` naming
    the first failing collection; no partial result is returned.
    """
    names = list(requests)
    results = await asyncio.gather(
        *(store.list(collection, flt) for collection, flt in requests.values()),
        return_exceptions=True,
    )

    for name, result in zip(names, results):
        if isinstance(result, BaseException):
            collection = requests[name][0]
            logger.error("Fetch of %s failed: %s", collection, result)
            raise UpstreamFetchError(collection, str(result) or type(result).__name__) from result

    return dict(zip(names, results))
