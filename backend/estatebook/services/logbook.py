"""Write paths: harvests, expenses, combined sessions and master data.

Every write that can change a derived figure invalidates the cached
ledgers and reports afterwards.  Setting a collector rate does not
touch harvest rows; tea totals are priced at read time.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from estatebook.config import settings
from estatebook.middleware.exceptions import BusinessLogicError, ResourceNotFoundError
from estatebook.schemas.collector import AdvanceCreate, CollectorCreate, CollectorRateCreate
from estatebook.schemas.field import FieldCreate, FieldUpdate
from estatebook.schemas.harvest import HarvestCreate, HarvestEntry, HarvestUpdate
from estatebook.schemas.logbook import CombinedLogCreate, CombinedLogResult
from estatebook.schemas.master_data import ActivityUpdate
from estatebook.schemas.transaction import TransactionUpdate, parse_expense
from estatebook.store.base import RecordFilter, RecordStore
from estatebook.utils.cache import invalidate_derived

logger = logging.getLogger(__name__)

# Master table → column holding the pre-filled unit rate
RATE_COLUMNS = {
    "activity_master": "default_rate",
    "inventory_master": "unit_price",
}

MASTER_LABELS = {
    "activity_master": "Activity",
    "inventory_master": "Inventory item",
}

RATE_CONFLICT_KEY = ("collector_id", "month", "year")


async def _get(store: RecordStore, collection: str, record_id: int, resource: str) -> dict:
    rows = await store.list(collection, RecordFilter(equals={"id": record_id}))
    if not rows:
        raise ResourceNotFoundError(resource, record_id)
    return rows[0]


def _first_error(exc: ValidationError) -> str:
    error = exc.errors()[0]
    return error["msg"].removeprefix("Value error, ")


# ── Harvests ─────────────────────────────────────────────────


def _harvest_rows(entry: HarvestEntry, date, field_id: int) -> dict[str, list[dict]]:
    """Harvest row plus the optional advance, keyed by collection."""
    rate = entry.rate or None
    batch = {
        "harvests": [{
            "date": date,
            "field_id": field_id,
            "crop_type": entry.crop_type,
            "weight": entry.weight,
            "rate": rate,
            "collector_id": entry.collector_id,
            # Tea waiting on a collector rate is stored at 0
            "total_amount": entry.weight * rate if rate else 0,
        }],
    }
    if entry.advance_amount:
        batch["collector_advances"] = [{
            "collector_id": entry.collector_id,
            "date": date,
            "amount": entry.advance_amount,
            "description": f"Advance during {entry.crop_type} harvest",
        }]
    return batch


async def _check_harvest_refs(store: RecordStore, field_id: int, collector_id: int | None):
    await _get(store, "fields", field_id, "Field")
    if collector_id is not None:
        await _get(store, "tea_collectors", collector_id, "Collector")


async def record_harvest(store: RecordStore, data: HarvestCreate) -> dict:
    await _check_harvest_refs(store, data.field_id, data.collector_id)
    inserted = await store.insert_batch(_harvest_rows(data, data.date, data.field_id))
    await invalidate_derived()

    harvest = inserted["harvests"][0]
    logger.info(
        "Recorded %s harvest %s: %.2f kg on field %s",
        harvest["crop_type"], harvest["id"], harvest["weight"], harvest["field_id"],
    )
    return {
        "harvest": harvest,
        "advance": inserted.get("collector_advances", [None])[0],
    }


async def update_harvest(store: RecordStore, harvest_id: int, patch: HarvestUpdate) -> dict:
    """Apply ``patch`` and recompute the stored total."""
    current = await _get(store, "harvests", harvest_id, "Harvest")
    merged = {**current, **patch.model_dump(exclude_unset=True)}
    try:
        checked = HarvestCreate.model_validate(merged)
    except ValidationError as e:
        raise BusinessLogicError(_first_error(e)) from e

    await _check_harvest_refs(store, checked.field_id, checked.collector_id)
    row = _harvest_rows(checked, checked.date, checked.field_id)["harvests"][0]
    updated = await store.update("harvests", harvest_id, row)
    await invalidate_derived()
    logger.info("Updated harvest %s", harvest_id)
    return updated


async def delete_harvest(store: RecordStore, harvest_id: int) -> None:
    await store.delete("harvests", harvest_id)
    await invalidate_derived()


# ── Expenses ─────────────────────────────────────────────────


async def _expense_row(store: RecordStore, expense) -> dict:
    """Flatten an expense variant, pre-filling the rate from master data."""
    if expense.field_id is not None:
        await _get(store, "fields", expense.field_id, "Field")

    master = None
    category_id = getattr(expense, "category_id", None)
    if expense.rate_source and category_id is not None:
        master = await _get(store, expense.rate_source, category_id, MASTER_LABELS[expense.rate_source])

    rate = expense.rate
    if not rate and master is not None:
        rate = master.get(RATE_COLUMNS[expense.rate_source])
    if not rate:
        raise BusinessLogicError(f"A rate is required for {expense.type} expenses")
    return expense.to_row(rate)


async def record_expense(store: RecordStore, expense) -> dict:
    row = await store.insert("transactions", await _expense_row(store, expense))
    await invalidate_derived()
    logger.info(
        "Recorded %s expense %s: %.2f", row["type"], row["id"], row["total_amount"]
    )
    return row


async def update_expense(store: RecordStore, transaction_id: int, patch: TransactionUpdate) -> dict:
    """Apply ``patch`` and rebuild the row through its expense variant.

    The edit follows the same rules as a new entry: fields foreign to
    the variant are refused, the category must exist, and the total is
    recomputed.
    """
    current = await _get(store, "transactions", transaction_id, "Transaction")
    changes = patch.model_dump(exclude_unset=True)

    stored = {k: v for k, v in current.items() if v is not None and k not in ("id", "total_amount")}
    try:
        expense = parse_expense({**stored, **changes})
    except ValidationError as e:
        raise BusinessLogicError(_first_error(e)) from e

    foreign = sorted(set(changes) - set(type(expense).model_fields))
    if foreign:
        raise BusinessLogicError(
            f"{', '.join(foreign)} cannot be set on {expense.type} expenses"
        )

    row = await _expense_row(store, expense)
    updated = await store.update("transactions", transaction_id, row)
    await invalidate_derived()
    logger.info("Updated transaction %s", transaction_id)
    return updated


async def delete_expense(store: RecordStore, transaction_id: int) -> None:
    await store.delete("transactions", transaction_id)
    await invalidate_derived()


# ── Combined session ─────────────────────────────────────────


async def record_session(store: RecordStore, data: CombinedLogCreate) -> CombinedLogResult:
    """One day's harvest, advance and expenses on a field, in one batch."""
    await _get(store, "fields", data.field_id, "Field")

    batch: dict[str, list[dict]] = {}
    if data.harvest is not None:
        if data.harvest.collector_id is not None:
            await _get(store, "tea_collectors", data.harvest.collector_id, "Collector")
        batch.update(_harvest_rows(data.harvest, data.date, data.field_id))
    if data.expenses:
        batch["transactions"] = [await _expense_row(store, e) for e in data.expenses]

    inserted = await store.insert_batch(batch)
    await invalidate_derived()

    result = CombinedLogResult(
        harvest_id=inserted.get("harvests", [{}])[0].get("id"),
        advance_id=inserted.get("collector_advances", [{}])[0].get("id"),
        transaction_ids=[t["id"] for t in inserted.get("transactions", [])],
    )
    logger.info(
        "Recorded session on field %s for %s: harvest=%s expenses=%d",
        data.field_id, data.date, result.harvest_id, len(result.transaction_ids),
    )
    return result


# ── Collectors ───────────────────────────────────────────────


async def add_collector(store: RecordStore, data: CollectorCreate) -> dict:
    row = await store.insert("tea_collectors", data.model_dump())
    logger.info("Added collector %s (%s)", row["id"], row["name"])
    return row


async def set_collector_rate(store: RecordStore, data: CollectorRateCreate) -> dict:
    """Set or replace the collector's rate for one month.

    Harvests are not rewritten; cached ledgers and reports are dropped
    so the next read prices the month's tea at the new rate.
    """
    await _get(store, "tea_collectors", data.collector_id, "Collector")
    rows = await store.upsert("collector_rates", data.model_dump(), RATE_CONFLICT_KEY)
    await invalidate_derived()
    logger.info(
        "Set %s rate for collector %s in %02d/%d: %.2f",
        settings.tea_crop, data.collector_id, data.month, data.year, data.rate,
    )
    return rows[0]


async def delete_collector_rate(store: RecordStore, rate_id: int) -> None:
    """Remove a wrongly entered rate; the month's tea goes back to pending."""
    rate = await _get(store, "collector_rates", rate_id, "Collector rate")
    await store.delete("collector_rates", rate_id)
    await invalidate_derived()
    logger.info(
        "Deleted rate %s for collector %s in %02d/%d",
        rate_id, rate["collector_id"], rate["month"], rate["year"],
    )


async def record_advance(store: RecordStore, data: AdvanceCreate) -> dict:
    await _get(store, "tea_collectors", data.collector_id, "Collector")
    row = await store.insert("collector_advances", data.model_dump())
    await invalidate_derived()
    logger.info("Recorded advance %s to collector %s: %.2f", row["id"], row["collector_id"], row["amount"])
    return row


async def delete_advance(store: RecordStore, advance_id: int) -> None:
    await store.delete("collector_advances", advance_id)
    await invalidate_derived()
    logger.info("Deleted advance %s", advance_id)


async def delete_collector(store: RecordStore, collector_id: int) -> None:
    """Delete a collector with no harvests or advances on record.

    The collector's monthly rates go with it.
    """
    await _get(store, "tea_collectors", collector_id, "Collector")
    by_collector = RecordFilter(equals={"collector_id": collector_id})
    harvests = await store.list("harvests", by_collector)
    advances = await store.list("collector_advances", by_collector)
    if harvests or advances:
        raise BusinessLogicError(
            f"Collector {collector_id} is referenced by {len(harvests)} harvest(s) "
            f"and {len(advances)} advance(s)",
            error_code="COLLECTOR_IN_USE",
        )

    for rate in await store.list("collector_rates", by_collector):
        await store.delete("collector_rates", rate["id"])
    await store.delete("tea_collectors", collector_id)
    await invalidate_derived()
    logger.info("Deleted collector %s", collector_id)


# ── Fields & master data ─────────────────────────────────────


async def add_field(store: RecordStore, data: FieldCreate) -> dict:
    row = await store.insert("fields", data.model_dump())
    await invalidate_derived()
    logger.info("Added field %s (%s)", row["id"], row["name"])
    return row


async def delete_field(store: RecordStore, field_id: int) -> None:
    """Delete a field nothing references yet."""
    await _get(store, "fields", field_id, "Field")
    by_field = RecordFilter(equals={"field_id": field_id})
    harvests = await store.list("harvests", by_field)
    transactions = await store.list("transactions", by_field)
    if harvests or transactions:
        raise BusinessLogicError(
            f"Field {field_id} is referenced by {len(harvests)} harvest(s) "
            f"and {len(transactions)} transaction(s)",
            error_code="FIELD_IN_USE",
        )
    await store.delete("fields", field_id)
    await invalidate_derived()


async def update_activity(store: RecordStore, activity_id: int, patch: ActivityUpdate) -> dict:
    changes = patch.model_dump(exclude_unset=True)
    if not changes:
        return await _get(store, "activity_master", activity_id, "Activity")
    return await store.update("activity_master", activity_id, changes)


async def update_field(store: RecordStore, field_id: int, patch: FieldUpdate) -> dict:
    changes = patch.model_dump(exclude_unset=True)
    if not changes:
        return await _get(store, "fields", field_id, "Field")
    row = await store.update("fields", field_id, changes)
    await invalidate_derived()
    return row
