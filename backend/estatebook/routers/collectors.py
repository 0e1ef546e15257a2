"""Tea collector routes: collectors, monthly rates and advances."""

from datetime import date

from fastapi import APIRouter, Depends, Query, status

from estatebook.schemas.collector import (
    AdvanceCreate, AdvanceRecord, CollectorCreate, CollectorOut,
    CollectorRateCreate, CollectorRateRecord,
)
from estatebook.services import logbook
from estatebook.store.base import RecordFilter, RecordStore
from estatebook.store.sql import get_store

router = APIRouter()


@router.get("/", response_model=list[CollectorOut])
async def list_collectors(store: RecordStore = Depends(get_store)):
    return await store.list("tea_collectors", RecordFilter(order_by="name"))


@router.post("/", response_model=CollectorOut, status_code=status.HTTP_201_CREATED)
async def create_collector(body: CollectorCreate, store: RecordStore = Depends(get_store)):
    return await logbook.add_collector(store, body)


@router.get("/rates", response_model=list[CollectorRateRecord])
async def list_rates(
    year: int | None = None,
    month: int | None = Query(None, ge=1, le=12),
    collector_id: int | None = None,
    store: RecordStore = Depends(get_store),
):
    flt = RecordFilter()
    if year is not None:
        flt.equals["year"] = year
    if month is not None:
        flt.equals["month"] = month
    if collector_id is not None:
        flt.equals["collector_id"] = collector_id
    return await store.list("collector_rates", flt)


@router.post("/rates", response_model=CollectorRateRecord)
async def set_rate(body: CollectorRateCreate, store: RecordStore = Depends(get_store)):
    """Set or replace a collector's rate for one month.

    Tea harvests for that month are priced at the new rate on the next
    read; stored harvest rows are left as they are.
    """
    return await logbook.set_collector_rate(store, body)


@router.get("/advances", response_model=list[AdvanceRecord])
async def list_advances(
    collector_id: int | None = None,
    start: date | None = None,
    end: date | None = None,
    store: RecordStore = Depends(get_store),
):
    flt = RecordFilter(order_by="date", descending=True)
    if collector_id is not None:
        flt.equals["collector_id"] = collector_id
    if start is not None or end is not None:
        flt.ranges["date"] = (start, end)
    return await store.list("collector_advances", flt)


@router.post("/advances", response_model=AdvanceRecord, status_code=status.HTTP_201_CREATED)
async def create_advance(body: AdvanceCreate, store: RecordStore = Depends(get_store)):
    return await logbook.record_advance(store, body)


@router.delete("/advances/{advance_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_advance(advance_id: int, store: RecordStore = Depends(get_store)):
    await logbook.delete_advance(store, advance_id)


@router.delete("/rates/{rate_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_rate(rate_id: int, store: RecordStore = Depends(get_store)):
    """The month's tea harvests read as rate pending again."""
    await logbook.delete_collector_rate(store, rate_id)


@router.delete("/{collector_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_collector(collector_id: int, store: RecordStore = Depends(get_store)):
    """Refused with 422 while harvests or advances reference the collector."""
    await logbook.delete_collector(store, collector_id)
