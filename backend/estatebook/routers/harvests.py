"""Harvest (income) routes.

Listed harvests are rate-resolved: tea waiting on a collector rate is
priced from the rate table when one exists, else flagged
``rate_pending``.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query, status

from estatebook.schemas.common import PaginatedResponse
from estatebook.schemas.harvest import HarvestCreate, HarvestRecord, HarvestUpdate, ResolvedHarvest
from estatebook.schemas.ledger import PeriodPreset
from estatebook.schemas.logbook import HarvestLogged
from estatebook.services import logbook
from estatebook.services.ledger import date_range, rate_years, resolve_period
from estatebook.services.rate_resolver import RateTable, resolve_harvests
from estatebook.store.base import RecordStore, fetch_collections
from estatebook.store.sql import get_store

router = APIRouter()


@router.get("/", response_model=PaginatedResponse[ResolvedHarvest])
async def list_harvests(
    start: date | None = None,
    end: date | None = None,
    preset: PeriodPreset = "month",
    field_id: int | None = None,
    crop_type: str | None = None,
    pending_only: bool = False,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    store: RecordStore = Depends(get_store),
):
    period = resolve_period(start, end, preset)
    flt = date_range(period)
    flt.order_by, flt.descending = "date", True
    if field_id is not None:
        flt.equals["field_id"] = field_id
    if crop_type:
        flt.equals["crop_type"] = crop_type.strip().lower()

    data = await fetch_collections(store, {
        "harvests": ("harvests", flt),
        "rates": ("collector_rates", rate_years(period)),
    })
    items = resolve_harvests(data["harvests"], RateTable.from_rows(data["rates"]))
    if pending_only:
        items = [h for h in items if h.rate_pending]

    return PaginatedResponse(
        items=items[offset:offset + limit],
        total=len(items),
        limit=limit,
        offset=offset,
    )


@router.post("/", response_model=HarvestLogged, status_code=status.HTTP_201_CREATED)
async def create_harvest(body: HarvestCreate, store: RecordStore = Depends(get_store)):
    return await logbook.record_harvest(store, body)


@router.patch("/{harvest_id}", response_model=HarvestRecord)
async def update_harvest(
    harvest_id: int,
    body: HarvestUpdate,
    store: RecordStore = Depends(get_store),
):
    return await logbook.update_harvest(store, harvest_id, body)


@router.delete("/{harvest_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_harvest(harvest_id: int, store: RecordStore = Depends(get_store)):
    await logbook.delete_harvest(store, harvest_id)
