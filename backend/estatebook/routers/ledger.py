"""Derived ledger routes."""

from datetime import date

from fastapi import APIRouter, Depends

from estatebook.config import settings
from estatebook.schemas.ledger import LedgerSummary, MissingRateAdvisory, PeriodPreset
from estatebook.services.ledger import (
    build_ledger, build_missing_rate_advisory, resolve_period,
)
from estatebook.store.base import RecordStore
from estatebook.store.sql import get_store
from estatebook.utils.cache import cached

router = APIRouter()


@router.get("/", response_model=LedgerSummary)
@cached(ttl=settings.ledger_cache_ttl, prefix="ledger")
async def get_ledger(
    start: date | None = None,
    end: date | None = None,
    preset: PeriodPreset = "month",
    field_id: int | None = None,
    store: RecordStore = Depends(get_store),
):
    """Per-field, general and estate income/expense/profit.

    ``start``/``end`` (inclusive) override ``preset``.  Records that
    cannot be placed are listed under ``warnings``; the missing-rate
    advisory covers the month before today.
    """
    period = resolve_period(start, end, preset)
    return await build_ledger(store, period, field_id)


@router.get("/missing-rates", response_model=MissingRateAdvisory)
async def missing_rates(store: RecordStore = Depends(get_store)):
    return await build_missing_rate_advisory(store)
