"""Combined log: one-shot session entry and the merged activity log."""

from datetime import date

from fastapi import APIRouter, Depends, status

from estatebook.config import settings
from estatebook.schemas.ledger import PeriodPreset
from estatebook.schemas.logbook import CombinedLogCreate, CombinedLogResult
from estatebook.schemas.report import LogEntry
from estatebook.services import logbook
from estatebook.services.ledger import resolve_period
from estatebook.services.reports import build_report
from estatebook.store.base import RecordStore
from estatebook.store.sql import get_store
from estatebook.utils.cache import cached

router = APIRouter()


@router.get("/combined", response_model=list[LogEntry])
@cached(ttl=settings.report_cache_ttl, prefix="reports")
async def combined_log(
    start: date | None = None,
    end: date | None = None,
    preset: PeriodPreset = "month",
    store: RecordStore = Depends(get_store),
):
    """Income, expenses and advances, newest first."""
    report = await build_report(store, resolve_period(start, end, preset))
    return report.log


@router.post("/combined", response_model=CombinedLogResult, status_code=status.HTTP_201_CREATED)
async def record_session(body: CombinedLogCreate, store: RecordStore = Depends(get_store)):
    return await logbook.record_session(store, body)
