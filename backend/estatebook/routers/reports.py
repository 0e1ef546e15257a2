"""Report document route; rendering to PDF/CSV happens client-side."""

from datetime import date

from fastapi import APIRouter, Depends

from estatebook.config import settings
from estatebook.schemas.ledger import PeriodPreset
from estatebook.schemas.report import ReportDocument
from estatebook.services.ledger import resolve_period
from estatebook.services.reports import build_report
from estatebook.store.base import RecordStore
from estatebook.store.sql import get_store
from estatebook.utils.cache import cached

router = APIRouter()


@router.get("/", response_model=ReportDocument)
@cached(ttl=settings.report_cache_ttl, prefix="reports")
async def get_report(
    start: date | None = None,
    end: date | None = None,
    preset: PeriodPreset = "month",
    store: RecordStore = Depends(get_store),
):
    return await build_report(store, resolve_period(start, end, preset))
