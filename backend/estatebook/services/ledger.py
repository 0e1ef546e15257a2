"""Ledger aggregation: per-field, general and estate-wide profit.

Inputs are snapshots fetched for one request; nothing here writes.

    field row    income  = Σ resolved harvest totals on the field
                 expense = Σ transaction totals on the field
    general row  expense = Σ transaction totals with no field
    estate       income  = Σ field income
                 expense = Σ field expense + general expense

Sums are accumulated as Decimal so that the field and general profits
add up to the estate profit exactly; the summary reports floats.

Harvests with no field, an unknown field or an unknown collector, and
transactions with an unknown field, cannot be placed.  They are left
out of every figure and listed in ``warnings``.
"""

from __future__ import annotations

import datetime as dt
import logging
from decimal import Decimal
from typing import Iterable

from estatebook.middleware.exceptions import (
    DataIntegrityError, LedgerValidationError, ResourceNotFoundError,
)
from estatebook.schemas.harvest import HarvestRecord, ResolvedHarvest
from estatebook.schemas.ledger import (
    EstateSummary, FieldLedgerRow, IntegrityWarning, LedgerSummary,
    MissingRateAdvisory, MissingRateCollector, PeriodFilter,
)
from estatebook.services.rate_resolver import RateTable, needs_rate, resolve_harvests
from estatebook.store.base import RecordFilter, RecordStore, fetch_collections

logger = logging.getLogger(__name__)

GENERAL_LABEL = "General"

_ZERO = Decimal(0)


def money(value) -> Decimal:
    """Null-safe Decimal for a stored amount."""
    if value is None:
        return _ZERO
    return Decimal(str(value))


def as_row(record) -> dict:
    return record.model_dump() if hasattr(record, "model_dump") else record


def to_warning(err: DataIntegrityError) -> IntegrityWarning:
    return IntegrityWarning(
        kind=err.error_code,
        collection=err.collection,
        record_id=err.record_id,
        message=err.message,
    )


# ── Periods ──────────────────────────────────────────────────


def validate_period(period: PeriodFilter) -> None:
    if period.start > period.end:
        raise LedgerValidationError(
            f"Period start {period.start} is after end {period.end}"
        )


def period_for_preset(preset: str, today: dt.date) -> PeriodFilter:
    """Calendar-to-date period ending today."""
    if preset == "month":
        start = today.replace(day=1)
    elif preset == "quarter":
        start = today.replace(month=3 * ((today.month - 1) // 3) + 1, day=1)
    elif preset == "year":
        start = today.replace(month=1, day=1)
    else:
        raise LedgerValidationError(f"Unknown period preset: {preset}")
    return PeriodFilter(start=start, end=today)


def prior_month(today: dt.date) -> PeriodFilter:
    end = today.replace(day=1) - dt.timedelta(days=1)
    return PeriodFilter(start=end.replace(day=1), end=end)


# ── Screening ────────────────────────────────────────────────


def screen_records(
    harvests: Iterable[ResolvedHarvest],
    transactions: Iterable,
    field_names: dict[int, str],
    period: PeriodFilter,
    collector_ids: set[int] | None = None,
) -> tuple[list[ResolvedHarvest], list[dict], list[DataIntegrityError]]:
    """Keep in-period records that reference a known field.

    Transactions with no field are kept (general expense).  When
    ``collector_ids`` is given, harvests sold to any other collector
    are dropped as well.
    """
    kept_harvests: list[ResolvedHarvest] = []
    kept_transactions: list[dict] = []
    errors: list[DataIntegrityError] = []

    for h in harvests:
        if not period.contains(h.date):
            continue
        if h.field_id is None:
            errors.append(DataIntegrityError("harvests", h.id, f"Harvest {h.id} has no field"))
        elif h.field_id not in field_names:
            errors.append(DataIntegrityError(
                "harvests", h.id, f"Harvest {h.id} references unknown field {h.field_id}"
            ))
        elif (
            collector_ids is not None
            and h.collector_id is not None
            and h.collector_id not in collector_ids
        ):
            errors.append(DataIntegrityError(
                "harvests", h.id, f"Harvest {h.id} references unknown collector {h.collector_id}"
            ))
        else:
            kept_harvests.append(h)

    for t in transactions:
        t = as_row(t)
        if not period.contains(t["date"]):
            continue
        field_id = t.get("field_id")
        if field_id is not None and field_id not in field_names:
            errors.append(DataIntegrityError(
                "transactions", t["id"],
                f"Transaction {t['id']} references unknown field {field_id}",
            ))
        else:
            kept_transactions.append(t)

    for err in errors:
        logger.warning("Excluded from ledger: %s", err.message)
    return kept_harvests, kept_transactions, errors


# ── Aggregation ──────────────────────────────────────────────


def aggregate(
    harvests: Iterable[ResolvedHarvest],
    transactions: Iterable,
    fields: Iterable,
    period: PeriodFilter,
    field_id: int | None = None,
    collectors: Iterable | None = None,
) -> LedgerSummary:
    """Summarise resolved harvests and transactions for ``period``.

    ``field_id`` None means every field; a single field reports a
    general expense of 0 since unattributed costs belong to no field.
    Passing ``collectors`` also excludes harvests sold to a collector
    that does not exist.
    """
    validate_period(period)

    fields = [as_row(f) for f in fields]
    field_names = {f["id"]: f["name"] for f in fields}
    if field_id is not None and field_id not in field_names:
        raise ResourceNotFoundError("Field", field_id)

    collector_ids = None
    if collectors is not None:
        collector_ids = {as_row(c)["id"] for c in collectors}

    kept_harvests, kept_transactions, errors = screen_records(
        harvests, transactions, field_names, period, collector_ids
    )

    scope = [f["id"] for f in fields] if field_id is None else [field_id]
    income = {fid: _ZERO for fid in scope}
    expense = {fid: _ZERO for fid in scope}
    general = _ZERO
    pending = 0

    for h in kept_harvests:
        if h.field_id in income:
            income[h.field_id] += money(h.total_amount)
            if h.rate_pending:
                pending += 1

    for t in kept_transactions:
        if t.get("field_id") is None:
            if field_id is None:
                general += money(t.get("total_amount"))
        elif t["field_id"] in expense:
            expense[t["field_id"]] += money(t.get("total_amount"))

    rows = [
        FieldLedgerRow(
            field_id=fid,
            field_name=field_names[fid],
            total_income=float(income[fid]),
            total_expense=float(expense[fid]),
            net_profit=float(income[fid] - expense[fid]),
        )
        for fid in scope
    ]
    general_row = FieldLedgerRow(
        field_id=None,
        field_name=GENERAL_LABEL,
        total_income=0,
        total_expense=float(general),
        net_profit=float(-general),
    )

    total_income = sum(income.values(), _ZERO)
    total_expense = sum(expense.values(), _ZERO) + general

    return LedgerSummary(
        period=period,
        field_id=field_id,
        fields=rows,
        general=general_row,
        estate=EstateSummary(
            total_income=float(total_income),
            total_expense=float(total_expense),
            total_profit=float(total_income - total_expense),
        ),
        pending_rate_count=pending,
        warnings=[to_warning(err) for err in errors],
    )


# ── Missing-rate advisory ────────────────────────────────────


def check_missing_rates(
    harvests: Iterable,
    rates: Iterable[dict] | RateTable,
    collectors: Iterable,
    today: dt.date,
) -> MissingRateAdvisory:
    """Collectors with tea harvests last month but no rate for it.

    Advisory only: the ledger is still computed, with those harvests
    flagged as rate pending.
    """
    month = prior_month(today)
    table = rates if isinstance(rates, RateTable) else RateTable.from_rows(rates)
    names = {c["id"]: c["name"] for c in (as_row(c) for c in collectors)}

    counts: dict[int, int] = {}
    for h in harvests:
        if isinstance(h, dict):
            h = HarvestRecord.model_validate(h)
        # Tea priced when it was entered does not wait on a rate
        if not needs_rate(h) or not month.contains(h.date):
            continue
        if table.lookup(h.collector_id, month.start.month, month.start.year) is None:
            counts[h.collector_id] = counts.get(h.collector_id, 0) + 1

    advisory = MissingRateAdvisory(
        month=month.start.month,
        year=month.start.year,
        collectors=[
            MissingRateCollector(
                collector_id=cid,
                collector_name=names.get(cid, f"Collector {cid}"),
                harvest_count=counts[cid],
            )
            for cid in sorted(counts)
        ],
    )
    if advisory.has_missing:
        logger.warning(
            "No %02d/%d rate set for %d collector(s) with tea harvests",
            advisory.month, advisory.year, len(advisory.collectors),
        )
    return advisory


def rate_years(*periods: PeriodFilter) -> RecordFilter:
    """Collector rates covering every month of ``periods``."""
    low = min(p.start.year for p in periods)
    high = max(p.end.year for p in periods)
    return RecordFilter(ranges={"year": (low, high)})


def date_range(period: PeriodFilter) -> RecordFilter:
    return RecordFilter(ranges={"date": (period.start, period.end)})


# ── Entry points ─────────────────────────────────────────────


async def build_ledger(
    store: RecordStore,
    period: PeriodFilter,
    field_id: int | None = None,
    today: dt.date | None = None,
) -> LedgerSummary:
    """Fetch, resolve and aggregate; fails whole if any fetch fails."""
    validate_period(period)
    today = today or dt.date.today()
    last_month = prior_month(today)

    data = await fetch_collections(store, {
        "fields": ("fields", RecordFilter(order_by="name")),
        "harvests": ("harvests", date_range(period)),
        "transactions": ("transactions", date_range(period)),
        "rates": ("collector_rates", rate_years(period, last_month)),
        "collectors": ("tea_collectors", None),
        "prior_harvests": ("harvests", date_range(last_month)),
    })

    table = RateTable.from_rows(data["rates"])
    resolved = resolve_harvests(data["harvests"], table)
    summary = aggregate(
        resolved, data["transactions"], data["fields"], period, field_id,
        collectors=data["collectors"],
    )
    summary.warnings = [to_warning(err) for err in table.errors] + summary.warnings
    summary.missing_rate_advisory = check_missing_rates(
        data["prior_harvests"], table, data["collectors"], today
    )

    logger.info(
        "Ledger %s..%s field=%s: income=%.2f expense=%.2f pending=%d",
        period.start, period.end, field_id if field_id is not None else "all",
        summary.estate.total_income, summary.estate.total_expense,
        summary.pending_rate_count,
    )
    return summary


async def build_missing_rate_advisory(
    store: RecordStore, today: dt.date | None = None
) -> MissingRateAdvisory:
    today = today or dt.date.today()
    last_month = prior_month(today)
    data = await fetch_collections(store, {
        "harvests": ("harvests", date_range(last_month)),
        "rates": ("collector_rates", RecordFilter(equals={
            "month": last_month.start.month, "year": last_month.start.year,
        })),
        "collectors": ("tea_collectors", None),
    })
    return check_missing_rates(data["harvests"], data["rates"], data["collectors"], today)


def resolve_period(
    start: dt.date | None,
    end: dt.date | None,
    preset: str = "month",
    today: dt.date | None = None,
) -> PeriodFilter:
    """Explicit ``start``/``end`` win over ``preset``."""
    if start is None and end is None:
        return period_for_preset(preset, today or dt.date.today())
    if start is None or end is None:
        raise LedgerValidationError("start and end must be given together")
    period = PeriodFilter(start=start, end=end)
    validate_period(period)
    return period
