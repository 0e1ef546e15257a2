"""Report compilation: a passive document for external rendering."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable

from estatebook.config import settings
from estatebook.middleware.exceptions import DataIntegrityError
from estatebook.schemas.ledger import PeriodFilter
from estatebook.schemas.report import (
    CollectorSummaryRow, CropRow, ExpenseTypeRow, LogEntry, ReportDocument,
)
from estatebook.schemas.transaction import EXPENSE_TYPE_LABELS
from estatebook.services.ledger import (
    aggregate, as_row, date_range, money, rate_years, screen_records,
    to_warning, validate_period,
)
from estatebook.services.rate_resolver import RateTable, resolve_harvests
from estatebook.store.base import RecordFilter, RecordStore, fetch_collections

logger = logging.getLogger(__name__)

UNKNOWN_CROP = "unknown"
NO_FIELD = "-"


def _by_id(rows: Iterable) -> list:
    return sorted(rows, key=lambda r: r.id if hasattr(r, "id") else r["id"])


def compile_report(
    harvests: Iterable,
    transactions: Iterable,
    rates: Iterable[dict],
    advances: Iterable,
    collectors: Iterable,
    fields: Iterable,
    period: PeriodFilter,
) -> ReportDocument:
    """Assemble every report section from one snapshot.

    Records that fail integrity checks are left out of all sections and
    counted in ``skipped_records``.
    """
    validate_period(period)

    fields = [as_row(f) for f in fields]
    collectors = [as_row(c) for c in collectors]
    field_names = {f["id"]: f["name"] for f in fields}
    collector_names = {c["id"]: c["name"] for c in collectors}

    table = RateTable.from_rows(rates)
    resolved = _by_id(resolve_harvests(harvests, table))
    valid_harvests, kept_transactions, errors = screen_records(
        resolved, _by_id(as_row(t) for t in transactions), field_names, period,
        set(collector_names),
    )
    errors = table.errors + errors

    valid_advances = []
    for a in _by_id(as_row(a) for a in advances):
        if not period.contains(a["date"]):
            continue
        if a["collector_id"] not in collector_names:
            errors.append(DataIntegrityError(
                "collector_advances", a["id"],
                f"Advance {a['id']} references unknown collector {a['collector_id']}",
            ))
        else:
            valid_advances.append(a)

    ledger = aggregate(valid_harvests, kept_transactions, fields, period)

    if errors:
        logger.warning("Report %s..%s skipped %d record(s)", period.start, period.end, len(errors))

    return ReportDocument(
        period=period,
        fields=ledger.fields,
        general=ledger.general,
        estate=ledger.estate,
        crops=_crop_rows(valid_harvests),
        expense_types=_expense_type_rows(kept_transactions),
        collectors=_collector_rows(valid_harvests, valid_advances, collectors),
        log=_combined_log(
            valid_harvests, kept_transactions, valid_advances, field_names, collector_names
        ),
        pending_rate_count=ledger.pending_rate_count,
        skipped_records=len(errors),
        warnings=[to_warning(err) for err in errors],
    )


def _crop_rows(harvests) -> list[CropRow]:
    weight: dict[str, Decimal] = {}
    revenue: dict[str, Decimal] = {}
    for h in harvests:
        crop = h.crop_type or UNKNOWN_CROP
        weight[crop] = weight.get(crop, Decimal(0)) + money(h.weight)
        revenue[crop] = revenue.get(crop, Decimal(0)) + money(h.total_amount)
    return [
        CropRow(crop_type=crop, total_weight=float(weight[crop]), total_revenue=float(revenue[crop]))
        for crop in weight
    ]


def _expense_type_rows(transactions) -> list[ExpenseTypeRow]:
    totals = {kind: Decimal(0) for kind in EXPENSE_TYPE_LABELS}
    for t in transactions:
        if t["type"] in totals:
            totals[t["type"]] += money(t.get("total_amount"))
    return [
        ExpenseTypeRow(type=kind, label=label, total_amount=float(totals[kind]))
        for kind, label in EXPENSE_TYPE_LABELS.items()
        if totals[kind] != 0
    ]


def _collector_rows(harvests, advances, collectors) -> list[CollectorSummaryRow]:
    rows = []
    for c in collectors:
        weight = revenue = advanced = Decimal(0)
        for h in harvests:
            if h.collector_id == c["id"] and h.crop_type == settings.tea_crop:
                weight += money(h.weight)
                revenue += money(h.total_amount)
        for a in advances:
            if a["collector_id"] == c["id"]:
                advanced += money(a["amount"])
        if weight == 0 and advanced == 0:
            continue
        rows.append(CollectorSummaryRow(
            collector_id=c["id"],
            collector_name=c["name"],
            total_weight=float(weight),
            total_revenue=float(revenue),
            total_advances=float(advanced),
            balance=float(revenue - advanced),
        ))
    return rows


def _combined_log(harvests, transactions, advances, field_names, collector_names) -> list[LogEntry]:
    """All records newest first.

    Entries are built income, expense, advance, each by ascending id; the
    sort is stable, so same-day entries keep that order.
    """
    entries = []
    for h in harvests:
        crop = h.crop_type or UNKNOWN_CROP
        if crop == settings.tea_crop:
            details = f"{crop} ({collector_names.get(h.collector_id, '?')})"
        else:
            details = crop
        entries.append(LogEntry(
            date=h.date,
            kind="Income",
            field_name=field_names.get(h.field_id, NO_FIELD),
            details=details,
            amount=float(money(h.total_amount)),
        ))
    for t in transactions:
        entries.append(LogEntry(
            date=t["date"],
            kind="Expense",
            field_name=field_names.get(t.get("field_id"), NO_FIELD),
            details=t.get("description") or t["type"],
            amount=float(money(t.get("total_amount"))),
        ))
    for a in advances:
        entries.append(LogEntry(
            date=a["date"],
            kind="Advance",
            field_name=NO_FIELD,
            details=f"Advance: {collector_names[a['collector_id']]}",
            amount=float(money(a["amount"])),
        ))
    return sorted(entries, key=lambda e: e.date, reverse=True)


async def build_report(store: RecordStore, period: PeriodFilter) -> ReportDocument:
    """Fetch everything the report needs concurrently, then compile.

    Read-only, so cancelling it mid-flight leaves nothing half-written.
    """
    validate_period(period)
    data = await fetch_collections(store, {
        "fields": ("fields", RecordFilter(order_by="name")),
        "harvests": ("harvests", date_range(period)),
        "transactions": ("transactions", date_range(period)),
        "rates": ("collector_rates", rate_years(period)),
        "advances": ("collector_advances", date_range(period)),
        "collectors": ("tea_collectors", RecordFilter(order_by="name")),
    })
    report = compile_report(
        data["harvests"], data["transactions"], data["rates"], data["advances"],
        data["collectors"], data["fields"], period,
    )
    logger.info(
        "Report %s..%s: %d log entries, %d skipped",
        period.start, period.end, len(report.log), report.skipped_records,
    )
    return report
