"""Passive report document handed to an external renderer (PDF, CSV)."""

import datetime as dt
from typing import Literal

from pydantic import BaseModel, Field

from estatebook.schemas.ledger import (
    EstateSummary, FieldLedgerRow, IntegrityWarning, PeriodFilter,
)

LogKind = Literal["Income", "Expense", "Advance"]


class CropRow(BaseModel):
    crop_type: str
    total_weight: float
    total_revenue: float


class ExpenseTypeRow(BaseModel):
    type: str
    label: str
    total_amount: float


class CollectorSummaryRow(BaseModel):
    collector_id: int
    collector_name: str
    total_weight: float
    total_revenue: float
    total_advances: float
    balance: float  # revenue − advances, never stored


class LogEntry(BaseModel):
    date: dt.date
    kind: LogKind
    field_name: str  # "-" when the record has no field
    details: str
    amount: float


class ReportDocument(BaseModel):
    period: PeriodFilter
    fields: list[FieldLedgerRow]
    general: FieldLedgerRow
    estate: EstateSummary
    crops: list[CropRow] = Field(default_factory=list)
    expense_types: list[ExpenseTypeRow] = Field(default_factory=list)
    collectors: list[CollectorSummaryRow] = Field(default_factory=list)
    log: list[LogEntry] = Field(default_factory=list)
    pending_rate_count: int = 0
    skipped_records: int = 0
    warnings: list[IntegrityWarning] = Field(default_factory=list)
