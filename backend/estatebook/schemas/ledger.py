"""Pydantic schemas for derived ledger summaries.

Nothing here is stored: every figure is recomputed from harvests,
transactions and collector rates for the requested period.
"""

import datetime as dt
from typing import Literal

from pydantic import BaseModel, Field, model_validator

PeriodPreset = Literal["month", "quarter", "year"]


class PeriodFilter(BaseModel):
    """Inclusive date range ``[start, end]``."""
    start: dt.date
    end: dt.date

    def contains(self, day: dt.date) -> bool:
        return self.start <= day <= self.end


class IntegrityWarning(BaseModel):
    """A record excluded from the figures because it could not be
    aggregated consistently (unknown field, duplicate rate, ...)."""
    kind: str = "DATA_INTEGRITY"
    collection: str
    record_id: int | None = None
    message: str


class FieldLedgerRow(BaseModel):
    field_id: int | None = None  # None on the synthetic general row
    field_name: str
    total_income: float = 0
    total_expense: float = 0
    net_profit: float = 0


class EstateSummary(BaseModel):
    total_income: float = 0
    total_expense: float = 0
    total_profit: float = 0


class MissingRateCollector(BaseModel):
    collector_id: int
    collector_name: str
    harvest_count: int


class MissingRateAdvisory(BaseModel):
    """Collectors who bought tea last month but have no rate set for it."""
    month: int
    year: int
    collectors: list[MissingRateCollector] = Field(default_factory=list)

    @property
    def has_missing(self) -> bool:
        return bool(self.collectors)


class LedgerSummary(BaseModel):
    period: PeriodFilter
    field_id: int | None = None
    fields: list[FieldLedgerRow] = Field(default_factory=list)
    general: FieldLedgerRow
    estate: EstateSummary
    pending_rate_count: int = 0
    warnings: list[IntegrityWarning] = Field(default_factory=list)
    missing_rate_advisory: MissingRateAdvisory | None = None

    @model_validator(mode="after")
    def general_has_no_field(self):
        if self.general.field_id is not None:
            raise ValueError("general row cannot carry a field_id")
        return self
