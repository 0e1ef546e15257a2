"""Pydantic schemas for harvest (income) records."""

import datetime as dt

from pydantic import BaseModel, Field, field_validator, model_validator

from estatebook.config import settings


class HarvestRecord(BaseModel):
    """A harvest row as stored.  ``rate``/``total_amount`` may be unset
    for tea that is waiting on its collector's monthly rate."""
    id: int
    date: dt.date
    field_id: int | None = None
    crop_type: str | None = None
    weight: float | None = 0
    rate: float | None = None
    collector_id: int | None = None
    total_amount: float | None = None

    model_config = {"from_attributes": True}


class ResolvedHarvest(HarvestRecord):
    """A harvest after read-time rate resolution.

    ``rate_pending`` is set when the harvest needs a collector rate
    that has not been entered yet; its total stays as stored.
    """
    rate_pending: bool = False


class HarvestEntry(BaseModel):
    """Crop, weight and pricing part of a harvest log entry."""
    crop_type: str = "tea"
    weight: float = Field(..., ge=0)
    rate: float | None = Field(None, ge=0)
    collector_id: int | None = None
    advance_amount: float | None = Field(None, ge=0)

    @field_validator("crop_type")
    @classmethod
    def normalise_crop(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("crop_type is required")
        return v

    @model_validator(mode="after")
    def pricing_rules(self):
        is_tea = self.crop_type == settings.tea_crop
        if self.collector_id is not None and not is_tea:
            raise ValueError("Only tea harvests are sold through a collector")
        # Cash sales and non-tea crops are priced at entry
        if self.collector_id is None and not self.rate:
            raise ValueError("Rate is required for cash sales and non-tea crops")
        if self.advance_amount and self.collector_id is None:
            raise ValueError("An advance needs a collector")
        return self


class HarvestCreate(HarvestEntry):
    date: dt.date
    field_id: int


class HarvestUpdate(BaseModel):
    date: dt.date | None = None
    field_id: int | None = None
    crop_type: str | None = None
    weight: float | None = Field(None, ge=0)
    rate: float | None = Field(None, ge=0)
    collector_id: int | None = None
