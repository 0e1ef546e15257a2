"""Pydantic schemas for tea collectors, monthly rates and advances."""

import datetime as dt

from pydantic import BaseModel, Field, field_validator


class CollectorCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    contact: str | None = None


class CollectorOut(BaseModel):
    id: int
    name: str
    contact: str | None = None

    model_config = {"from_attributes": True}


class CollectorRateCreate(BaseModel):
    """Set (or replace) a collector's price for one calendar month."""
    collector_id: int
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)
    rate: float

    @field_validator("rate")
    @classmethod
    def rate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Rate must be positive")
        return v


class CollectorRateRecord(BaseModel):
    id: int
    collector_id: int
    month: int
    year: int
    rate: float

    model_config = {"from_attributes": True}


class AdvanceCreate(BaseModel):
    collector_id: int
    date: dt.date
    amount: float
    description: str | None = None

    @field_validator("amount")
    @classmethod
    def amount_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Amount must be positive")
        return v


class AdvanceRecord(BaseModel):
    id: int
    collector_id: int
    date: dt.date
    amount: float
    description: str | None = None

    model_config = {"from_attributes": True}
