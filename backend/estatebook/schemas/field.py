"""Pydantic schemas for estate fields."""

from pydantic import BaseModel, Field


class FieldCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    area_acres: float | None = Field(None, ge=0)
    notes: str | None = None


class FieldUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    area_acres: float | None = Field(None, ge=0)
    notes: str | None = None


class FieldOut(BaseModel):
    id: int
    name: str
    area_acres: float | None = None
    notes: str | None = None

    model_config = {"from_attributes": True}
