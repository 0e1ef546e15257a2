"""Pydantic schemas for the activity and inventory lookup tables."""

from pydantic import BaseModel, Field


class ActivityOut(BaseModel):
    id: int
    name: str
    default_rate: float

    model_config = {"from_attributes": True}


class ActivityUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    default_rate: float | None = Field(None, ge=0)


class InventoryItemOut(BaseModel):
    id: int
    name: str
    unit: str | None = None
    unit_price: float

    model_config = {"from_attributes": True}
