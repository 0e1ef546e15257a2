"""Pydantic schemas for expense transactions.

Expense entry is a tagged union on ``type``.  Each variant carries only
the fields that apply to it:

    labor_cost / owner_labor  activity category, people count, hours
    goods_cost                inventory category, quantity
    overhead                  free-text description and an amount

Every variant flattens to the same ``transactions`` row via ``to_row``,
with ``total_amount = quantity × rate``.
"""

import datetime as dt
from typing import Annotated, ClassVar, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

ExpenseType = Literal["labor_cost", "goods_cost", "overhead", "owner_labor"]

# Report order and labels
EXPENSE_TYPE_LABELS: dict[str, str] = {
    "labor_cost": "Labor",
    "goods_cost": "Goods/Supplies",
    "overhead": "Overheads",
    "owner_labor": "Owner Labor",
}


class TransactionRecord(BaseModel):
    """A transactions row as stored."""
    id: int
    date: dt.date
    field_id: int | None = None
    type: ExpenseType
    category_id: int | None = None
    description: str | None = None
    quantity: float | None = 1
    hours_worked: float | None = None
    rate: float | None = None
    total_amount: float | None = None

    model_config = {"from_attributes": True}


class _ExpenseBase(BaseModel):
    date: dt.date
    field_id: int | None = None  # None → general estate expense
    rate: float | None = Field(None, gt=0)

    # master table that supplies a default rate for category_id
    rate_source: ClassVar[str | None] = None


class _LaborEntry(_ExpenseBase):
    category_id: int | None = None
    quantity: float = Field(1, ge=0)  # number of people
    hours_worked: float | None = Field(None, ge=0)

    rate_source: ClassVar[str | None] = "activity_master"

    def to_row(self, rate: float) -> dict:
        return {
            "date": self.date,
            "field_id": self.field_id,
            "type": self.type,
            "category_id": self.category_id,
            "description": None,
            "quantity": self.quantity,
            "hours_worked": self.hours_worked,
            "rate": rate,
            "total_amount": self.quantity * rate,
        }


class LaborCostCreate(_LaborEntry):
    type: Literal["labor_cost"]


class OwnerLaborCreate(_LaborEntry):
    type: Literal["owner_labor"]


class GoodsCostCreate(_ExpenseBase):
    type: Literal["goods_cost"]
    category_id: int | None = None
    quantity: float = Field(1, ge=0)

    rate_source: ClassVar[str | None] = "inventory_master"

    def to_row(self, rate: float) -> dict:
        return {
            "date": self.date,
            "field_id": self.field_id,
            "type": self.type,
            "category_id": self.category_id,
            "description": None,
            "quantity": self.quantity,
            "hours_worked": None,
            "rate": rate,
            "total_amount": self.quantity * rate,
        }


class OverheadCreate(_ExpenseBase):
    type: Literal["overhead"]
    description: str = Field(..., min_length=1, max_length=500)

    def to_row(self, rate: float) -> dict:
        return {
            "date": self.date,
            "field_id": self.field_id,
            "type": self.type,
            "category_id": None,
            "description": self.description,
            "quantity": 1,
            "hours_worked": None,
            "rate": rate,
            "total_amount": rate,
        }


ExpenseCreate = Annotated[
    Union[LaborCostCreate, OwnerLaborCreate, GoodsCostCreate, OverheadCreate],
    Field(discriminator="type"),
]


class TransactionUpdate(BaseModel):
    """Partial edit of a stored expense.

    Only fields that belong to the row's variant may be set; the merged
    row is validated and flattened exactly like a new entry.
    """

    date: dt.date | None = None
    field_id: int | None = None
    category_id: int | None = None
    description: str | None = None
    quantity: float | None = Field(None, ge=0)
    hours_worked: float | None = Field(None, ge=0)
    rate: float | None = Field(None, gt=0)


_expense_adapter = TypeAdapter(ExpenseCreate)


def parse_expense(payload: dict):
    """Validate a raw request body into its expense variant."""
    return _expense_adapter.validate_python(payload)
