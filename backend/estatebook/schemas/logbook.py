"""Combined logging session: one harvest plus the day's expenses."""

import datetime as dt

from pydantic import BaseModel, Field, model_validator

from estatebook.schemas.collector import AdvanceRecord
from estatebook.schemas.harvest import HarvestEntry, HarvestRecord
from estatebook.schemas.transaction import ExpenseCreate


class CombinedLogCreate(BaseModel):
    date: dt.date
    field_id: int
    harvest: HarvestEntry | None = None
    expenses: list[ExpenseCreate] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def share_session_context(cls, data):
        """Expenses inherit the session's date and field."""
        if not isinstance(data, dict):
            return data
        expenses = data.get("expenses") or []
        data = dict(data)
        data["expenses"] = [
            {"date": data.get("date"), "field_id": data.get("field_id"), **e}
            if isinstance(e, dict) else e
            for e in expenses
        ]
        return data

    @model_validator(mode="after")
    def not_empty(self):
        if self.harvest is None and not self.expenses:
            raise ValueError("Nothing to record")
        return self


class CombinedLogResult(BaseModel):
    harvest_id: int | None = None
    advance_id: int | None = None
    transaction_ids: list[int] = Field(default_factory=list)


class HarvestLogged(BaseModel):
    harvest: HarvestRecord
    advance: AdvanceRecord | None = None
