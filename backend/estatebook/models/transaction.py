"""Transaction: an expense booked against a field or the estate as a whole.

`type` decides what `category_id` points at:
    labor_cost | owner_labor  → activity_master
    goods_cost                → inventory_master
    overhead                  → nothing (free-text description)

A NULL field_id is a general estate expense that is not attributable
to any single field.
"""

import datetime as dt

from sqlalchemy import Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from estatebook.database import Base


class Transaction(Base):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    field_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("fields.id"), index=True
    )

    # labor_cost | goods_cost | overhead | owner_labor
    type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    category_id: Mapped[int | None] = mapped_column(Integer)
    description: Mapped[str | None] = mapped_column(Text)

    # ── Cost details ─────────────────────────────────────────
    quantity: Mapped[float] = mapped_column(Float, nullable=False, default=1)
    hours_worked: Mapped[float | None] = mapped_column(Float)
    rate: Mapped[float] = mapped_column(Float, nullable=False)
    total_amount: Mapped[float] = mapped_column(Float, nullable=False)

    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: dt.datetime.now(dt.timezone.utc)
    )
