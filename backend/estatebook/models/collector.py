"""Tea collectors, their monthly buying rates, and cash advances.

A collector buys green leaf from the estate.  The sale price is agreed
per calendar month, often after the leaf has already been weighed and
handed over, so harvests are priced lazily from CollectorRate at read
time (see estatebook.services.rate_resolver).

Advances are cash paid to a collector against future proceeds.  They
are never netted into harvest totals; the balance is a report-time view.
"""

import datetime as dt

from sqlalchemy import (
    CheckConstraint, Date, DateTime, Float, ForeignKey, Integer,
    SmallInteger, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from estatebook.database import Base


class TeaCollector(Base):
    __tablename__ = "tea_collectors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: dt.datetime.now(dt.timezone.utc)
    )


class CollectorRate(Base):
    __tablename__ = "collector_rates"
    __table_args__ = (
        # Upsert key: one price per collector per calendar month
        UniqueConstraint("collector_id", "month", "year", name="uq_collector_rate_period"),
        CheckConstraint("month BETWEEN 1 AND 12", name="ck_collector_rate_month"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    collector_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tea_collectors.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    month: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    rate: Mapped[float] = mapped_column(Float, nullable=False)  # currency per kg
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: dt.datetime.now(dt.timezone.utc)
    )


class CollectorAdvance(Base):
    __tablename__ = "collector_advances"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    collector_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tea_collectors.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: dt.datetime.now(dt.timezone.utc)
    )
