"""Harvest: income record for one weighed crop delivery.

Priced at entry for cash sales and non-tea crops (total = weight × rate).
Tea sold through a collector may be stored with rate NULL and total 0
until the collector's monthly rate is known.
"""

import datetime as dt

from sqlalchemy import Date, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from estatebook.database import Base


class Harvest(Base):
    __tablename__ = "harvests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    field_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("fields.id"), index=True
    )

    # tea | pepper | coffee | ...
    crop_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    weight: Mapped[float] = mapped_column(Float, nullable=False, default=0)  # kg
    rate: Mapped[float | None] = mapped_column(Float)  # currency per kg

    # NULL collector means a direct cash sale
    collector_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("tea_collectors.id"), index=True
    )
    total_amount: Mapped[float | None] = mapped_column(Float, default=0)

    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: dt.datetime.now(dt.timezone.utc)
    )
