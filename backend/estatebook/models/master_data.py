"""Lookup tables used to pre-fill expense entries with a default rate."""

from sqlalchemy import Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from estatebook.database import Base


class ActivityMaster(Base):
    __tablename__ = "activity_master"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    default_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0)


class InventoryMaster(Base):
    __tablename__ = "inventory_master"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    unit: Mapped[str | None] = mapped_column(String(20))  # kg, bag, litre
    unit_price: Mapped[float] = mapped_column(Float, nullable=False, default=0)
