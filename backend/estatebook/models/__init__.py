"""Aggregate model imports for Alembic auto-detection."""

from estatebook.models.field import Field  # noqa: F401
from estatebook.models.collector import (  # noqa: F401
    CollectorAdvance, CollectorRate, TeaCollector,
)
from estatebook.models.harvest import Harvest  # noqa: F401
from estatebook.models.transaction import Transaction  # noqa: F401
from estatebook.models.master_data import ActivityMaster, InventoryMaster  # noqa: F401

__all__ = [
    "Field", "TeaCollector", "CollectorRate", "CollectorAdvance",
    "Harvest", "Transaction", "ActivityMaster", "InventoryMaster",
]
