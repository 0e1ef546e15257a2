"""Read-time pricing of tea harvests from monthly collector rates.

Tea is weighed and handed to a collector before the month's price is
agreed, so a tea harvest may be stored with no rate and a zero total.
This module prices such rows on the way out; it never writes back.
Setting a rate only invalidates cached ledgers and reports, and the
next read picks the new rate up here.

A harvest is eligible when all of these hold:
    crop_type is tea, collector_id is set, rate is null or 0

Eligible rows take ``rate`` and ``weight × rate`` from the collector's
rate for the harvest's calendar month.  When no rate exists yet the
stored total is kept (null counts as 0) and the row is flagged
``rate_pending``.
"""

from __future__ import annotations

import logging
from typing import Iterable

from estatebook.config import settings
from estatebook.middleware.exceptions import DataIntegrityError
from estatebook.schemas.harvest import HarvestRecord, ResolvedHarvest

logger = logging.getLogger(__name__)


class RateTable:
    """CollectorRate rows indexed by (collector_id, month, year)."""

    def __init__(self):
        self._rates: dict[tuple[int, int, int], dict] = {}
        self.errors: list[DataIntegrityError] = []

    @classmethod
    def from_rows(cls, rates: Iterable[dict]) -> RateTable:
        table = cls()
        for row in rates:
            key = (row["collector_id"], row["month"], row["year"])
            first = table._rates.get(key)
            if first is not None:
                # The upsert key makes this impossible unless the table was
                # written around it; keep the first row and report the rest.
                err = DataIntegrityError(
                    "collector_rates",
                    row.get("id"),
                    f"Duplicate rate for collector {key[0]} in {key[1]:02d}/{key[2]}; "
                    f"using rate id {first.get('id')}",
                )
                logger.warning(err.message)
                table.errors.append(err)
                continue
            table._rates[key] = row
        return table

    def lookup(self, collector_id: int, month: int, year: int) -> dict | None:
        return self._rates.get((collector_id, month, year))

    def __contains__(self, key) -> bool:
        return key in self._rates

    def __len__(self) -> int:
        return len(self._rates)


def needs_rate(harvest: HarvestRecord) -> bool:
    return (
        harvest.crop_type == settings.tea_crop
        and harvest.collector_id is not None
        and not harvest.rate
    )


def resolve_harvest(harvest: HarvestRecord | dict, rate_table: RateTable) -> ResolvedHarvest:
    if isinstance(harvest, dict):
        harvest = HarvestRecord.model_validate(harvest)
    data = harvest.model_dump()
    data["rate_pending"] = False

    if not needs_rate(harvest):
        return ResolvedHarvest(**data)

    found = rate_table.lookup(harvest.collector_id, harvest.date.month, harvest.date.year)
    if found is None:
        data["total_amount"] = harvest.total_amount or 0
        data["rate_pending"] = True
        return ResolvedHarvest(**data)

    data["rate"] = found["rate"]
    data["total_amount"] = (harvest.weight or 0) * found["rate"]
    return ResolvedHarvest(**data)


def resolve_harvests(
    harvests: Iterable[HarvestRecord | dict], rate_table: RateTable
) -> list[ResolvedHarvest]:
    resolved = [resolve_harvest(h, rate_table) for h in harvests]
    pending = sum(1 for h in resolved if h.rate_pending)
    if pending:
        logger.info("%d of %d harvests are waiting on a collector rate", pending, len(resolved))
    return resolved
