"""Management CLI.

Usage:
    python -m estatebook.cli ledger [PERIOD] [FIELD_ID]   # Ledger summary as JSON
    python -m estatebook.cli report [PERIOD]              # Report document as JSON
    python -m estatebook.cli missing-rates                # Last month's missing collector rates
    python -m estatebook.cli migrate                      # Alembic upgrade head

PERIOD is ``month``, ``quarter``, ``year`` or ``START:END`` (ISO dates).
"""

import asyncio
import subprocess
import sys
from datetime import date
from pathlib import Path

from estatebook.database import engine
from estatebook.schemas.ledger import PeriodFilter
from estatebook.services.ledger import build_ledger, build_missing_rate_advisory, resolve_period
from estatebook.services.reports import build_report
from estatebook.store.sql import get_store

BACKEND_DIR = Path(__file__).resolve().parent.parent


def parse_period(arg: str | None) -> PeriodFilter:
    if not arg:
        return resolve_period(None, None, "month")
    if ":" in arg:
        start, end = arg.split(":", 1)
        return resolve_period(date.fromisoformat(start), date.fromisoformat(end))
    return resolve_period(None, None, arg)


async def _with_engine(coro):
    try:
        return await coro
    finally:
        await engine.dispose()


def ledger(args: list[str]):
    period = parse_period(args[0] if args else None)
    field_id = int(args[1]) if len(args) > 1 else None
    summary = asyncio.run(_with_engine(build_ledger(get_store(), period, field_id)))
    print(summary.model_dump_json(indent=2))


def report(args: list[str]):
    period = parse_period(args[0] if args else None)
    document = asyncio.run(_with_engine(build_report(get_store(), period)))
    print(document.model_dump_json(indent=2))


def missing_rates():
    advisory = asyncio.run(_with_engine(build_missing_rate_advisory(get_store())))
    if not advisory.collectors:
        print(f"All collector rates set for {advisory.month:02d}/{advisory.year}.")
        return
    for c in advisory.collectors:
        print(f"  {c.collector_name}: {c.harvest_count} harvest(s) without a rate")
    print(f"\n{len(advisory.collectors)} collector(s) missing a {advisory.month:02d}/{advisory.year} rate")


def migrate():
    """Run Alembic upgrade head."""
    result = subprocess.run(
        [sys.executable, "-m", "alembic", "upgrade", "head"],
        cwd=BACKEND_DIR,
        capture_output=True, text=True,
    )
    if result.returncode != 0:
        print(f"FAILED: {result.stderr}")
        sys.exit(result.returncode)
    print("OK")


def main():
    cmd = sys.argv[1] if len(sys.argv) > 1 else ""
    rest = sys.argv[2:]
    if cmd == "ledger":
        ledger(rest)
    elif cmd == "report":
        report(rest)
    elif cmd == "missing-rates":
        missing_rates()
    elif cmd == "migrate":
        migrate()
    else:
        print("Usage: python -m estatebook.cli [ledger|report|missing-rates|migrate]")


if __name__ == "__main__":
    main()
