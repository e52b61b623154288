"""Recompute financial snapshots for an account and currency from a date forward."""

from __future__ import annotations

import argparse
import asyncio
from datetime import date

from folio.config import get_settings
from folio.core.logging import setup_logging
from folio.db.init import init_database
from folio.db.session import dispose_engine, get_session_factory
from folio.services import SnapshotCascade
from folio.services.repository import SqlMovementSource, SqlPriceLookup, SqlSnapshotStore


async def _run(account_id: int, currency_id: int, start: date) -> None:
    settings = get_settings()
    await init_database()
    session_factory = get_session_factory()
    cascade = SnapshotCascade(
        SqlMovementSource(session_factory),
        SqlSnapshotStore(session_factory),
        SqlPriceLookup(session_factory),
        fill_missing_dates=settings.fill_missing_snapshot_dates,
        skip_unchanged_writes=settings.skip_unchanged_snapshot_writes,
        default_currency_id=settings.default_currency_id,
    )
    try:
        result = await cascade.recalculate_from(account_id, currency_id, start)
    finally:
        await dispose_engine()
    print(
        f"Recomputed {len(result.snapshots)} snapshots for account {account_id} currency {currency_id} "
        f"from {start}: {result.written} written, {result.unchanged} unchanged"
    )
    for warning in result.warnings:
        print(f"  {warning.date} {warning.kind}: {warning.message}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Recompute financial snapshots from a date forward")
    parser.add_argument("--account", type=int, required=True)
    parser.add_argument("--currency", type=int, required=True)
    parser.add_argument("--date", type=date.fromisoformat, required=True, help="YYYY-MM-DD")
    args = parser.parse_args()
    setup_logging()
    asyncio.run(_run(args.account, args.currency, args.date))


if __name__ == "__main__":
    main()
