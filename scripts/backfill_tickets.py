#!/usr/bin/env python3
"""
Backfill tickets for paid bookings.

Issues a ticket for every booking in "Waiting Board" that does not have one
yet (bookings paid before tickets were issued automatically).

Usage:
    uv run python scripts/backfill_tickets.py
    uv run python scripts/backfill_tickets.py --env-file .env.production
"""

import argparse
import asyncio
import os
import sys
from pathlib import Path

# Add project root to path for imports
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))


async def run() -> int:
    from cavgo.core.db import create_fresh_async_engine, session_scope
    from cavgo.services.maintenance import backfill_tickets
    from sqlalchemy.ext.asyncio import async_sessionmaker

    engine = create_fresh_async_engine()
    try:
        maker = async_sessionmaker(bind=engine, expire_on_commit=False)
        async with session_scope(maker) as db:
            return await backfill_tickets(db)
    finally:
        await engine.dispose()


def main() -> int:
    parser = argparse.ArgumentParser(description="Issue missing tickets for paid bookings")
    parser.add_argument("--env-file", help="Env file to load settings from")
    args = parser.parse_args()

    if args.env_file:
        os.environ["ENV_FILE"] = args.env_file

    from cavgo.core.observability import configure_structured_logging

    configure_structured_logging("INFO")
    try:
        issued = asyncio.run(run())
    except Exception as exc:
        print(f"[ERROR] Ticket backfill failed: {type(exc).__name__}: {exc}", file=sys.stderr)
        return 1

    print(f"[OK] Issued {issued} ticket(s)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
