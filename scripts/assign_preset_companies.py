#!/usr/bin/env python3
"""
Assign a company to trip presets that have none.

Presets created before presets were company-scoped have no company; each
gets a randomly chosen existing company so company users can see it.

Usage:
    uv run python scripts/assign_preset_companies.py [--seed 42]
"""

import argparse
import asyncio
import os
import random
import sys
from pathlib import Path

# Add project root to path for imports
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))


async def run(seed: int | None) -> int:
    from cavgo.core.db import create_fresh_async_engine, session_scope
    from cavgo.services.maintenance import assign_preset_companies
    from sqlalchemy.ext.asyncio import async_sessionmaker

    engine = create_fresh_async_engine()
    try:
        maker = async_sessionmaker(bind=engine, expire_on_commit=False)
        async with session_scope(maker) as db:
            return await assign_preset_companies(db, random.Random(seed))
    finally:
        await engine.dispose()


def main() -> int:
    parser = argparse.ArgumentParser(description="Assign random companies to unowned trip presets")
    parser.add_argument("--env-file", help="Env file to load settings from")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible runs")
    args = parser.parse_args()

    if args.env_file:
        os.environ["ENV_FILE"] = args.env_file

    from cavgo.core.observability import configure_structured_logging

    configure_structured_logging("INFO")
    try:
        updated = asyncio.run(run(args.seed))
    except Exception as exc:
        print(f"[ERROR] Preset update failed: {type(exc).__name__}: {exc}", file=sys.stderr)
        return 1

    print(f"[OK] Updated {updated} preset(s)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
