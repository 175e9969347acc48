#!/usr/bin/env python3
"""Seed the database with a demo admin, two investors and three assets.

Usage:
    python -m scripts.seed_demo
    # or from project root:
    python scripts/seed_demo.py
"""

import asyncio
import sys
from pathlib import Path

# Ensure project root is on path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from rwa_ledger.common.config import get_settings
from rwa_ledger.common.database import DatabaseManager
from rwa_ledger.seed import seed_demo


async def main() -> None:
    db = DatabaseManager(get_settings())
    await db.init()
    await db.create_all()
    for line in await seed_demo(db):
        print(f"  {line}")
    await db.close()
    print("\nDone.")


if __name__ == "__main__":
    asyncio.run(main())
