#!/usr/bin/env python
"""Check that the order store is reachable and has the tables analytics read.

Usage:
    python scripts/check_db.py
"""

import asyncio
import sys

from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine

from orderlens.core.config import get_settings
from orderlens.core.database import Base
from orderlens.features.orders import models  # noqa: F401  (registers tables)


async def check_database() -> int:
    """Verify connectivity and the presence of the order-store tables."""
    settings = get_settings()

    print("OrderLens - Order Store Check")
    print("=" * 45)
    print(f"Database URL: {settings.database_url.split('@')[-1]}")  # Hide credentials
    print(f"Analytics timezone: {settings.analytics_timezone}")
    print()

    engine = create_async_engine(settings.database_url)

    try:
        async with engine.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
            if result.scalar() != 1:
                print("[FAIL] Unexpected response to SELECT 1")
                return 1
            print("[OK] Basic connectivity")

            present = set(await conn.run_sync(lambda c: inspect(c).get_table_names()))
            missing = sorted(set(Base.metadata.tables) - present)
            for table in sorted(Base.metadata.tables):
                marker = "[OK]  " if table in present else "[MISS]"
                print(f"{marker} table {table}")

        print()
        if missing:
            print(f"Missing tables: {', '.join(missing)}")
            return 1
        print("Order store check completed successfully!")
        return 0

    except (SQLAlchemyError, OSError) as e:
        print(f"[FAIL] Connection failed: {e}")
        print()
        print("Troubleshooting:")
        print("  1. Ensure Docker is running: docker-compose up -d")
        print("  2. Check DATABASE_URL in .env file")
        print("  3. Verify PostgreSQL container is healthy: docker-compose ps")
        return 1

    finally:
        await engine.dispose()


def main() -> None:
    sys.exit(asyncio.run(check_database()))


if __name__ == "__main__":
    main()
