"""Initialize database schema for the pitch store.

Creates the pitches table (and the pgvector extension on PostgreSQL).
Run this before starting the API server.
"""

import asyncio
import sys
import traceback

from sqlalchemy import text

from pitchhub.config import get_settings
from pitchhub.db import engine
from pitchhub.models import Base


async def init_database(drop: bool = False):
    """Create all database tables."""
    print(f"Initializing database: {get_settings().db.url}")

    async with engine.begin() as conn:
        if engine.dialect.name == "postgresql":
            await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
            print("✓ Enabled pgvector extension")

        if drop:
            await conn.run_sync(Base.metadata.drop_all)
            print("✓ Dropped existing tables")

        await conn.run_sync(Base.metadata.create_all)
        print("✓ Created all tables")

    print(f"Tables: {', '.join(Base.metadata.tables.keys())}")


async def main():
    """Main entry point."""
    try:
        await init_database(drop="--drop" in sys.argv)
    except Exception as e:
        print(f"\n❌ Error initializing database: {e}")
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
