"""
Create the sentinel tables (tracked_tokens, rug_incidents).

Usage:
    python -m scripts.init_db

Requires DATABASE_URL in .env (PostgreSQL, or sqlite+aiosqlite for local runs).
"""
import asyncio
from shared.database import engine
from shared.models.base import Base
import agents.sentinel.models.db  # noqa: F401  (registers the tables on Base.metadata)


async def init_database(target_engine=None):
    target_engine = target_engine or engine
    if target_engine is None:
        print("ERROR: DATABASE_URL not configured. Set it in .env")
        return False

    print("Connecting to database...")
    async with target_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        print(f"Tables ready: {', '.join(sorted(Base.metadata.tables))}")

    print("Database initialization complete.")
    return True


if __name__ == "__main__":
    asyncio.run(init_database())
