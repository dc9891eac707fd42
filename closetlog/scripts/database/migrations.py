# scripts/database/migrations.py
"""Database schema helper functions.

    python -m scripts.database.migrations create
    python -m scripts.database.migrations drop
"""

import argparse
import asyncio
from typing import Optional

from app.core.logging import get_logger
from app.database.session import SessionManager, get_session_manager

logger = get_logger(__name__)

async def create_schema(manager: Optional[SessionManager] = None):
    """Create every table that does not exist yet."""
    manager = manager or get_session_manager()
    try:
        await manager.create_all()
        logger.info("Schema created")
    except Exception as e:
        logger.error("Schema creation failed", error=e)
        raise

async def drop_schema(manager: Optional[SessionManager] = None):
    """Drop every application table."""
    manager = manager or get_session_manager()
    try:
        await manager.drop_all()
        logger.info("Schema dropped")
    except Exception as e:
        logger.error("Schema drop failed", error=e)
        raise

async def _run(action: str):
    manager = get_session_manager()
    try:
        if action == "create":
            await create_schema(manager)
        else:
            await drop_schema(manager)
    finally:
        await manager.dispose()

def main():
    parser = argparse.ArgumentParser(description="Create or drop the database schema")
    parser.add_argument("action", choices=["create", "drop"])
    args = parser.parse_args()

    asyncio.run(_run(args.action))
    print(f"Schema {args.action} completed")

if __name__ == "__main__":
    main()
