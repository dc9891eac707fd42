# scripts/database/cleanup.py
"""Database cleanup and maintenance operations.

Finds garments created from outfit analysis that never made it into an
outfit (never linked, use count zero) and link rows pointing at a missing outfit
or garment. Reports by default; ``--delete`` removes them.

    python -m scripts.database.cleanup --hours 48 --delete
"""

import argparse
import asyncio
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from sqlalchemy import delete, exists, select

from app.core.logging import get_logger
from app.database.session import SessionManager, get_session_manager
from app.models.database import Garment, GarmentOrigin, Outfit, OutfitGarment

logger = get_logger(__name__)

async def find_orphan_garments(session, since: datetime) -> List[Garment]:
    """Detected garments from the window that were never linked to an outfit.

    A garment whose outfit was later deleted keeps its ``first_linked_at``
    stamp and is not an orphan.
    """
    linked = exists().where(OutfitGarment.garment_id == Garment.id)
    query = (
        select(Garment)
        .where(
            Garment.origin == GarmentOrigin.DETECTED.value,
            Garment.use_count == 0,
            Garment.first_linked_at.is_(None),
            Garment.created_at >= since,
            ~linked
        )
        .order_by(Garment.created_at)
    )
    result = await session.execute(query)
    return list(result.scalars().all())

async def find_dangling_links(session) -> List[OutfitGarment]:
    """Links whose outfit or garment row is gone."""
    outfit_exists = exists().where(Outfit.id == OutfitGarment.outfit_id)
    garment_exists = exists().where(Garment.id == OutfitGarment.garment_id)
    result = await session.execute(
        select(OutfitGarment).where(~outfit_exists | ~garment_exists)
    )
    return list(result.scalars().all())

async def cleanup_database(
    hours: int = 24,
    remove: bool = False,
    manager: Optional[SessionManager] = None
) -> dict:
    """Report, and optionally delete, orphan garments and dangling links."""
    manager = manager or get_session_manager()
    since = datetime.now(timezone.utc) - timedelta(hours=hours)

    try:
        async with manager.transaction() as session:
            orphans = await find_orphan_garments(session, since)
            dangling = await find_dangling_links(session)

            for garment in orphans:
                logger.warning(
                    "Orphan garment",
                    garment_id=garment.id,
                    user_id=garment.user_id,
                    photo_url=garment.photo_url
                )
            for link in dangling:
                logger.warning(
                    "Dangling outfit link",
                    link_id=link.id,
                    outfit_id=link.outfit_id,
                    garment_id=link.garment_id
                )

            if remove:
                if dangling:
                    await session.execute(
                        delete(OutfitGarment).where(OutfitGarment.id.in_([l.id for l in dangling]))
                    )
                if orphans:
                    await session.execute(
                        delete(Garment).where(Garment.id.in_([g.id for g in orphans]))
                    )

        report = {
            "orphan_garments": [g.id for g in orphans],
            "dangling_links": [l.id for l in dangling],
            "deleted": remove
        }
        logger.info(
            "Database cleanup finished",
            orphan_garments=len(orphans),
            dangling_links=len(dangling),
            deleted=remove
        )
        return report

    except Exception as e:
        logger.error("Database cleanup failed", error=e)
        raise

def main():
    parser = argparse.ArgumentParser(description="Report or remove orphan garments and dangling links")
    parser.add_argument("--hours", type=int, default=24, help="Look-back window for orphan garments")
    parser.add_argument("--delete", action="store_true", help="Delete what was found")
    args = parser.parse_args()

    report = asyncio.run(cleanup_database(hours=args.hours, remove=args.delete))
    print(f"Orphan garments: {len(report['orphan_garments'])}")
    print(f"Dangling links: {len(report['dangling_links'])}")

if __name__ == "__main__":
    main()
