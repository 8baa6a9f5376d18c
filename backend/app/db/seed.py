"""Database seeding for the game catalog.

Populates the default genres. Runs at application startup and can be run
by hand with: python -m app.db.seed
"""

import asyncio
from typing import Tuple

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models import Genre

logger = structlog.get_logger(__name__)

# (title, slug, description)
DEFAULT_GENRES: Tuple[Tuple[str, str, str], ...] = (
    ("Action", "action", "Fast-paced games built on reflexes and combat"),
    ("Adventure", "adventure", "Exploration and story-driven puzzle solving"),
    ("Role-Playing", "rpg", "Character progression through quests and choices"),
    ("Strategy", "strategy", "Planning and resource management, real-time or turn-based"),
    ("Simulation", "simulation", "Games modelling real-world activities and systems"),
    ("Sports", "sports", "Team and individual sports"),
    ("Racing", "racing", "Driving and vehicle competitions"),
    ("Puzzle", "puzzle", "Logic, pattern and word puzzles"),
    ("Shooter", "shooter", "First- and third-person shooters"),
    ("Fighting", "fighting", "One-on-one and arena combat"),
    ("Platformer", "platformer", "Jumping and climbing through levels"),
    ("Horror", "horror", "Survival and psychological horror"),
)


async def seed_genres(session_factory: async_sessionmaker[AsyncSession]) -> int:
    """Insert any missing default genres.

    Existing slugs are left untouched, including soft-deleted ones.

    Returns:
        Number of genres inserted
    """
    async with session_factory() as session:
        result = await session.execute(select(Genre.slug))
        existing = set(result.scalars().all())

        added = 0
        for title, slug, description in DEFAULT_GENRES:
            if slug in existing:
                continue
            session.add(Genre(title=title, slug=slug, description=description))
            added += 1

        await session.commit()

    if added:
        logger.info("genres_seeded", count=added)
    return added


async def main():
    from app.db.session import async_session_factory, engine
    from app.models import Base

    print("Starting database seeding...")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    count = await seed_genres(async_session_factory)
    print(f"Seeded {count} genres")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
