"""Catalog service: games, genres and game rating statistics."""

import uuid
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, GameNotFoundError, NotFoundError
from app.models.game import Game, Genre

logger = structlog.get_logger(__name__)


class CatalogService:
    """CRUD for games and genres. Deletes are always soft."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.logger = logger.bind(service="catalog_service")

    # ------------------------------------------------------------------ genres

    async def add_genre(self, title: str, slug: str, description: str) -> Genre:
        """Create a genre. Raises ConflictError if the slug is taken."""
        existing = await self._find_genre(slug, include_deleted=True)
        if existing and not existing.is_deleted:
            raise ConflictError(f"Genre '{slug}' already exists")

        if existing:
            # Revive the soft-deleted row; slugs are unique
            existing.title = title
            existing.description = description
            existing.is_deleted = False
            genre = existing
        else:
            genre = Genre(title=title, slug=slug, description=description)
            self.db.add(genre)

        await self.db.flush()
        await self.db.refresh(genre)
        self.logger.info("genre_added", slug=slug)
        return genre

    async def edit_genre(self, slug: str, title: str = "", description: str = "") -> Genre:
        """Update a genre; blank values keep the current ones."""
        genre = await self.get_genre(slug)
        if title.strip():
            genre.title = title
        if description.strip():
            genre.description = description
        await self.db.flush()
        await self.db.refresh(genre)
        return genre

    async def get_genre(self, slug: str) -> Genre:
        genre = await self._find_genre(slug)
        if not genre:
            raise NotFoundError("Genre", slug)
        return genre

    async def list_genres(self, limit: int, offset: int) -> Tuple[List[Genre], int]:
        """Get a page of active genres ordered by title, plus the total count."""
        stmt = (
            select(Genre)
            .where(Genre.is_deleted == False)
            .order_by(Genre.title.asc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        count = await self.db.execute(
            select(func.count(Genre.id)).where(Genre.is_deleted == False)
        )
        return list(result.scalars().all()), count.scalar_one()

    async def delete_genre(self, slug: str) -> None:
        genre = await self.get_genre(slug)
        genre.is_deleted = True
        await self.db.flush()
        self.logger.info("genre_deleted", slug=slug)

    async def _find_genre(self, slug: str, include_deleted: bool = False) -> Optional[Genre]:
        stmt = select(Genre).where(Genre.slug == slug)
        if not include_deleted:
            stmt = stmt.where(Genre.is_deleted == False)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def _resolve_genres(self, slugs: Sequence[str]) -> List[Genre]:
        genres = []
        for slug in dict.fromkeys(slugs):
            genres.append(await self.get_genre(slug))
        return genres

    # ------------------------------------------------------------------- games

    async def add_game(
        self,
        title: str,
        summary: str = "",
        developer: str = "",
        publisher: str = "",
        release_date: Optional[datetime] = None,
        genre_slugs: Sequence[str] = (),
    ) -> Game:
        """Create a game with empty rating stats."""
        game = Game(
            title=title,
            summary=summary,
            developer=developer,
            publisher=publisher,
            release_date=release_date,
            genres=await self._resolve_genres(genre_slugs),
        )
        self.db.add(game)
        await self.db.flush()
        await self.db.refresh(game)
        self.logger.info("game_added", game_id=str(game.id), title=title)
        return game

    async def get_game(self, game_id: uuid.UUID) -> Game:
        """Fetch a non-deleted game. Raises GameNotFoundError."""
        stmt = select(Game).where(Game.id == game_id, Game.is_deleted == False)
        result = await self.db.execute(stmt)
        game = result.scalar_one_or_none()
        if not game:
            raise GameNotFoundError(str(game_id))
        return game

    async def update_game(
        self,
        game_id: uuid.UUID,
        title: str = "",
        summary: str = "",
        developer: str = "",
        publisher: str = "",
        release_date: Optional[datetime] = None,
        genre_slugs: Optional[Sequence[str]] = None,
    ) -> Game:
        """Partial update; blank strings and None keep the current values."""
        game = await self.get_game(game_id)
        for field, value in (
            ("title", title),
            ("summary", summary),
            ("developer", developer),
            ("publisher", publisher),
        ):
            if value.strip():
                setattr(game, field, value)
        if release_date is not None:
            game.release_date = release_date
        if genre_slugs is not None:
            game.genres = await self._resolve_genres(genre_slugs)
        await self.db.flush()
        await self.db.refresh(game)
        return game

    async def delete_game(self, game_id: uuid.UUID) -> None:
        game = await self.get_game(game_id)
        game.is_deleted = True
        await self.db.flush()
        self.logger.info("game_deleted", game_id=str(game_id))

    async def list_games(
        self,
        limit: int,
        offset: int,
        genre_slug: Optional[str] = None,
    ) -> Tuple[List[Game], int]:
        """Get a page of active games, newest first, plus the total count."""
        stmt = select(Game).where(Game.is_deleted == False)
        count_stmt = select(func.count(Game.id)).where(Game.is_deleted == False)

        if genre_slug:
            stmt = stmt.join(Game.genres).where(Genre.slug == genre_slug)
            count_stmt = count_stmt.join(Game.genres).where(Genre.slug == genre_slug)

        stmt = stmt.order_by(Game.created_at.desc(), Game.id).offset(offset).limit(limit)

        result = await self.db.execute(stmt)
        count = await self.db.execute(count_stmt)
        return list(result.scalars().all()), count.scalar_one()

    async def game_exists(self, game_id: uuid.UUID) -> bool:
        """True if the game exists and is not soft-deleted."""
        stmt = select(Game.id).where(Game.id == game_id, Game.is_deleted == False)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def update_rating_stats(
        self,
        game_id: uuid.UUID,
        rating_delta: int,
        count_delta: int,
    ) -> None:
        """Apply a delta to a game's rating sum and count in one atomic UPDATE."""
        stmt = (
            update(Game)
            .where(Game.id == game_id)
            .values(
                rating_sum=Game.rating_sum + rating_delta,
                rating_count=Game.rating_count + count_delta,
            )
        )
        result = await self.db.execute(stmt)
        if result.rowcount == 0:
            raise GameNotFoundError(str(game_id))
        self.logger.info(
            "rating_stats_updated",
            game_id=str(game_id),
            rating_delta=rating_delta,
            count_delta=count_delta,
        )
