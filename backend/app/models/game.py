"""Catalog models: games and genres."""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from app.models.review import Review


game_genres = Table(
    "game_genres",
    Base.metadata,
    Column("game_id", ForeignKey("games.id", ondelete="CASCADE"), primary_key=True),
    Column("genre_id", ForeignKey("genres.id", ondelete="CASCADE"), primary_key=True),
)


class Genre(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A game genre, addressed by its slug."""

    __tablename__ = "genres"

    title: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(
        String(100), unique=True, index=True, nullable=False,
        comment="URL-friendly identifier"
    )
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    is_deleted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
        comment="Soft delete flag"
    )

    games: Mapped[List["Game"]] = relationship(secondary=game_genres, back_populates="genres")

    def __repr__(self) -> str:
        return f"<Genre(slug='{self.slug}')>"


class Game(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A reviewable game with aggregate rating statistics.

    ``rating_sum`` and ``rating_count`` are only ever changed through atomic
    increments (see ``CatalogService.update_rating_stats``).
    """

    __tablename__ = "games"

    title: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    summary: Mapped[str] = mapped_column(Text, nullable=False, default="")
    developer: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    publisher: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    release_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    rating_sum: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rating_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_deleted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
        comment="Soft delete flag"
    )

    genres: Mapped[List[Genre]] = relationship(
        secondary=game_genres, back_populates="games", lazy="selectin",
    )
    reviews: Mapped[List["Review"]] = relationship(back_populates="game")

    @property
    def rating_average(self) -> float:
        if not self.rating_count:
            return 0.0
        return round(self.rating_sum / self.rating_count, 2)

    def __repr__(self) -> str:
        return f"<Game(id={self.id}, title='{self.title}')>"
