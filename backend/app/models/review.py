"""Review model: a user's rating and comment on a game."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from app.models.game import Game
    from app.models.review_vote import ReviewVote
    from app.models.user import User


class Review(UUIDPrimaryKeyMixin, Base):
    """A review of a game.

    Deleted and flagged reviews stay in the table for moderation audit but
    are hidden from every public read. The location is copied from the
    request at creation time and feeds the reviewer hotspot analytics.
    """

    __tablename__ = "reviews"

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    game_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("games.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(),
    )
    last_updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(),
    )
    is_deleted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
        comment="Soft delete flag"
    )
    is_flagged: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
        comment="Hidden pending moderation"
    )
    votes: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
        comment="Net vote count (+1 per upvote, -1 per downvote)"
    )

    # Location snapshot
    country: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    country_code: Mapped[str] = mapped_column(String(5), nullable=False, default="")
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    latitude: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    longitude: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    __table_args__ = (
        Index("idx_reviews_game_created", "game_id", "created_at"),
        Index("idx_reviews_created_deleted", "created_at", "is_deleted"),
    )

    # Relationships
    user: Mapped["User"] = relationship(back_populates="reviews")
    game: Mapped["Game"] = relationship(back_populates="reviews")
    vote_rows: Mapped[List["ReviewVote"]] = relationship(
        back_populates="review", cascade="all, delete-orphan"
    )

    @property
    def location(self) -> dict:
        return {
            "country": self.country,
            "country_code": self.country_code,
            "city": self.city,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }

    def __repr__(self) -> str:
        return (
            f"<Review(id={self.id}, game_id={self.game_id}, rating={self.rating}, "
            f"votes={self.votes}, deleted={self.is_deleted}, flagged={self.is_flagged})>"
        )
