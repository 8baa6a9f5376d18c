"""ReviewVote model for tracking per-user review votes."""

import uuid

from sqlalchemy import String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.models.user import User
    from app.models.review import Review


class ReviewVote(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """One vote per (user, review); switching direction updates the row."""

    __tablename__ = "review_votes"

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    review_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("reviews.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    vote_type: Mapped[str] = mapped_column(
        String(4), nullable=False,
        comment="'up' or 'down'"
    )

    __table_args__ = (
        UniqueConstraint("user_id", "review_id", name="uq_user_review_vote"),
    )

    # Relationships
    user: Mapped["User"] = relationship(back_populates="votes")
    review: Mapped["Review"] = relationship(back_populates="vote_rows")

    @property
    def is_up_vote(self) -> bool:
        return self.vote_type == "up"

    @property
    def is_down_vote(self) -> bool:
        return self.vote_type == "down"

    def __repr__(self) -> str:
        return f"<ReviewVote(user={self.user_id}, review={self.review_id}, type={self.vote_type})>"
