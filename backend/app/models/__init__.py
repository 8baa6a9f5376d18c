"""SQLAlchemy models for the game review platform.

All models are imported here so ``Base.metadata`` knows every table.
"""

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from app.models.user import User
from app.models.game import Game, Genre, game_genres
from app.models.review import Review
from app.models.review_vote import ReviewVote
from app.models.one_time_code import CodePurpose, OneTimeCode

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "User",
    "Game",
    "Genre",
    "game_genres",
    "Review",
    "ReviewVote",
    "CodePurpose",
    "OneTimeCode",
]
