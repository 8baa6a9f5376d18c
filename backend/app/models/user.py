"""User model for authentication and reviewer profiles."""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String, Boolean, DateTime, Float
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from app.models.review import Review
    from app.models.one_time_code import OneTimeCode
    from app.models.review_vote import ReviewVote


class User(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Application user.

    Supports email/password authentication with bcrypt hashing. The profile
    location is what review listings show next to the author.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(320), unique=True, nullable=False, index=True,
        comment="User email address (unique)"
    )
    username: Mapped[str] = mapped_column(
        String(50), unique=True, nullable=False, index=True,
        comment="Public handle"
    )
    hashed_password: Mapped[str] = mapped_column(
        String(128), nullable=False,
        comment="bcrypt hashed password"
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    avatar: Mapped[Optional[str]] = mapped_column(
        String(500), nullable=True,
        comment="Display picture URL"
    )
    phone: Mapped[Optional[str]] = mapped_column(
        String(20), nullable=True,
        comment="E.164 phone number"
    )
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default="user",
        comment="'user', 'moderator' or 'admin'"
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True,
        comment="Whether user account is active"
    )
    is_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
        comment="Whether the e-mail address has been confirmed"
    )
    last_login_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True,
        comment="Last login timestamp"
    )

    # Profile location
    country: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    country_code: Mapped[str] = mapped_column(String(5), nullable=False, default="")
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    latitude: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    longitude: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    # Relationships
    reviews: Mapped[List["Review"]] = relationship(back_populates="user")
    votes: Mapped[List["ReviewVote"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )
    one_time_codes: Mapped[List["OneTimeCode"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

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
        return f"<User(id={self.id}, username='{self.username}', role='{self.role}')>"
