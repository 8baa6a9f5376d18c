"""Review Pydantic schemas for request/response validation."""

import enum
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

COMMENT_MIN_LENGTH = 5


class LocationSchema(BaseModel):
    """Where a reviewer was when writing a review."""
    model_config = ConfigDict(from_attributes=True)

    country: str = ""
    country_code: str = ""
    city: Optional[str] = None
    latitude: float = Field(default=0.0, ge=-90, le=90)
    longitude: float = Field(default=0.0, ge=-180, le=180)


class AddReviewRequest(BaseModel):
    """Request to create a review."""
    rating: int = Field(ge=1, le=5)
    comment: str = Field(min_length=COMMENT_MIN_LENGTH, max_length=2000)
    game_id: UUID
    location: LocationSchema


class UpdateReviewRequest(BaseModel):
    """Partial update: a blank comment or a rating of 0 keeps the old value."""
    rating: int = Field(default=0, ge=0, le=5)
    comment: str = Field(default="", max_length=2000)

    @field_validator("comment")
    @classmethod
    def comment_length(cls, v: str) -> str:
        if v.strip() and len(v) < COMMENT_MIN_LENGTH:
            raise ValueError(f"Comment must be at least {COMMENT_MIN_LENGTH} characters")
        return v


class ReviewSchema(BaseModel):
    """A stored review."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    rating: int
    comment: str
    user_id: UUID
    game_id: UUID
    created_at: datetime
    last_updated_at: datetime
    is_deleted: bool
    is_flagged: bool
    votes: int
    location: LocationSchema


class AuthorSummary(BaseModel):
    """Author details joined onto a review at read time."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    full_name: str
    avatar: Optional[str] = None
    location: LocationSchema


class VoteSchema(BaseModel):
    """The requesting user's vote on a review."""
    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    review_id: UUID
    is_up_vote: bool = False
    is_down_vote: bool = False

    @classmethod
    def none(cls, user_id: UUID, review_id: UUID) -> "VoteSchema":
        """The "no vote" placeholder."""
        return cls(user_id=user_id, review_id=review_id)


class ReviewResponse(BaseModel):
    """Review with its author and the caller's vote."""

    review: ReviewSchema
    user: AuthorSummary
    vote: VoteSchema


class AddReviewResponse(BaseModel):
    review_id: UUID


class LocationWindow(str, enum.Enum):
    """Unit of the recency window for reviewer hotspots."""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class LatLng(BaseModel):
    lat: float
    lng: float


class LocationWithCount(BaseModel):
    """A hotspot: its seed point and how many reviews fell within range."""

    location: LatLng
    count: int
