"""Catalog Pydantic schemas: games and genres."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class GenreCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=100)
    slug: str = Field(min_length=1, max_length=100, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    description: str = Field(min_length=1)


class GenreUpdateRequest(BaseModel):
    """Blank fields keep their current value."""
    title: str = ""
    description: str = ""


class GenreResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    slug: str
    description: str
    created_at: datetime
    updated_at: datetime


class GenreBrief(BaseModel):
    """Genre info embedded in game responses."""
    model_config = ConfigDict(from_attributes=True)

    title: str
    slug: str


class GameCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    summary: str = ""
    developer: str = ""
    publisher: str = ""
    release_date: Optional[datetime] = None
    genres: List[str] = Field(default_factory=list, description="Genre slugs")


class GameUpdateRequest(BaseModel):
    """Partial update: omitted or blank fields keep their current value."""
    title: str = ""
    summary: str = ""
    developer: str = ""
    publisher: str = ""
    release_date: Optional[datetime] = None
    genres: Optional[List[str]] = None


class RatingStats(BaseModel):
    total_ratings: int
    rating_sum: int
    average: float


class GameResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    summary: str
    developer: str
    publisher: str
    release_date: Optional[datetime] = None
    genres: List[GenreBrief] = []
    rating: RatingStats
    created_at: datetime

    @classmethod
    def from_game(cls, game) -> "GameResponse":
        return cls(
            id=game.id,
            title=game.title,
            summary=game.summary,
            developer=game.developer,
            publisher=game.publisher,
            release_date=game.release_date,
            genres=[GenreBrief.model_validate(g) for g in game.genres if not g.is_deleted],
            rating=RatingStats(
                total_ratings=game.rating_count,
                rating_sum=game.rating_sum,
                average=game.rating_average,
            ),
            created_at=game.created_at,
        )
