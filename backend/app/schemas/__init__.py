"""Pydantic schemas for the game review API.

All request/response models are defined here for easy import.
"""

from app.schemas.common import ApiResponse, ErrorResponse, PaginatedResponse, clamp_pagination
from app.schemas.review import (
    AddReviewRequest,
    AddReviewResponse,
    AuthorSummary,
    LatLng,
    LocationSchema,
    LocationWindow,
    LocationWithCount,
    ReviewResponse,
    ReviewSchema,
    UpdateReviewRequest,
    VoteSchema,
)
from app.schemas.game import (
    GameCreateRequest,
    GameResponse,
    GameUpdateRequest,
    GenreBrief,
    GenreCreateRequest,
    GenreResponse,
    GenreUpdateRequest,
    RatingStats,
)
from app.schemas.health import HealthCheckResponse
from app.schemas.auth import (
    AccountResponse,
    AuthSession,
    CodeIssuedResponse,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenResponse,
    VerifyAccountRequest,
)

__all__ = [
    # Common
    "ApiResponse",
    "ErrorResponse",
    "PaginatedResponse",
    "clamp_pagination",
    # Review
    "AddReviewRequest",
    "AddReviewResponse",
    "AuthorSummary",
    "LatLng",
    "LocationSchema",
    "LocationWindow",
    "LocationWithCount",
    "ReviewResponse",
    "ReviewSchema",
    "UpdateReviewRequest",
    "VoteSchema",
    # Catalog
    "GameCreateRequest",
    "GameResponse",
    "GameUpdateRequest",
    "GenreBrief",
    "GenreCreateRequest",
    "GenreResponse",
    "GenreUpdateRequest",
    "RatingStats",
    # Health
    "HealthCheckResponse",
    # Auth
    "AccountResponse",
    "AuthSession",
    "CodeIssuedResponse",
    "LoginRequest",
    "RegisterRequest",
    "ResetPasswordRequest",
    "TokenResponse",
    "VerifyAccountRequest",
]
