"""Reviews API endpoints."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.core.access import MODERATION, RequestPrincipal
from app.dependencies import get_location_service, get_review_service, require_role
from app.schemas import (
    AddReviewRequest,
    AddReviewResponse,
    ApiResponse,
    LocationWindow,
    LocationWithCount,
    PaginatedResponse,
    ReviewResponse,
    ReviewSchema,
    UpdateReviewRequest,
)
from app.services.cache_service import CacheService, get_cache
from app.services.location_service import LocationService
from app.services.review_service import ReviewService

router = APIRouter()

authenticated = require_role()
moderator = require_role(MODERATION)


@router.post("/add", response_model=ApiResponse[AddReviewResponse], status_code=201)
async def add_review(
    body: AddReviewRequest,
    principal: RequestPrincipal = Depends(authenticated),
    service: ReviewService = Depends(get_review_service),
    cache: CacheService = Depends(get_cache),
):
    """Review a game. The comment is screened for offensive content."""
    review = await service.add_review(principal, body)
    await cache.invalidate_locations()
    return ApiResponse(message="Review added", data=AddReviewResponse(review_id=review.id))


@router.get("/flagged", response_model=ApiResponse[PaginatedResponse[ReviewSchema]])
async def list_flagged_reviews(
    game_id: Optional[UUID] = Query(None, alias="gameId"),
    limit: int = Query(10, description="Items per page (max 100)"),
    offset: int = Query(0),
    principal: RequestPrincipal = Depends(moderator),
    service: ReviewService = Depends(get_review_service),
):
    """Moderation queue of flagged reviews. Moderators and admins only."""
    page = await service.get_flagged_reviews(principal, game_id=game_id, limit=limit, offset=offset)
    return ApiResponse(message="Flagged reviews", data=page)


@router.get("/locations", response_model=ApiResponse[List[LocationWithCount]])
async def reviewer_locations(
    window: LocationWindow = Query(LocationWindow.DAY, alias="type"),
    value: int = Query(1, ge=1, description="Number of window units to look back"),
    principal: RequestPrincipal = Depends(authenticated),
    service: LocationService = Depends(get_location_service),
    cache: CacheService = Depends(get_cache),
):
    """Where recent reviewers cluster, with the number of reviews per hotspot.

    Results are cached until a review is added or deleted, at most
    LOCATIONS_CACHE_TTL_SECONDS.
    """
    locations = await cache.get_locations(window, value)
    if locations is None:
        locations = await service.get_locations(window, value)
        await cache.set_locations(window, value, locations)

    return ApiResponse(message="Reviewer locations", data=locations)


@router.get("/game/{game_id}", response_model=ApiResponse[PaginatedResponse[ReviewResponse]])
async def list_game_reviews(
    game_id: UUID,
    limit: int = Query(10, description="Items per page (max 100)"),
    offset: int = Query(0),
    sort_key: str = Query("createdAt", alias="sortKey"),
    asc: bool = Query(False),
    principal: RequestPrincipal = Depends(authenticated),
    service: ReviewService = Depends(get_review_service),
):
    """Visible reviews of a game with authors and the caller's votes."""
    page = await service.get_reviews_for_game(
        principal, game_id, limit=limit, offset=offset, sort_key=sort_key, ascending=asc,
    )
    return ApiResponse(message="Reviews", data=page)


@router.get("/user/{user_id}", response_model=ApiResponse[PaginatedResponse[ReviewResponse]])
async def list_user_reviews(
    user_id: UUID,
    limit: int = Query(10, description="Items per page (max 100)"),
    offset: int = Query(0),
    sort_key: str = Query("createdAt", alias="sortKey"),
    asc: bool = Query(False),
    principal: RequestPrincipal = Depends(authenticated),
    service: ReviewService = Depends(get_review_service),
):
    """A user's visible reviews. Only that user or a moderator may list them."""
    page = await service.get_reviews_for_user(
        principal, user_id, limit=limit, offset=offset, sort_key=sort_key, ascending=asc,
    )
    return ApiResponse(message="Reviews", data=page)


@router.get("/{review_id}", response_model=ApiResponse[ReviewResponse])
async def get_review(
    review_id: UUID,
    principal: RequestPrincipal = Depends(authenticated),
    service: ReviewService = Depends(get_review_service),
):
    review = await service.get_review(principal, review_id)
    return ApiResponse(message="Review", data=review)


@router.put("/{review_id}", response_model=ApiResponse[ReviewSchema], status_code=202)
async def update_review(
    review_id: UUID,
    body: UpdateReviewRequest,
    principal: RequestPrincipal = Depends(authenticated),
    service: ReviewService = Depends(get_review_service),
):
    """Partially update a review. Author, moderators and admins only."""
    review = await service.update_review(principal, review_id, body)
    return ApiResponse(message="Review updated", data=review)


@router.delete("/{review_id}", response_model=ApiResponse[dict])
async def delete_review(
    review_id: UUID,
    principal: RequestPrincipal = Depends(authenticated),
    service: ReviewService = Depends(get_review_service),
    cache: CacheService = Depends(get_cache),
):
    """Soft-delete a review. Author, moderators and admins only."""
    await service.delete_review(principal, review_id)
    await cache.invalidate_locations()
    return ApiResponse(message="Review deleted", data={"deleted": True})


@router.post("/{review_id}/upvote", response_model=ApiResponse[dict])
async def upvote_review(
    review_id: UUID,
    principal: RequestPrincipal = Depends(authenticated),
    service: ReviewService = Depends(get_review_service),
):
    delta = await service.vote_review(principal, review_id, is_upvote=True)
    return ApiResponse(message="Vote recorded", data={"delta": delta})


@router.post("/{review_id}/downvote", response_model=ApiResponse[dict])
async def downvote_review(
    review_id: UUID,
    principal: RequestPrincipal = Depends(authenticated),
    service: ReviewService = Depends(get_review_service),
):
    delta = await service.vote_review(principal, review_id, is_upvote=False)
    return ApiResponse(message="Vote recorded", data={"delta": delta})


@router.post("/{review_id}/flag", response_model=ApiResponse[dict])
async def flag_review(
    review_id: UUID,
    principal: RequestPrincipal = Depends(moderator),
    service: ReviewService = Depends(get_review_service),
):
    await service.flag_review(principal, review_id, True)
    return ApiResponse(message="Review flagged", data={"flagged": True})


@router.post("/{review_id}/unflag", response_model=ApiResponse[dict])
async def unflag_review(
    review_id: UUID,
    principal: RequestPrincipal = Depends(moderator),
    service: ReviewService = Depends(get_review_service),
):
    await service.flag_review(principal, review_id, False)
    return ApiResponse(message="Review unflagged", data={"flagged": False})
