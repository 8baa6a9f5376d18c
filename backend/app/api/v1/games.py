"""Games API endpoints."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.core.access import ADMIN_ONLY, RequestPrincipal
from app.dependencies import get_catalog_service, require_role
from app.schemas import (
    ApiResponse,
    GameCreateRequest,
    GameResponse,
    GameUpdateRequest,
    PaginatedResponse,
    clamp_pagination,
)
from app.services.catalog_service import CatalogService

router = APIRouter()

authenticated = require_role()
admin = require_role(ADMIN_ONLY)


@router.get("", response_model=ApiResponse[PaginatedResponse[GameResponse]])
async def list_games(
    limit: int = Query(10, description="Items per page (max 100)"),
    offset: int = Query(0),
    genre: Optional[str] = Query(None, description="Filter by genre slug"),
    principal: RequestPrincipal = Depends(authenticated),
    service: CatalogService = Depends(get_catalog_service),
):
    """List active games, newest first."""
    limit, offset = clamp_pagination(limit, offset)
    games, total = await service.list_games(limit, offset, genre_slug=genre)
    page = PaginatedResponse[GameResponse].build(
        [GameResponse.from_game(g) for g in games], total, limit, offset,
    )
    return ApiResponse(message="Games", data=page)


@router.post("", response_model=ApiResponse[GameResponse], status_code=201)
async def add_game(
    body: GameCreateRequest,
    principal: RequestPrincipal = Depends(admin),
    service: CatalogService = Depends(get_catalog_service),
):
    game = await service.add_game(
        title=body.title,
        summary=body.summary,
        developer=body.developer,
        publisher=body.publisher,
        release_date=body.release_date,
        genre_slugs=body.genres,
    )
    return ApiResponse(message="Game added", data=GameResponse.from_game(game))


@router.get("/{game_id}", response_model=ApiResponse[GameResponse])
async def get_game(
    game_id: UUID,
    principal: RequestPrincipal = Depends(authenticated),
    service: CatalogService = Depends(get_catalog_service),
):
    """Game details including rating statistics."""
    game = await service.get_game(game_id)
    return ApiResponse(message="Game", data=GameResponse.from_game(game))


@router.put("/{game_id}", response_model=ApiResponse[GameResponse])
async def update_game(
    game_id: UUID,
    body: GameUpdateRequest,
    principal: RequestPrincipal = Depends(admin),
    service: CatalogService = Depends(get_catalog_service),
):
    game = await service.update_game(
        game_id,
        title=body.title,
        summary=body.summary,
        developer=body.developer,
        publisher=body.publisher,
        release_date=body.release_date,
        genre_slugs=body.genres,
    )
    return ApiResponse(message="Game updated", data=GameResponse.from_game(game))


@router.delete("/{game_id}", response_model=ApiResponse[dict])
async def delete_game(
    game_id: UUID,
    principal: RequestPrincipal = Depends(admin),
    service: CatalogService = Depends(get_catalog_service),
):
    await service.delete_game(game_id)
    return ApiResponse(message="Game deleted", data={"deleted": True})
