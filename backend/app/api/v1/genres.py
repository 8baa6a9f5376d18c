"""Genres API endpoints."""

from fastapi import APIRouter, Depends, Query

from app.core.access import ADMIN_ONLY, RequestPrincipal
from app.dependencies import get_catalog_service, require_role
from app.schemas import (
    ApiResponse,
    GenreCreateRequest,
    GenreResponse,
    GenreUpdateRequest,
    PaginatedResponse,
    clamp_pagination,
)
from app.services.catalog_service import CatalogService

router = APIRouter()

authenticated = require_role()
admin = require_role(ADMIN_ONLY)


@router.get("", response_model=ApiResponse[PaginatedResponse[GenreResponse]])
async def list_genres(
    limit: int = Query(10, description="Items per page (max 100)"),
    offset: int = Query(0),
    principal: RequestPrincipal = Depends(authenticated),
    service: CatalogService = Depends(get_catalog_service),
):
    limit, offset = clamp_pagination(limit, offset)
    genres, total = await service.list_genres(limit, offset)
    page = PaginatedResponse[GenreResponse].build(
        [GenreResponse.model_validate(g) for g in genres], total, limit, offset,
    )
    return ApiResponse(message="Genres", data=page)


@router.post("", response_model=ApiResponse[GenreResponse], status_code=201)
async def add_genre(
    body: GenreCreateRequest,
    principal: RequestPrincipal = Depends(admin),
    service: CatalogService = Depends(get_catalog_service),
):
    genre = await service.add_genre(body.title, body.slug, body.description)
    return ApiResponse(message="Genre added", data=GenreResponse.model_validate(genre))


@router.get("/{slug}", response_model=ApiResponse[GenreResponse])
async def get_genre(
    slug: str,
    principal: RequestPrincipal = Depends(authenticated),
    service: CatalogService = Depends(get_catalog_service),
):
    genre = await service.get_genre(slug)
    return ApiResponse(message="Genre", data=GenreResponse.model_validate(genre))


@router.put("/{slug}", response_model=ApiResponse[GenreResponse])
async def edit_genre(
    slug: str,
    body: GenreUpdateRequest,
    principal: RequestPrincipal = Depends(admin),
    service: CatalogService = Depends(get_catalog_service),
):
    """Update a genre; blank fields keep their current value."""
    genre = await service.edit_genre(slug, title=body.title, description=body.description)
    return ApiResponse(message="Genre updated", data=GenreResponse.model_validate(genre))


@router.delete("/{slug}", response_model=ApiResponse[dict])
async def delete_genre(
    slug: str,
    principal: RequestPrincipal = Depends(admin),
    service: CatalogService = Depends(get_catalog_service),
):
    await service.delete_genre(slug)
    return ApiResponse(message="Genre deleted", data={"deleted": True})
