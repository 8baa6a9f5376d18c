"""API v1 router -- aggregates all v1 endpoint routers."""

from fastapi import APIRouter

from app.api.v1 import auth, games, genres, health, reviews

api_v1_router = APIRouter()

api_v1_router.include_router(health.router, tags=["health"])
api_v1_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_v1_router.include_router(games.router, prefix="/games", tags=["games"])
api_v1_router.include_router(genres.router, prefix="/genres", tags=["genres"])
api_v1_router.include_router(reviews.router, prefix="/reviews", tags=["reviews"])
