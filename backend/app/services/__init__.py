"""Services module for business logic and data operations.

Services hold the review platform's rules: authentication, the game
catalog, the review store and its orchestration, and reviewer hotspots.
"""

from app.services.auth_service import AuthService
from app.services.catalog_service import CatalogService
from app.services.location_service import LocationService
from app.services.review_service import ReviewService
from app.services.review_store import ReviewStore

__all__ = [
    "AuthService",
    "CatalogService",
    "LocationService",
    "ReviewService",
    "ReviewStore",
]
