"""FastAPI dependency injection providers.

This is where a request's bearer token becomes a ``RequestPrincipal``;
services never see tokens.
"""

import uuid
from typing import AsyncGenerator, Callable, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.access import AUTHENTICATED, RequestPrincipal, Role, RoleRequirement, check_access
from app.core.exceptions import UnauthenticatedError
from app.db.session import async_session_factory
from app.models.user import User
from app.services.auth_service import AuthService, decode_access_token
from app.services.catalog_service import CatalogService
from app.services.location_service import LocationService
from app.services.review_service import ReviewService
from app.services.review_store import ReviewStore

_bearer_scheme = HTTPBearer(auto_error=False)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for stores that open their own sessions."""
    return async_session_factory


async def get_db(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session for request-scoped usage.

    The session is automatically committed on success or rolled back on error.
    Always closed after the request completes.
    """
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Extract and validate the JWT, return the authenticated active user.

    Raises UnauthenticatedError (401) if the token is missing/invalid or the
    user is gone or deactivated.
    """
    if not credentials:
        raise UnauthenticatedError("Authorization header not found")

    claims = decode_access_token(credentials.credentials)
    if not claims:
        raise UnauthenticatedError("Invalid token")

    try:
        user_id = uuid.UUID(claims["sub"])
    except ValueError:
        raise UnauthenticatedError("Invalid token")

    service = AuthService(db)
    user = await service.get_user_by_id(user_id)

    if not user or not user.is_active:
        raise UnauthenticatedError("User not found")

    return user


async def get_current_principal(user: User = Depends(get_current_user)) -> RequestPrincipal:
    """The caller's identity and role, as stored (not as claimed by the token)."""
    return RequestPrincipal(user_id=user.id, role=Role(user.role))


def require_role(requirement: RoleRequirement = AUTHENTICATED) -> Callable:
    """Build a dependency admitting only callers whose role passes ``requirement``.

    Usage:
        @router.post("/{id}/flag")
        async def flag(principal: RequestPrincipal = Depends(require_role(MODERATION))):
            ...
    """

    async def dependency(
        principal: RequestPrincipal = Depends(get_current_principal),
    ) -> RequestPrincipal:
        return check_access(principal, requirement)

    return dependency


def get_review_store(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> ReviewStore:
    return ReviewStore(session_factory)


def get_review_service(store: ReviewStore = Depends(get_review_store)) -> ReviewService:
    return ReviewService(store)


def get_location_service(store: ReviewStore = Depends(get_review_store)) -> LocationService:
    return LocationService(store)


def get_catalog_service(db: AsyncSession = Depends(get_db)) -> CatalogService:
    return CatalogService(db)
