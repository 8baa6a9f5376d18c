"""Pytest configuration and shared fixtures."""

import uuid
from datetime import datetime, timezone

import pytest
import pytest_asyncio

from app.core import background
from app.core.access import RequestPrincipal, Role
from app.db.session import build_engine, build_session_factory
from app.models import Base, Review, User
from app.services.auth_service import AuthService, hash_password
from app.services.catalog_service import CatalogService
from app.services.review_service import ReviewService
from app.services.review_store import ReviewStore

TEST_OFFENSIVE_WORDS = ["darn", "heck off"]
TEST_PASSWORD = "password123"
_TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


@pytest.fixture
def anyio_backend():
    """Use asyncio as the async backend for tests."""
    return "asyncio"


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """A file-backed SQLite database per test.

    A file (rather than ``:memory:``) lets the store's concurrent sessions
    each get their own connection to the same data.
    """
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'reviews.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield build_session_factory(engine)

    await background.drain()
    await engine.dispose()


async def _create_user(session_factory, username: str, role: Role = Role.USER, **fields) -> User:
    async with session_factory() as session:
        user = User(
            email=f"{username}@example.com",
            username=username,
            hashed_password=_TEST_PASSWORD_HASH,
            first_name=username.capitalize(),
            last_name="Tester",
            role=role.value,
            **fields,
        )
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user


@pytest.fixture
def create_user(session_factory):
    """Factory fixture: ``await create_user("name", Role.ADMIN)``."""

    async def factory(username: str, role: Role = Role.USER, **fields) -> User:
        return await _create_user(session_factory, username, role, **fields)

    return factory


@pytest.fixture
def sent_codes(monkeypatch):
    """Collects one-time codes instead of mailing them, newest last."""
    sent = []

    async def capture(self, user, otp, code):
        sent.append(code)

    monkeypatch.setattr(AuthService, "_deliver_code", capture)
    return sent


@pytest_asyncio.fixture
async def author(create_user) -> User:
    return await create_user("alice", city="Lisbon", latitude=38.72, longitude=-9.14)


@pytest_asyncio.fixture
async def other_user(create_user) -> User:
    return await create_user("bob")


@pytest_asyncio.fixture
async def moderator_user(create_user) -> User:
    return await create_user("mod", Role.MODERATOR)


@pytest.fixture
def author_principal(author) -> RequestPrincipal:
    return RequestPrincipal(user_id=author.id, role=Role.USER)


@pytest.fixture
def other_principal(other_user) -> RequestPrincipal:
    return RequestPrincipal(user_id=other_user.id, role=Role.USER)


@pytest.fixture
def moderator_principal(moderator_user) -> RequestPrincipal:
    return RequestPrincipal(user_id=moderator_user.id, role=Role.MODERATOR)


@pytest_asyncio.fixture
async def game(session_factory):
    async with session_factory() as session:
        catalog = CatalogService(session)
        await catalog.add_genre("Puzzle", "puzzle", "Logic puzzles")
        created = await catalog.add_game(
            title="Portal 2",
            developer="Valve",
            publisher="Valve",
            genre_slugs=["puzzle"],
        )
        await session.commit()
        return created


@pytest.fixture
def store(session_factory) -> ReviewStore:
    return ReviewStore(session_factory)


@pytest.fixture
def service(store) -> ReviewService:
    return ReviewService(store, offensive_words=TEST_OFFENSIVE_WORDS)


@pytest.fixture
def insert_review(store):
    """Factory fixture writing a review row straight through the store."""

    async def factory(user, game, rating: int = 4, comment: str = "Great puzzles", **fields):
        now = fields.pop("created_at", None) or datetime.now(timezone.utc)
        review = Review(
            id=uuid.uuid4(),
            user_id=user.id,
            game_id=game.id,
            rating=rating,
            comment=comment,
            created_at=now,
            last_updated_at=now,
            is_deleted=fields.pop("is_deleted", False),
            is_flagged=fields.pop("is_flagged", False),
            votes=0,
            **fields,
        )
        return await store.add_review(review)

    return factory
