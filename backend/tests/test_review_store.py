"""Tests for the review store: persistence, votes and listings."""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from app.core.exceptions import BadRequestError, NotFoundError
from app.models import Review, ReviewVote, User
from app.services.review_store import vote_delta


async def _votes_on(session_factory, review_id) -> int:
    async with session_factory() as session:
        result = await session.execute(select(Review.votes).where(Review.id == review_id))
        return result.scalar_one()


# ============================================================================
# TESTS: VOTE ARITHMETIC
# ============================================================================

class TestVoteDelta:
    """Tests for the vote counter delta table."""

    @pytest.mark.parametrize(
        "existing, is_upvote, expected",
        [
            (None, True, 1),
            (None, False, -1),
            ("up", True, 0),
            ("down", False, 0),
            ("down", True, 2),
            ("up", False, -2),
        ],
    )
    def test_delta(self, existing, is_upvote, expected):
        assert vote_delta(existing, is_upvote) == expected


# ============================================================================
# TESTS: REVIEW CRUD
# ============================================================================

class TestReviewPersistence:
    """Tests for add/get/update of single reviews."""

    async def test_add_then_get_round_trip(self, store, game, author, insert_review):
        review = await insert_review(author, game, rating=5, comment="Loved it", city="Lisbon")

        stored, author_summary = await store.get_review(review.id)

        assert stored.rating == 5
        assert stored.comment == "Loved it"
        assert stored.votes == 0
        assert stored.city == "Lisbon"
        assert author_summary.id == author.id
        assert author_summary.username == "alice"
        assert author_summary.full_name == "Alice Tester"

    async def test_get_missing_review(self, store):
        with pytest.raises(NotFoundError):
            await store.get_review(uuid.uuid4())

    async def test_get_deleted_review(self, store, game, author, insert_review):
        review = await insert_review(author, game, is_deleted=True)

        with pytest.raises(NotFoundError):
            await store.get_review(review.id)

    async def test_get_review_with_inactive_author(self, store, session_factory, game, author, insert_review):
        review = await insert_review(author, game)
        async with session_factory() as session:
            user = await session.get(User, author.id)
            user.is_active = False
            await session.commit()

        with pytest.raises(NotFoundError):
            await store.get_review(review.id)

    async def test_update_replaces_fields_but_not_votes(self, store, game, author, other_user, insert_review):
        review = await insert_review(author, game, rating=2)
        await store.vote(other_user.id, review.id, True)

        review.rating = 4
        review.comment = "Grew on me"
        await store.update_review(review)

        stored, _ = await store.get_review(review.id)
        assert stored.rating == 4
        assert stored.comment == "Grew on me"
        assert stored.votes == 1

    async def test_update_missing_review(self, store, game, author, insert_review):
        review = await insert_review(author, game)
        review.id = uuid.uuid4()

        with pytest.raises(NotFoundError):
            await store.update_review(review)

    async def test_set_flag_only_touches_the_flag(self, store, game, author, insert_review):
        review = await insert_review(author, game, comment="Original comment")

        await store.set_flag(review.id, True)

        stored, _ = await store.get_review(review.id)
        assert stored.is_flagged is True
        assert stored.comment == "Original comment"


# ============================================================================
# TESTS: VOTING
# ============================================================================

class TestVoting:
    """Tests for per-user votes and the review's vote counter."""

    async def test_repeated_upvote_is_idempotent(self, store, session_factory, game, author, other_user, insert_review):
        review = await insert_review(author, game)

        assert await store.vote(other_user.id, review.id, True) == 1
        assert await store.vote(other_user.id, review.id, True) == 0

        assert await _votes_on(session_factory, review.id) == 1

    async def test_reversal_moves_counter_by_two(self, store, session_factory, game, author, other_user, insert_review):
        review = await insert_review(author, game)

        await store.vote(other_user.id, review.id, True)
        assert await store.vote(other_user.id, review.id, False) == -2

        assert await _votes_on(session_factory, review.id) == -1
        vote = await store.get_vote(other_user.id, review.id)
        assert vote.is_down_vote is True
        assert vote.is_up_vote is False

    async def test_one_vote_row_per_user(self, store, session_factory, game, author, other_user, insert_review):
        review = await insert_review(author, game)

        await store.vote(other_user.id, review.id, True)
        await store.vote(other_user.id, review.id, False)
        await store.vote(other_user.id, review.id, True)

        async with session_factory() as session:
            result = await session.execute(
                select(ReviewVote).where(ReviewVote.review_id == review.id)
            )
            rows = result.scalars().all()
        assert len(rows) == 1
        assert rows[0].vote_type == "up"

    async def test_counter_tracks_many_voters(self, store, session_factory, create_user, game, author, insert_review):
        review = await insert_review(author, game)
        voters = [await create_user(f"voter{i}") for i in range(4)]

        await asyncio.gather(*(store.vote(v.id, review.id, True) for v in voters[:3]))
        await store.vote(voters[3].id, review.id, False)

        assert await _votes_on(session_factory, review.id) == 2

    async def test_get_vote_without_vote(self, store, game, author, other_user, insert_review):
        review = await insert_review(author, game)

        vote = await store.get_vote(other_user.id, review.id)

        assert vote.user_id == other_user.id
        assert vote.review_id == review.id
        assert vote.is_up_vote is False
        assert vote.is_down_vote is False

    async def test_vote_on_flagged_review(self, store, game, author, other_user, insert_review):
        review = await insert_review(author, game, is_flagged=True)

        with pytest.raises(NotFoundError):
            await store.vote(other_user.id, review.id, True)

    async def test_vote_on_missing_review(self, store, other_user):
        with pytest.raises(NotFoundError):
            await store.vote(other_user.id, uuid.uuid4(), True)


# ============================================================================
# TESTS: LISTINGS
# ============================================================================

class TestListings:
    """Tests for paginated review listings."""

    async def test_game_listing_pagination(self, store, game, author, other_user, insert_review):
        base = datetime.now(timezone.utc)
        for i in range(5):
            await insert_review(author, game, rating=(i % 5) + 1, created_at=base - timedelta(minutes=i))

        page = await store.get_reviews_for_game(game.id, other_user.id, limit=2, offset=2)

        assert len(page.data) == 2
        assert page.total_items == 5
        assert page.total_pages == 3
        assert page.current_page == 1
        assert page.items_per_page == 2
        assert page.has_more is True

    async def test_last_page_has_no_more(self, store, game, author, other_user, insert_review):
        for _ in range(3):
            await insert_review(author, game)

        page = await store.get_reviews_for_game(game.id, other_user.id, limit=2, offset=2)

        assert len(page.data) == 1
        assert page.has_more is False

    async def test_exact_fit_has_no_more(self, store, game, author, other_user, insert_review):
        for _ in range(4):
            await insert_review(author, game)

        page = await store.get_reviews_for_game(game.id, other_user.id, limit=2, offset=2)

        assert page.total_pages == 2
        assert page.has_more is False

    async def test_offset_past_the_end(self, store, game, author, other_user, insert_review):
        await insert_review(author, game)

        page = await store.get_reviews_for_game(game.id, other_user.id, limit=10, offset=30)

        assert page.data == []
        assert page.total_items == 1
        assert page.current_page == 3
        assert page.has_more is False

    async def test_newest_first_by_default(self, store, game, author, other_user, insert_review):
        base = datetime.now(timezone.utc)
        old = await insert_review(author, game, created_at=base - timedelta(days=2))
        new = await insert_review(author, game, created_at=base)

        page = await store.get_reviews_for_game(game.id, other_user.id, limit=10, offset=0)

        assert [item.review.id for item in page.data] == [new.id, old.id]

    async def test_sort_by_rating_ascending(self, store, game, author, other_user, insert_review):
        for rating in (3, 1, 5):
            await insert_review(author, game, rating=rating)

        page = await store.get_reviews_for_game(
            game.id, other_user.id, limit=10, offset=0, sort_key="rating", ascending=True,
        )

        assert [item.review.rating for item in page.data] == [1, 3, 5]

    async def test_unknown_sort_key(self, store, game, other_user):
        with pytest.raises(BadRequestError):
            await store.get_reviews_for_game(game.id, other_user.id, limit=10, offset=0, sort_key="comment")

    async def test_hidden_reviews_are_excluded(self, store, game, author, other_user, insert_review):
        visible = await insert_review(author, game)
        await insert_review(author, game, is_deleted=True)
        await insert_review(author, game, is_flagged=True)

        page = await store.get_reviews_for_game(game.id, other_user.id, limit=10, offset=0)

        assert [item.review.id for item in page.data] == [visible.id]
        assert page.total_items == 1

    async def test_listing_joins_authors_and_viewer_votes(self, store, game, author, other_user, insert_review):
        first = await insert_review(author, game, created_at=datetime.now(timezone.utc))
        second = await insert_review(other_user, game, created_at=datetime.now(timezone.utc) - timedelta(hours=1))
        await store.vote(other_user.id, first.id, False)

        page = await store.get_reviews_for_game(game.id, other_user.id, limit=10, offset=0)

        by_id = {item.review.id: item for item in page.data}
        assert by_id[first.id].user.username == "alice"
        assert by_id[second.id].user.username == "bob"
        assert by_id[first.id].vote.is_down_vote is True
        assert by_id[second.id].vote.is_up_vote is False
        assert by_id[second.id].vote.is_down_vote is False
        assert all(item.vote.user_id == other_user.id for item in page.data)

    async def test_reviews_of_inactive_authors_drop_out(self, store, session_factory, game, author, other_user, insert_review):
        await insert_review(author, game)
        kept = await insert_review(other_user, game)
        async with session_factory() as session:
            user = await session.get(User, author.id)
            user.is_active = False
            await session.commit()

        page = await store.get_reviews_for_game(game.id, other_user.id, limit=10, offset=0)

        assert [item.review.id for item in page.data] == [kept.id]
        assert page.total_items == 1
        assert page.total_pages == 1
        assert page.has_more is False

    async def test_inactive_authors_do_not_take_page_slots(self, store, session_factory, game, author, other_user, insert_review):
        await insert_review(author, game, rating=5)
        kept = await insert_review(other_user, game, rating=1)
        async with session_factory() as session:
            user = await session.get(User, author.id)
            user.is_active = False
            await session.commit()

        page = await store.get_reviews_for_game(
            game.id, other_user.id, limit=1, offset=0, sort_key="rating",
        )

        assert [item.review.id for item in page.data] == [kept.id]
        assert page.has_more is False

    async def test_user_listing(self, store, game, author, other_user, insert_review):
        mine = await insert_review(author, game)
        await insert_review(other_user, game)

        page = await store.get_reviews_for_user(author.id, author.id, limit=10, offset=0)

        assert [item.review.id for item in page.data] == [mine.id]

    async def test_flagged_listing(self, store, game, author, insert_review):
        flagged = await insert_review(author, game, is_flagged=True)
        await insert_review(author, game)
        await insert_review(author, game, is_flagged=True, is_deleted=True)

        page = await store.get_flagged_reviews(limit=10, offset=0)

        assert [r.id for r in page.data] == [flagged.id]
        assert page.total_items == 1

    async def test_flagged_listing_filtered_by_game(self, store, game, author, insert_review):
        await insert_review(author, game, is_flagged=True)

        page = await store.get_flagged_reviews(limit=10, offset=0, game_id=uuid.uuid4())

        assert page.data == []

    async def test_reviews_since(self, store, game, author, insert_review):
        now = datetime.now(timezone.utc)
        recent = await insert_review(author, game, created_at=now - timedelta(hours=1))
        await insert_review(author, game, created_at=now - timedelta(days=2))

        reviews = await store.get_reviews_since(now - timedelta(days=1))

        assert [r.id for r in reviews] == [recent.id]
