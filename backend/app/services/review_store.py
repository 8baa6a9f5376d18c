"""Review store: persistence for reviews and per-user votes.

Every operation runs in its own session and transaction, so concurrent
callers (the per-review vote fan-out, background side effects) never share
a session. Storage errors are logged and surfaced as ``StorageError`` /
``UnknownError``; missing rows surface as ``NotFoundError``.
"""

import asyncio
import uuid
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.exceptions import BadRequestError, NotFoundError, StorageError, UnknownError
from app.models.review import Review
from app.models.review_vote import ReviewVote
from app.models.user import User
from app.schemas.common import PaginatedResponse
from app.schemas.review import AuthorSummary, ReviewResponse, ReviewSchema, VoteSchema

logger = structlog.get_logger(__name__)

SORT_COLUMNS = {
    "createdAt": Review.created_at,
    "created_at": Review.created_at,
    "lastUpdatedAt": Review.last_updated_at,
    "last_updated_at": Review.last_updated_at,
    "rating": Review.rating,
    "votes": Review.votes,
}


def vote_delta(existing: Optional[str], is_upvote: bool) -> int:
    """Change to a review's vote counter for a vote request.

    A first vote counts +1/-1, repeating the current direction is a no-op and
    flipping direction undoes the old vote and applies the new one (+2/-2).
    """
    requested = "up" if is_upvote else "down"
    if existing is None:
        return 1 if is_upvote else -1
    if existing == requested:
        return 0
    return 2 if is_upvote else -2


class ReviewStore:
    """Durable CRUD for reviews and votes plus the listing queries."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        self.logger = logger.bind(service="review_store")

    async def add_review(self, review: Review) -> Review:
        """Insert a review.

        Raises:
            StorageError: if the insert fails
        """
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    session.add(review)
                await session.refresh(review)
        except SQLAlchemyError as e:
            self.logger.error("review_insert_failed", error=str(e), exc_info=True)
            raise StorageError() from e

        self.logger.info("review_added", review_id=str(review.id), game_id=str(review.game_id))
        return review

    async def get_review(self, review_id: uuid.UUID) -> Tuple[Review, AuthorSummary]:
        """Fetch a non-deleted review and its active author.

        Raises:
            NotFoundError: if the review or its author is missing
            UnknownError: on storage failure
        """
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(Review).where(Review.id == review_id, Review.is_deleted == False)
                )
                review = result.scalar_one_or_none()
                if review is None:
                    raise NotFoundError("Review", str(review_id))

                result = await session.execute(
                    select(User).where(User.id == review.user_id, User.is_active == True)
                )
                user = result.scalar_one_or_none()
                if user is None:
                    raise NotFoundError("User", str(review.user_id))

                return review, AuthorSummary.model_validate(user)
        except SQLAlchemyError as e:
            self.logger.error("review_fetch_failed", review_id=str(review_id), error=str(e), exc_info=True)
            raise UnknownError() from e

    async def update_review(self, review: Review) -> Review:
        """Replace every mutable field of the stored review with ``review``'s.

        The vote counter is left alone; it only changes through :meth:`vote`.
        """
        values = {
            "rating": review.rating,
            "comment": review.comment,
            "last_updated_at": review.last_updated_at,
            "is_deleted": review.is_deleted,
            "is_flagged": review.is_flagged,
            "country": review.country,
            "country_code": review.country_code,
            "city": review.city,
            "latitude": review.latitude,
            "longitude": review.longitude,
        }
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        update(Review).where(Review.id == review.id).values(**values)
                    )
        except SQLAlchemyError as e:
            self.logger.error("review_update_failed", review_id=str(review.id), error=str(e), exc_info=True)
            raise StorageError() from e

        if result.rowcount == 0:
            raise NotFoundError("Review", str(review.id))
        return review

    async def set_flag(self, review_id: uuid.UUID, flagged: bool) -> None:
        """Set only the moderation flag, leaving concurrent edits intact."""
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        update(Review).where(Review.id == review_id).values(is_flagged=flagged)
                    )
        except SQLAlchemyError as e:
            self.logger.error("review_flag_failed", review_id=str(review_id), error=str(e), exc_info=True)
            raise StorageError() from e

        if result.rowcount == 0:
            raise NotFoundError("Review", str(review_id))

    async def get_vote(self, user_id: uuid.UUID, review_id: uuid.UUID) -> VoteSchema:
        """Return the user's vote on a review, or the "no vote" placeholder."""
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(ReviewVote).where(
                        ReviewVote.user_id == user_id,
                        ReviewVote.review_id == review_id,
                    )
                )
                vote = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error("vote_fetch_failed", review_id=str(review_id), error=str(e), exc_info=True)
            raise UnknownError() from e

        if vote is None:
            return VoteSchema.none(user_id, review_id)
        return VoteSchema.model_validate(vote)

    async def vote(self, user_id: uuid.UUID, review_id: uuid.UUID, is_upvote: bool) -> int:
        """Record an up or down vote and adjust the review's counter.

        The counter moves with an atomic ``votes = votes + delta`` UPDATE in the
        same transaction as the vote row. Two first votes racing for the same
        (user, review) collide on the unique constraint; the loser retries and
        sees the winner's row.

        Returns:
            The delta applied to the counter (0 for a repeated vote)
        """
        for attempt in range(2):
            try:
                return await self._apply_vote(user_id, review_id, is_upvote)
            except IntegrityError:
                if attempt == 1:
                    self.logger.error("vote_conflict_unresolved", review_id=str(review_id))
                    raise UnknownError()
                self.logger.warning("vote_conflict_retry", review_id=str(review_id), user_id=str(user_id))
            except SQLAlchemyError as e:
                self.logger.error("vote_failed", review_id=str(review_id), error=str(e), exc_info=True)
                raise StorageError() from e
        raise UnknownError()

    async def _apply_vote(self, user_id: uuid.UUID, review_id: uuid.UUID, is_upvote: bool) -> int:
        async with self.session_factory() as session:
            async with session.begin():
                visible = await session.execute(
                    select(Review.id).where(
                        Review.id == review_id,
                        Review.is_deleted == False,
                        Review.is_flagged == False,
                    )
                )
                if visible.scalar_one_or_none() is None:
                    raise NotFoundError("Review", str(review_id))

                result = await session.execute(
                    select(ReviewVote).where(
                        ReviewVote.user_id == user_id,
                        ReviewVote.review_id == review_id,
                    )
                )
                existing = result.scalar_one_or_none()
                delta = vote_delta(existing.vote_type if existing else None, is_upvote)
                if delta == 0:
                    return 0

                vote_type = "up" if is_upvote else "down"
                if existing is None:
                    session.add(ReviewVote(user_id=user_id, review_id=review_id, vote_type=vote_type))
                else:
                    existing.vote_type = vote_type
                await session.flush()

                await session.execute(
                    update(Review)
                    .where(Review.id == review_id)
                    .values(votes=Review.votes + delta)
                )

        self.logger.info(
            "vote_recorded",
            review_id=str(review_id),
            user_id=str(user_id),
            vote_type=vote_type,
            delta=delta,
        )
        return delta

    async def get_reviews_for_game(
        self,
        game_id: uuid.UUID,
        viewer_id: uuid.UUID,
        limit: int,
        offset: int,
        sort_key: str = "createdAt",
        ascending: bool = False,
    ) -> PaginatedResponse[ReviewResponse]:
        """Page of visible reviews for a game, with authors and the viewer's votes."""
        return await self._list_reviews(
            Review.game_id == game_id, viewer_id, limit, offset, sort_key, ascending,
        )

    async def get_reviews_for_user(
        self,
        user_id: uuid.UUID,
        viewer_id: uuid.UUID,
        limit: int,
        offset: int,
        sort_key: str = "createdAt",
        ascending: bool = False,
    ) -> PaginatedResponse[ReviewResponse]:
        """Page of visible reviews written by a user, with the viewer's votes."""
        return await self._list_reviews(
            Review.user_id == user_id, viewer_id, limit, offset, sort_key, ascending,
        )

    async def _list_reviews(
        self,
        criterion,
        viewer_id: uuid.UUID,
        limit: int,
        offset: int,
        sort_key: str,
        ascending: bool,
    ) -> PaginatedResponse[ReviewResponse]:
        column = SORT_COLUMNS.get(sort_key)
        if column is None:
            raise BadRequestError(f"Unsupported sort key '{sort_key}'")
        order = column.asc() if ascending else column.desc()

        active_authors = select(User.id).where(User.is_active == True)
        filters = (
            criterion,
            Review.is_deleted == False,
            Review.is_flagged == False,
            Review.user_id.in_(active_authors),
        )
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(Review)
                    .where(*filters)
                    .order_by(order, Review.id)
                    .offset(offset)
                    .limit(limit)
                )
                reviews = list(result.scalars().all())

                count = await session.execute(select(func.count(Review.id)).where(*filters))
                total = count.scalar_one()

                authors = await self._load_authors(session, (r.user_id for r in reviews))
        except SQLAlchemyError as e:
            self.logger.error("review_listing_failed", error=str(e), exc_info=True)
            raise UnknownError() from e

        # An author deactivated between the two queries still drops out
        page = [(review, authors[review.user_id]) for review in reviews if review.user_id in authors]
        votes = await self._fan_out_votes(viewer_id, [review.id for review, _ in page])

        items = [
            ReviewResponse(
                review=ReviewSchema.model_validate(review),
                user=author,
                vote=vote,
            )
            for (review, author), vote in zip(page, votes)
        ]
        return PaginatedResponse[ReviewResponse].build(items, total, limit, offset)

    async def _load_authors(
        self,
        session: AsyncSession,
        user_ids: Iterable[uuid.UUID],
    ) -> Dict[uuid.UUID, AuthorSummary]:
        """Fetch every distinct active author of a page in one query."""
        distinct_ids = list(dict.fromkeys(user_ids))
        if not distinct_ids:
            return {}
        result = await session.execute(
            select(User).where(User.id.in_(distinct_ids), User.is_active == True)
        )
        return {user.id: AuthorSummary.model_validate(user) for user in result.scalars().all()}

    async def _fan_out_votes(
        self,
        viewer_id: uuid.UUID,
        review_ids: List[uuid.UUID],
    ) -> List[VoteSchema]:
        """Look up the viewer's vote on every review concurrently.

        Results land in the slot matching their review; a failed lookup
        degrades to "no vote" instead of failing the page.
        """
        votes: List[Optional[VoteSchema]] = [None] * len(review_ids)

        async def lookup(index: int, review_id: uuid.UUID) -> None:
            try:
                votes[index] = await self.get_vote(viewer_id, review_id)
            except UnknownError:
                self.logger.warning("vote_lookup_failed", review_id=str(review_id))
                votes[index] = VoteSchema.none(viewer_id, review_id)

        await asyncio.gather(*(lookup(i, rid) for i, rid in enumerate(review_ids)))
        return votes

    async def get_flagged_reviews(
        self,
        limit: int,
        offset: int,
        game_id: Optional[uuid.UUID] = None,
    ) -> PaginatedResponse[ReviewSchema]:
        """Page of flagged, non-deleted reviews, newest first."""
        filters = [Review.is_deleted == False, Review.is_flagged == True]
        if game_id is not None:
            filters.append(Review.game_id == game_id)

        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(Review)
                    .where(*filters)
                    .order_by(Review.created_at.desc(), Review.id)
                    .offset(offset)
                    .limit(limit)
                )
                reviews = list(result.scalars().all())
                count = await session.execute(select(func.count(Review.id)).where(*filters))
                total = count.scalar_one()
        except SQLAlchemyError as e:
            self.logger.error("flagged_listing_failed", error=str(e), exc_info=True)
            raise UnknownError() from e

        return PaginatedResponse[ReviewSchema].build(
            [ReviewSchema.model_validate(r) for r in reviews], total, limit, offset,
        )

    async def get_reviews_since(self, cutoff: datetime) -> List[Review]:
        """All non-deleted reviews created at or after ``cutoff``, unordered."""
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(Review).where(Review.created_at >= cutoff, Review.is_deleted == False)
                )
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            self.logger.error("review_window_scan_failed", cutoff=cutoff.isoformat(), error=str(e), exc_info=True)
            raise UnknownError() from e
