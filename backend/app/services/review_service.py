"""Review service: authorization, moderation and listing of reviews.

Writes trigger side effects that run as separate tasks with their own
database sessions:

- an offensive-content scan of the comment, flagging the review on a match
- an update of the game's rating statistics

``add_review`` and ``update_review`` wait for their side effects before
returning, but a cancelled request does not cancel them (see
``app.core.background.join``). ``delete_review``'s stats update and the
author notification after a flag change are detached.
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional, Tuple

import structlog

from app.config import settings
from app.core import background
from app.core.access import MODERATION, RequestPrincipal, check_access
from app.core.exceptions import GameNotFoundError, NotFoundError, ReviewNotFoundError, UnknownError
from app.models.review import Review
from app.schemas.common import PaginatedResponse, clamp_pagination
from app.schemas.review import (
    AddReviewRequest,
    AuthorSummary,
    ReviewResponse,
    ReviewSchema,
    UpdateReviewRequest,
    VoteSchema,
)
from app.services.catalog_service import CatalogService
from app.services.review_store import ReviewStore
from app.utils.retry import side_effect_retry

logger = structlog.get_logger(__name__)


def find_offensive_word(text: str, denylist: List[str]) -> Optional[str]:
    """Return the first denylisted substring found in ``text`` (case-insensitive)."""
    lowered = text.lower()
    for word in denylist:
        if word in lowered:
            return word
    return None


class ReviewService:
    """Orchestrates review CRUD, votes and moderation for a caller."""

    def __init__(self, store: ReviewStore, offensive_words: Optional[List[str]] = None):
        self.store = store
        self.session_factory = store.session_factory
        self.offensive_words = (
            settings.get_offensive_words() if offensive_words is None else offensive_words
        )
        self.logger = logger.bind(service="review_service")

    # ------------------------------------------------------------------ writes

    async def add_review(self, principal: RequestPrincipal, request: AddReviewRequest) -> Review:
        """Create a review on an existing game.

        Raises:
            GameNotFoundError: if the game is missing or deleted
        """
        async with self.session_factory() as db:
            if not await CatalogService(db).game_exists(request.game_id):
                raise GameNotFoundError(str(request.game_id))

        now = datetime.now(timezone.utc)
        review = Review(
            id=uuid.uuid4(),
            user_id=principal.user_id,
            game_id=request.game_id,
            rating=request.rating,
            comment=request.comment,
            created_at=now,
            last_updated_at=now,
            is_deleted=False,
            is_flagged=False,
            votes=0,
            **request.location.model_dump(),
        )
        review = await self.store.add_review(review)

        await background.join(
            background.spawn(
                self._check_offensive_content(review.id, review.comment),
                name=f"moderation-scan:{review.id}",
            ),
            background.spawn(
                self._apply_rating_delta(review.game_id, review.rating, 1),
                name=f"rating-stats:{review.game_id}",
            ),
        )
        return review

    async def update_review(
        self,
        principal: RequestPrincipal,
        review_id: uuid.UUID,
        patch: UpdateReviewRequest,
    ) -> ReviewSchema:
        """Apply a partial update as the author or a moderator.

        Raises:
            ReviewNotFoundError: if missing or the caller may not edit it
        """
        review, _ = await self._fetch_review(review_id)
        if not (principal.owns(review.user_id) or principal.is_moderator):
            raise ReviewNotFoundError(str(review_id))

        old_rating = review.rating
        comment_changed = bool(patch.comment.strip()) and patch.comment != review.comment
        rating_changed = patch.rating > 0 and patch.rating != old_rating

        if comment_changed:
            review.comment = patch.comment
        if rating_changed:
            review.rating = patch.rating
        review.last_updated_at = datetime.now(timezone.utc)

        await self.store.update_review(review)
        self.logger.info(
            "review_updated",
            review_id=str(review_id),
            comment_changed=comment_changed,
            rating_changed=rating_changed,
        )

        tasks = []
        if comment_changed:
            tasks.append(background.spawn(
                self._check_offensive_content(review.id, review.comment),
                name=f"moderation-scan:{review.id}",
            ))
        if rating_changed:
            tasks.append(background.spawn(
                self._apply_rating_delta(review.game_id, review.rating - old_rating, 0),
                name=f"rating-stats:{review.game_id}",
            ))
        await background.join(*tasks)

        return ReviewSchema.model_validate(review)

    async def delete_review(self, principal: RequestPrincipal, review_id: uuid.UUID) -> None:
        """Soft-delete a review as the author or a moderator.

        Raises:
            ReviewNotFoundError: if missing or the caller may not delete it
        """
        review, _ = await self._fetch_review(review_id)
        if not (principal.owns(review.user_id) or principal.is_moderator):
            raise ReviewNotFoundError(str(review_id))

        review.is_deleted = True
        review.last_updated_at = datetime.now(timezone.utc)
        await self.store.update_review(review)
        self.logger.info("review_deleted", review_id=str(review_id), by=str(principal.user_id))

        background.spawn(
            self._apply_rating_delta(review.game_id, -review.rating, -1),
            name=f"rating-stats:{review.game_id}",
        )

    async def vote_review(
        self,
        principal: RequestPrincipal,
        review_id: uuid.UUID,
        is_upvote: bool,
    ) -> int:
        """Up- or downvote a visible review; repeats are no-ops.

        Returns:
            The change applied to the review's vote counter
        """
        try:
            return await self.store.vote(principal.user_id, review_id, is_upvote)
        except NotFoundError as e:
            raise ReviewNotFoundError(str(review_id)) from e

    async def flag_review(self, principal: RequestPrincipal, review_id: uuid.UUID, flag: bool) -> None:
        """Set or clear the moderation flag. Moderators and admins only.

        Raises:
            UnauthorizedError: if the caller is not a moderator or admin
            ReviewNotFoundError: if the review is missing or deleted
        """
        check_access(principal, MODERATION)

        review, _ = await self._fetch_review(review_id)
        try:
            await self.store.set_flag(review_id, flag)
        except NotFoundError as e:
            raise ReviewNotFoundError(str(review_id)) from e
        review.is_flagged = flag

        self.logger.info("review_flag_set", review_id=str(review_id), flagged=flag, by=str(principal.user_id))
        background.spawn(self._notify_author(review), name=f"notify:{review_id}")

    # ------------------------------------------------------------------- reads

    async def get_review(self, principal: RequestPrincipal, review_id: uuid.UUID) -> ReviewResponse:
        """Fetch a visible review with its author and the caller's vote."""
        review, author = await self._fetch_review(review_id)
        if review.is_flagged:
            raise ReviewNotFoundError(str(review_id))

        try:
            vote = await self.store.get_vote(principal.user_id, review_id)
        except UnknownError:
            vote = VoteSchema.none(principal.user_id, review_id)

        return ReviewResponse(
            review=ReviewSchema.model_validate(review),
            user=author,
            vote=vote,
        )

    async def get_reviews_for_game(
        self,
        principal: RequestPrincipal,
        game_id: uuid.UUID,
        limit: int = 0,
        offset: int = 0,
        sort_key: str = "createdAt",
        ascending: bool = False,
    ) -> PaginatedResponse[ReviewResponse]:
        limit, offset = self._clamp(limit, offset)
        return await self.store.get_reviews_for_game(
            game_id, principal.user_id, limit, offset, sort_key, ascending,
        )

    async def get_reviews_for_user(
        self,
        principal: RequestPrincipal,
        user_id: uuid.UUID,
        limit: int = 0,
        offset: int = 0,
        sort_key: str = "createdAt",
        ascending: bool = False,
    ) -> PaginatedResponse[ReviewResponse]:
        """List a user's reviews. Only that user or a moderator may look."""
        if not (principal.owns(user_id) or principal.is_moderator):
            raise ReviewNotFoundError()

        limit, offset = self._clamp(limit, offset)
        return await self.store.get_reviews_for_user(
            user_id, principal.user_id, limit, offset, sort_key, ascending,
        )

    async def get_flagged_reviews(
        self,
        principal: RequestPrincipal,
        game_id: Optional[uuid.UUID] = None,
        limit: int = 0,
        offset: int = 0,
    ) -> PaginatedResponse[ReviewSchema]:
        """Moderation queue: flagged, non-deleted reviews, newest first."""
        check_access(principal, MODERATION)
        limit, offset = self._clamp(limit, offset)
        return await self.store.get_flagged_reviews(limit, offset, game_id)

    # ---------------------------------------------------------------- internal

    @staticmethod
    def _clamp(limit: int, offset: int) -> Tuple[int, int]:
        return clamp_pagination(
            limit, offset,
            default_limit=settings.REVIEWS_DEFAULT_LIMIT,
            max_limit=settings.REVIEWS_MAX_LIMIT,
        )

    async def _fetch_review(self, review_id: uuid.UUID) -> Tuple[Review, AuthorSummary]:
        try:
            return await self.store.get_review(review_id)
        except NotFoundError as e:
            raise ReviewNotFoundError(str(review_id)) from e

    async def _check_offensive_content(self, review_id: uuid.UUID, comment: str) -> None:
        word = find_offensive_word(comment, self.offensive_words)
        if word is None:
            return

        self.logger.warning("offensive_content_detected", review_id=str(review_id))
        await self._flag_automatically(review_id)

    @side_effect_retry
    async def _flag_automatically(self, review_id: uuid.UUID) -> None:
        await self.store.set_flag(review_id, True)
        self.logger.info("review_auto_flagged", review_id=str(review_id))

    @side_effect_retry
    async def _apply_rating_delta(self, game_id: uuid.UUID, rating_delta: int, count_delta: int) -> None:
        async with self.session_factory() as db:
            await CatalogService(db).update_rating_stats(game_id, rating_delta, count_delta)
            await db.commit()

    async def _notify_author(self, review: Review) -> None:
        # TODO: email the author once notification templates exist for moderation events
        self.logger.info(
            "review_author_notified",
            review_id=str(review.id),
            user_id=str(review.user_id),
            flagged=review.is_flagged,
        )
