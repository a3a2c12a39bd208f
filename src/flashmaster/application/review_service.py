"""
Review Service: application layer orchestrator.

Coordinates the repository, the queue builder and the scheduler for review
sessions.
"""

import logging
import uuid
from datetime import date, datetime

from flashmaster.application.queue_builder import QueueOptions, build_queue
from flashmaster.application.scheduler import ScheduleOutcome, apply_grade
from flashmaster.application.stats import StatsSummary, daily_streak, summarize
from flashmaster.domain.models import Card, Grade, Review, ensure_utc, utcnow
from flashmaster.domain.ports import Repository

logger = logging.getLogger(__name__)


class ReviewService:
    """
    Application service for review sessions.

    Follows Dependency Inversion: depends on the Repository abstraction,
    not concrete storage backends.
    """

    def __init__(self, repo: Repository):
        """
        Args:
            repo: The repository (port) holding decks, cards and reviews.
        """
        self._repo = repo

    async def due_queue(
        self,
        deck_id: uuid.UUID | None = None,
        now: datetime | None = None,
        options: QueueOptions | None = None,
    ) -> list[Card]:
        """
        Build the review queue for one deck, or all decks when deck_id is None.
        """
        now = ensure_utc(now or utcnow())
        cards = await self._repo.list_cards(deck_id)
        return build_queue(cards, now, options or QueueOptions())

    async def grade(
        self,
        card_id: uuid.UUID,
        grade: Grade,
        now: datetime | None = None,
    ) -> ScheduleOutcome:
        """
        Grade a card and persist both the updated card and its review.

        The two writes are not atomic. If the review insert fails after the
        card update succeeded, the card keeps its new schedule without an
        audit record; the failure is logged and the error re-raised.
        """
        card = await self._repo.get_card(card_id)
        outcome = apply_grade(card, grade, now)

        await self._repo.update_card(outcome.updated_card)
        try:
            await self._repo.insert_review(outcome.review)
        except Exception:
            logger.error(
                f"Card {card_id} was rescheduled but its review could not be recorded"
            )
            raise

        logger.debug(
            f"Graded card {card_id} {outcome.review.grade.name}: "
            f"next due in {outcome.updated_card.interval_days} day(s)"
        )
        return outcome

    async def history(self, card_id: uuid.UUID) -> list[Review]:
        return await self._repo.list_reviews_for_card(card_id)

    async def summary(self, today: date | None = None) -> tuple[StatsSummary, int]:
        """Return the overall review summary and the current daily streak."""
        reviews = await self._repo.list_reviews()
        today = today or utcnow().date()
        return summarize(reviews), daily_streak(reviews, today)
