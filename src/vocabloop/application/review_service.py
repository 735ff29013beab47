"""
Review Service: Application layer orchestrator.

Coordinates loading the deck from the stores, running a session, and
persisting each graded review as one card update plus one history entry.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from vocabloop.domain.clock import now_ms
from vocabloop.domain.models import (
    Card,
    Grade,
    ReviewLog,
    ReviewResult,
    SelectedCard,
    SessionConfig,
)
from vocabloop.domain.ports import DeckStore

from .analytics import (
    SessionStats,
    TagPerformance,
    analyze_session_tag_performance,
    calculate_session_stats,
    generate_session_insights,
)
from .scheduler import apply_schedule, calculate_schedule, create_review_log
from .session import SessionState, create_session_state, update_session_state
from .tag_analyzer import TagThresholds, identify_weak_tags

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionSummary:
    stats: SessionStats
    tag_performance: list[TagPerformance]
    insights: list[str]


class ReviewService:
    """
    Application service for running study sessions against a deck store.

    Follows Dependency Inversion: depends on the DeckStore abstraction, not
    concrete adapter implementations.
    """

    def __init__(
        self,
        store: DeckStore,
        thresholds: TagThresholds | None = None,
        clock: Callable[[], int] | None = None,
    ):
        """
        Args:
            store: The port for cards and their review history.
            thresholds: Optional weak/strong tag policy; uses defaults if not provided.
            clock: Optional time source (epoch ms) for deterministic runs.
        """
        self._store = store
        self._thresholds = thresholds
        self._clock = clock or now_ms

    def now(self) -> int:
        return self._clock()

    async def start_session(self, config: SessionConfig) -> SessionState:
        """Snapshot the full deck and history and open a session over them."""
        cards = await self._store.load_cards()
        reviews = await self._store.load_reviews()
        logger.info(
            "Starting %s session: %d cards, %d reviews in history",
            config.mode.value,
            len(cards),
            len(reviews),
        )
        return create_session_state(config, cards, reviews, self._thresholds, now=self.now())

    async def grade_card(self, card: Card, grade: Grade | str) -> tuple[Card, ReviewLog]:
        """
        Schedule, apply and persist one review outside of any session.

        The card and its log are stored in one write, and both use the same
        clock reading so the log matches the card state exactly.
        """
        grade = Grade.parse(grade)
        now = self.now()
        result = calculate_schedule(card, grade, now=now)
        updated = apply_schedule(card, result, now=now)
        log = create_review_log(card, grade, result, now=now)

        await self._store.save_review(updated, log)
        logger.info(
            "Reviewed %s: %s -> interval %dd (ease %.2f)",
            card.id,
            grade.value,
            updated.interval_days,
            updated.ease,
        )
        return updated, log

    async def record_review(
        self,
        state: SessionState,
        selected: SelectedCard,
        grade: Grade | str,
        time_ms: int,
    ) -> tuple[SessionState, Card, ReviewLog]:
        """
        Persist a graded review of a selected card and advance the session.

        Raises:
            CardNotFound: If the selected card no longer exists in the store.
        """
        grade = Grade.parse(grade)
        current = await self._store.get_card(selected.card.id)
        updated, log = await self.grade_card(current, grade)

        result = ReviewResult(
            card_id=current.id,
            grade=grade,
            time_ms=time_ms,
            was_recovery_card=selected.is_recovery,
            category=selected.category,
        )
        return update_session_state(state, result), updated, log

    def summarize(self, state: SessionState) -> SessionSummary:
        results = list(state.session_results)
        weak_tags = state.weak_tags or identify_weak_tags(
            list(state.cards), list(state.reviews), self._thresholds
        )
        return SessionSummary(
            stats=calculate_session_stats(results),
            tag_performance=analyze_session_tag_performance(results, state.cards),
            insights=generate_session_insights(results, state.cards, weak_tags),
        )
