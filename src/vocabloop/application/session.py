"""
Adaptive study session state machine.

A session is driven by two calls in strict alternation:

1. ``select_next_card`` picks the next card (or None when the session is over).
2. ``update_session_state`` folds the learner's answer into a *new* state.

SessionState is a frozen value; every step returns a fresh state, so a
session can be replayed or forked without corrupting another.
"""

import dataclasses
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from vocabloop.domain.clock import resolve_now
from vocabloop.domain.constants import CONFIDENCE_RECOVERY_THRESHOLD
from vocabloop.domain.models import (
    MIX_CATEGORIES,
    Card,
    Category,
    ReviewLog,
    ReviewResult,
    SelectedCard,
    SessionConfig,
    SessionMode,
)

from .pools import (
    SessionMix,
    allocate_slots,
    get_confidence_recovery_card,
    get_due_cards,
    get_new_cards,
    get_weak_tag_cards,
    ideal_shares,
)
from .tag_analyzer import TagThresholds, identify_strong_tags, identify_weak_tags

logger = logging.getLogger(__name__)


class SessionPhase(str, Enum):
    CONFIGURING = "configuring"
    ACTIVE = "active"
    COMPLETE = "complete"


@dataclass(frozen=True)
class SessionState:
    """
    Snapshot of one study session.

    Attributes:
        weak_tags: Weak tags, worst first. Empty outside smart mode.
        strong_tags: Tags used to pick confidence boosters.
        reviewed_in_session: Ids of cards already answered.
        consecutive_failures: Current run of ``again`` grades.
        session_results: Results in review order.
        drawn: Cards drawn so far from each smart-mode pool.
        started_at: Epoch ms the session was opened; due checks for results
            without a category are made against it.
    """

    config: SessionConfig
    cards: tuple[Card, ...]
    reviews: tuple[ReviewLog, ...]
    weak_tags: tuple[str, ...] = ()
    strong_tags: tuple[str, ...] = ()
    reviewed_in_session: frozenset[str] = frozenset()
    consecutive_failures: int = 0
    session_results: tuple[ReviewResult, ...] = ()
    drawn: SessionMix = field(default_factory=SessionMix)
    started_at: int = 0

    @property
    def reviewed_count(self) -> int:
        return len(self.reviewed_in_session)

    @property
    def remaining_slots(self) -> int:
        return max(0, self.config.target_cards - self.reviewed_count)

    def unreviewed(self) -> list[Card]:
        return [c for c in self.cards if c.id not in self.reviewed_in_session]


def create_session_state(
    config: SessionConfig,
    cards: Iterable[Card],
    reviews: Iterable[ReviewLog],
    thresholds: TagThresholds | None = None,
    now: int | None = None,
) -> SessionState:
    """
    Start a session over a snapshot of the deck and its review history.

    Weak tags only drive smart-mode selection; strong tags are only needed
    when confidence recovery is enabled. ``now`` defaults to the current time
    and is kept as the session start.
    """
    cards = tuple(cards)
    reviews = tuple(reviews)

    weak_tags: list[str] = []
    if config.mode is SessionMode.SMART:
        weak_tags = identify_weak_tags(list(cards), list(reviews), thresholds)

    strong_tags: list[str] = []
    if config.enable_confidence_recovery:
        strong_tags = identify_strong_tags(list(cards), list(reviews), thresholds)

    logger.debug(
        "Session created: mode=%s target=%d cards=%d weak=%s strong=%s",
        config.mode.value,
        config.target_cards,
        len(cards),
        weak_tags,
        strong_tags,
    )
    return SessionState(
        config=config,
        cards=cards,
        reviews=reviews,
        weak_tags=tuple(weak_tags),
        strong_tags=tuple(strong_tags),
        started_at=resolve_now(now),
    )


def session_phase(state: SessionState) -> SessionPhase:
    if state.remaining_slots == 0:
        return SessionPhase.COMPLETE
    return SessionPhase.ACTIVE


def select_next_card(state: SessionState, now: int | None = None) -> SelectedCard | None:
    """
    Pick the next card to show.

    Args:
        state: Current session state.
        now: Epoch ms used for due checks. Defaults to the current time.

    Returns:
        The selected card and the pool it came from, or None when the target
        is reached or no candidate is left.
    """
    config = state.config
    if state.reviewed_count >= config.target_cards:
        return None

    now = resolve_now(now)

    if (
        config.enable_confidence_recovery
        and state.consecutive_failures >= CONFIDENCE_RECOVERY_THRESHOLD
    ):
        recovery = get_confidence_recovery_card(
            state.cards, state.strong_tags, state.reviewed_in_session
        )
        if recovery:
            logger.debug(
                "Confidence recovery after %d failures: %s",
                state.consecutive_failures,
                recovery.id,
            )
            return SelectedCard(card=recovery, category=Category.RECOVERY)

    if config.mode is SessionMode.DUE_ONLY:
        due = _by_overdue(get_due_cards(state.unreviewed(), now))
        return SelectedCard(card=due[0], category=Category.DUE) if due else None

    if config.mode is SessionMode.TAG_FOCUS:
        tagged = [c for c in state.unreviewed() if c.has_tag(config.tag_focus)]
        if not tagged:
            return None
        due_ids = {c.id for c in get_due_cards(tagged, now)}
        tagged.sort(key=lambda c: (c.id not in due_ids, c.due_at, c.id))
        return SelectedCard(card=tagged[0], category=Category.TAG_FOCUS)

    return _select_smart(state, now)


def update_session_state(state: SessionState, result: ReviewResult) -> SessionState:
    """
    Fold one review result into the session.

    A smart-mode result that does not name its category is counted against
    the pool its card belonged to when the session started. Returns a new
    state; ``state`` itself is left untouched.
    """
    if result.grade.is_success:
        failures = 0
    else:
        failures = state.consecutive_failures + 1

    category = result.category
    if category is None and not result.was_recovery_card:
        category = _infer_category(state, result.card_id)

    drawn = state.drawn
    if category in MIX_CATEGORIES:
        drawn = dataclasses.replace(drawn, **{category.value: drawn.get(category) + 1})

    return dataclasses.replace(
        state,
        reviewed_in_session=state.reviewed_in_session | {result.card_id},
        consecutive_failures=failures,
        session_results=state.session_results + (result,),
        drawn=drawn,
    )


def smart_pools(state: SessionState, now: int) -> dict[Category, list[Card]]:
    """
    Split the unreviewed deck into disjoint smart-mode pools.

    New cards (reps == 0, which includes lapsed cards) form the new pool. Due
    graduated cards form the due pool. Weak-topic cards that are neither new
    nor due form the remediation pool. Each pool is in draw order.
    """
    unreviewed = state.unreviewed()

    new_cards = get_new_cards(unreviewed)
    new_ids = {c.id for c in new_cards}

    due_cards = [c for c in get_due_cards(unreviewed, now) if c.id not in new_ids]
    due_ids = {c.id for c in due_cards}

    weak_cards = [
        c
        for c in get_weak_tag_cards(unreviewed, state.weak_tags, state.reviewed_in_session)
        if c.id not in new_ids and c.id not in due_ids
    ]
    tag_rank = {tag: i for i, tag in enumerate(state.weak_tags)}
    weak_cards.sort(
        key=lambda c: (min(tag_rank.get(t, len(tag_rank)) for t in c.tags), c.ease, c.id)
    )

    new_cards.sort(key=lambda c: (c.due_at, c.created_at, c.id))

    return {
        Category.DUE: _by_overdue(due_cards),
        Category.WEAK_TAG: weak_cards,
        Category.NEW: new_cards,
    }


def plan_remaining(state: SessionState, pools: dict[Category, list[Card]]) -> SessionMix:
    """
    Allocation for the rest of the session.

    Each pool is owed its session-wide weighted share minus what was already
    drawn from it, clamped to availability, with any shortfall redistributed.
    """
    full = ideal_shares(state.config.target_cards, state.config.weights)
    owed = SessionMix(
        due=max(0, full.due - state.drawn.due),
        weak_tag=max(0, full.weak_tag - state.drawn.weak_tag),
        new=max(0, full.new - state.drawn.new),
    )
    available = SessionMix(
        due=len(pools[Category.DUE]),
        weak_tag=len(pools[Category.WEAK_TAG]),
        new=len(pools[Category.NEW]),
    )
    return allocate_slots(owed, available, state.remaining_slots)


def _infer_category(state: SessionState, card_id: str) -> Category | None:
    """Smart-mode pool a reviewed card came from, judged on the session snapshot."""
    if state.config.mode is not SessionMode.SMART:
        return None
    card = next((c for c in state.cards if c.id == card_id), None)
    if card is None:
        return None
    if card.is_new:
        return Category.NEW
    if card.due_at > state.started_at and card.has_any_tag(state.weak_tags):
        return Category.WEAK_TAG
    return Category.DUE


def _select_smart(state: SessionState, now: int) -> SelectedCard | None:
    pools = smart_pools(state, now)
    plan = plan_remaining(state, pools)
    logger.debug("Smart plan for %d remaining slots: %s", state.remaining_slots, plan)

    for category in MIX_CATEGORIES:
        if plan.get(category) > 0 and pools[category]:
            return SelectedCard(card=pools[category][0], category=category)

    return None


def _by_overdue(cards: list[Card]) -> list[Card]:
    return sorted(cards, key=lambda c: (c.due_at, c.id))
