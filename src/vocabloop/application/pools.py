"""
Candidate pools and session mix planning.

Stateless helpers over a card snapshot. Exhausted pools are reported as
empty lists or None, never as errors.
"""

import logging
from collections.abc import Collection, Iterable
from dataclasses import dataclass

from vocabloop.domain.clock import resolve_now
from vocabloop.domain.constants import WELL_LEARNED_INTERVAL_DAYS
from vocabloop.domain.models import (
    DEFAULT_WEIGHTS,
    MIX_CATEGORIES,
    Card,
    Category,
    SessionWeights,
)

from .scheduler import round_half_up

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionMix:
    """Planned number of cards per smart-session category."""

    due: int = 0
    weak_tag: int = 0
    new: int = 0

    @property
    def total(self) -> int:
        return self.due + self.weak_tag + self.new

    def get(self, category: Category) -> int:
        return {
            Category.DUE: self.due,
            Category.WEAK_TAG: self.weak_tag,
            Category.NEW: self.new,
        }.get(category, 0)


def get_due_cards(cards: Iterable[Card], now: int | None = None) -> list[Card]:
    now = resolve_now(now)
    return [c for c in cards if c.due_at <= now]


def get_new_cards(cards: Iterable[Card]) -> list[Card]:
    return [c for c in cards if c.reps == 0]


def get_weak_tag_cards(
    cards: Iterable[Card],
    weak_tags: Collection[str],
    reviewed_in_session: Collection[str],
) -> list[Card]:
    """Cards carrying at least one weak tag that were not reviewed this session."""
    weak = set(weak_tags)
    return [c for c in cards if c.has_any_tag(weak) and c.id not in reviewed_in_session]


def get_confidence_recovery_card(
    cards: Iterable[Card],
    strong_tags: Collection[str],
    reviewed_in_session: Collection[str],
) -> Card | None:
    """
    Pick an easy win after a failure streak.

    Prefers the most deeply learned card from a strong tag; falls back to any
    well-learned card (interval >= 21 days) when no strong-tag card is left.
    """
    strong = set(strong_tags)
    remaining = [c for c in cards if c.id not in reviewed_in_session]

    def deepest(pool: list[Card]) -> Card:
        return min(pool, key=lambda c: (-c.interval_days, c.id))

    strong_cards = [c for c in remaining if c.has_any_tag(strong)]
    if strong_cards:
        return deepest(strong_cards)

    well_learned = [c for c in remaining if c.interval_days >= WELL_LEARNED_INTERVAL_DAYS]
    if well_learned:
        return deepest(well_learned)

    return None


def ideal_shares(target_count: int, weights: SessionWeights = DEFAULT_WEIGHTS) -> SessionMix:
    """
    Weighted split of ``target_count`` slots, ignoring availability.

    Each share is round(target * weight). When rounding overshoots the target
    the excess is trimmed from the lowest-priority category first; when it
    undershoots, the first weighted category in priority order takes the rest.
    """
    target = max(0, target_count)
    counts = {cat: round_half_up(target * weights.share(cat)) for cat in MIX_CATEGORIES}
    _trim_to(counts, target)

    deficit = target - sum(counts.values())
    if deficit > 0:
        first = next(cat for cat in MIX_CATEGORIES if weights.share(cat) > 0)
        counts[first] += deficit
    return _to_mix(counts)


def allocate_slots(
    ideal: SessionMix,
    available: SessionMix,
    target_count: int,
) -> SessionMix:
    """
    Clamp an ideal split to availability and redistribute the shortfall.

    Slots that a starved category cannot fill go to categories with spare
    cards in priority order due, weak-topic, new, until ``target_count`` is
    met or every pool is exhausted.
    """
    target = min(max(0, target_count), available.total)
    counts = {cat: min(max(0, ideal.get(cat)), available.get(cat)) for cat in MIX_CATEGORIES}
    _trim_to(counts, target)

    remaining = target - sum(counts.values())
    while remaining > 0:
        for cat in MIX_CATEGORIES:
            if counts[cat] < available.get(cat):
                counts[cat] += 1
                remaining -= 1
                break
        else:
            break

    return _to_mix(counts)


def calculate_mix(
    due_cards: Collection[Card],
    weak_tag_cards: Collection[Card],
    new_cards: Collection[Card],
    target_count: int,
    weights: SessionWeights = DEFAULT_WEIGHTS,
) -> SessionMix:
    """
    Plan how many cards to draw from each category.

    The ideal share is round(target * weight) per category, clamped to what is
    available. Any shortfall goes to categories with spare cards in priority
    order due, weak-topic, new.

    Args:
        due_cards: Available due cards.
        weak_tag_cards: Available weak-topic cards.
        new_cards: Available new cards.
        target_count: Number of slots to fill.
        weights: Relative category weights.

    Returns:
        SessionMix whose total is min(target_count, available cards).
    """
    available = SessionMix(due=len(due_cards), weak_tag=len(weak_tag_cards), new=len(new_cards))
    return mix_for_counts(available, target_count, weights)


def mix_for_counts(
    available: SessionMix,
    target_count: int,
    weights: SessionWeights = DEFAULT_WEIGHTS,
) -> SessionMix:
    """Same as calculate_mix, from pool sizes instead of card lists."""
    if available.total == 0 or target_count <= 0:
        return SessionMix()

    target = min(target_count, available.total)
    mix = allocate_slots(ideal_shares(target, weights), available, target)
    logger.debug("Mix for %d slots (available %s): %s", target_count, available, mix)
    return mix


def _trim_to(counts: dict[Category, int], target: int) -> None:
    for cat in reversed(MIX_CATEGORIES):
        excess = sum(counts.values()) - target
        if excess <= 0:
            break
        counts[cat] -= min(excess, counts[cat])


def _to_mix(counts: dict[Category, int]) -> SessionMix:
    return SessionMix(
        due=counts[Category.DUE],
        weak_tag=counts[Category.WEAK_TAG],
        new=counts[Category.NEW],
    )
