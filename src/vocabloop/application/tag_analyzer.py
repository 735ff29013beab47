"""
Tag performance analysis.

Classifies topical tags as weak or strong from aggregated review outcomes.
Tag sets are always derived from raw history; nothing here is cached.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from vocabloop.domain.constants import (
    MASTERY_INTERVAL_DAYS,
    MIN_TAG_REVIEWS,
    MOST_FORGOTTEN_LIMIT,
    MS_PER_DAY,
    STRONG_TAG_MIN_CARDS,
    STRONG_TAG_THRESHOLD,
    WEAK_TAG_MIN_CARDS,
    WEAK_TAG_THRESHOLD,
)
from vocabloop.domain.clock import resolve_now
from vocabloop.domain.models import Card, ReviewLog

from .scheduler import round_half_up

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TagThresholds:
    """
    Policy for weak/strong tag classification.

    A weak tag needs more evidence than a strong one: weak tags add remedial
    load to a session, strong tags only supply confidence boosters.
    """

    weak_threshold: float = WEAK_TAG_THRESHOLD
    weak_min_cards: int = WEAK_TAG_MIN_CARDS
    strong_threshold: float = STRONG_TAG_THRESHOLD
    strong_min_cards: int = STRONG_TAG_MIN_CARDS
    min_reviews: int = MIN_TAG_REVIEWS


DEFAULT_THRESHOLDS = TagThresholds()


@dataclass(frozen=True)
class TagStats:
    """Aggregate statistics for one tag."""

    tag: str
    card_count: int
    review_count: int
    success_rate: float  # 0-100
    avg_ease: float
    avg_interval: float
    mastered_count: int  # cards with interval >= 21 days
    avg_time_to_mastery: int = 0  # days from creation to interval >= 21, 0 if none mastered
    most_forgotten: list[str] = field(default_factory=list)  # card ids, most lapses first


def extract_all_tags(cards: Iterable[Card]) -> list[str]:
    """Unique tags across all cards, sorted alphabetically."""
    return sorted({tag for card in cards for tag in card.tags})


def get_cards_with_tag(cards: Iterable[Card], tag: str) -> list[Card]:
    return [card for card in cards if card.has_tag(tag)]


def get_tag_stats(
    cards: list[Card],
    reviews: list[ReviewLog],
    tag: str,
    now: int | None = None,
) -> TagStats:
    """
    Compute statistics for a single tag.

    Success is any grade other than again. A tag with no reviews has a 0% rate.

    Time to mastery is measured from a card's creation to the first review
    that gave it an interval of 21 days or more. A mastered card without such
    a review in the history counts its whole age up to ``now``.
    """
    tag_cards = get_cards_with_tag(cards, tag)
    if not tag_cards:
        return TagStats(
            tag=tag,
            card_count=0,
            review_count=0,
            success_rate=0.0,
            avg_ease=0.0,
            avg_interval=0.0,
            mastered_count=0,
        )

    tag_card_ids = {c.id for c in tag_cards}
    tag_reviews = [r for r in reviews if r.card_id in tag_card_ids]

    success_rate = 0.0
    if tag_reviews:
        successes = sum(1 for r in tag_reviews if r.grade.is_success)
        success_rate = successes / len(tag_reviews) * 100

    by_lapses = sorted(
        (c for c in tag_cards if c.lapses > 0), key=lambda c: (-c.lapses, c.id)
    )

    mastered = [c for c in tag_cards if c.interval_days >= MASTERY_INTERVAL_DAYS]
    days_to_mastery = [_days_to_mastery(c, tag_reviews, now) for c in mastered]
    avg_time_to_mastery = 0
    if days_to_mastery:
        avg_time_to_mastery = round_half_up(sum(days_to_mastery) / len(days_to_mastery))

    return TagStats(
        tag=tag,
        card_count=len(tag_cards),
        review_count=len(tag_reviews),
        success_rate=round(success_rate, 1),
        avg_ease=round(sum(c.ease for c in tag_cards) / len(tag_cards), 2),
        avg_interval=round(sum(c.interval_days for c in tag_cards) / len(tag_cards), 1),
        mastered_count=len(mastered),
        avg_time_to_mastery=avg_time_to_mastery,
        most_forgotten=[c.id for c in by_lapses[:MOST_FORGOTTEN_LIMIT]],
    )


def _days_to_mastery(card: Card, reviews: list[ReviewLog], now: int | None) -> float:
    card_reviews = sorted(
        (r for r in reviews if r.card_id == card.id), key=lambda r: r.reviewed_at
    )
    for review in card_reviews:
        if review.new_interval >= MASTERY_INTERVAL_DAYS:
            return (review.reviewed_at - card.created_at) / MS_PER_DAY
    return (resolve_now(now) - card.created_at) / MS_PER_DAY


def get_all_tag_stats(
    cards: list[Card], reviews: list[ReviewLog], now: int | None = None
) -> list[TagStats]:
    return [get_tag_stats(cards, reviews, tag, now) for tag in extract_all_tags(cards)]


def format_time_to_mastery(days: int) -> str:
    """Short label for a time-to-mastery figure, e.g. "5 days", "3.0 wks"."""
    if days <= 0:
        return "N/A"
    if days < 7:
        return f"{days} days"
    weeks = days / 7
    if weeks < 8:
        return f"{weeks:.1f} wks"
    return f"{days / 30:.1f} mo"


def identify_weak_tags(
    cards: list[Card],
    reviews: list[ReviewLog],
    thresholds: TagThresholds | None = None,
) -> list[str]:
    """
    Tags whose success rate falls below the weak threshold.

    Requires at least ``weak_min_cards`` cards carrying the tag and
    ``min_reviews`` reviews of them.

    Returns:
        Tag names, worst success rate first (ties by name).
    """
    thresholds = thresholds or DEFAULT_THRESHOLDS
    weak = [
        stats
        for stats in get_all_tag_stats(cards, reviews)
        if stats.card_count >= thresholds.weak_min_cards
        and stats.review_count >= thresholds.min_reviews
        and stats.success_rate < thresholds.weak_threshold
    ]
    weak.sort(key=lambda s: (s.success_rate, s.tag))
    logger.debug("Weak tags: %s", [s.tag for s in weak])
    return [s.tag for s in weak]


def identify_strong_tags(
    cards: list[Card],
    reviews: list[ReviewLog],
    thresholds: TagThresholds | None = None,
) -> list[str]:
    """
    Tags whose success rate is at or above the strong threshold.

    Returns:
        Tag names, best success rate first (ties by name).
    """
    thresholds = thresholds or DEFAULT_THRESHOLDS
    strong = [
        stats
        for stats in get_all_tag_stats(cards, reviews)
        if stats.card_count >= thresholds.strong_min_cards
        and stats.review_count >= thresholds.min_reviews
        and stats.success_rate >= thresholds.strong_threshold
    ]
    strong.sort(key=lambda s: (-s.success_rate, s.tag))
    logger.debug("Strong tags: %s", [s.tag for s in strong])
    return [s.tag for s in strong]
