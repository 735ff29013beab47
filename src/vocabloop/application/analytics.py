"""
Post-session analytics.

This is a pure computation module with no I/O. Empty input yields zeroed
statistics, never a division error.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from vocabloop.domain.constants import (
    EXCELLENT_SESSION_RATE,
    GOOD_SESSION_RATE,
    INSIGHT_MIN_REVIEWS,
    MAX_STRUGGLE_INSIGHTS,
    STRONG_PERFORMANCE_RATE,
    STRUGGLE_RATE,
    WEAK_TAG_THRESHOLD,
)
from vocabloop.domain.models import Card, ReviewResult

from .scheduler import round_half_up


@dataclass(frozen=True)
class SessionStats:
    total_reviewed: int
    success_count: int
    success_rate: int  # 0-100
    avg_time_ms: int
    recovery_cards_used: int


@dataclass(frozen=True)
class TagPerformance:
    tag: str
    reviewed: int
    success_rate: int  # 0-100


def calculate_session_stats(results: Sequence[ReviewResult]) -> SessionStats:
    if not results:
        return SessionStats(
            total_reviewed=0,
            success_count=0,
            success_rate=0,
            avg_time_ms=0,
            recovery_cards_used=0,
        )

    total = len(results)
    successes = sum(1 for r in results if r.grade.is_success)
    total_time = sum(r.time_ms for r in results)

    return SessionStats(
        total_reviewed=total,
        success_count=successes,
        success_rate=round_half_up(successes / total * 100),
        avg_time_ms=round_half_up(total_time / total),
        recovery_cards_used=sum(1 for r in results if r.was_recovery_card),
    )


def analyze_session_tag_performance(
    results: Iterable[ReviewResult],
    cards: Iterable[Card],
) -> list[TagPerformance]:
    """
    Per-tag success within the session, worst first (ties by tag name).

    Results whose card is not in ``cards`` are ignored.
    """
    card_map = {c.id: c for c in cards}
    counts: dict[str, list[int]] = {}  # tag -> [reviewed, successes]

    for result in results:
        card = card_map.get(result.card_id)
        if card is None:
            continue
        for tag in card.tags:
            entry = counts.setdefault(tag, [0, 0])
            entry[0] += 1
            if result.grade.is_success:
                entry[1] += 1

    analysis = [
        TagPerformance(
            tag=tag,
            reviewed=reviewed,
            success_rate=round_half_up(successes / reviewed * 100),
        )
        for tag, (reviewed, successes) in counts.items()
    ]
    analysis.sort(key=lambda t: (t.success_rate, t.tag))
    return analysis


def generate_session_insights(
    results: Sequence[ReviewResult],
    cards: Iterable[Card],
    weak_tags: Iterable[str],
) -> list[str]:
    """Short advisory messages for the learner's session summary."""
    if not results:
        return ["No cards reviewed this session."]

    weak = set(weak_tags)
    stats = calculate_session_stats(results)
    performance = analyze_session_tag_performance(results, cards)
    insights: list[str] = []

    rate = stats.success_rate
    if rate >= EXCELLENT_SESSION_RATE:
        insights.append(f"Excellent session! You scored {rate}% success rate.")
    elif rate >= GOOD_SESSION_RATE:
        insights.append(f"Good session with {rate}% success rate.")
    else:
        insights.append(f"Challenging session - {rate}% success rate. Keep practicing!")

    struggled = [
        t for t in performance if t.success_rate < STRUGGLE_RATE and t.reviewed >= INSIGHT_MIN_REVIEWS
    ]
    mentioned: set[str] = set()
    for t in struggled[:MAX_STRUGGLE_INSIGHTS]:
        if t.tag in weak:
            insights.append(
                f'"{t.tag}" is still a weak area ({t.success_rate}% success) - '
                "more practice recommended."
            )
        else:
            insights.append(
                f'Struggled with "{t.tag}" ({t.success_rate}% success) - '
                "more practice recommended."
            )
        mentioned.add(t.tag)

    for t in performance:
        if t.tag in weak and t.tag not in mentioned and t.success_rate < WEAK_TAG_THRESHOLD:
            insights.append(
                f'Weak area "{t.tag}" underperformed again ({t.success_rate}% success).'
            )
            mentioned.add(t.tag)

    strong = [
        t
        for t in performance
        if t.success_rate >= STRONG_PERFORMANCE_RATE and t.reviewed >= INSIGHT_MIN_REVIEWS
    ]
    if strong:
        best = strong[0]
        insights.append(f'Strong performance on "{best.tag}" ({best.success_rate}% success)!')

    if stats.recovery_cards_used > 0:
        insights.append(
            f"{stats.recovery_cards_used} confidence booster card(s) helped during tough moments."
        )

    if struggled:
        insights.append(f"Tomorrow's session will include more \"{struggled[0].tag}\" practice.")

    return insights
