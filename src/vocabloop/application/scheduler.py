"""
SM-2 style review scheduler.

This is a pure computation module with no I/O. The only outside input is the
clock, read once per call unless ``now`` is injected.
"""

import dataclasses
import math

from ulid import ULID

from vocabloop.domain.clock import resolve_now
from vocabloop.domain.constants import (
    EASE_DELTA,
    EASY_BONUS,
    HARD_INTERVAL_MULTIPLIER,
    LEARNING_STEPS,
    MIN_EASE,
    MS_PER_DAY,
)
from vocabloop.domain.models import ALL_GRADES, Card, Grade, ReviewLog, ScheduleResult


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives, matching the classic SM-2 tables."""
    return int(math.floor(value + 0.5))


def calculate_schedule(card: Card, grade: Grade | str, now: int | None = None) -> ScheduleResult:
    """
    Calculate the next review schedule for a card.

    Cards with ``reps == 0`` follow fixed learning steps; graduated cards grow
    their interval by the ease factor. ``again`` always demotes a card back to
    new and counts a lapse.

    Args:
        card: Current card state. Only reps, interval_days, ease and lapses are read.
        grade: The learner's recall grade.
        now: Epoch ms to schedule from. Defaults to the current time.

    Returns:
        ScheduleResult with the card's next SRS state.
    """
    grade = Grade.parse(grade)
    now = resolve_now(now)

    current_ease = max(MIN_EASE, card.ease)
    current_interval = max(0, card.interval_days)
    new_ease = max(MIN_EASE, current_ease + EASE_DELTA[grade.value])

    if grade is Grade.AGAIN:
        new_reps = 0
        new_lapses = card.lapses + 1
        new_interval = LEARNING_STEPS[grade.value]
    elif card.reps <= 0:
        new_reps = 1
        new_lapses = card.lapses
        new_interval = LEARNING_STEPS[grade.value]
    else:
        new_reps = card.reps + 1
        new_lapses = card.lapses
        if grade is Grade.HARD:
            raw = current_interval * HARD_INTERVAL_MULTIPLIER
        elif grade is Grade.GOOD:
            raw = current_interval * new_ease
        else:
            raw = current_interval * new_ease * EASY_BONUS
        new_interval = max(1, round_half_up(raw))

    return ScheduleResult(
        new_ease=new_ease,
        new_interval=new_interval,
        new_due_at=now + new_interval * MS_PER_DAY,
        new_reps=new_reps,
        new_lapses=new_lapses,
    )


def apply_schedule(card: Card, result: ScheduleResult, now: int | None = None) -> Card:
    """
    Merge a schedule result into a card.

    Only the SRS fields plus last_reviewed_at and updated_at change; content,
    tags and notes are carried over as-is.
    """
    now = resolve_now(now)
    return dataclasses.replace(
        card,
        ease=result.new_ease,
        interval_days=result.new_interval,
        due_at=result.new_due_at,
        reps=result.new_reps,
        lapses=result.new_lapses,
        last_reviewed_at=now,
        updated_at=now,
    )


def create_review_log(
    card: Card,
    grade: Grade | str,
    result: ScheduleResult,
    now: int | None = None,
) -> ReviewLog:
    """Build the history entry that accompanies applying ``result`` to ``card``."""
    return ReviewLog(
        id=f"rev_{ULID()}",
        card_id=card.id,
        grade=Grade.parse(grade),
        reviewed_at=resolve_now(now),
        previous_interval=card.interval_days,
        new_interval=result.new_interval,
        previous_due_at=card.due_at,
        new_due_at=result.new_due_at,
    )


def format_interval(days: int) -> str:
    """Human-readable interval, e.g. "Now", "3 days", "2 months"."""
    if days <= 0:
        return "Now"
    if days == 1:
        return "1 day"
    if days < 30:
        return f"{days} days"
    if days < 365:
        months = round_half_up(days / 30)
        return "1 month" if months == 1 else f"{months} months"
    years = round_half_up(days / 365)
    return "1 year" if years == 1 else f"{years} years"


def get_interval_previews(card: Card, now: int | None = None) -> dict[Grade, str]:
    """Forecast the interval each grade would give, without touching the card."""
    now = resolve_now(now)
    return {
        grade: format_interval(calculate_schedule(card, grade, now=now).new_interval)
        for grade in ALL_GRADES
    }
