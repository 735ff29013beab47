import dataclasses
from collections import Counter

import pytest

from vocabloop.application.pools import SessionMix
from vocabloop.application.session import (
    SessionPhase,
    create_session_state,
    select_next_card,
    session_phase,
    update_session_state,
)
from vocabloop.domain.exceptions import InvalidSessionConfig
from vocabloop.domain.models import (
    Category,
    Grade,
    ReviewResult,
    SessionConfig,
    SessionMode,
)


@pytest.fixture
def mixed_deck(make_card, make_reviews):
    """
    30 due graduated cards (food), 30 not-yet-due cards in a weak tag (verbs),
    30 new cards (misc) and 3 mature cards in a strong tag (colors).
    """
    cards = []
    reviews = []
    for i in range(30):
        cards.append(make_card(f"due{i:02d}", tags=["food"], reps=3, interval_days=5,
                               due_offset_days=-1 - i))
    for i in range(30):
        cards.append(make_card(f"weak{i:02d}", tags=["verbs"], reps=1, interval_days=2,
                               ease=2.5 - i * 0.01, due_offset_days=5))
        reviews += make_reviews(f"weak{i:02d}", again=1)
    for i in range(30):
        cards.append(make_card(f"new{i:02d}", tags=["misc"], due_offset_days=-1))
    for i in range(3):
        cards.append(make_card(f"color{i}", tags=["colors"], reps=6, interval_days=30 + i,
                               due_offset_days=10))
        reviews += make_reviews(f"color{i}", good=3)
    return cards, reviews


def _run(state, now, grade=Grade.GOOD):
    """Drive a session to completion, grading every card the same."""
    picks = []
    while (selected := select_next_card(state, now)) is not None:
        picks.append(selected)
        state = update_session_state(
            state,
            ReviewResult(
                card_id=selected.card.id,
                grade=grade,
                time_ms=1000,
                was_recovery_card=selected.is_recovery,
                category=selected.category,
            ),
        )
    return state, picks


# --- Creation ---


def test_create_session_state_derives_tags(mixed_deck):
    cards, reviews = mixed_deck
    state = create_session_state(SessionConfig(target_cards=10), cards, reviews)

    assert state.weak_tags == ("verbs",)
    assert state.strong_tags == ("colors",)
    assert state.reviewed_in_session == frozenset()
    assert state.consecutive_failures == 0
    assert state.session_results == ()
    assert session_phase(state) is SessionPhase.ACTIVE


def test_weak_tags_only_computed_in_smart_mode(mixed_deck):
    cards, reviews = mixed_deck
    state = create_session_state(SessionConfig(mode=SessionMode.DUE_ONLY), cards, reviews)
    assert state.weak_tags == ()
    assert state.strong_tags == ("colors",)


def test_tag_focus_requires_tag():
    with pytest.raises(InvalidSessionConfig):
        SessionConfig(mode=SessionMode.TAG_FOCUS)


def test_target_must_be_positive():
    with pytest.raises(InvalidSessionConfig):
        SessionConfig(target_cards=0)


def test_mode_accepts_string():
    assert SessionConfig(mode="due-only").mode is SessionMode.DUE_ONLY
    with pytest.raises(InvalidSessionConfig):
        SessionConfig(mode="cram")


# --- Lifecycle ---


def test_session_ends_at_target(mixed_deck, now):
    cards, reviews = mixed_deck
    state = create_session_state(SessionConfig(target_cards=2), cards, reviews)

    for card_id in ("due00", "due01"):
        state = update_session_state(state, ReviewResult(card_id=card_id, grade=Grade.GOOD))

    assert select_next_card(state, now) is None
    assert session_phase(state) is SessionPhase.COMPLETE


def test_update_returns_new_state(mixed_deck):
    cards, reviews = mixed_deck
    state = create_session_state(SessionConfig(target_cards=5), cards, reviews)
    result = ReviewResult(card_id="due00", grade=Grade.AGAIN, time_ms=1200)

    new_state = update_session_state(state, result)

    assert new_state is not state
    assert new_state.reviewed_in_session == {"due00"}
    assert new_state.consecutive_failures == 1
    assert new_state.session_results == (result,)
    assert state.reviewed_in_session == frozenset()
    assert state.consecutive_failures == 0
    assert state.session_results == ()


def test_failure_counter_resets_on_success(mixed_deck):
    cards, reviews = mixed_deck
    state = create_session_state(SessionConfig(target_cards=5), cards, reviews)
    state = update_session_state(state, ReviewResult(card_id="due00", grade=Grade.AGAIN))
    state = update_session_state(state, ReviewResult(card_id="due01", grade=Grade.AGAIN))
    assert state.consecutive_failures == 2

    state = update_session_state(state, ReviewResult(card_id="due02", grade=Grade.HARD))
    assert state.consecutive_failures == 0


# --- Confidence recovery ---


def test_recovery_after_failure_streak(mixed_deck, now):
    cards, reviews = mixed_deck
    state = create_session_state(SessionConfig(target_cards=10), cards, reviews)
    for card_id in ("due00", "due01", "due02"):
        state = update_session_state(state, ReviewResult(card_id=card_id, grade=Grade.AGAIN))

    selected = select_next_card(state, now)

    assert selected.is_recovery
    assert selected.category is Category.RECOVERY
    assert "colors" in selected.card.tags or selected.card.interval_days >= 21
    assert selected.card.id == "color2"


def test_recovery_is_one_card_then_normal_selection(mixed_deck, now):
    cards, reviews = mixed_deck
    state = create_session_state(SessionConfig(target_cards=10), cards, reviews)
    for card_id in ("due00", "due01"):
        state = update_session_state(state, ReviewResult(card_id=card_id, grade=Grade.AGAIN))

    recovery = select_next_card(state, now)
    assert recovery.is_recovery
    state = update_session_state(
        state,
        ReviewResult(
            card_id=recovery.card.id,
            grade=Grade.EASY,
            was_recovery_card=True,
            category=recovery.category,
        ),
    )

    following = select_next_card(state, now)
    assert not following.is_recovery
    assert following.category is Category.DUE


def test_recovery_disabled(mixed_deck, now):
    cards, reviews = mixed_deck
    config = SessionConfig(target_cards=10, enable_confidence_recovery=False)
    state = create_session_state(config, cards, reviews)
    for card_id in ("due00", "due01", "due02"):
        state = update_session_state(state, ReviewResult(card_id=card_id, grade=Grade.AGAIN))

    selected = select_next_card(state, now)
    assert not selected.is_recovery


def test_recovery_skipped_when_no_candidate(make_card, now):
    cards = [make_card(f"d{i}", reps=2, interval_days=3, due_offset_days=-1) for i in range(5)]
    state = create_session_state(SessionConfig(target_cards=5), cards, [])
    for card_id in ("d0", "d1"):
        state = update_session_state(state, ReviewResult(card_id=card_id, grade=Grade.AGAIN))

    selected = select_next_card(state, now)
    assert selected.category is Category.DUE
    assert selected.card.id in {"d2", "d3", "d4"}


# --- Modes ---


def test_due_only_mode_most_overdue_first(mixed_deck, now):
    cards, reviews = mixed_deck
    state = create_session_state(
        SessionConfig(mode=SessionMode.DUE_ONLY, target_cards=3), cards, reviews
    )
    _, picks = _run(state, now)

    # new cards are due one day ago; due29 is 30 days overdue
    assert [p.card.id for p in picks] == ["due29", "due28", "due27"]
    assert all(p.category is Category.DUE for p in picks)


def test_due_only_mode_stops_when_exhausted(make_card, now):
    cards = [
        make_card("a", reps=2, interval_days=3, due_offset_days=-1),
        make_card("b", reps=2, interval_days=3, due_offset_days=4),
    ]
    state = create_session_state(SessionConfig(mode=SessionMode.DUE_ONLY, target_cards=10), cards, [])
    state, picks = _run(state, now)

    assert [p.card.id for p in picks] == ["a"]
    assert len(state.session_results) == 1


def test_tag_focus_mode(make_card, now):
    cards = [
        make_card("later", tags=["verbs"], reps=2, interval_days=3, due_offset_days=2),
        make_card("due", tags=["verbs"], reps=2, interval_days=3, due_offset_days=-1),
        make_card("other", tags=["food"], reps=2, interval_days=3, due_offset_days=-9),
    ]
    config = SessionConfig(mode=SessionMode.TAG_FOCUS, tag_focus="verbs", target_cards=10)
    state = create_session_state(config, cards, [])
    _, picks = _run(state, now)

    assert [p.card.id for p in picks] == ["due", "later"]
    assert all(p.category is Category.TAG_FOCUS for p in picks)


# --- Smart mode ---


def test_smart_mode_follows_weights_across_session(mixed_deck, now):
    cards, reviews = mixed_deck
    state = create_session_state(SessionConfig(target_cards=20), cards, reviews)
    state, picks = _run(state, now)

    counts = Counter(p.category for p in picks)
    assert len(picks) == 20
    assert counts == {Category.DUE: 12, Category.WEAK_TAG: 5, Category.NEW: 3}
    assert state.drawn.due == 12
    assert state.drawn.weak_tag == 5
    assert state.drawn.new == 3


def test_smart_mode_draws_due_then_weak_then_new(mixed_deck, now):
    cards, reviews = mixed_deck
    state = create_session_state(SessionConfig(target_cards=20), cards, reviews)
    _, picks = _run(state, now)

    categories = [p.category for p in picks]
    assert categories[:12] == [Category.DUE] * 12
    assert categories[12:17] == [Category.WEAK_TAG] * 5
    assert categories[17:] == [Category.NEW] * 3
    # most overdue first, then weakest ease within the weak tag
    assert picks[0].card.id == "due29"
    assert picks[12].card.id == "weak29"


def test_smart_mode_redistributes_when_pool_runs_dry(make_card, now):
    cards = [make_card(f"n{i}") for i in range(4)] + [
        make_card(f"d{i}", reps=2, interval_days=3, due_offset_days=-1) for i in range(2)
    ]
    state = create_session_state(SessionConfig(target_cards=10), cards, [])
    state, picks = _run(state, now)

    counts = Counter(p.category for p in picks)
    assert counts == {Category.DUE: 2, Category.NEW: 4}
    assert session_phase(state) is SessionPhase.ACTIVE


def test_smart_mode_lapsed_cards_count_as_new(make_card, now):
    cards = [make_card("lapsed", reps=0, interval_days=0, lapses=2, due_offset_days=-1)]
    state = create_session_state(SessionConfig(target_cards=5), cards, [])

    selected = select_next_card(state, now)
    assert selected.category is Category.NEW


def test_smart_mode_empty_deck(now):
    state = create_session_state(SessionConfig(target_cards=5), [], [])
    assert select_next_card(state, now) is None


def test_recovery_cards_do_not_consume_category_quota(mixed_deck, now):
    cards, reviews = mixed_deck
    state = create_session_state(SessionConfig(target_cards=20), cards, reviews)
    state = update_session_state(
        state,
        ReviewResult(card_id="color0", grade=Grade.GOOD, was_recovery_card=True,
                     category=Category.RECOVERY),
    )
    assert state.drawn.total == 0
    assert state.remaining_slots == 19


def test_smart_mode_tracks_mix_without_result_categories(mixed_deck, now):
    cards, reviews = mixed_deck
    state = create_session_state(SessionConfig(target_cards=20), cards, reviews, now=now)

    picks = []
    while (selected := select_next_card(state, now)) is not None:
        picks.append(selected.category)
        state = update_session_state(
            state, ReviewResult(card_id=selected.card.id, grade=Grade.GOOD, time_ms=1000)
        )

    assert Counter(picks) == {Category.DUE: 12, Category.WEAK_TAG: 5, Category.NEW: 3}
    assert state.drawn == SessionMix(due=12, weak_tag=5, new=3)


def test_category_inferred_from_session_start(make_card, now):
    cards = [
        make_card("new", due_offset_days=-1),
        make_card("due", reps=2, interval_days=3, due_offset_days=-1),
        make_card("weak", tags=["verbs"], reps=2, interval_days=3, due_offset_days=2),
        make_card("weak_due", tags=["verbs"], reps=2, interval_days=3, due_offset_days=-1),
    ]
    state = dataclasses.replace(
        create_session_state(SessionConfig(target_cards=10), cards, [], now=now),
        weak_tags=("verbs",),
    )
    assert state.started_at == now

    for card_id in ("new", "due", "weak", "weak_due"):
        state = update_session_state(state, ReviewResult(card_id=card_id, grade=Grade.GOOD))

    assert state.drawn == SessionMix(due=2, weak_tag=1, new=1)


def test_recovery_result_without_category_is_not_counted(mixed_deck, now):
    cards, reviews = mixed_deck
    state = create_session_state(SessionConfig(target_cards=20), cards, reviews, now=now)
    state = update_session_state(
        state, ReviewResult(card_id="color0", grade=Grade.GOOD, was_recovery_card=True)
    )
    assert state.drawn.total == 0


def test_category_not_inferred_outside_smart_mode(mixed_deck, now):
    cards, reviews = mixed_deck
    config = SessionConfig(mode=SessionMode.DUE_ONLY, target_cards=5)
    state = create_session_state(config, cards, reviews, now=now)
    state = update_session_state(state, ReviewResult(card_id="due00", grade=Grade.GOOD))
    assert state.drawn.total == 0
