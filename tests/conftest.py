import pytest

from vocabloop.domain.constants import MS_PER_DAY
from vocabloop.domain.models import Card, Grade, ReviewLog

NOW = 1_700_000_000_000  # fixed clock, epoch ms


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_card():
    """Factory for cards; due_offset_days is relative to NOW (negative = overdue)."""

    def _make(
        card_id: str,
        tags=(),
        reps: int = 0,
        interval_days: int = 0,
        ease: float = 2.5,
        due_offset_days: float = 0,
        lapses: int = 0,
        **kwargs,
    ) -> Card:
        return Card(
            id=card_id,
            front=kwargs.pop("front", f"front-{card_id}"),
            back=kwargs.pop("back", f"back-{card_id}"),
            tags=tuple(tags),
            reps=reps,
            interval_days=interval_days,
            ease=ease,
            due_at=int(NOW + due_offset_days * MS_PER_DAY),
            lapses=lapses,
            created_at=kwargs.pop("created_at", NOW - 30 * MS_PER_DAY),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_reviews():
    """Factory for review history: ``make_reviews("c1", good=3, again=1)``."""

    def _make(card_id: str, **grade_counts: int) -> list[ReviewLog]:
        logs = []
        for grade_name, count in grade_counts.items():
            for i in range(count):
                logs.append(
                    ReviewLog(
                        id=f"{card_id}-{grade_name}-{i}",
                        card_id=card_id,
                        grade=Grade(grade_name),
                        reviewed_at=NOW - (len(logs) + 1) * 1000,
                        previous_interval=0,
                        new_interval=1,
                        previous_due_at=0,
                        new_due_at=0,
                    )
                )
        return logs

    return _make


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config/logs
    monkeypatch.setenv("HOME", str(home))
    return home
