"""
Domain models for review scheduling and study sessions.

These are pure data structures with no I/O or external dependencies.
Timestamps are epoch milliseconds throughout.
"""

from dataclasses import dataclass, field
from enum import Enum

from .constants import (
    DEFAULT_TARGET_CARDS,
    DEFAULT_WEIGHT_DUE,
    DEFAULT_WEIGHT_NEW,
    DEFAULT_WEIGHT_WEAK_TAG,
    INITIAL_EASE,
)
from .exceptions import InvalidGrade, InvalidSessionConfig


class Grade(str, Enum):
    """Recall grade, ordered from forgot to effortless."""

    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"

    @property
    def rank(self) -> int:
        return _GRADE_ORDER.index(self)

    @property
    def is_success(self) -> bool:
        return self is not Grade.AGAIN

    @classmethod
    def parse(cls, value: "Grade | str | int") -> "Grade":
        """
        Accept a Grade, its name in any case, or an Anki-style button number.

        1=Again, 2=Hard, 3=Good, 4=Easy.
        """
        if isinstance(value, Grade):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            if 1 <= value <= len(_GRADE_ORDER):
                return _GRADE_ORDER[value - 1]
            raise InvalidGrade(f"Grade button out of range: {value}")
        if isinstance(value, str):
            text = value.strip().lower()
            if text.isdigit():
                return cls.parse(int(text))
            try:
                return cls(text)
            except ValueError:
                pass
        raise InvalidGrade(f"Unknown grade: {value!r}")


_GRADE_ORDER = (Grade.AGAIN, Grade.HARD, Grade.GOOD, Grade.EASY)
ALL_GRADES = _GRADE_ORDER


class SessionMode(str, Enum):
    SMART = "smart"
    DUE_ONLY = "due-only"
    TAG_FOCUS = "tag-focus"


class Category(str, Enum):
    """Where a session card was drawn from."""

    DUE = "due"
    WEAK_TAG = "weak_tag"
    NEW = "new"
    TAG_FOCUS = "tag_focus"
    RECOVERY = "recovery"


# Smart-mode pools in draw priority order
MIX_CATEGORIES = (Category.DUE, Category.WEAK_TAG, Category.NEW)


@dataclass(frozen=True)
class Card:
    """
    A vocabulary flashcard.

    Only the SRS fields are interpreted by the scheduler; content fields are
    carried through untouched.

    Attributes:
        ease: Multiplicative interval growth factor (floor 1.3).
        interval_days: Days until the card is next due.
        reps: Consecutive successful reviews; 0 while the card is new.
        due_at: Epoch ms when the card is next due.
        lapses: Number of times the card was forgotten.
    """

    id: str
    front: str = ""
    back: str = ""
    tags: tuple[str, ...] = ()
    notes: str | None = None
    example: str | None = None

    # SRS state
    ease: float = INITIAL_EASE
    interval_days: int = 0
    reps: int = 0
    due_at: int = 0
    lapses: int = 0
    last_reviewed_at: int | None = None

    # Metadata
    created_at: int = 0
    updated_at: int = 0

    @property
    def is_new(self) -> bool:
        return self.reps == 0

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    def has_any_tag(self, tags: "set[str] | frozenset[str] | list[str] | tuple[str, ...]") -> bool:
        return any(t in tags for t in self.tags)


@dataclass(frozen=True)
class ReviewLog:
    """
    Immutable history entry for one review. Append-only.

    Attributes:
        previous_interval: Interval in days before the review.
        new_interval: Interval in days assigned by the review.
    """

    id: str
    card_id: str
    grade: Grade
    reviewed_at: int
    previous_interval: int
    new_interval: int
    previous_due_at: int
    new_due_at: int


@dataclass(frozen=True)
class ScheduleResult:
    """Output of the scheduler. Applied to a Card to produce the next Card."""

    new_ease: float
    new_interval: int
    new_due_at: int
    new_reps: int
    new_lapses: int


@dataclass(frozen=True)
class SessionWeights:
    """Relative share of due, weak-topic and new cards in a smart session."""

    due: float = DEFAULT_WEIGHT_DUE
    weak_tag: float = DEFAULT_WEIGHT_WEAK_TAG
    new: float = DEFAULT_WEIGHT_NEW

    def __post_init__(self):
        if min(self.due, self.weak_tag, self.new) < 0:
            raise InvalidSessionConfig("Session weights must be non-negative")
        if self.total <= 0:
            raise InvalidSessionConfig("At least one session weight must be positive")

    @property
    def total(self) -> float:
        return self.due + self.weak_tag + self.new

    def share(self, category: Category) -> float:
        """Normalized weight of a mix category (0.0-1.0)."""
        value = {
            Category.DUE: self.due,
            Category.WEAK_TAG: self.weak_tag,
            Category.NEW: self.new,
        }[category]
        return value / self.total


DEFAULT_WEIGHTS = SessionWeights()


@dataclass(frozen=True)
class SessionConfig:
    """User-chosen parameters for one study session."""

    mode: SessionMode = SessionMode.SMART
    target_cards: int = DEFAULT_TARGET_CARDS
    tag_focus: str | None = None
    weights: SessionWeights = field(default_factory=SessionWeights)
    enable_confidence_recovery: bool = True

    def __post_init__(self):
        if not isinstance(self.mode, SessionMode):
            try:
                object.__setattr__(self, "mode", SessionMode(self.mode))
            except ValueError as e:
                raise InvalidSessionConfig(f"Unknown session mode: {self.mode!r}") from e
        if self.target_cards < 1:
            raise InvalidSessionConfig("target_cards must be at least 1")
        if self.mode is SessionMode.TAG_FOCUS and not self.tag_focus:
            raise InvalidSessionConfig("tag-focus mode requires a tag")


@dataclass(frozen=True)
class ReviewResult:
    """
    One review outcome inside a session.

    Attributes:
        time_ms: Response time in milliseconds.
        was_recovery_card: True if the card was served as a confidence booster.
        category: Pool the card was drawn from, if known.
    """

    card_id: str
    grade: Grade
    time_ms: int = 0
    was_recovery_card: bool = False
    category: Category | None = None


@dataclass(frozen=True)
class SelectedCard:
    """The session selector's pick, with the pool it came from."""

    card: Card
    category: Category

    @property
    def is_recovery(self) -> bool:
        return self.category is Category.RECOVERY
