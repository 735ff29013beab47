# Domain Package
from .exceptions import (
    CardNotFound,
    DeckFormatError,
    InvalidGrade,
    InvalidSessionConfig,
    VocabloopError,
)
from .models import (
    ALL_GRADES,
    DEFAULT_WEIGHTS,
    MIX_CATEGORIES,
    Card,
    Category,
    Grade,
    ReviewLog,
    ReviewResult,
    ScheduleResult,
    SelectedCard,
    SessionConfig,
    SessionMode,
    SessionWeights,
)
from .ports import CardStore, DeckStore, ReviewLogStore

__all__ = [
    "ALL_GRADES",
    "DEFAULT_WEIGHTS",
    "MIX_CATEGORIES",
    "Card",
    "CardNotFound",
    "CardStore",
    "DeckStore",
    "Category",
    "DeckFormatError",
    "Grade",
    "InvalidGrade",
    "InvalidSessionConfig",
    "ReviewLog",
    "ReviewLogStore",
    "ReviewResult",
    "ScheduleResult",
    "SelectedCard",
    "SessionConfig",
    "SessionMode",
    "SessionWeights",
    "VocabloopError",
]
