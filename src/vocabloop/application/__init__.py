# Application Package
from .analytics import (
    SessionStats,
    TagPerformance,
    analyze_session_tag_performance,
    calculate_session_stats,
    generate_session_insights,
)
from .pools import (
    SessionMix,
    calculate_mix,
    get_confidence_recovery_card,
    get_due_cards,
    get_new_cards,
    get_weak_tag_cards,
)
from .review_service import ReviewService, SessionSummary
from .scheduler import (
    apply_schedule,
    calculate_schedule,
    create_review_log,
    format_interval,
    get_interval_previews,
)
from .session import (
    SessionPhase,
    SessionState,
    create_session_state,
    select_next_card,
    session_phase,
    update_session_state,
)
from .tag_analyzer import (
    TagStats,
    TagThresholds,
    extract_all_tags,
    format_time_to_mastery,
    get_all_tag_stats,
    get_tag_stats,
    identify_strong_tags,
    identify_weak_tags,
)

__all__ = [
    "ReviewService",
    "SessionMix",
    "SessionPhase",
    "SessionState",
    "SessionStats",
    "SessionSummary",
    "TagPerformance",
    "TagStats",
    "TagThresholds",
    "analyze_session_tag_performance",
    "apply_schedule",
    "calculate_mix",
    "calculate_schedule",
    "calculate_session_stats",
    "create_review_log",
    "create_session_state",
    "extract_all_tags",
    "format_interval",
    "format_time_to_mastery",
    "generate_session_insights",
    "get_all_tag_stats",
    "get_confidence_recovery_card",
    "get_due_cards",
    "get_interval_previews",
    "get_new_cards",
    "get_tag_stats",
    "get_weak_tag_cards",
    "identify_strong_tags",
    "identify_weak_tags",
    "select_next_card",
    "session_phase",
    "update_session_state",
]
