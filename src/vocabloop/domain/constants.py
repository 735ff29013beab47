"""Centralized constants for vocabloop.

All scheduling and curriculum policy numbers live here so every layer
imports from a single source of truth.
"""

# ---------- Time ----------
MS_PER_DAY = 24 * 60 * 60 * 1000

# ---------- SM-2 Scheduler ----------
MIN_EASE = 1.3
INITIAL_EASE = 2.5
HARD_INTERVAL_MULTIPLIER = 1.2
EASY_BONUS = 1.3

# Initial intervals (days) for cards that have not graduated yet
LEARNING_STEPS = {
    "again": 0,
    "hard": 0,
    "good": 1,
    "easy": 4,
}

EASE_DELTA = {
    "again": -0.2,
    "hard": -0.15,
    "good": 0.0,
    "easy": 0.15,
}

# ---------- Tag Analysis ----------
WEAK_TAG_THRESHOLD = 70.0  # success rate (%) below which a tag is weak
WEAK_TAG_MIN_CARDS = 5
STRONG_TAG_THRESHOLD = 85.0  # success rate (%) at or above which a tag is strong
STRONG_TAG_MIN_CARDS = 3
MIN_TAG_REVIEWS = 1
MASTERY_INTERVAL_DAYS = 21
MOST_FORGOTTEN_LIMIT = 3

# ---------- Session ----------
DEFAULT_TARGET_CARDS = 20
DEFAULT_WEIGHT_DUE = 60
DEFAULT_WEIGHT_WEAK_TAG = 25
DEFAULT_WEIGHT_NEW = 15
CONFIDENCE_RECOVERY_THRESHOLD = 2  # consecutive failures before a booster card
WELL_LEARNED_INTERVAL_DAYS = 21

# ---------- Session Insights ----------
EXCELLENT_SESSION_RATE = 90
GOOD_SESSION_RATE = 70
STRUGGLE_RATE = 60
STRONG_PERFORMANCE_RATE = 90
INSIGHT_MIN_REVIEWS = 3
MAX_STRUGGLE_INSIGHTS = 2
