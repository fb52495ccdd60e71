"""Centralized constants for the StudyPals analytics package.

All thresholds, windows and cut points live here so every layer
imports from a single source of truth.
"""

# ---------- Activity Types ----------
ACTIVITY_CARD_VIEW = "card_view"
ACTIVITY_ANSWER = "answer"

# ---------- Session Metadata Keys ----------
META_LEARNING_STYLE = "learningStyle"
META_CARD_DIFFICULTIES = "cardDifficulties"
META_SOURCE = "source"

# ---------- Difficulty Buckets ----------
DIFFICULTY_EASY = "easy"
DIFFICULTY_MODERATE = "moderate"
DIFFICULTY_HARD = "hard"
DIFFICULTY_BUCKETS = (DIFFICULTY_EASY, DIFFICULTY_MODERATE, DIFFICULTY_HARD)
EASY_MAX_RATING = 2
MODERATE_MAX_RATING = 3

# ---------- Subject Performance ----------
RECENT_SCORES_WINDOW = 5
IMPROVING_SAMPLE_SIZE = 3
CONSISTENT_SCORE = 0.8

# ---------- Performance Tiers ----------
LEVEL_BEGINNER = "Beginner"
LEVEL_INTERMEDIATE = "Intermediate"
LEVEL_ADVANCED = "Advanced"
BEGINNER_BELOW = 0.5
INTERMEDIATE_BELOW = 0.75

# ---------- Subject Classification ----------
STRONG_SUBJECT_ACCURACY = 0.85
STRUGGLING_SUBJECT_ACCURACY = 0.7

# ---------- Recommended Difficulty ----------
RECOMMEND_EASY = "easy"
RECOMMEND_MODERATE = "moderate"
RECOMMEND_CHALLENGING = "challenging"
CHALLENGING_ACCURACY = 0.85
MODERATE_ACCURACY = 0.6
DEFAULT_RECOMMENDATION = RECOMMEND_MODERATE

# ---------- Trend ----------
WEEKS_ANALYZED = 4
TREND_THRESHOLD = 0.05

# ---------- Mistake Heuristics ----------
REPEATED_MISTAKE_MIN = 2
RECENT_MISTAKE_DAYS = 7
RECENT_MISTAKE_SHARE = 0.5
SLOW_RESPONSE_MS = 10_000
SLOW_MISTAKE_SHARE = 0.3
HARD_MISTAKE_MIN = 2
HARD_MISTAKE_SHARE = 0.5

# ---------- Study Time Buckets ----------
MORNING_BEFORE_HOUR = 12
AFTERNOON_BEFORE_HOUR = 17

# ---------- Service ----------
DEFAULT_SESSION_HISTORY_LIMIT = 100
SOURCE_QUIZ_COMPLETION = "quiz_completion"
SOURCE_REVIEW_SESSION = "review_session"
