"""
Domain models for study analytics.

These are pure data structures with no I/O or external dependencies.
Every record is frozen: updates produce new instances.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Any

from studypals.domain import constants as c


def local_naive(moment: datetime) -> datetime:
    """
    Normalize a timestamp to naive local time.

    Naive values are assumed to already be local. Aware values are converted
    to the local zone so that day, week and hour bucketing is consistent.
    """
    if moment.tzinfo is None:
        return moment
    return moment.astimezone().replace(tzinfo=None)


class ReviewGrade(str, Enum):
    """Recall grade recorded for a spaced-repetition review."""

    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"

    @property
    def is_correct(self) -> bool:
        return self in (ReviewGrade.GOOD, ReviewGrade.EASY)


class TrendDirection(str, Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


@dataclass(frozen=True)
class SessionActivity:
    """
    A single recorded event inside a study session.

    Attributes:
        type: "card_view", "answer", "hint_used", "skip" or any other tag.
        timestamp: When the event happened.
        card_id: The card the event refers to, if any.
        was_correct: Correctness of an answer; None when not graded.
        response_time_ms: Time taken to answer, in milliseconds.
        data: Free-form event payload.
    """

    type: str
    timestamp: datetime
    card_id: str | None = None
    was_correct: bool | None = None
    response_time_ms: int | None = None
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def is_graded_answer(self) -> bool:
        return self.type == c.ACTIVITY_ANSWER and self.was_correct is not None


@dataclass(frozen=True)
class StudySession:
    """
    One continuous study interval.

    `end_time` is None while the session is still running; such sessions
    contribute no study time.
    """

    id: str
    user_id: str
    start_time: datetime
    end_time: datetime | None = None
    deck_id: str | None = None
    subject: str | None = None
    activities: tuple[SessionActivity, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def duration_minutes(self) -> int:
        """Whole minutes between start and end, never negative."""
        if self.end_time is None:
            return 0
        elapsed = local_naive(self.end_time) - local_naive(self.start_time)
        return max(0, int(elapsed.total_seconds() // 60))

    @property
    def session_accuracy(self) -> float:
        answers = [a for a in self.activities if a.is_graded_answer]
        if not answers:
            return 0.0
        return sum(1 for a in answers if a.was_correct) / len(answers)

    @property
    def learning_style(self) -> str | None:
        style = self.metadata.get(c.META_LEARNING_STYLE)
        return style if isinstance(style, str) else None

    @property
    def card_difficulties(self) -> dict[str, int]:
        """Integer difficulty ratings by card id; malformed entries are dropped."""
        raw = self.metadata.get(c.META_CARD_DIFFICULTIES)
        if not isinstance(raw, dict):
            return {}
        return {
            str(card_id): rating
            for card_id, rating in raw.items()
            if isinstance(rating, int) and not isinstance(rating, bool)
        }

    def with_activity(self, activity: SessionActivity) -> "StudySession":
        return replace(self, activities=(*self.activities, activity))

    def ended(self, at: datetime) -> "StudySession":
        return replace(self, end_time=at)


@dataclass(frozen=True)
class QuizAnswer:
    card_id: str
    selected_option_index: int
    correct_option_index: int
    is_correct: bool
    answered_at: datetime
    exp_earned: int = 0


@dataclass(frozen=True)
class QuizSession:
    """
    One quiz attempt over a deck.

    `subject` is optional; when absent the subject is resolved from the deck.
    """

    id: str
    deck_id: str
    deck_title: str
    card_ids: tuple[str, ...]
    start_time: datetime
    end_time: datetime | None = None
    is_completed: bool = False
    final_score: float | None = None
    answers: tuple[QuizAnswer, ...] = ()
    subject: str | None = None

    @property
    def correct_answers(self) -> int:
        return sum(1 for a in self.answers if a.is_correct)

    @property
    def current_score(self) -> float:
        if not self.answers:
            return 0.0
        return self.correct_answers / len(self.answers)


@dataclass(frozen=True)
class Review:
    """
    Spaced-repetition state for one card.

    Accepted by the aggregator as history but not used for scoring.
    """

    card_id: str
    user_id: str
    due_at: datetime
    ease: float = 2.5
    interval: int = 1
    reps: int = 0
    last_grade: ReviewGrade | None = None
    last_reviewed: datetime | None = None


@dataclass(frozen=True)
class WeekStat:
    """Aggregates for one calendar week (Monday start)."""

    week_start: datetime
    cards_studied: int = 0
    average_accuracy: float = 0.0
    total_study_time: int = 0  # minutes
    quizzes_completed: int = 0


@dataclass(frozen=True)
class PerformanceTrend:
    direction: TrendDirection
    change_rate: float  # percentage points per week
    weeks_analyzed: int
    weekly_data: tuple[WeekStat, ...]

    @property
    def description(self) -> str:
        if self.direction is TrendDirection.IMPROVING:
            return (
                f"User shows consistent improvement with "
                f"{self.change_rate:.1f}% weekly growth"
            )
        if self.direction is TrendDirection.DECLINING:
            return (
                f"User performance declining by {abs(self.change_rate):.1f}% "
                f"weekly - needs support"
            )
        return "User performance is stable with consistent results"


@dataclass(frozen=True)
class LearningPatterns:
    """
    Study habits derived from session history.

    Attributes:
        preferred_study_hours: Hour of day ("0".."23") to number of sessions started.
        learning_style_effectiveness: Learning style tag to answer accuracy.
        average_session_length: Mean session duration in minutes.
        preferred_cards_per_session: Card views per session, rounded half up.
        topic_interest: Subject to share of all sessions (0.0-1.0).
        common_mistake_patterns: Heuristic labels for recurring errors.
    """

    preferred_study_hours: dict[str, int] = field(default_factory=dict)
    learning_style_effectiveness: dict[str, float] = field(default_factory=dict)
    average_session_length: float = 0.0
    preferred_cards_per_session: int = 0
    topic_interest: dict[str, float] = field(default_factory=dict)
    common_mistake_patterns: tuple[str, ...] = ()

    @property
    def session_count(self) -> int:
        return sum(self.preferred_study_hours.values())

    @property
    def most_effective_learning_style(self) -> str | None:
        if not self.learning_style_effectiveness:
            return None
        return max(
            self.learning_style_effectiveness.items(), key=lambda item: item[1]
        )[0]

    @property
    def preferred_study_time(self) -> str:
        if not self.preferred_study_hours:
            return "flexible"
        hour = int(max(self.preferred_study_hours.items(), key=lambda item: item[1])[0])
        if hour < c.MORNING_BEFORE_HOUR:
            return "morning"
        if hour < c.AFTERNOON_BEFORE_HOUR:
            return "afternoon"
        return "evening"


@dataclass(frozen=True)
class SubjectPerformance:
    """
    Per-subject rollup.

    The tallies after `average_response_time` are bookkeeping that lets a
    snapshot absorb one more session without the full history.
    """

    subject: str
    accuracy: float
    total_cards: int
    total_quizzes: int
    study_time_minutes: int
    last_studied: datetime
    recent_scores: tuple[float, ...] = ()
    difficulty_breakdown: dict[str, int] = field(
        default_factory=lambda: {bucket: 0 for bucket in c.DIFFICULTY_BUCKETS}
    )
    average_response_time: float = 0.0  # seconds
    session_count: int = 0
    answers_given: int = 0
    correct_answers: int = 0
    timed_answers: int = 0

    @property
    def is_improving(self) -> bool:
        """Newest scores beat the ones just before them (scores are oldest first)."""
        n = c.IMPROVING_SAMPLE_SIZE
        if len(self.recent_scores) <= n:
            return False
        recent = self.recent_scores[-n:]
        older = self.recent_scores[-2 * n : -n]
        return sum(recent) / len(recent) > sum(older) / len(older)

    @property
    def trend_description(self) -> str:
        if self.is_improving:
            return "Improving"
        if self.recent_scores and self.recent_scores[-1] >= c.CONSISTENT_SCORE:
            return "Consistent"
        return "Needs Focus"


@dataclass(frozen=True)
class StudyAnalytics:
    """
    Immutable analytics snapshot for one user.

    Produced by a full recompute or by folding a single session into a
    previous snapshot. `study_dates` keeps the distinct local study days so
    that streaks stay exact across incremental updates.
    """

    user_id: str
    last_updated: datetime
    overall_accuracy: float
    total_study_time: int  # minutes
    total_cards_studied: int
    total_quizzes_taken: int
    current_streak: int
    longest_streak: int
    subject_performance: dict[str, SubjectPerformance]
    learning_patterns: LearningPatterns
    recent_trend: PerformanceTrend
    total_answers_given: int = 0
    total_correct_answers: int = 0
    study_dates: tuple[date, ...] = ()

    @property
    def performance_level(self) -> str:
        if self.overall_accuracy < c.BEGINNER_BELOW:
            return c.LEVEL_BEGINNER
        if self.overall_accuracy < c.INTERMEDIATE_BELOW:
            return c.LEVEL_INTERMEDIATE
        return c.LEVEL_ADVANCED

    @property
    def strong_subjects(self) -> list[str]:
        return [
            name
            for name, perf in self.subject_performance.items()
            if perf.accuracy >= c.STRONG_SUBJECT_ACCURACY
        ]

    @property
    def struggling_subjects(self) -> list[str]:
        return [
            name
            for name, perf in self.subject_performance.items()
            if perf.accuracy < c.STRUGGLING_SUBJECT_ACCURACY
        ]

    def get_recommended_difficulty(self, subject: str) -> str:
        perf = self.subject_performance.get(subject)
        if perf is None:
            return c.DEFAULT_RECOMMENDATION
        if perf.accuracy >= c.CHALLENGING_ACCURACY:
            return c.RECOMMEND_CHALLENGING
        if perf.accuracy >= c.MODERATE_ACCURACY:
            return c.RECOMMEND_MODERATE
        return c.RECOMMEND_EASY
