"""
Analytics Service — Application layer orchestrator.

Coordinates fetching study history from the repositories, computing analytics
snapshots, and persisting them. Also owns the study session lifecycle.
"""

import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta
from typing import Any

from ulid import ULID

from studypals.domain import constants as c
from studypals.domain.analytics.models import (
    ReviewGrade,
    SessionActivity,
    StudyAnalytics,
    StudySession,
)
from studypals.domain.analytics.ports import AnalyticsRepository, StudyHistoryRepository
from studypals.domain.errors import SessionNotFoundError

from .calculator import AnalyticsCalculator

logger = logging.getLogger(__name__)


def generate_session_id() -> str:
    """Generate a sortable study session id using ULID."""
    return f"session_{ULID()}"


class AnalyticsService:
    """
    Application service for computing and maintaining user analytics.

    Follows Dependency Inversion: depends on the repository abstractions,
    not concrete adapter implementations.
    """

    def __init__(
        self,
        history_repo: StudyHistoryRepository,
        analytics_repo: AnalyticsRepository,
        calculator: AnalyticsCalculator | None = None,
        clock: Callable[[], datetime] | None = None,
        session_history_limit: int = c.DEFAULT_SESSION_HISTORY_LIMIT,
    ):
        """
        Args:
            history_repo: The repository (port) for sessions, quizzes and reviews.
            analytics_repo: The repository (port) for analytics snapshots.
            calculator: Optional custom calculator; uses default if not provided.
            clock: Source of "now"; defaults to the local wall clock.
            session_history_limit: Newest sessions considered by a full recompute.
        """
        self._history = history_repo
        self._analytics = analytics_repo
        self._calc = calculator or AnalyticsCalculator()
        self._clock = clock or datetime.now
        self._limit = session_history_limit

    async def get_user_analytics(self, user_id: str) -> StudyAnalytics | None:
        return await self._analytics.get_analytics(user_id)

    async def calculate_and_update_analytics(self, user_id: str) -> StudyAnalytics:
        """
        Recompute a user's analytics from history and store the snapshot.

        Args:
            user_id: The user to recompute.

        Returns:
            The freshly stored StudyAnalytics.
        """
        sessions = await self._history.get_study_sessions(user_id, limit=self._limit)
        quizzes = await self._history.get_quiz_sessions(user_id)
        reviews = await self._history.get_reviews(user_id)
        deck_subjects = await self._history.get_deck_subjects(user_id)

        analytics = self._calc.calculate_user_analytics(
            user_id,
            sessions,
            quizzes,
            reviews,
            now=self._clock(),
            deck_subjects=deck_subjects,
        )
        await self._analytics.save_analytics(analytics)
        logger.info(
            f"Recalculated analytics for {user_id} from {len(sessions)} sessions "
            f"and {len(quizzes)} quizzes"
        )
        return analytics

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def start_study_session(
        self,
        user_id: str,
        deck_id: str | None = None,
        subject: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> StudySession:
        session = StudySession(
            id=generate_session_id(),
            user_id=user_id,
            deck_id=deck_id,
            subject=subject,
            start_time=self._clock(),
            metadata=dict(metadata or {}),
        )
        await self._history.save_study_session(session)
        logger.info(f"Started study session {session.id} for {user_id}")
        return session

    async def add_session_activity(
        self, user_id: str, session_id: str, activity: SessionActivity
    ) -> StudySession:
        session = await self._require_session(user_id, session_id)
        updated = session.with_activity(activity)
        await self._history.save_study_session(updated)
        return updated

    async def end_study_session(self, user_id: str, session_id: str) -> StudyAnalytics:
        """
        Close a session and fold it into the user's stored snapshot.

        Falls back to a full recompute when no snapshot exists yet.
        """
        session = await self._require_session(user_id, session_id)
        now = self._clock()
        ended = session.ended(now)
        await self._history.save_study_session(ended)

        previous = await self._analytics.get_analytics(user_id)
        if previous is None:
            return await self.calculate_and_update_analytics(user_id)

        analytics = self._calc.update_analytics_with_session(previous, ended, now=now)
        await self._analytics.save_analytics(analytics)
        logger.info(f"Ended study session {session_id}; analytics updated incrementally")
        return analytics

    async def _require_session(self, user_id: str, session_id: str) -> StudySession:
        session = await self._history.get_study_session(user_id, session_id)
        if session is None:
            raise SessionNotFoundError(user_id, session_id)
        return session

    # ------------------------------------------------------------------
    # Synthetic sessions
    # ------------------------------------------------------------------

    async def record_quiz_completion(
        self,
        user_id: str,
        subject: str,
        accuracy: float,
        time_spent_minutes: int,
        cards_count: int,
    ) -> StudyAnalytics:
        """Record a finished quiz as a session of graded answers, then recompute."""
        correct_count = int(cards_count * accuracy + 0.5)
        outcomes = [i < correct_count for i in range(cards_count)]
        session = self._synthetic_session(
            user_id,
            subject,
            outcomes,
            time_spent_minutes,
            source=c.SOURCE_QUIZ_COMPLETION,
            card_prefix="quiz_card",
            extra=[{} for _ in outcomes],
        )
        await self._history.save_study_session(session)
        return await self.calculate_and_update_analytics(user_id)

    async def record_review_session(
        self,
        user_id: str,
        subject: str,
        grades: Sequence[ReviewGrade],
        time_spent_minutes: int,
    ) -> StudyAnalytics:
        """Record a spaced-repetition review run; good and easy grades count as correct."""
        session = self._synthetic_session(
            user_id,
            subject,
            [grade.is_correct for grade in grades],
            time_spent_minutes,
            source=c.SOURCE_REVIEW_SESSION,
            card_prefix="review_card",
            extra=[{"grade": grade.value} for grade in grades],
        )
        await self._history.save_study_session(session)
        return await self.calculate_and_update_analytics(user_id)

    def _synthetic_session(
        self,
        user_id: str,
        subject: str,
        outcomes: list[bool],
        time_spent_minutes: int,
        source: str,
        card_prefix: str,
        extra: list[dict[str, Any]],
    ) -> StudySession:
        now = self._clock()
        start = now - timedelta(minutes=time_spent_minutes)
        count = len(outcomes)
        step = time_spent_minutes // count if count else 0
        response_ms = (time_spent_minutes * 60 * 1000) // count if count else 0

        activities = tuple(
            SessionActivity(
                type=c.ACTIVITY_ANSWER,
                timestamp=start + timedelta(minutes=i * step),
                card_id=f"{card_prefix}_{i}",
                was_correct=correct,
                response_time_ms=response_ms,
                data={"subject": subject, **extra[i]},
            )
            for i, correct in enumerate(outcomes)
        )
        return StudySession(
            id=generate_session_id(),
            user_id=user_id,
            subject=subject,
            start_time=start,
            end_time=now,
            activities=activities,
            metadata={c.META_SOURCE: source},
        )

    # ------------------------------------------------------------------
    # Insights
    # ------------------------------------------------------------------

    async def get_subject_insights(self, user_id: str, subject: str) -> dict[str, Any]:
        analytics = await self._analytics.get_analytics(user_id)
        if analytics is None:
            return {}
        perf = analytics.subject_performance.get(subject)
        if perf is None:
            return {}

        return {
            "accuracy": perf.accuracy,
            "trend": perf.trend_description,
            "recommendedDifficulty": analytics.get_recommended_difficulty(subject),
            "totalCards": perf.total_cards,
            "studyTime": perf.study_time_minutes,
            "lastStudied": perf.last_studied.isoformat(),
            "isImproving": perf.is_improving,
        }

    async def get_user_performance_summary(self, user_id: str) -> dict[str, Any]:
        analytics = await self._analytics.get_analytics(user_id)
        if analytics is None:
            return {}
        return performance_summary(analytics)


def performance_summary(analytics: StudyAnalytics) -> dict[str, Any]:
    """Headline view of a snapshot, as shown on dashboards."""
    patterns = analytics.learning_patterns
    return {
        "performanceLevel": analytics.performance_level,
        "overallAccuracy": analytics.overall_accuracy,
        "currentStreak": analytics.current_streak,
        "totalStudyTime": analytics.total_study_time,
        "strugglingSubjects": analytics.struggling_subjects,
        "strongSubjects": analytics.strong_subjects,
        "preferredStudyTime": patterns.preferred_study_time,
        "mostEffectiveLearningStyle": patterns.most_effective_learning_style,
        "recentTrend": analytics.recent_trend.description,
    }
