"""
Ports (interfaces) for study history and analytics persistence.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod

from .models import QuizSession, Review, StudyAnalytics, StudySession


class StudyHistoryRepository(ABC):
    """
    Port for reading and recording a user's study history.

    Implementations:
        - JsonFileStore: One JSON document per collection under a data directory.
    """

    @abstractmethod
    async def get_study_sessions(
        self, user_id: str, limit: int | None = None
    ) -> list[StudySession]:
        """
        Fetch study sessions for a user.

        Args:
            user_id: Owner of the sessions.
            limit: Maximum number of sessions to return; None for all.

        Returns:
            Sessions sorted by start_time descending (newest first).
        """
        pass

    @abstractmethod
    async def get_study_session(self, user_id: str, session_id: str) -> StudySession | None:
        """Fetch a single session, or None if it does not exist."""
        pass

    @abstractmethod
    async def save_study_session(self, session: StudySession) -> None:
        """Insert or replace a session, keyed by its id."""
        pass

    @abstractmethod
    async def get_quiz_sessions(self, user_id: str) -> list[QuizSession]:
        pass

    @abstractmethod
    async def save_quiz_session(self, user_id: str, quiz: QuizSession) -> None:
        pass

    @abstractmethod
    async def get_reviews(self, user_id: str) -> list[Review]:
        pass

    @abstractmethod
    async def get_deck_subjects(self, user_id: str) -> dict[str, str]:
        """
        Fetch the deck id to subject mapping used to attribute quizzes.

        Returns:
            Mapping of deck id to subject name; empty if unknown.
        """
        pass


class AnalyticsRepository(ABC):
    """Port for storing the latest analytics snapshot per user."""

    @abstractmethod
    async def get_analytics(self, user_id: str) -> StudyAnalytics | None:
        pass

    @abstractmethod
    async def save_analytics(self, analytics: StudyAnalytics) -> None:
        pass
