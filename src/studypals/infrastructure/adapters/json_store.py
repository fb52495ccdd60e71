"""
JSON File Store — Infrastructure adapter for local study history persistence.

Implements StudyHistoryRepository and AnalyticsRepository on top of plain JSON
documents, one per collection, under <data_dir>/users/<user_id>/.
"""

import json
import logging
from pathlib import Path
from typing import Any

from studypals.domain.analytics.models import (
    QuizSession,
    Review,
    StudyAnalytics,
    StudySession,
    local_naive,
)
from studypals.domain.analytics.ports import AnalyticsRepository, StudyHistoryRepository
from studypals.domain.errors import DeserializationError
from studypals.infrastructure.serialization import (
    decode_analytics,
    decode_quiz_session,
    decode_review,
    decode_session,
    encode,
    loads,
)

logger = logging.getLogger(__name__)

SESSIONS_FILE = "study_sessions.json"
QUIZZES_FILE = "quiz_sessions.json"
REVIEWS_FILE = "reviews.json"
DECK_SUBJECTS_FILE = "deck_subjects.json"
ANALYTICS_FILE = "analytics.json"


class JsonFileStore(StudyHistoryRepository, AnalyticsRepository):
    """
    Stores each user's history as JSON files.

    Missing files read as empty collections. Files that exist but cannot be
    parsed raise DeserializationError.
    """

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)

    def _user_dir(self, user_id: str) -> Path:
        return self.data_dir / "users" / user_id

    def _read(self, user_id: str, name: str, record: str) -> Any | None:
        path = self._user_dir(user_id) / name
        if not path.exists():
            return None
        try:
            return loads(path.read_text(encoding="utf-8"), record)
        except DeserializationError:
            logger.warning(f"Unreadable {record} file: {path}")
            raise

    def _read_list(self, user_id: str, name: str, record: str) -> list[Any]:
        raw = self._read(user_id, name, record)
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise DeserializationError(record, f"{name} must contain a JSON array")
        return raw

    def _write(self, user_id: str, name: str, payload: Any) -> None:
        path = self._user_dir(user_id) / name
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        tmp.replace(path)

    # ------------------------------------------------------------------
    # StudyHistoryRepository
    # ------------------------------------------------------------------

    async def get_study_sessions(
        self, user_id: str, limit: int | None = None
    ) -> list[StudySession]:
        sessions = [
            decode_session(item)
            for item in self._read_list(user_id, SESSIONS_FILE, "StudySession")
        ]
        sessions.sort(key=lambda s: local_naive(s.start_time), reverse=True)
        if limit is not None:
            sessions = sessions[:limit]
        return sessions

    async def get_study_session(self, user_id: str, session_id: str) -> StudySession | None:
        for item in self._read_list(user_id, SESSIONS_FILE, "StudySession"):
            if isinstance(item, dict) and item.get("id") == session_id:
                return decode_session(item)
        return None

    async def save_study_session(self, session: StudySession) -> None:
        items = [
            item
            for item in self._read_list(session.user_id, SESSIONS_FILE, "StudySession")
            if not (isinstance(item, dict) and item.get("id") == session.id)
        ]
        items.append(encode(session))
        self._write(session.user_id, SESSIONS_FILE, items)
        logger.debug(f"Saved study session {session.id} for {session.user_id}")

    async def get_quiz_sessions(self, user_id: str) -> list[QuizSession]:
        return [
            decode_quiz_session(item)
            for item in self._read_list(user_id, QUIZZES_FILE, "QuizSession")
        ]

    async def save_quiz_session(self, user_id: str, quiz: QuizSession) -> None:
        items = [
            item
            for item in self._read_list(user_id, QUIZZES_FILE, "QuizSession")
            if not (isinstance(item, dict) and item.get("id") == quiz.id)
        ]
        items.append(encode(quiz))
        self._write(user_id, QUIZZES_FILE, items)

    async def get_reviews(self, user_id: str) -> list[Review]:
        return [decode_review(item) for item in self._read_list(user_id, REVIEWS_FILE, "Review")]

    async def get_deck_subjects(self, user_id: str) -> dict[str, str]:
        raw = self._read(user_id, DECK_SUBJECTS_FILE, "DeckSubjects")
        if raw is None:
            return {}
        if not isinstance(raw, dict) or not all(isinstance(v, str) for v in raw.values()):
            raise DeserializationError(
                "DeckSubjects", f"{DECK_SUBJECTS_FILE} must map deck ids to subject names"
            )
        return {str(k): v for k, v in raw.items()}

    # ------------------------------------------------------------------
    # AnalyticsRepository
    # ------------------------------------------------------------------

    async def get_analytics(self, user_id: str) -> StudyAnalytics | None:
        raw = self._read(user_id, ANALYTICS_FILE, "StudyAnalytics")
        if raw is None:
            return None
        return decode_analytics(raw)

    async def save_analytics(self, analytics: StudyAnalytics) -> None:
        self._write(analytics.user_id, ANALYTICS_FILE, encode(analytics))
        logger.debug(f"Saved analytics snapshot for {analytics.user_id}")
