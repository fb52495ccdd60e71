import json
from datetime import date, datetime, timedelta, timezone

import pytest

from factories import NOW, USER, make_session
from studypals.application.analytics.calculator import AnalyticsCalculator
from studypals.domain.analytics.models import QuizSession, Review, ReviewGrade, TrendDirection
from studypals.domain.errors import DeserializationError
from studypals.infrastructure.serialization import (
    decode_analytics,
    decode_history,
    decode_quiz_session,
    decode_review,
    decode_session,
    dumps,
    encode,
    loads,
)


@pytest.fixture
def snapshot(reference_sessions, reference_quizzes):
    return AnalyticsCalculator().calculate_user_analytics(
        USER, reference_sessions, reference_quizzes, [], now=NOW
    )


# --- Encoding ---


def test_encode_uses_camel_case_keys(snapshot):
    payload = encode(snapshot)
    assert payload["userId"] == USER
    assert payload["overallAccuracy"] == pytest.approx(5 / 6)
    assert payload["totalStudyTime"] == 330
    assert payload["lastUpdated"] == "2026-10-22T18:00:00"
    assert payload["studyDates"] == ["2026-10-19", "2026-10-20", "2026-10-21", "2026-10-22"]

    math = payload["subjectPerformance"]["Math"]
    assert math["studyTimeMinutes"] == 210
    assert math["difficultyBreakdown"] == {"easy": 1, "moderate": 1, "hard": 2}
    assert math["recentScores"] == [0.67]

    patterns = payload["learningPatterns"]
    assert patterns["preferredStudyHours"] == {"18": 3, "16": 1}
    assert patterns["commonMistakePatterns"] == ["High error rate in recent sessions"]

    trend = payload["recentTrend"]
    assert trend["direction"] == "stable"
    assert trend["weeklyData"][-1]["weekStart"] == "2026-10-19T00:00:00"


def _history(name, sessions, quizzes):
    utc = timezone.utc
    if name == "reference":
        return dict(sessions=sessions, quizzes=quizzes)
    if name == "empty":
        return dict(sessions=[], quizzes=[])
    if name == "aware":
        aware = [
            make_session(
                "u1", datetime(2026, 10, 20, 7, 30, tzinfo=utc), 45, cards=[("c1", True, 900)]
            ),
            make_session(
                "u2",
                datetime(2026, 10, 22, 10, 15, tzinfo=timezone(timedelta(hours=-5))),
                20,
                subject="Science",
                cards=[("c2", False, 12000)],
            ),
        ]
        return dict(sessions=aware, quizzes=[])
    if name == "quiz_only_subject":
        quiz = QuizSession(
            id="hist-quiz",
            deck_id="deck9",
            deck_title="Dates",
            card_ids=("h1", "h2"),
            start_time=NOW - timedelta(hours=3),
            is_completed=True,
            final_score=0.5,
        )
        return dict(sessions=sessions, quizzes=[quiz], deck_subjects={"deck9": "History"})
    if name == "running_session":
        running = make_session(
            "open", NOW - timedelta(minutes=10), None, cards=[("c9", True, 1200)]
        )
        return dict(sessions=[*sessions, running], quizzes=quizzes)
    raise ValueError(name)


@pytest.mark.parametrize(
    "history", ["reference", "empty", "aware", "quiz_only_subject", "running_session"]
)
def test_snapshot_survives_json_text(history, reference_sessions, reference_quizzes):
    case = _history(history, reference_sessions, reference_quizzes)
    snapshot = AnalyticsCalculator().calculate_user_analytics(
        USER,
        case["sessions"],
        case["quizzes"],
        [],
        now=NOW,
        deck_subjects=case.get("deck_subjects"),
    )
    assert decode_analytics(json.loads(dumps(snapshot))) == snapshot


def test_session_survives_encoding(reference_sessions):
    session = reference_sessions[0]
    payload = encode(session)
    assert payload["metadata"]["cardDifficulties"] == {"card1": 2, "card2": 4}
    assert payload["activities"][1]["wasCorrect"] is True
    assert payload["activities"][1]["responseTimeMs"] == 5000
    assert decode_session(payload) == session


def test_encode_rejects_unknown_types():
    with pytest.raises(TypeError):
        encode(object())


# --- Decoding defaults ---


def test_analytics_defaults_for_optional_fields(snapshot):
    payload = encode(snapshot)
    for key in ("totalAnswersGiven", "totalCorrectAnswers", "studyDates"):
        del payload[key]
    for perf in payload["subjectPerformance"].values():
        for key in ("sessionCount", "answersGiven", "correctAnswers", "timedAnswers"):
            del perf[key]
        perf["difficultyBreakdown"] = {"hard": 3}

    decoded = decode_analytics(payload)

    assert decoded.total_answers_given == 0
    assert decoded.total_correct_answers == 0
    assert decoded.study_dates == ()
    math = decoded.subject_performance["Math"]
    assert math.session_count == 0
    assert math.difficulty_breakdown == {"easy": 0, "moderate": 0, "hard": 3}
    assert decoded.recent_trend.direction is TrendDirection.STABLE


def test_snake_case_keys_are_accepted():
    session = decode_session(
        {"id": "s", "user_id": "u", "start_time": "2026-10-01T09:00:00"}
    )
    assert session.user_id == "u"
    assert session.activities == ()
    assert session.metadata == {}
    assert session.end_time is None


def test_quiz_session_defaults():
    quiz = decode_quiz_session(
        {
            "id": "q",
            "deckId": "d",
            "deckTitle": "Deck",
            "cardIds": ["c1"],
            "startTime": "2026-10-01T09:00:00",
            "answers": [
                {
                    "cardId": "c1",
                    "selectedOptionIndex": 2,
                    "correctOptionIndex": 2,
                    "isCorrect": True,
                    "answeredAt": "2026-10-01T09:01:00",
                }
            ],
        }
    )
    assert quiz.is_completed is False
    assert quiz.final_score is None
    assert quiz.subject is None
    assert quiz.card_ids == ("c1",)
    assert quiz.answers[0].exp_earned == 0
    assert quiz.current_score == 1.0


def test_review_decoding():
    review = decode_review(
        {"cardId": "c1", "userId": "u", "dueAt": "2026-10-05T00:00:00", "lastGrade": "good"}
    )
    assert review == Review(
        card_id="c1",
        user_id="u",
        due_at=datetime(2026, 10, 5),
        last_grade=ReviewGrade.GOOD,
    )
    assert encode(review)["lastGrade"] == "good"


def test_duplicate_study_dates_are_collapsed(snapshot):
    payload = encode(snapshot)
    payload["studyDates"] = ["2026-10-20", "2026-10-19", "2026-10-20"]
    assert decode_analytics(payload).study_dates == (date(2026, 10, 19), date(2026, 10, 20))


def test_history_bundle():
    bundle = decode_history(
        {
            "userId": "u",
            "sessions": [{"id": "s", "userId": "u", "startTime": "2026-10-01T09:00:00"}],
            "deckSubjects": {"deck1": "Math"},
        }
    )
    assert bundle.user_id == "u"
    assert [s.to_domain().id for s in bundle.sessions] == ["s"]
    assert bundle.quiz_sessions == []
    assert bundle.deck_subjects == {"deck1": "Math"}


# --- Failures ---


def test_missing_required_field_raises(snapshot):
    payload = encode(snapshot)
    del payload["userId"]
    with pytest.raises(DeserializationError) as exc_info:
        decode_analytics(payload)
    assert exc_info.value.record == "StudyAnalytics"
    assert "userId" in exc_info.value.detail


def test_wrong_shape_raises():
    with pytest.raises(DeserializationError, match="StudySession"):
        decode_session({"id": "s", "userId": "u", "startTime": "not a date"})


@pytest.mark.parametrize(
    "field, value",
    [("wasCorrect", "yes"), ("wasCorrect", 1), ("responseTimeMs", "5000"), ("cardId", 7)],
)
def test_answer_activity_scalars_are_not_coerced(reference_sessions, field, value):
    payload = encode(reference_sessions[0])
    payload["activities"][1][field] = value
    with pytest.raises(DeserializationError, match="StudySession"):
        decode_session(payload)


@pytest.mark.parametrize(
    "field, value",
    [("totalStudyTime", "330"), ("currentStreak", 4.0), ("overallAccuracy", "0.8"), ("userId", 1)],
)
def test_analytics_scalars_are_not_coerced(snapshot, field, value):
    payload = encode(snapshot)
    payload[field] = value
    with pytest.raises(DeserializationError, match="StudyAnalytics"):
        decode_analytics(payload)


def test_quiz_flags_are_not_coerced():
    with pytest.raises(DeserializationError, match="QuizSession"):
        decode_quiz_session(
            {
                "id": "q",
                "deckId": "d",
                "deckTitle": "Deck",
                "cardIds": ["c1"],
                "startTime": "2026-10-01T09:00:00",
                "isCompleted": "true",
            }
        )


def test_integer_scores_are_accepted_for_float_fields(snapshot):
    payload = encode(snapshot)
    payload["overallAccuracy"] = 1
    assert decode_analytics(payload).overall_accuracy == 1.0


def test_out_of_range_accuracy_raises(snapshot):
    payload = encode(snapshot)
    payload["overallAccuracy"] = 1.5
    with pytest.raises(DeserializationError):
        decode_analytics(payload)


def test_non_object_payload_raises():
    with pytest.raises(DeserializationError, match="expected an object"):
        decode_analytics(["not", "an", "object"])


def test_loads_reports_bad_json():
    with pytest.raises(DeserializationError, match="invalid JSON"):
        loads("{broken", "StudyAnalytics")
    assert loads('{"a": 1}', "Anything") == {"a": 1}
