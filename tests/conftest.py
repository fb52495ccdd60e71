from datetime import timedelta

import pytest

from factories import NOW, make_session
from studypals.domain.analytics.models import QuizSession


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def reference_sessions():
    return [
        make_session(
            "s1",
            NOW - timedelta(days=3),
            60,
            cards=[("card1", True, 5000), ("card2", False, 8000)],
            style="visual",
            difficulties={"card1": 2, "card2": 4},
        ),
        make_session(
            "s2",
            NOW - timedelta(days=2),
            120,
            subject="Science",
            deck_id="deck2",
            cards=[("card3", True, 4000), ("card4", True, 6000)],
            style="visual",
            difficulties={"card3": 1, "card4": 3},
        ),
        make_session(
            "s3",
            NOW - timedelta(days=1),
            90,
            cards=[("card5", True, 3000)],
            style="reading",
            difficulties={"card5": 3},
        ),
        make_session(
            "s4",
            NOW - timedelta(hours=2),
            60,
            cards=[("card6", True, 7000)],
            style="visual",
            difficulties={"card6": 5},
        ),
    ]


@pytest.fixture
def reference_quizzes():
    return [
        QuizSession(
            id="quiz1",
            deck_id="deck1",
            deck_title="Algebra",
            card_ids=("card1", "card2", "card5"),
            start_time=NOW - timedelta(days=3),
            end_time=NOW - timedelta(days=3) + timedelta(minutes=10),
            is_completed=True,
            final_score=0.67,
        ),
        QuizSession(
            id="quiz2",
            deck_id="deck2",
            deck_title="Biology",
            card_ids=("card3", "card4"),
            start_time=NOW - timedelta(days=2),
            end_time=NOW - timedelta(days=2) + timedelta(minutes=5),
            is_completed=True,
            final_score=1.0,
        ),
    ]
