"""Folding a session into a snapshot must agree with recomputing from scratch."""

from dataclasses import replace
from datetime import timedelta

import pytest

from factories import NOW, USER, make_session
from studypals.application.analytics.calculator import (
    AnalyticsCalculator,
    update_analytics_with_session,
)
from studypals.domain.analytics.models import QuizSession


@pytest.fixture
def calculator():
    return AnalyticsCalculator()


@pytest.fixture
def before_and_after(calculator, reference_sessions, reference_quizzes):
    earlier, latest = reference_sessions[:-1], reference_sessions[-1]
    previous = calculator.calculate_user_analytics(
        USER, earlier, reference_quizzes, [], now=NOW
    )
    folded = calculator.update_analytics_with_session(previous, latest, now=NOW)
    full = calculator.calculate_user_analytics(
        USER, reference_sessions, reference_quizzes, [], now=NOW
    )
    return previous, folded, full


def test_totals_match_full_recompute(before_and_after):
    _, folded, full = before_and_after
    assert folded.overall_accuracy == pytest.approx(full.overall_accuracy)
    assert folded.total_study_time == full.total_study_time
    assert folded.total_cards_studied == full.total_cards_studied
    assert folded.total_answers_given == full.total_answers_given
    assert folded.total_correct_answers == full.total_correct_answers


def test_streaks_match_full_recompute(before_and_after):
    previous, folded, full = before_and_after
    assert previous.current_streak == 3
    assert folded.current_streak == full.current_streak == 4
    assert folded.longest_streak == full.longest_streak
    assert folded.study_dates == full.study_dates


def test_subject_rollup_matches_full_recompute(before_and_after):
    _, folded, full = before_and_after
    for name, expected in full.subject_performance.items():
        got = folded.subject_performance[name]
        assert got.accuracy == pytest.approx(expected.accuracy)
        assert got.total_cards == expected.total_cards
        assert got.study_time_minutes == expected.study_time_minutes
        assert got.difficulty_breakdown == expected.difficulty_breakdown
        assert got.session_count == expected.session_count
        assert got.last_studied == expected.last_studied
        assert got.average_response_time == pytest.approx(expected.average_response_time)


def test_learning_patterns_match_full_recompute(before_and_after):
    _, folded, full = before_and_after
    got, expected = folded.learning_patterns, full.learning_patterns
    assert got.preferred_study_hours == expected.preferred_study_hours
    assert got.average_session_length == pytest.approx(expected.average_session_length)
    assert got.preferred_cards_per_session == expected.preferred_cards_per_session
    assert got.topic_interest == pytest.approx(expected.topic_interest)


def test_quiz_and_trend_fields_carried_over(before_and_after):
    previous, folded, _ = before_and_after
    assert folded.total_quizzes_taken == previous.total_quizzes_taken
    assert folded.recent_trend == previous.recent_trend
    assert (
        folded.learning_patterns.learning_style_effectiveness
        == previous.learning_patterns.learning_style_effectiveness
    )
    assert (
        folded.learning_patterns.common_mistake_patterns
        == previous.learning_patterns.common_mistake_patterns
    )
    assert folded.subject_performance["Math"].recent_scores == (0.67,)


def test_previous_snapshot_not_modified(before_and_after):
    previous, folded, _ = before_and_after
    assert previous.total_study_time == 270
    assert previous.subject_performance["Math"].session_count == 2
    assert folded is not previous


def test_new_subject_is_added(calculator, reference_sessions):
    previous = calculator.calculate_user_analytics(USER, reference_sessions, [], [], now=NOW)
    art = make_session(
        "art",
        NOW - timedelta(minutes=40),
        30,
        subject="Art",
        deck_id="deck3",
        cards=[("a1", True, 2000), ("a2", False, 4000)],
        difficulties={"a1": 1},
    )
    folded = update_analytics_with_session(previous, art, now=NOW)

    perf = folded.subject_performance["Art"]
    assert perf.total_cards == 2
    assert perf.accuracy == 0.5
    assert perf.study_time_minutes == 30
    assert perf.total_quizzes == 0
    assert perf.difficulty_breakdown == {"easy": 1, "moderate": 0, "hard": 0}
    assert perf.average_response_time == pytest.approx(3.0)
    assert folded.learning_patterns.topic_interest["Art"] == pytest.approx(0.2)
    assert sum(folded.learning_patterns.topic_interest.values()) == pytest.approx(1.0)


def test_session_without_subject_only_touches_totals(calculator, reference_sessions):
    previous = calculator.calculate_user_analytics(USER, reference_sessions, [], [], now=NOW)
    loose = make_session(
        "loose", NOW - timedelta(minutes=20), 15, subject=None, cards=[("x", True, 1000)]
    )
    folded = calculator.update_analytics_with_session(previous, loose, now=NOW)
    assert folded.subject_performance == previous.subject_performance
    assert folded.total_cards_studied == previous.total_cards_studied + 1
    assert folded.total_study_time == previous.total_study_time + 15


def test_snapshot_without_study_dates_is_seeded_from_streak(calculator, reference_sessions):
    earlier = reference_sessions[:-1]
    previous = calculator.calculate_user_analytics(
        USER, earlier, [], [], now=NOW - timedelta(days=1)
    )
    legacy = replace(previous, study_dates=())
    assert legacy.current_streak == 3

    folded = calculator.update_analytics_with_session(legacy, reference_sessions[-1], now=NOW)
    assert folded.current_streak == 4
    assert folded.longest_streak == 4
    assert len(folded.study_dates) == 4


def test_longest_streak_never_shrinks(calculator, reference_sessions):
    previous = calculator.calculate_user_analytics(USER, reference_sessions, [], [], now=NOW)
    legacy = replace(previous, study_dates=(), current_streak=0, longest_streak=12)
    later = make_session("later", NOW + timedelta(days=5), 30)
    folded = calculator.update_analytics_with_session(
        legacy, later, now=NOW + timedelta(days=5, hours=1)
    )
    assert folded.current_streak == 1
    assert folded.longest_streak == 12


def test_quiz_only_subject_takes_session_start_as_last_studied(calculator):
    quiz = QuizSession(
        id="art-quiz",
        deck_id="deck3",
        deck_title="Colour theory",
        card_ids=("a1",),
        start_time=NOW - timedelta(hours=1),
        is_completed=True,
        final_score=1.0,
        subject="Art",
    )
    previous = calculator.calculate_user_analytics(USER, [], [quiz], [], now=NOW)
    assert previous.subject_performance["Art"].session_count == 0

    art = make_session(
        "art",
        NOW - timedelta(days=2),
        30,
        subject="Art",
        deck_id="deck3",
        cards=[("a1", True, 2000)],
    )
    folded = calculator.update_analytics_with_session(previous, art, now=NOW)
    full = calculator.calculate_user_analytics(USER, [art], [quiz], [], now=NOW)

    assert folded.subject_performance["Art"].last_studied == NOW - timedelta(days=2)
    assert (
        folded.subject_performance["Art"].last_studied
        == full.subject_performance["Art"].last_studied
    )
    assert folded.subject_performance["Art"].total_quizzes == 1
