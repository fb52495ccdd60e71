"""
JSON wire schemas for analytics records.

Pydantic models mirror the domain dataclasses with camelCase keys. They are
the only place that knows about the JSON shape; the domain stays plain.
"""

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt, StrictStr
from pydantic.alias_generators import to_camel

from studypals.domain import constants as c
from studypals.domain.analytics.models import (
    LearningPatterns,
    PerformanceTrend,
    QuizAnswer,
    QuizSession,
    Review,
    ReviewGrade,
    SessionActivity,
    StudyAnalytics,
    StudySession,
    SubjectPerformance,
    TrendDirection,
    WeekStat,
)


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class SessionActivitySchema(WireModel):
    type: StrictStr
    timestamp: datetime
    card_id: StrictStr | None = None
    was_correct: StrictBool | None = None
    response_time_ms: StrictInt | None = None
    data: dict[str, Any] = Field(default_factory=dict)

    def to_domain(self) -> SessionActivity:
        return SessionActivity(
            type=self.type,
            timestamp=self.timestamp,
            card_id=self.card_id,
            was_correct=self.was_correct,
            response_time_ms=self.response_time_ms,
            data=dict(self.data),
        )


class StudySessionSchema(WireModel):
    id: StrictStr
    user_id: StrictStr
    deck_id: StrictStr | None = None
    subject: StrictStr | None = None
    start_time: datetime
    end_time: datetime | None = None
    activities: list[SessionActivitySchema] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    def to_domain(self) -> StudySession:
        return StudySession(
            id=self.id,
            user_id=self.user_id,
            deck_id=self.deck_id,
            subject=self.subject,
            start_time=self.start_time,
            end_time=self.end_time,
            activities=tuple(a.to_domain() for a in self.activities),
            metadata=dict(self.metadata),
        )


class QuizAnswerSchema(WireModel):
    card_id: StrictStr
    selected_option_index: StrictInt
    correct_option_index: StrictInt
    is_correct: StrictBool
    answered_at: datetime
    exp_earned: StrictInt = 0

    def to_domain(self) -> QuizAnswer:
        return QuizAnswer(
            card_id=self.card_id,
            selected_option_index=self.selected_option_index,
            correct_option_index=self.correct_option_index,
            is_correct=self.is_correct,
            answered_at=self.answered_at,
            exp_earned=self.exp_earned,
        )


class QuizSessionSchema(WireModel):
    id: StrictStr
    deck_id: StrictStr
    deck_title: StrictStr
    card_ids: list[StrictStr]
    start_time: datetime
    end_time: datetime | None = None
    is_completed: StrictBool = False
    final_score: StrictFloat | None = None
    answers: list[QuizAnswerSchema] = Field(default_factory=list)
    subject: StrictStr | None = None

    def to_domain(self) -> QuizSession:
        return QuizSession(
            id=self.id,
            deck_id=self.deck_id,
            deck_title=self.deck_title,
            card_ids=tuple(self.card_ids),
            start_time=self.start_time,
            end_time=self.end_time,
            is_completed=self.is_completed,
            final_score=self.final_score,
            answers=tuple(a.to_domain() for a in self.answers),
            subject=self.subject,
        )


class ReviewSchema(WireModel):
    card_id: StrictStr
    user_id: StrictStr
    due_at: datetime
    ease: StrictFloat = 2.5
    interval: StrictInt = 1
    reps: StrictInt = 0
    last_grade: ReviewGrade | None = None
    last_reviewed: datetime | None = None

    def to_domain(self) -> Review:
        return Review(
            card_id=self.card_id,
            user_id=self.user_id,
            due_at=self.due_at,
            ease=self.ease,
            interval=self.interval,
            reps=self.reps,
            last_grade=self.last_grade,
            last_reviewed=self.last_reviewed,
        )


class WeekStatSchema(WireModel):
    week_start: datetime
    cards_studied: StrictInt
    average_accuracy: StrictFloat
    total_study_time: StrictInt = 0
    quizzes_completed: StrictInt = 0

    def to_domain(self) -> WeekStat:
        return WeekStat(
            week_start=self.week_start,
            cards_studied=self.cards_studied,
            average_accuracy=self.average_accuracy,
            total_study_time=self.total_study_time,
            quizzes_completed=self.quizzes_completed,
        )


class PerformanceTrendSchema(WireModel):
    direction: TrendDirection
    change_rate: StrictFloat
    weeks_analyzed: StrictInt
    weekly_data: list[WeekStatSchema]

    def to_domain(self) -> PerformanceTrend:
        return PerformanceTrend(
            direction=self.direction,
            change_rate=self.change_rate,
            weeks_analyzed=self.weeks_analyzed,
            weekly_data=tuple(w.to_domain() for w in self.weekly_data),
        )


class LearningPatternsSchema(WireModel):
    preferred_study_hours: dict[str, StrictInt]
    learning_style_effectiveness: dict[str, StrictFloat]
    average_session_length: StrictFloat
    preferred_cards_per_session: StrictInt
    topic_interest: dict[str, StrictFloat]
    common_mistake_patterns: list[StrictStr]

    def to_domain(self) -> LearningPatterns:
        return LearningPatterns(
            preferred_study_hours=dict(self.preferred_study_hours),
            learning_style_effectiveness=dict(self.learning_style_effectiveness),
            average_session_length=self.average_session_length,
            preferred_cards_per_session=self.preferred_cards_per_session,
            topic_interest=dict(self.topic_interest),
            common_mistake_patterns=tuple(self.common_mistake_patterns),
        )


class SubjectPerformanceSchema(WireModel):
    subject: StrictStr
    accuracy: StrictFloat
    total_cards: StrictInt
    total_quizzes: StrictInt
    study_time_minutes: StrictInt
    last_studied: datetime
    recent_scores: list[StrictFloat]
    difficulty_breakdown: dict[str, StrictInt]
    average_response_time: StrictFloat
    session_count: StrictInt = 0
    answers_given: StrictInt = 0
    correct_answers: StrictInt = 0
    timed_answers: StrictInt = 0

    def to_domain(self) -> SubjectPerformance:
        breakdown = {bucket: 0 for bucket in c.DIFFICULTY_BUCKETS}
        breakdown.update(self.difficulty_breakdown)
        return SubjectPerformance(
            subject=self.subject,
            accuracy=self.accuracy,
            total_cards=self.total_cards,
            total_quizzes=self.total_quizzes,
            study_time_minutes=self.study_time_minutes,
            last_studied=self.last_studied,
            recent_scores=tuple(self.recent_scores),
            difficulty_breakdown=breakdown,
            average_response_time=self.average_response_time,
            session_count=self.session_count,
            answers_given=self.answers_given,
            correct_answers=self.correct_answers,
            timed_answers=self.timed_answers,
        )


class StudyAnalyticsSchema(WireModel):
    user_id: StrictStr
    last_updated: datetime
    overall_accuracy: StrictFloat = Field(ge=0.0, le=1.0)
    total_study_time: StrictInt
    total_cards_studied: StrictInt
    total_quizzes_taken: StrictInt
    current_streak: StrictInt
    longest_streak: StrictInt
    total_answers_given: StrictInt = 0
    total_correct_answers: StrictInt = 0
    subject_performance: dict[str, SubjectPerformanceSchema]
    learning_patterns: LearningPatternsSchema
    recent_trend: PerformanceTrendSchema
    study_dates: list[date] = Field(default_factory=list)

    def to_domain(self) -> StudyAnalytics:
        return StudyAnalytics(
            user_id=self.user_id,
            last_updated=self.last_updated,
            overall_accuracy=self.overall_accuracy,
            total_study_time=self.total_study_time,
            total_cards_studied=self.total_cards_studied,
            total_quizzes_taken=self.total_quizzes_taken,
            current_streak=self.current_streak,
            longest_streak=self.longest_streak,
            subject_performance={
                name: perf.to_domain() for name, perf in self.subject_performance.items()
            },
            learning_patterns=self.learning_patterns.to_domain(),
            recent_trend=self.recent_trend.to_domain(),
            total_answers_given=self.total_answers_given,
            total_correct_answers=self.total_correct_answers,
            study_dates=tuple(sorted(set(self.study_dates))),
        )


class StudyHistorySchema(WireModel):
    """A user's full history bundle, as accepted by the compute endpoints."""

    user_id: StrictStr | None = None
    sessions: list[StudySessionSchema] = Field(default_factory=list)
    quiz_sessions: list[QuizSessionSchema] = Field(default_factory=list)
    reviews: list[ReviewSchema] = Field(default_factory=list)
    deck_subjects: dict[str, StrictStr] = Field(default_factory=dict)
