"""
Analytics calculator for folding study history into a StudyAnalytics snapshot.

This is a pure computation module with no I/O. Inputs are never mutated and
every call returns a fresh snapshot.
"""

import logging
import math
from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timedelta

from studypals.domain import constants as c
from studypals.domain.analytics.models import (
    LearningPatterns,
    PerformanceTrend,
    QuizSession,
    Review,
    SessionActivity,
    StudyAnalytics,
    StudySession,
    SubjectPerformance,
    TrendDirection,
    WeekStat,
    local_naive,
)

logger = logging.getLogger(__name__)


def difficulty_bucket(rating: int) -> str:
    """Map a 1-5 card difficulty rating to its bucket label."""
    if rating <= c.EASY_MAX_RATING:
        return c.DIFFICULTY_EASY
    if rating <= c.MODERATE_MAX_RATING:
        return c.DIFFICULTY_MODERATE
    return c.DIFFICULTY_HARD


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _ratio(part: float, whole: float) -> float:
    return part / whole if whole else 0.0


@dataclass
class _AnswerTally:
    """Running counts over answer activities."""

    given: int = 0
    correct: int = 0
    timed: int = 0
    response_ms: int = 0

    def add(self, activity: SessionActivity) -> None:
        if activity.type != c.ACTIVITY_ANSWER:
            return
        if activity.was_correct is not None:
            self.given += 1
            if activity.was_correct:
                self.correct += 1
        if activity.response_time_ms is not None:
            self.timed += 1
            self.response_ms += activity.response_time_ms

    def merge(self, other: "_AnswerTally") -> None:
        self.given += other.given
        self.correct += other.correct
        self.timed += other.timed
        self.response_ms += other.response_ms

    @property
    def accuracy(self) -> float:
        return _ratio(self.correct, self.given)

    @property
    def average_response_seconds(self) -> float:
        return _ratio(self.response_ms, self.timed) / 1000.0


@dataclass
class _SessionDigest:
    """Additive contribution of one session to every total."""

    minutes: int
    card_views: int
    answers: _AnswerTally
    difficulty: Counter = field(default_factory=Counter)


class AnalyticsCalculator:
    """
    Computes StudyAnalytics snapshots from raw study history.

    Stateless and side-effect free. Both public operations accept an optional
    `now` so results are reproducible; it defaults to the local wall clock.
    """

    def calculate_user_analytics(
        self,
        user_id: str,
        sessions: Iterable[StudySession],
        quiz_sessions: Iterable[QuizSession],
        reviews: Iterable[Review],
        *,
        now: datetime | None = None,
        deck_subjects: Mapping[str, str] | None = None,
    ) -> StudyAnalytics:
        """
        Build a snapshot from a user's full history.

        Args:
            user_id: Owner of the history.
            sessions: Study sessions, any order.
            quiz_sessions: Quiz attempts, any order.
            reviews: Spaced-repetition review records (not used for scoring).
            now: Reference time for streaks, trend windows and recency checks.
            deck_subjects: Deck id to subject mapping used to attribute quizzes.

        Returns:
            A fully populated StudyAnalytics.
        """
        now = local_naive(now or datetime.now())
        sessions = list(sessions)
        quizzes = list(quiz_sessions)
        review_count = sum(1 for _ in reviews)

        digests = [self._digest(s) for s in sessions]
        overall = _AnswerTally()
        for digest in digests:
            overall.merge(digest.answers)

        total_study_time = sum(d.minutes for d in digests)
        total_cards = sum(d.card_views for d in digests)

        subjects = self._subject_performance(sessions, digests, quizzes, deck_subjects or {})
        patterns = self._learning_patterns(
            sessions, digests, subjects, total_study_time, total_cards, now
        )

        study_dates = tuple(sorted({local_naive(s.start_time).date() for s in sessions}))
        current_streak, longest_streak = self._streaks(study_dates, now.date())

        logger.debug(
            f"Computed analytics for {user_id}: {len(sessions)} sessions, "
            f"{len(quizzes)} quizzes, {review_count} reviews"
        )

        return StudyAnalytics(
            user_id=user_id,
            last_updated=now,
            overall_accuracy=overall.accuracy,
            total_study_time=total_study_time,
            total_cards_studied=total_cards,
            total_quizzes_taken=len(quizzes),
            current_streak=current_streak,
            longest_streak=longest_streak,
            subject_performance=subjects,
            learning_patterns=patterns,
            recent_trend=self._trend(sessions, quizzes, now),
            total_answers_given=overall.given,
            total_correct_answers=overall.correct,
            study_dates=study_dates,
        )

    def update_analytics_with_session(
        self,
        previous: StudyAnalytics,
        new_session: StudySession,
        *,
        now: datetime | None = None,
    ) -> StudyAnalytics:
        """
        Fold one more session into an existing snapshot.

        Totals, answer tallies, per-subject counts, the hour histogram and
        streaks match a full recompute over the old history plus
        `new_session`. Quiz-derived fields, learning-style effectiveness,
        mistake patterns and the weekly trend are carried over unchanged.
        """
        now = local_naive(now or datetime.now())
        digest = self._digest(new_session)

        answers_given = previous.total_answers_given + digest.answers.given
        correct_answers = previous.total_correct_answers + digest.answers.correct
        total_study_time = previous.total_study_time + digest.minutes
        total_cards = previous.total_cards_studied + digest.card_views

        subjects = dict(previous.subject_performance)
        if new_session.subject is not None:
            subjects[new_session.subject] = self._fold_subject(
                subjects.get(new_session.subject), new_session, digest
            )

        hours = dict(previous.learning_patterns.preferred_study_hours)
        hour = str(local_naive(new_session.start_time).hour)
        hours[hour] = hours.get(hour, 0) + 1
        session_count = sum(hours.values())

        patterns = replace(
            previous.learning_patterns,
            preferred_study_hours=hours,
            average_session_length=total_study_time / session_count,
            preferred_cards_per_session=_round_half_up(total_cards / session_count),
            topic_interest=self._topic_interest(subjects, session_count),
        )

        dates = self._known_study_dates(previous)
        dates.add(local_naive(new_session.start_time).date())
        study_dates = tuple(sorted(dates))
        current_streak, longest_streak = self._streaks(study_dates, now.date())

        return replace(
            previous,
            last_updated=now,
            overall_accuracy=_ratio(correct_answers, answers_given),
            total_study_time=total_study_time,
            total_cards_studied=total_cards,
            current_streak=current_streak,
            longest_streak=max(longest_streak, previous.longest_streak),
            subject_performance=subjects,
            learning_patterns=patterns,
            total_answers_given=answers_given,
            total_correct_answers=correct_answers,
            study_dates=study_dates,
        )

    # ------------------------------------------------------------------
    # Per-session digest
    # ------------------------------------------------------------------

    def _digest(self, session: StudySession) -> _SessionDigest:
        ratings = session.card_difficulties
        answers = _AnswerTally()
        difficulty: Counter = Counter()
        card_views = 0

        for activity in session.activities:
            if activity.type == c.ACTIVITY_CARD_VIEW:
                card_views += 1
                rating = ratings.get(activity.card_id) if activity.card_id is not None else None
                if rating is not None:
                    difficulty[difficulty_bucket(rating)] += 1
            answers.add(activity)

        return _SessionDigest(
            minutes=session.duration_minutes,
            card_views=card_views,
            answers=answers,
            difficulty=difficulty,
        )

    @staticmethod
    def _breakdown(difficulty: Counter) -> dict[str, int]:
        return {bucket: difficulty[bucket] for bucket in c.DIFFICULTY_BUCKETS}

    # ------------------------------------------------------------------
    # Subjects
    # ------------------------------------------------------------------

    def _subject_performance(
        self,
        sessions: list[StudySession],
        digests: list[_SessionDigest],
        quizzes: list[QuizSession],
        deck_subjects: Mapping[str, str],
    ) -> dict[str, SubjectPerformance]:
        grouped: dict[str, list[tuple[StudySession, _SessionDigest]]] = {}
        for session, digest in zip(sessions, digests):
            if session.subject is not None:
                grouped.setdefault(session.subject, []).append((session, digest))

        quizzes_by_subject: dict[str, list[QuizSession]] = {}
        for quiz in quizzes:
            subject = self._resolve_quiz_subject(quiz, deck_subjects, grouped)
            if subject is not None:
                quizzes_by_subject.setdefault(subject, []).append(quiz)

        names = list(grouped) + [s for s in quizzes_by_subject if s not in grouped]
        result: dict[str, SubjectPerformance] = {}

        for subject in names:
            entries = grouped.get(subject, [])
            subject_quizzes = quizzes_by_subject.get(subject, [])

            answers = _AnswerTally()
            difficulty: Counter = Counter()
            for _, digest in entries:
                answers.merge(digest.answers)
                difficulty.update(digest.difficulty)

            if entries:
                last_studied = max(
                    (s.start_time for s, _ in entries), key=local_naive
                )
            else:
                last_studied = max((q.start_time for q in subject_quizzes), key=local_naive)

            result[subject] = SubjectPerformance(
                subject=subject,
                accuracy=answers.accuracy,
                total_cards=sum(d.card_views for _, d in entries),
                total_quizzes=len(subject_quizzes),
                study_time_minutes=sum(d.minutes for _, d in entries),
                last_studied=last_studied,
                recent_scores=self._recent_scores(subject_quizzes),
                difficulty_breakdown=self._breakdown(difficulty),
                average_response_time=answers.average_response_seconds,
                session_count=len(entries),
                answers_given=answers.given,
                correct_answers=answers.correct,
                timed_answers=answers.timed,
            )

        return result

    @staticmethod
    def _resolve_quiz_subject(
        quiz: QuizSession,
        deck_subjects: Mapping[str, str],
        grouped: Mapping[str, list[tuple[StudySession, _SessionDigest]]],
    ) -> str | None:
        """Explicit subject, then the deck mapping, then any subject studied with the deck."""
        if quiz.subject is not None:
            return quiz.subject
        if quiz.deck_id in deck_subjects:
            return deck_subjects[quiz.deck_id]
        for subject, entries in grouped.items():
            if any(s.deck_id == quiz.deck_id for s, _ in entries):
                return subject
        return None

    @staticmethod
    def _recent_scores(quizzes: list[QuizSession]) -> tuple[float, ...]:
        scored = sorted(
            (q for q in quizzes if q.final_score is not None),
            key=lambda q: local_naive(q.start_time),
        )
        return tuple(float(q.final_score) for q in scored[-c.RECENT_SCORES_WINDOW :])

    def _fold_subject(
        self,
        existing: SubjectPerformance | None,
        session: StudySession,
        digest: _SessionDigest,
    ) -> SubjectPerformance:
        answers = digest.answers
        if existing is None:
            return SubjectPerformance(
                subject=session.subject,
                accuracy=answers.accuracy,
                total_cards=digest.card_views,
                total_quizzes=0,
                study_time_minutes=digest.minutes,
                last_studied=session.start_time,
                difficulty_breakdown=self._breakdown(digest.difficulty),
                average_response_time=answers.average_response_seconds,
                session_count=1,
                answers_given=answers.given,
                correct_answers=answers.correct,
                timed_answers=answers.timed,
            )

        given = existing.answers_given + answers.given
        correct = existing.correct_answers + answers.correct
        timed = existing.timed_answers + answers.timed
        response_ms = (
            existing.average_response_time * 1000.0 * existing.timed_answers
            + answers.response_ms
        )
        breakdown = {
            bucket: existing.difficulty_breakdown.get(bucket, 0) + digest.difficulty[bucket]
            for bucket in c.DIFFICULTY_BUCKETS
        }
        # Quiz-only subjects have no session start yet; sessions take over.
        last_studied = existing.last_studied
        if existing.session_count == 0 or local_naive(session.start_time) > local_naive(
            existing.last_studied
        ):
            last_studied = session.start_time

        return replace(
            existing,
            accuracy=_ratio(correct, given),
            total_cards=existing.total_cards + digest.card_views,
            study_time_minutes=existing.study_time_minutes + digest.minutes,
            last_studied=last_studied,
            difficulty_breakdown=breakdown,
            average_response_time=_ratio(response_ms, timed) / 1000.0,
            session_count=existing.session_count + 1,
            answers_given=given,
            correct_answers=correct,
            timed_answers=timed,
        )

    # ------------------------------------------------------------------
    # Learning patterns
    # ------------------------------------------------------------------

    def _learning_patterns(
        self,
        sessions: list[StudySession],
        digests: list[_SessionDigest],
        subjects: Mapping[str, SubjectPerformance],
        total_study_time: int,
        total_cards: int,
        now: datetime,
    ) -> LearningPatterns:
        hours = Counter(str(local_naive(s.start_time).hour) for s in sessions)

        styles: dict[str, _AnswerTally] = {}
        for session, digest in zip(sessions, digests):
            style = session.learning_style
            if style is not None:
                styles.setdefault(style, _AnswerTally()).merge(digest.answers)

        session_count = len(sessions)
        return LearningPatterns(
            preferred_study_hours=dict(hours),
            learning_style_effectiveness={
                style: tally.accuracy for style, tally in styles.items() if tally.given
            },
            average_session_length=_ratio(total_study_time, session_count),
            preferred_cards_per_session=(
                _round_half_up(total_cards / session_count) if session_count else 0
            ),
            topic_interest=self._topic_interest(subjects, session_count),
            common_mistake_patterns=self._mistake_patterns(sessions, now),
        )

    @staticmethod
    def _topic_interest(
        subjects: Mapping[str, SubjectPerformance], session_count: int
    ) -> dict[str, float]:
        """Share of all sessions spent on each subject."""
        return {
            name: perf.session_count / session_count
            for name, perf in subjects.items()
            if perf.session_count and session_count
        }

    def _mistake_patterns(self, sessions: list[StudySession], now: datetime) -> tuple[str, ...]:
        mistakes: list[tuple[SessionActivity, int | None]] = []
        for session in sessions:
            ratings = session.card_difficulties
            for activity in session.activities:
                if activity.type == c.ACTIVITY_ANSWER and activity.was_correct is False:
                    rating = ratings.get(activity.card_id) if activity.card_id is not None else None
                    mistakes.append((activity, rating))

        if not mistakes:
            return ()

        patterns: list[str] = []
        total = len(mistakes)

        per_card = Counter(a.card_id for a, _ in mistakes if a.card_id is not None)
        repeated = sum(1 for count in per_card.values() if count >= c.REPEATED_MISTAKE_MIN)
        if repeated:
            patterns.append(f"Repeated errors on {repeated} cards")

        cutoff = now - timedelta(days=c.RECENT_MISTAKE_DAYS)
        recent = sum(1 for a, _ in mistakes if local_naive(a.timestamp) > cutoff)
        if recent > total * c.RECENT_MISTAKE_SHARE:
            patterns.append("High error rate in recent sessions")

        slow = sum(
            1
            for a, _ in mistakes
            if a.response_time_ms is not None and a.response_time_ms > c.SLOW_RESPONSE_MS
        )
        if slow > total * c.SLOW_MISTAKE_SHARE:
            patterns.append("Slower response times on incorrect answers")

        rated = [r for _, r in mistakes if r is not None]
        if len(rated) >= c.HARD_MISTAKE_MIN:
            hard = sum(1 for r in rated if difficulty_bucket(r) == c.DIFFICULTY_HARD)
            if hard > len(rated) * c.HARD_MISTAKE_SHARE:
                patterns.append("Errors concentrated on hard cards")

        return tuple(patterns)

    # ------------------------------------------------------------------
    # Streaks
    # ------------------------------------------------------------------

    @staticmethod
    def _streaks(study_dates: Sequence[date], today: date) -> tuple[int, int]:
        """
        Compute (current, longest) streaks from distinct study dates.

        The current streak is the run ending today, or ending yesterday when
        nothing has been studied yet today.
        """
        if not study_dates:
            return 0, 0

        days = set(study_dates)
        one_day = timedelta(days=1)

        longest = run = 0
        previous: date | None = None
        for day in sorted(days):
            run = run + 1 if previous is not None and day - previous == one_day else 1
            longest = max(longest, run)
            previous = day

        anchor = today if today in days else today - one_day
        current = 0
        while anchor in days:
            current += 1
            anchor -= one_day

        return current, longest

    @staticmethod
    def _known_study_dates(snapshot: StudyAnalytics) -> set[date]:
        """
        Study dates recorded in a snapshot.

        Snapshots stored without dates are seeded with the current streak,
        assumed to end on the day the snapshot was taken.
        """
        if snapshot.study_dates:
            return set(snapshot.study_dates)
        anchor = local_naive(snapshot.last_updated).date()
        return {anchor - timedelta(days=i) for i in range(snapshot.current_streak)}

    # ------------------------------------------------------------------
    # Trend
    # ------------------------------------------------------------------

    def _trend(
        self, sessions: list[StudySession], quizzes: list[QuizSession], now: datetime
    ) -> PerformanceTrend:
        weeks = c.WEEKS_ANALYZED
        this_week = datetime.combine(now.date() - timedelta(days=now.weekday()), time.min)
        first_week = this_week - timedelta(weeks=weeks - 1)
        window_end = this_week + timedelta(weeks=1)

        def week_index(moment: datetime) -> int | None:
            moment = local_naive(moment)
            if moment < first_week or moment >= window_end:
                return None
            return (moment - first_week).days // 7

        cards = [0] * weeks
        minutes = [0] * weeks
        completed = [0] * weeks
        answers = [_AnswerTally() for _ in range(weeks)]

        for session in sessions:
            idx = week_index(session.start_time)
            if idx is not None:
                minutes[idx] += session.duration_minutes
            for activity in session.activities:
                idx = week_index(activity.timestamp)
                if idx is None:
                    continue
                if activity.type == c.ACTIVITY_CARD_VIEW:
                    cards[idx] += 1
                answers[idx].add(activity)

        for quiz in quizzes:
            idx = week_index(quiz.start_time)
            if idx is not None and quiz.is_completed:
                completed[idx] += 1

        weekly = tuple(
            WeekStat(
                week_start=first_week + timedelta(weeks=i),
                cards_studied=cards[i],
                average_accuracy=answers[i].accuracy,
                total_study_time=minutes[i],
                quizzes_completed=completed[i],
            )
            for i in range(weeks)
        )

        direction = TrendDirection.STABLE
        change_rate = 0.0
        accuracies = [tally.accuracy for tally in answers if tally.given]
        if len(accuracies) >= 2:
            delta = accuracies[-1] - accuracies[0]
            change_rate = delta * 100.0 / (weeks - 1)
            if delta > c.TREND_THRESHOLD:
                direction = TrendDirection.IMPROVING
            elif delta < -c.TREND_THRESHOLD:
                direction = TrendDirection.DECLINING

        return PerformanceTrend(
            direction=direction,
            change_rate=change_rate,
            weeks_analyzed=weeks,
            weekly_data=weekly,
        )


_default_calculator = AnalyticsCalculator()


def calculate_user_analytics(
    user_id: str,
    sessions: Iterable[StudySession],
    quiz_sessions: Iterable[QuizSession],
    reviews: Iterable[Review],
    *,
    now: datetime | None = None,
    deck_subjects: Mapping[str, str] | None = None,
) -> StudyAnalytics:
    """Module-level shortcut for AnalyticsCalculator.calculate_user_analytics."""
    return _default_calculator.calculate_user_analytics(
        user_id, sessions, quiz_sessions, reviews, now=now, deck_subjects=deck_subjects
    )


def update_analytics_with_session(
    previous: StudyAnalytics, new_session: StudySession, *, now: datetime | None = None
) -> StudyAnalytics:
    """Module-level shortcut for AnalyticsCalculator.update_analytics_with_session."""
    return _default_calculator.update_analytics_with_session(previous, new_session, now=now)
