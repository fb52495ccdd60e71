# Domain Analytics Package
from .models import (
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
from .ports import AnalyticsRepository, StudyHistoryRepository

__all__ = [
    "SessionActivity",
    "StudySession",
    "QuizAnswer",
    "QuizSession",
    "Review",
    "ReviewGrade",
    "WeekStat",
    "TrendDirection",
    "PerformanceTrend",
    "LearningPatterns",
    "SubjectPerformance",
    "StudyAnalytics",
    "StudyHistoryRepository",
    "AnalyticsRepository",
]
