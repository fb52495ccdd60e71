# Application Analytics Package
from .calculator import (
    AnalyticsCalculator,
    calculate_user_analytics,
    difficulty_bucket,
    update_analytics_with_session,
)
from .service import AnalyticsService, performance_summary

__all__ = [
    "AnalyticsCalculator",
    "calculate_user_analytics",
    "update_analytics_with_session",
    "difficulty_bucket",
    "AnalyticsService",
    "performance_summary",
]
