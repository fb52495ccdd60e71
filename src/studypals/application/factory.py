"""
Analytics Service Factory
Centralizes wiring of repositories and the analytics service from config.
"""

from studypals.application.analytics.service import AnalyticsService
from studypals.application.config import AppConfig
from studypals.infrastructure.adapters.json_store import JsonFileStore


def get_store(config: AppConfig) -> JsonFileStore:
    """
    Returns the store backing both history and analytics repositories.
    """
    return JsonFileStore(data_dir=config.data_dir)


def get_analytics_service(config: AppConfig) -> AnalyticsService:
    store = get_store(config)
    return AnalyticsService(
        history_repo=store,
        analytics_repo=store,
        session_history_limit=config.session_history_limit,
    )
