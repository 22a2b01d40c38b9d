"""Factories for the usage counter dependencies."""

from functools import lru_cache

from imagestudio.config.settings import Settings
from imagestudio.services.stats_service.stats_store import JsonFileStatsStore, StatsStore
from imagestudio.services.stats_service.usage import StoreUsageTracker


class StatsService:
    """Expose dependency providers for the counter store and tracker."""

    @staticmethod
    @lru_cache(maxsize=1)
    def get_stats_store() -> StatsStore:
        """One file-backed store per process."""
        return JsonFileStatsStore(Settings().stats_file)

    @staticmethod
    def get_usage_tracker() -> StoreUsageTracker:
        return StoreUsageTracker(StatsService.get_stats_store())
