from __future__ import annotations

from functools import lru_cache

from src.repositories.stats_repository import StatsRepository
from src.services.stats_service import StatsService


@lru_cache
def get_stats_repository() -> StatsRepository:
    return StatsRepository()


def get_stats_service() -> StatsService:
    return StatsService(repository=get_stats_repository())
