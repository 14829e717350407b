"""Service modules"""
from .activity import ActivityLog
from .indexer import IndexerClient
from .poller import PeriodicRefresher
from .portfolio import PortfolioService
from .stats import HistoryFilter, StatsAggregator, StatsCache

__all__ = [
    "ActivityLog",
    "HistoryFilter",
    "IndexerClient",
    "PeriodicRefresher",
    "PortfolioService",
    "StatsAggregator",
    "StatsCache",
]
