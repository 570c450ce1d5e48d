"""Services for the Kakeibo server."""

from .cache import QueryCache, create_cache
from .query import CachedQuery
from .backend import BackendClient
from .database import FinanceRepository
from .finance import FinanceService
from .performance import PerformanceMonitor

__all__ = [
    "QueryCache",
    "create_cache",
    "CachedQuery",
    "BackendClient",
    "FinanceRepository",
    "FinanceService",
    "PerformanceMonitor",
]
