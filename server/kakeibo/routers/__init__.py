"""API routers for the Kakeibo server."""

from .stats import router as stats_router
from .auth import router as auth_router
from .transactions import router as transactions_router
from .categories import router as categories_router
from .budgets import router as budgets_router
from .assets import router as assets_router
from .reports import router as reports_router

__all__ = [
    "stats_router",
    "auth_router",
    "transactions_router",
    "categories_router",
    "budgets_router",
    "assets_router",
    "reports_router",
]
