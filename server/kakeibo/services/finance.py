"""Cached reads and invalidating writes over the finance tables.

Cache keys follow ``<resource>_<user_id>[_<params>]``. Monthly report keys
are ``reports_transactions_<user_id>_...`` so invalidating the pattern
``transactions_<user_id>`` after a write clears both the paged lists and
every report built from that user's transactions.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Awaitable, Callable, Optional, Type, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from ..config import Settings
from ..models import (
    Asset,
    AssetCreate,
    AssetUpdate,
    Budget,
    BudgetCreate,
    Category,
    CategoryCreate,
    Transaction,
    TransactionCreate,
    TransactionUpdate,
)
from . import reports
from .cache import QueryCache
from .database import FinanceRepository

logger = structlog.get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


@dataclass(frozen=True)
class UserSession:
    """Authenticated caller: whose rows, and the token the backend checks."""
    user_id: str
    token: str


def validate_rows(rows: Any, model: Type[M], resource: str) -> list[M]:
    """Keep rows that parse as model; drop error payloads and malformed rows."""
    if not isinstance(rows, list):
        logger.warning("unexpected_payload", resource=resource, payload_type=type(rows).__name__)
        return []

    valid = []
    for row in rows:
        if not isinstance(row, dict) or "error" in row:
            continue
        try:
            valid.append(model.model_validate(row))
        except ValidationError:
            continue

    if len(valid) != len(rows):
        logger.warning(
            "invalid_rows_filtered", resource=resource, dropped=len(rows) - len(valid), total=len(rows)
        )
    return valid


class FinanceService:
    """Transactions, categories, budgets, assets and reports for one app instance."""

    def __init__(
        self,
        repository: FinanceRepository,
        cache: QueryCache,
        settings: Settings,
        today: Callable[[], date] = date.today,
    ):
        self.repository = repository
        self.cache = cache
        self.settings = settings
        self.today = today

    async def _cached(
        self,
        key: str,
        producer: Callable[[], Awaitable[Any]],
        ttl: float,
        refresh: bool = False,
    ) -> Any:
        if refresh:
            return await self.cache.refresh(key, producer, ttl)
        return await self.cache.get_or_fetch(key, producer, ttl)

    def _invalidate_transactions(self, session: UserSession) -> None:
        self.cache.invalidate_by_pattern(f"transactions_{session.user_id}")

    # Transactions

    async def list_transactions(
        self,
        session: UserSession,
        page: int = 0,
        page_size: int = 20,
        refresh: bool = False,
    ) -> list[Transaction]:
        key = f"transactions_{session.user_id}_{page}_{page_size}"

        async def fetch():
            return await self.repository.get_transactions(
                session.user_id, session.token, limit=page_size, offset=page * page_size
            )

        rows = await self._cached(key, fetch, self.settings.transactions_cache_ttl, refresh)
        return validate_rows(rows, Transaction, "transactions")

    async def create_transaction(self, session: UserSession, data: TransactionCreate) -> Transaction:
        row = await self.repository.create_transaction(session.user_id, session.token, data.model_dump())
        self._invalidate_transactions(session)
        logger.info("transaction_created", user_id=session.user_id, type=data.type)
        return Transaction.model_validate(row)

    async def update_transaction(
        self, session: UserSession, transaction_id: str, data: TransactionUpdate
    ) -> Transaction:
        row = await self.repository.update_transaction(
            session.token, transaction_id, data.model_dump(exclude_none=True)
        )
        self._invalidate_transactions(session)
        return Transaction.model_validate(row)

    async def delete_transaction(self, session: UserSession, transaction_id: str) -> None:
        await self.repository.delete_transaction(session.token, transaction_id)
        self._invalidate_transactions(session)

    # Categories

    async def list_categories(
        self,
        session: UserSession,
        type: Optional[str] = None,
        refresh: bool = False,
    ) -> list[Category]:
        key = f"categories_{session.user_id}_{type or 'all'}"

        async def fetch():
            return await self.repository.get_categories(session.user_id, session.token, type)

        rows = await self._cached(key, fetch, self.settings.categories_cache_ttl, refresh)
        return validate_rows(rows, Category, "categories")

    async def create_category(self, session: UserSession, data: CategoryCreate) -> Category:
        row = await self.repository.create_category(session.user_id, session.token, data.model_dump())
        self.cache.invalidate_by_pattern(f"categories_{session.user_id}")
        # Budgets embed their category
        self.cache.invalidate_by_pattern(f"budgets_{session.user_id}")
        return Category.model_validate(row)

    # Budgets

    async def list_budgets(self, session: UserSession, refresh: bool = False) -> list[Budget]:
        async def fetch():
            return await self.repository.get_budgets(session.user_id, session.token)

        rows = await self._cached(
            f"budgets_{session.user_id}", fetch, self.settings.budgets_cache_ttl, refresh
        )
        return validate_rows(rows, Budget, "budgets")

    async def create_budget(self, session: UserSession, data: BudgetCreate) -> Budget:
        row = await self.repository.create_budget(session.user_id, session.token, data.model_dump())
        self.cache.invalidate_by_pattern(f"budgets_{session.user_id}")
        return Budget.model_validate(row)

    async def budget_overview(self, session: UserSession, refresh: bool = False) -> list[dict]:
        """Budgets with spending in their current week, month or year, and over/warning/ok status."""
        today = self.today()
        budgets = await self.list_budgets(session, refresh)

        periods = {budget.period for budget in budgets}
        if periods <= {"monthly"}:
            rows = await self.monthly_transactions(session, today.year, today.month, refresh)
        else:
            windows = [reports.budget_window(period, today) for period in periods]
            start = min(window[0] for window in windows)
            end = max(window[1] for window in windows)
            rows = await self.transactions_between(session, start, end, refresh)
        return reports.build_budget_overview(budgets, rows, today)

    # Assets

    async def list_assets(self, session: UserSession, refresh: bool = False) -> list[Asset]:
        async def fetch():
            return await self.repository.get_assets(session.user_id, session.token)

        rows = await self._cached(
            f"assets_{session.user_id}", fetch, self.settings.assets_cache_ttl, refresh
        )
        return validate_rows(rows, Asset, "assets")

    async def create_asset(self, session: UserSession, data: AssetCreate) -> Asset:
        row = await self.repository.create_asset(session.user_id, session.token, data.model_dump())
        self.cache.invalidate_by_pattern(f"assets_{session.user_id}")
        return Asset.model_validate(row)

    async def update_asset(self, session: UserSession, asset_id: str, data: AssetUpdate) -> Asset:
        row = await self.repository.update_asset(session.token, asset_id, data.model_dump(exclude_none=True))
        self.cache.invalidate_by_pattern(f"assets_{session.user_id}")
        return Asset.model_validate(row)

    async def delete_asset(self, session: UserSession, asset_id: str) -> None:
        await self.repository.delete_asset(session.token, asset_id)
        self.cache.invalidate_by_pattern(f"assets_{session.user_id}")

    # Reports

    async def monthly_transactions(
        self, session: UserSession, year: int, month: int, refresh: bool = False
    ) -> list[Transaction]:
        period = reports.format_period(year, month)
        key = f"reports_transactions_{session.user_id}_{period}"

        async def fetch():
            return await self.repository.get_monthly_transactions(session.user_id, session.token, year, month)

        rows = await self._cached(key, fetch, self.settings.reports_cache_ttl, refresh)
        return validate_rows(rows, Transaction, "transactions")

    async def transactions_between(
        self, session: UserSession, start: date, end: date, refresh: bool = False
    ) -> list[Transaction]:
        """Transactions dated from start to end inclusive."""
        key = f"reports_transactions_{session.user_id}_{start.isoformat()}_{end.isoformat()}"

        async def fetch():
            return await self.repository.get_transactions_between(
                session.user_id, session.token, f"{start.isoformat()}T00:00:00", f"{end.isoformat()}T23:59:59"
            )

        rows = await self._cached(key, fetch, self.settings.reports_cache_ttl, refresh)
        return validate_rows(rows, Transaction, "transactions")

    async def monthly_report(self, session: UserSession, period: str, refresh: bool = False) -> dict:
        year, month = reports.parse_period(period)
        previous_year, previous_month = reports.shift_month(year, month, -1)

        current = await self.monthly_transactions(session, year, month, refresh)
        previous = await self.monthly_transactions(session, previous_year, previous_month, refresh)
        return reports.build_monthly_report(period, current, previous)

    async def trend_transactions(self, session: UserSession, months: int, refresh: bool = False) -> list[Transaction]:
        today = self.today()
        start, end = reports.trend_window(today, months)
        key = f"reports_transactions_{session.user_id}_trend_{months}_{reports.format_period(today.year, today.month)}"

        async def fetch():
            return await self.repository.get_transactions_between(session.user_id, session.token, start, end)

        rows = await self._cached(key, fetch, self.settings.reports_cache_ttl, refresh)
        return validate_rows(rows, Transaction, "transactions")

    async def trend(self, session: UserSession, months: int = 6, refresh: bool = False) -> list[dict]:
        rows = await self.trend_transactions(session, months, refresh)
        return reports.monthly_trend(rows, months, self.today())

    async def dashboard(self, session: UserSession, months: int = 6, refresh: bool = False) -> dict:
        recent = await self.list_transactions(session, page=0, page_size=10, refresh=refresh)
        trend_rows = await self.trend_transactions(session, months, refresh)
        assets = await self.list_assets(session, refresh)
        return reports.build_dashboard(recent, trend_rows, assets, self.today(), months=months)
