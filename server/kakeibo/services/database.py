"""Table operations for transactions, categories, budgets, assets and profiles."""

import calendar
from typing import Optional

from .backend import BackendClient
from .performance import QUERY_PREFIX

CATEGORY_EMBED = "*,categories(id,name,color,icon)"


def month_bounds(year: int, month: int) -> tuple[str, str]:
    """First and last instant of a calendar month as ISO strings."""
    last_day = calendar.monthrange(year, month)[1]
    return (
        f"{year:04d}-{month:02d}-01T00:00:00",
        f"{year:04d}-{month:02d}-{last_day:02d}T23:59:59",
    )


class FinanceRepository:
    """Rows for one user, read and written through the backend client.

    Every call passes the user's access token so the backend only returns
    rows the user owns.
    """

    def __init__(self, backend: BackendClient):
        self.backend = backend
        self.monitor = backend.monitor

    def _timer(self, name: str):
        return self.monitor.timer(f"{QUERY_PREFIX}{name}")

    # Transactions

    async def get_transactions(
        self,
        user_id: str,
        token: str,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[dict]:
        """Newest first, with the category embedded."""
        params = {
            "select": CATEGORY_EMBED,
            "user_id": f"eq.{user_id}",
            "order": "date.desc",
        }
        if limit:
            params["limit"] = limit
            params["offset"] = offset

        with self._timer("get_transactions"):
            return await self.backend.select("transactions", params, token)

    async def get_transactions_between(self, user_id: str, token: str, start: str, end: str) -> list[dict]:
        params = [
            ("select", CATEGORY_EMBED),
            ("user_id", f"eq.{user_id}"),
            ("date", f"gte.{start}"),
            ("date", f"lte.{end}"),
            ("order", "date.asc"),
        ]
        with self._timer("get_transactions_between"):
            return await self.backend.select("transactions", params, token)

    async def get_monthly_transactions(self, user_id: str, token: str, year: int, month: int) -> list[dict]:
        start, end = month_bounds(year, month)
        return await self.get_transactions_between(user_id, token, start, end)

    async def create_transaction(self, user_id: str, token: str, transaction: dict) -> dict:
        with self._timer("create_transaction"):
            return await self.backend.insert("transactions", {**transaction, "user_id": user_id}, token)

    async def update_transaction(self, token: str, transaction_id: str, changes: dict) -> dict:
        with self._timer("update_transaction"):
            return await self.backend.update("transactions", transaction_id, changes, token)

    async def delete_transaction(self, token: str, transaction_id: str) -> None:
        with self._timer("delete_transaction"):
            await self.backend.delete("transactions", transaction_id, token)

    # Categories

    async def get_categories(self, user_id: str, token: str, type: Optional[str] = None) -> list[dict]:
        params = {"select": "*", "user_id": f"eq.{user_id}", "order": "name"}
        if type:
            params["type"] = f"eq.{type}"

        with self._timer("get_categories"):
            return await self.backend.select("categories", params, token)

    async def create_category(self, user_id: str, token: str, category: dict) -> dict:
        with self._timer("create_category"):
            return await self.backend.insert("categories", {**category, "user_id": user_id}, token)

    # Budgets

    async def get_budgets(self, user_id: str, token: str) -> list[dict]:
        params = {
            "select": CATEGORY_EMBED,
            "user_id": f"eq.{user_id}",
            "order": "created_at.desc",
        }
        with self._timer("get_budgets"):
            return await self.backend.select("budgets", params, token)

    async def create_budget(self, user_id: str, token: str, budget: dict) -> dict:
        with self._timer("create_budget"):
            return await self.backend.insert("budgets", {**budget, "user_id": user_id}, token)

    # Assets

    async def get_assets(self, user_id: str, token: str) -> list[dict]:
        params = {"select": "*", "user_id": f"eq.{user_id}", "order": "created_at.desc"}
        with self._timer("get_assets"):
            return await self.backend.select("assets", params, token)

    async def create_asset(self, user_id: str, token: str, asset: dict) -> dict:
        with self._timer("create_asset"):
            return await self.backend.insert("assets", {**asset, "user_id": user_id}, token)

    async def update_asset(self, token: str, asset_id: str, changes: dict) -> dict:
        with self._timer("update_asset"):
            return await self.backend.update("assets", asset_id, changes, token)

    async def delete_asset(self, token: str, asset_id: str) -> None:
        with self._timer("delete_asset"):
            await self.backend.delete("assets", asset_id, token)

    # Profiles

    async def create_profile_if_not_exists(self, user_id: str, token: str, full_name: str) -> bool:
        """Insert a profile row unless one exists; returns True when created."""
        with self._timer("create_profile_if_not_exists"):
            existing = await self.backend.select(
                "profiles", {"select": "id", "id": f"eq.{user_id}", "limit": 1}, token
            )
            if existing:
                return False
            await self.backend.insert("profiles", {"id": user_id, "full_name": full_name}, token)
            return True
