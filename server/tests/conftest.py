"""Shared fixtures for Kakeibo tests."""

import pytest

from kakeibo.config import Settings
from kakeibo.services.cache import QueryCache


class FakeClock:
    """Controllable stand-in for time.time."""

    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CountingProducer:
    """Async producer that counts its calls and returns a fixed value."""

    def __init__(self, value=None, error: Exception = None):
        self.value = value
        self.error = error
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.value


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return QueryCache(clock=clock)


@pytest.fixture
def settings():
    return Settings(backend_url="https://backend.test", backend_anon_key="anon-key")


def transaction_row(
    id="tx-1",
    amount=1000.0,
    type="expense",
    date="2024-06-10",
    category=("cat-food", "Food", "#EF4444"),
    user_id="u1",
):
    """A transactions row as the table API returns it, with the category embedded."""
    row = {
        "id": id,
        "user_id": user_id,
        "amount": amount,
        "type": type,
        "category_id": category[0] if category else None,
        "description": f"{type} {id}",
        "date": date,
        "created_at": f"{date}T09:00:00",
        "updated_at": f"{date}T09:00:00",
        "categories": None,
    }
    if category:
        row["categories"] = {"id": category[0], "name": category[1], "color": category[2], "icon": "circle"}
    return row
