"""Observable query binding on top of QueryCache."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

import structlog

from .cache import Producer, QueryCache

logger = structlog.get_logger(__name__)


class QueryStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class QueryState:
    """Snapshot handed to subscribers after every change."""
    key: Optional[str]
    status: QueryStatus
    data: Any = None
    error: Optional[BaseException] = None

    @property
    def loading(self) -> bool:
        return self.status is QueryStatus.LOADING


Listener = Callable[[QueryState], None]


class CachedQuery:
    """Expose data/loading/error for one cache key and re-run on key change.

    A key of None means an identifying parameter (such as the user id) is
    not known yet; the query stays idle until set_key provides one.
    Results of a fetch that finishes after the key has moved on are still
    written to the cache but are not published to this query's state.
    """

    def __init__(
        self,
        cache: QueryCache,
        key: Optional[str],
        producer: Producer,
        ttl: Optional[float] = None,
    ):
        self.cache = cache
        self.key = key
        self.producer = producer
        self.ttl = ttl
        self.data: Any = None
        self.error: Optional[BaseException] = None
        self.status = QueryStatus.IDLE
        self._listeners: list[Listener] = []
        self._generation = 0

    @property
    def loading(self) -> bool:
        return self.status is QueryStatus.LOADING

    @property
    def state(self) -> QueryState:
        return QueryState(key=self.key, status=self.status, data=self.data, error=self.error)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self) -> None:
        snapshot = self.state
        for listener in list(self._listeners):
            listener(snapshot)

    async def mount(self) -> QueryState:
        """Initial load: serve a fresh entry directly, otherwise fetch."""
        if self.key is None:
            return self.state

        entry = self.cache.peek(self.key)
        if entry is not None:
            self._generation += 1
            self.data = entry.value
            self.error = None
            self.status = QueryStatus.SUCCESS
            self._publish()
            return self.state

        return await self._run(force=False)

    async def refetch(self) -> QueryState:
        """Call the producer even if the cached entry is still fresh."""
        if self.key is None:
            return self.state
        return await self._run(force=True)

    async def set_key(self, key: Optional[str], producer: Optional[Producer] = None) -> QueryState:
        """Point the query at a new key and load it."""
        if producer is not None:
            self.producer = producer
        if key == self.key and self.status is not QueryStatus.IDLE:
            return self.state

        self.key = key
        self._generation += 1
        self.data = None
        self.error = None
        if key is None:
            self.status = QueryStatus.IDLE
            self._publish()
            return self.state

        return await self.mount()

    async def _run(self, force: bool) -> QueryState:
        self._generation += 1
        generation = self._generation
        key = self.key

        self.status = QueryStatus.LOADING
        self.error = None
        self._publish()

        try:
            if force:
                value = await self.cache.refresh(key, self.producer, self.ttl)
            else:
                value = await self.cache.get_or_fetch(key, self.producer, self.ttl)
        except Exception as e:
            if generation != self._generation:
                return self.state
            logger.warning("query_failed", key=key, error=str(e))
            self.error = e
            self.status = QueryStatus.ERROR
            self._publish()
            return self.state

        if generation != self._generation:
            logger.debug("query_result_superseded", key=key)
            return self.state

        self.data = value
        self.status = QueryStatus.SUCCESS
        self._publish()
        return self.state
