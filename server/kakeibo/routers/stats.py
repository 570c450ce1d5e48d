"""Health, cache and performance endpoints."""

import platform
import sys
from fastapi import APIRouter, Depends

from .. import __version__
from ..config import Settings
from ..dependencies import get_app_settings, get_monitor, get_query_cache, get_session
from ..services.cache import QueryCache
from ..services.finance import UserSession
from ..services.performance import PerformanceMonitor

router = APIRouter(tags=["stats"])


@router.get("/health")
async def health_check(
    settings: Settings = Depends(get_app_settings),
    cache: QueryCache = Depends(get_query_cache),
):
    """Health check and status endpoint."""
    return {
        "status": "ok",
        "version": __version__,
        "backendConfigured": settings.backend_configured,
        "cacheEntries": len(cache),
        "platform": platform.system().lower(),
        "pythonVersion": sys.version,
    }


def _own_keys(cache: QueryCache, session: UserSession) -> list[str]:
    """Keys of the caller's entries; every per-user key embeds _<user_id>."""
    marker = f"_{session.user_id}"
    return sorted(key for key in cache.keys() if marker in key)


@router.get("/cache")
async def get_cache_stats(
    session: UserSession = Depends(get_session),
    cache: QueryCache = Depends(get_query_cache),
):
    """Hit/miss counters plus the caller's cached keys."""
    keys = _own_keys(cache, session)
    return {**cache.stats(), "entries": len(keys), "keys": keys}


@router.delete("/cache")
async def clear_cache(
    session: UserSession = Depends(get_session),
    cache: QueryCache = Depends(get_query_cache),
):
    """Drop every cached result belonging to the caller."""
    keys = _own_keys(cache, session)
    for key in keys:
        cache.invalidate(key)
    return {"removed": len(keys)}


@router.delete("/cache/{pattern}")
async def clear_cache_pattern(
    pattern: str,
    session: UserSession = Depends(get_session),
    cache: QueryCache = Depends(get_query_cache),
):
    """Drop the caller's cached results whose key contains pattern."""
    keys = [key for key in _own_keys(cache, session) if pattern in key]
    for key in keys:
        cache.invalidate(key)
    return {"pattern": pattern, "removed": len(keys)}


@router.get("/performance")
async def get_performance(monitor: PerformanceMonitor = Depends(get_monitor)):
    """Timing statistics for backend queries and requests."""
    return monitor.stats()
