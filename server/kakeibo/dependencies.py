"""FastAPI dependencies wiring per-app services into routes."""

import hashlib
from typing import Optional

from fastapi import Depends, Header, Request

from .config import Settings
from .errors import AuthenticationError
from .services.backend import BackendClient
from .services.cache import QueryCache
from .services.finance import FinanceService, UserSession
from .services.performance import PerformanceMonitor

# Resolved users are kept briefly so every request does not hit the auth API
USER_CACHE_TTL = 60.0


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_query_cache(request: Request) -> QueryCache:
    return request.app.state.query_cache


def get_backend(request: Request) -> BackendClient:
    return request.app.state.backend


def get_monitor(request: Request) -> PerformanceMonitor:
    return request.app.state.monitor


def get_finance_service(request: Request) -> FinanceService:
    return request.app.state.finance


def user_cache_key(token: str) -> str:
    digest = hashlib.sha256(token.encode("utf-8")).hexdigest()[:32]
    return f"user_{digest}"


def get_bearer_token(authorization: Optional[str] = Header(None)) -> str:
    """Extract the access token from an 'Authorization: Bearer ...' header."""
    if not authorization:
        raise AuthenticationError("Missing Authorization header")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Authorization header must be 'Bearer <token>'")
    return token.strip()


async def get_current_user(
    token: str = Depends(get_bearer_token),
    backend: BackendClient = Depends(get_backend),
    cache: QueryCache = Depends(get_query_cache),
) -> dict:
    """Resolve the bearer token to the signed-in user's auth record."""
    user = await cache.get_or_fetch(
        user_cache_key(token), lambda: backend.get_user(token), USER_CACHE_TTL
    )
    if not isinstance(user, dict) or not user.get("id"):
        raise AuthenticationError("Access token did not resolve to a user")
    return user


async def get_session(
    token: str = Depends(get_bearer_token),
    user: dict = Depends(get_current_user),
) -> UserSession:
    return UserSession(user_id=user["id"], token=token)
