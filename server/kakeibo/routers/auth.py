"""Sign-up, sign-in and current user endpoints."""

from fastapi import APIRouter, Depends

from ..dependencies import get_backend, get_bearer_token, get_current_user, get_query_cache, user_cache_key
from ..models import Credentials, SignUpRequest, User
from ..services.backend import BackendClient
from ..services.cache import QueryCache
from ..services.database import FinanceRepository

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup")
async def sign_up(request: SignUpRequest, backend: BackendClient = Depends(get_backend)):
    """Register a new account; a profile row is created on first sign-in."""
    result = await backend.sign_up(request.email, request.password, request.full_name)
    user = result.get("user") or result
    return {"user": {"id": user.get("id"), "email": user.get("email")}, "confirmationRequired": "access_token" not in result}


@router.post("/signin")
async def sign_in(request: Credentials, backend: BackendClient = Depends(get_backend)):
    """Exchange email/password for an access token."""
    session = await backend.sign_in(request.email, request.password)
    user = session.get("user") or {}

    if user.get("id"):
        full_name = (user.get("user_metadata") or {}).get("full_name", "")
        await FinanceRepository(backend).create_profile_if_not_exists(
            user["id"], session["access_token"], full_name
        )

    return {
        "accessToken": session.get("access_token"),
        "refreshToken": session.get("refresh_token"),
        "expiresIn": session.get("expires_in"),
        "user": {"id": user.get("id"), "email": user.get("email")},
    }


@router.post("/signout")
async def sign_out(
    token: str = Depends(get_bearer_token),
    backend: BackendClient = Depends(get_backend),
    cache: QueryCache = Depends(get_query_cache),
):
    """Revoke the session and forget the cached user."""
    await backend.sign_out(token)
    cache.invalidate(user_cache_key(token))
    return {"success": True}


@router.get("/me", response_model=User)
async def get_me(user: dict = Depends(get_current_user)):
    """The signed-in user, from the cached token lookup."""
    metadata = user.get("user_metadata") or {}
    return User(
        id=user["id"],
        email=user.get("email"),
        full_name=metadata.get("full_name"),
        created_at=user.get("created_at"),
    )
