"""Category endpoints."""

from typing import Literal, Optional
from fastapi import APIRouter, Depends, Query

from ..dependencies import get_finance_service, get_session
from ..models import Category, CategoryCreate
from ..services.finance import FinanceService, UserSession

router = APIRouter(tags=["categories"])


@router.get("/categories", response_model=list[Category])
async def list_categories(
    type: Optional[Literal["income", "expense"]] = Query(None),
    refresh: Optional[str] = Query(None),
    session: UserSession = Depends(get_session),
    finance: FinanceService = Depends(get_finance_service),
):
    """Categories ordered by name, optionally only income or expense ones."""
    return await finance.list_categories(session, type, refresh=refresh == "1")


@router.post("/categories", response_model=Category, status_code=201)
async def create_category(
    request: CategoryCreate,
    session: UserSession = Depends(get_session),
    finance: FinanceService = Depends(get_finance_service),
):
    return await finance.create_category(session, request)
