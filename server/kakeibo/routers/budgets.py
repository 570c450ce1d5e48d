"""Budget endpoints."""

from typing import Optional
from fastapi import APIRouter, Depends, Query

from ..dependencies import get_finance_service, get_session
from ..models import Budget, BudgetCreate
from ..services.finance import FinanceService, UserSession

router = APIRouter(tags=["budgets"])


@router.get("/budgets")
async def list_budgets(
    refresh: Optional[str] = Query(None),
    session: UserSession = Depends(get_session),
    finance: FinanceService = Depends(get_finance_service),
):
    """Budgets with spending in their current week, month or year."""
    budgets = await finance.budget_overview(session, refresh=refresh == "1")
    over = [b for b in budgets if b["status"] == "over"]

    return {
        "budgets": budgets,
        "summary": {
            "totalBudget": sum(b["budgetAmount"] for b in budgets),
            "totalSpent": sum(b["spent"] for b in budgets),
            "overBudgetCount": len(over),
        },
    }


@router.post("/budgets", response_model=Budget, status_code=201)
async def create_budget(
    request: BudgetCreate,
    session: UserSession = Depends(get_session),
    finance: FinanceService = Depends(get_finance_service),
):
    return await finance.create_budget(session, request)
