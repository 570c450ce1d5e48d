"""Dashboard and report endpoints."""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query

from ..dependencies import get_finance_service, get_session
from ..services.finance import FinanceService, UserSession
from ..services.reports import format_period

router = APIRouter(tags=["reports"])


@router.get("/dashboard")
async def get_dashboard(
    refresh: Optional[str] = Query(None),
    session: UserSession = Depends(get_session),
    finance: FinanceService = Depends(get_finance_service),
):
    """This month's totals, recent transactions, 6-month trend and top categories."""
    return await finance.dashboard(session, refresh=refresh == "1")


@router.get("/reports/monthly")
async def get_monthly_report(
    period: Optional[str] = Query(None, description="YYYY-MM, defaults to the current month"),
    refresh: Optional[str] = Query(None),
    session: UserSession = Depends(get_session),
    finance: FinanceService = Depends(get_finance_service),
):
    """Income, expenses and category breakdown for one month."""
    if period is None:
        today = finance.today()
        period = format_period(today.year, today.month)

    try:
        return await finance.monthly_report(session, period, refresh=refresh == "1")
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/reports/trend")
async def get_trend(
    months: int = Query(6, ge=1, le=24),
    refresh: Optional[str] = Query(None),
    session: UserSession = Depends(get_session),
    finance: FinanceService = Depends(get_finance_service),
):
    """Monthly income/expense totals for the last N months (6 or 12 on the dashboard)."""
    return {
        "period": f"Last {months} months",
        "months": await finance.trend(session, months, refresh=refresh == "1"),
    }
