"""Transaction endpoints."""

from typing import Optional
from fastapi import APIRouter, Depends, Query

from ..dependencies import get_finance_service, get_session
from ..models import Transaction, TransactionCreate, TransactionUpdate
from ..services.finance import FinanceService, UserSession

router = APIRouter(tags=["transactions"])


@router.get("/transactions")
async def list_transactions(
    page: int = Query(0, ge=0),
    page_size: int = Query(20, ge=1, le=100),
    refresh: Optional[str] = Query(None),
    session: UserSession = Depends(get_session),
    finance: FinanceService = Depends(get_finance_service),
):
    """One page of transactions, newest first."""
    transactions = await finance.list_transactions(session, page, page_size, refresh=refresh == "1")
    return {
        "page": page,
        "pageSize": page_size,
        "hasMore": len(transactions) == page_size,
        "transactions": [tx.model_dump() for tx in transactions],
    }


@router.post("/transactions", response_model=Transaction, status_code=201)
async def create_transaction(
    request: TransactionCreate,
    session: UserSession = Depends(get_session),
    finance: FinanceService = Depends(get_finance_service),
):
    return await finance.create_transaction(session, request)


@router.patch("/transactions/{transaction_id}", response_model=Transaction)
async def update_transaction(
    transaction_id: str,
    request: TransactionUpdate,
    session: UserSession = Depends(get_session),
    finance: FinanceService = Depends(get_finance_service),
):
    return await finance.update_transaction(session, transaction_id, request)


@router.delete("/transactions/{transaction_id}", status_code=204)
async def delete_transaction(
    transaction_id: str,
    session: UserSession = Depends(get_session),
    finance: FinanceService = Depends(get_finance_service),
):
    await finance.delete_transaction(session, transaction_id)
