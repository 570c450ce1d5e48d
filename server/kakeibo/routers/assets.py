"""Asset endpoints (bank accounts, cash, brokerage balances)."""

from typing import Optional
from fastapi import APIRouter, Depends, Query

from ..dependencies import get_finance_service, get_session
from ..models import Asset, AssetCreate, AssetUpdate
from ..services.finance import FinanceService, UserSession

router = APIRouter(tags=["assets"])


@router.get("/assets")
async def list_assets(
    refresh: Optional[str] = Query(None),
    session: UserSession = Depends(get_session),
    finance: FinanceService = Depends(get_finance_service),
):
    assets = await finance.list_assets(session, refresh=refresh == "1")
    return {
        "assets": [asset.model_dump() for asset in assets],
        "total": sum(asset.balance for asset in assets),
    }


@router.post("/assets", response_model=Asset, status_code=201)
async def create_asset(
    request: AssetCreate,
    session: UserSession = Depends(get_session),
    finance: FinanceService = Depends(get_finance_service),
):
    return await finance.create_asset(session, request)


@router.patch("/assets/{asset_id}", response_model=Asset)
async def update_asset(
    asset_id: str,
    request: AssetUpdate,
    session: UserSession = Depends(get_session),
    finance: FinanceService = Depends(get_finance_service),
):
    return await finance.update_asset(session, asset_id, request)


@router.delete("/assets/{asset_id}", status_code=204)
async def delete_asset(
    asset_id: str,
    session: UserSession = Depends(get_session),
    finance: FinanceService = Depends(get_finance_service),
):
    await finance.delete_asset(session, asset_id)
