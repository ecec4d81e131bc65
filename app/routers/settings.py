"""
Settings router — baseline balance and balance summary.

  GET /settings   — Current baseline
  PUT /settings   — Explicitly set the baseline
  GET /balance    — Balance as of a date plus the projected balance
"""

from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import require_session
from app.schemas.settings import (
    BalanceSummaryResponse,
    SettingsResponse,
    SettingsUpdateRequest,
)
from app.services import balance_service, settings_service

router = APIRouter(dependencies=[Depends(require_session)])


@router.get(
    "/settings",
    response_model=SettingsResponse,
    summary="Get the ledger settings",
)
async def get_settings(db: AsyncSession = Depends(get_db)):
    return await settings_service.get_or_create_settings(db)


@router.put(
    "/settings",
    response_model=SettingsResponse,
    summary="Set the baseline balance",
)
async def update_settings(
    request: SettingsUpdateRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Overwrite the baseline balance.

    Every derived balance shifts by the difference between the old and
    new baseline.
    """
    return await settings_service.update_baseline_balance(db, request.baseline_balance)


@router.get(
    "/balance",
    response_model=BalanceSummaryResponse,
    summary="Balance summary",
)
async def get_balance_summary(
    on: date | None = Query(None, description="Date to compute the balance at (default: today)"),
    db: AsyncSession = Depends(get_db),
):
    """
    - **balance_as_of**: baseline plus eligible transactions due on or before `on`
    - **projected_balance**: baseline plus every eligible transaction
    """
    as_of = on or datetime.now(timezone.utc).date()
    return {
        "baseline_balance": await settings_service.get_baseline_balance(db),
        "as_of": as_of,
        "balance_as_of": await balance_service.compute_balance_as_of(db, as_of),
        "projected_balance": await balance_service.compute_projected_balance(db),
    }
