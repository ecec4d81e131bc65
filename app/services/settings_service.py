"""
Settings service — access to the singleton LedgerSettings row.

The row is bootstrapped on first access with a zero baseline and the
configured default passkey. Bootstrapping is idempotent: every caller goes
through get_or_create_settings(), which only inserts when no row exists.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings as app_settings
from app.models.settings import LedgerSettings, SETTINGS_ROW_ID
from app.security import hash_passkey

logger = logging.getLogger(__name__)


async def get_or_create_settings(db: AsyncSession) -> LedgerSettings:
    """
    Load the ledger settings, creating them (baseline 0) if absent.

    Returns:
        The LedgerSettings row.
    """
    result = await db.execute(
        select(LedgerSettings).where(LedgerSettings.id == SETTINGS_ROW_ID)
    )
    ledger = result.scalar_one_or_none()

    if ledger is None:
        ledger = LedgerSettings(
            id=SETTINGS_ROW_ID,
            baseline_balance=0,
            hashed_passkey=hash_passkey(app_settings.DEFAULT_PASSKEY),
        )
        db.add(ledger)
        await db.flush()
        logger.info("Ledger settings bootstrapped with a zero baseline")

    return ledger


async def get_baseline_balance(db: AsyncSession) -> int:
    ledger = await get_or_create_settings(db)
    return ledger.baseline_balance


async def update_baseline_balance(db: AsyncSession, baseline_balance: int) -> LedgerSettings:
    """
    Explicit admin edit of the baseline.

    Every computed balance shifts by exactly the difference between the
    old and the new baseline.
    """
    ledger = await get_or_create_settings(db)
    previous = ledger.baseline_balance
    ledger.baseline_balance = baseline_balance
    await db.flush()
    logger.info("Baseline balance edited: %s -> %s", previous, baseline_balance)
    return ledger
