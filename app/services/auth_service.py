"""
Authentication service — passkey login, logout and passkey change.

The ledger has one owner and one passkey, stored as an Argon2 hash on the
settings row. Sessions are single: each login generates a fresh session id,
stores it on the settings row and embeds it in the JWT ("sid" claim). The
request dependency only accepts tokens whose sid matches the stored one, so
a new login or a logout invalidates every older token.

Security notes:
  - The passkey is hashed before storage and never logged
  - Wrong passkeys all produce the same InvalidPasskeyError
"""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import InvalidPasskeyError
from app.security import hash_passkey, verify_passkey, create_access_token
from app.services.settings_service import get_or_create_settings

logger = logging.getLogger(__name__)


async def login(db: AsyncSession, passkey: str) -> str:
    """
    Verify the passkey and open a new session.

    Returns:
        JWT token string for the new session.

    Raises:
        InvalidPasskeyError: If the passkey is wrong.
    """
    ledger = await get_or_create_settings(db)

    if not verify_passkey(passkey, ledger.hashed_passkey):
        logger.info("Login rejected: invalid passkey")
        raise InvalidPasskeyError()

    session_id = uuid.uuid4().hex
    ledger.session_id = session_id
    await db.flush()

    logger.info("New session opened")
    return create_access_token(data={"sid": session_id})


async def logout(db: AsyncSession) -> None:
    """Close the current session; every issued token stops working."""
    ledger = await get_or_create_settings(db)
    ledger.session_id = None
    await db.flush()
    logger.info("Session closed")


async def change_passkey(db: AsyncSession, current_passkey: str, new_passkey: str) -> None:
    """
    Replace the passkey after verifying the current one.

    Raises:
        InvalidPasskeyError: If current_passkey is wrong.
    """
    ledger = await get_or_create_settings(db)

    if not verify_passkey(current_passkey, ledger.hashed_passkey):
        raise InvalidPasskeyError()

    ledger.hashed_passkey = hash_passkey(new_passkey)
    await db.flush()
    logger.info("Passkey changed")
