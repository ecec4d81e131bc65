"""
FastAPI dependencies for authentication.

Every ledger endpoint depends on require_session. FastAPI calls it before
the route handler; if the token is missing, expired, tampered with, or
belongs to a session that has since been replaced, the request is rejected
with 401 before the handler runs.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.security import decode_access_token
from app.services.settings_service import get_or_create_settings


# The "Authorization: Bearer <token>" header. tokenUrl points at the login
# endpoint for Swagger UI's "Authorize" button.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


async def require_session(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> str:
    """
    Validate the JWT and check it belongs to the active session.

    Returns:
        The active session id.

    Raises:
        HTTPException 401: If the token is invalid or its session is closed.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_access_token(token)
    except JWTError:
        raise credentials_exception

    session_id: str | None = payload.get("sid")
    if session_id is None:
        raise credentials_exception

    ledger = await get_or_create_settings(db)
    if ledger.session_id is None or ledger.session_id != session_id:
        raise credentials_exception

    return session_id
