"""
Authentication router — passkey login, logout and passkey change.

  POST /auth/login    — Exchange the passkey for a session token (public)
  POST /auth/logout   — Close the current session
  POST /auth/passkey  — Change the passkey

Security audit notes:
  - The plaintext passkey exists only in memory during request processing;
    it is hashed before any database write and never logged.
  - Tokens appear only in response bodies, which uvicorn does not log.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import require_session
from app.schemas.auth import LoginRequest, PasskeyChangeRequest, TokenResponse
from app.services import auth_service

router = APIRouter()


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Log in with the passkey",
)
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Verify the passkey and open a session.

    Any previously issued token stops working: only one session is active.
    """
    token = await auth_service.login(db, request.passkey)
    return TokenResponse(token=token)


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Log out",
    dependencies=[Depends(require_session)],
)
async def logout(db: AsyncSession = Depends(get_db)):
    await auth_service.logout(db)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/passkey",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Change the passkey",
    dependencies=[Depends(require_session)],
)
async def change_passkey(
    request: PasskeyChangeRequest,
    db: AsyncSession = Depends(get_db),
):
    await auth_service.change_passkey(db, request.current_passkey, request.new_passkey)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
