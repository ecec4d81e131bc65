"""
LedgerSettings model — the singleton row holding the baseline balance.

There is exactly one row (id = 1). It carries:
  - baseline_balance: the checkpoint that applied transactions are folded
    into. Changed only by applying a transaction or by an explicit edit
    on the settings endpoint.
  - hashed_passkey: Argon2 hash of the passkey used to log in
  - session_id: the id of the single active session. A new login replaces
    it, so only the most recent session's token is accepted.

The row is created lazily on first access (settings_service).
"""

from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


SETTINGS_ROW_ID = 1


class LedgerSettings(Base):
    __tablename__ = "ledger_settings"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        default=SETTINGS_ROW_ID,
    )

    baseline_balance: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    hashed_passkey: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    session_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
