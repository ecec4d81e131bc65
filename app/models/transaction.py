"""
Transaction model — a planned or recorded deposit/withdrawal.

Key fields:
  - type: "deposit" or "withdraw" — the direction of money flow
  - amount: Always positive (the direction is implied by the type)
  - date: Fixed due date (NULL when the due date is relative)
  - relative_due_date_transaction_id / relative_due_date_offset_days:
    Relative due date — "N days after the due date of that transaction"
  - applied: Folded into the ledger baseline; excluded from all balances
  - include_in_balance: Soft toggle for balance contribution

Due dates:
  A transaction carries either a fixed date or a relative reference. The
  reference is a plain UUID column, NOT a foreign key: it is a relation
  only, so the referenced row may be deleted. Deleting a referenced
  transaction rewrites its dependents to a fixed date in the same database
  transaction (see integrity_service), and the resolver treats any pointer
  that still dangles as unresolved.

Balances are never stored here. They are derived on every read from the
baseline plus eligible transactions (see balance_service).
"""

import enum
import uuid
from datetime import date as calendar_date, datetime, timezone

from sqlalchemy import String, Integer, Boolean, Date, DateTime, Enum, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class TransactionType(str, enum.Enum):
    """
    Direction of a transaction.

    Inherits from str so the enum value serializes naturally to JSON
    and can be stored as a simple string in the database.
    """
    DEPOSIT = "deposit"     # Money in: +amount
    WITHDRAW = "withdraw"   # Money out: -amount


class Transaction(Base):
    __tablename__ = "transactions"

    __table_args__ = (
        # Amount must always be positive — direction is indicated by type
        CheckConstraint("amount > 0", name="ck_transactions_positive_amount"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    type: Mapped[TransactionType] = mapped_column(
        Enum(TransactionType),
        nullable=False,
    )

    # Amount in minor currency units — always positive
    amount: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    # Counterparty name (who pays or gets paid)
    party: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )

    description: Mapped[str] = mapped_column(
        String(1000),
        nullable=False,
        default="",
    )

    # Fixed due date
    date: Mapped[calendar_date | None] = mapped_column(
        Date,
        nullable=True,
    )

    # Relative due date: weak reference, intentionally without a ForeignKey
    relative_due_date_transaction_id: Mapped[uuid.UUID | None] = mapped_column(
        nullable=True,
        index=True,
    )

    # Calendar days added to the referenced transaction's resolved due date
    relative_due_date_offset_days: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )

    # Folded into the baseline — never counted again
    applied: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        index=True,
    )

    include_in_balance: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    # Insertion timestamp — the stable secondary sort key in listings
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    @property
    def signed_amount(self) -> int:
        """+amount for deposits, -amount for withdrawals."""
        return self.amount if self.type == TransactionType.DEPOSIT else -self.amount
