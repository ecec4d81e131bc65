"""
Pydantic schemas for transaction endpoints.

All monetary amounts are integers in minor currency units.

Due dates: a request carries EITHER a fixed `date` OR a
`relative_due_date_transaction_id` plus `relative_due_date_offset_days`.
"""

import uuid
from datetime import date as calendar_date, datetime

from pydantic import BaseModel, Field, model_validator

from app.models.transaction import TransactionType

# Largest value a 64-bit integer column can hold
INT64_MAX = 2**63 - 1


class DueDateFields(BaseModel):
    """Fields and rules shared by create and update requests."""
    type: TransactionType
    amount: int = Field(ge=1, le=INT64_MAX, description="Amount in minor units (must be positive)")
    party: str = Field(min_length=1, max_length=255)
    description: str = Field("", max_length=1000)
    date: calendar_date | None = Field(None, description="Fixed due date")
    relative_due_date_transaction_id: uuid.UUID | None = Field(
        None, description="Transaction whose due date this one follows"
    )
    relative_due_date_offset_days: int | None = Field(
        None,
        ge=-INT64_MAX,
        le=INT64_MAX,
        description="Calendar days after the referenced due date",
    )

    @model_validator(mode="after")
    def exactly_one_due_date(self):
        """A due date is required, either fixed or relative, never both."""
        has_fixed = self.date is not None
        has_relative = self.relative_due_date_transaction_id is not None

        if not has_fixed and not has_relative:
            raise ValueError("A due date is required (fixed or relative)")
        if has_fixed and has_relative:
            raise ValueError("Use either a fixed or a relative due date, not both")
        if has_relative and self.relative_due_date_offset_days is None:
            raise ValueError("relative_due_date_offset_days is required with a relative due date")
        if not has_relative:
            self.relative_due_date_offset_days = None
        return self


class TransactionCreateRequest(DueDateFields):
    """Request body for POST /transactions."""
    include_in_balance: bool = True

    @model_validator(mode="after")
    def offset_must_be_positive(self):
        """New relative due dates must fall after the referenced one."""
        offset = self.relative_due_date_offset_days
        if offset is not None and offset <= 0:
            raise ValueError("relative_due_date_offset_days must be positive")
        return self


class TransactionUpdateRequest(DueDateFields):
    """Request body for PUT /transactions/{id}."""
    pass


class IncludeInBalanceRequest(BaseModel):
    """Request body for PUT /transactions/{id}/include-in-balance."""
    include_in_balance: bool


class TransactionResponse(BaseModel):
    """Public representation of a stored transaction."""
    id: uuid.UUID
    type: TransactionType
    amount: int
    party: str
    description: str
    date: calendar_date | None
    relative_due_date_transaction_id: uuid.UUID | None
    relative_due_date_offset_days: int | None
    applied: bool
    include_in_balance: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class LedgerEntryResponse(BaseModel):
    """One listing row: the transaction plus its derived values."""
    transaction: TransactionResponse
    balance: int
    due_date_resolved: calendar_date | None
    due_date_status: str = Field(
        description="resolved, unanchored, dangling, cycle, overflow or missing"
    )


class TransactionListResponse(BaseModel):
    """Response body for GET /transactions."""
    transactions: list[LedgerEntryResponse]
    number_of_transactions: int
    total_number_of_transactions: int
    baseline_balance: int
    current_total_balance: int


class ApplyResponse(BaseModel):
    """Response body for POST /transactions/{id}/apply."""
    transaction_id: uuid.UUID
    baseline_balance: int


class DueDateResponse(BaseModel):
    """Response body for GET /transactions/{id}/due-date."""
    transaction_id: uuid.UUID
    due_date: calendar_date | None
    status: str


class TransactionBalanceResponse(BaseModel):
    """Response body for GET /transactions/{id}/balance."""
    transaction_id: uuid.UUID
    balance: int
