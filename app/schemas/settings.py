"""
Pydantic schemas for the settings and balance summary endpoints.
"""

from datetime import date, datetime

from pydantic import BaseModel, Field

from app.schemas.transaction import INT64_MAX


class SettingsResponse(BaseModel):
    """Public view of the ledger settings (never the passkey hash)."""
    baseline_balance: int
    updated_at: datetime

    model_config = {"from_attributes": True}


class SettingsUpdateRequest(BaseModel):
    """Request body for PUT /settings."""
    baseline_balance: int = Field(ge=-INT64_MAX, le=INT64_MAX)


class BalanceSummaryResponse(BaseModel):
    """Response body for GET /balance."""
    baseline_balance: int
    as_of: date
    balance_as_of: int
    projected_balance: int
