"""
Pydantic schemas for authentication endpoints.

Pydantic validates incoming data automatically — if a required field is
missing or the wrong type, FastAPI returns a 422 error before our code
even runs.
"""

from pydantic import BaseModel, Field, model_validator


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""
    passkey: str = Field(min_length=1)


class TokenResponse(BaseModel):
    """Response body for a successful login — contains the JWT."""
    token: str
    token_type: str = "bearer"


class PasskeyChangeRequest(BaseModel):
    """Request body for POST /auth/passkey."""
    current_passkey: str = Field(min_length=1)
    new_passkey: str = Field(min_length=4)
    confirm_passkey: str = Field(min_length=1)

    @model_validator(mode="after")
    def passkeys_must_match(self):
        """The new passkey must be typed twice identically."""
        if self.new_passkey != self.confirm_passkey:
            raise ValueError("New passkey and confirmation do not match")
        return self
