"""
Custom exception classes and FastAPI exception handlers.

The service layer raises domain-specific errors (like CycleDetectedError)
without importing HTTP concepts. The handler layer then translates these
into proper HTTP responses, so:
    - Service code is testable without HTTP
    - Error responses are consistent across all endpoints

Exception hierarchy:
    LedgerError (base)
    ├── TransactionNotFoundError        — target transaction doesn't exist
    ├── ReferenceNotFoundError          — relative due date points at nothing
    ├── CycleDetectedError              — relative due date would form a loop
    ├── TransactionAlreadyAppliedError  — apply called twice
    ├── PersistenceError                — storage failed, unit rolled back
    └── InvalidPasskeyError             — wrong passkey on login/change

An unresolvable due date is NOT an exception: the resolver
returns None and balance computation falls back to the baseline.
"""

import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class LedgerError(Exception):
    """Base exception for all ledger domain errors."""

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class TransactionNotFoundError(LedgerError):
    """Raised when a requested transaction does not exist."""

    def __init__(self, transaction_id: uuid.UUID):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} not found")


class ReferenceNotFoundError(LedgerError):
    """
    Raised at write time when a relative due date references a
    transaction that doesn't exist.

    Attributes:
        referenced_id: The missing transaction id.
    """

    def __init__(self, referenced_id: uuid.UUID):
        self.referenced_id = referenced_id
        super().__init__(f"Referenced transaction {referenced_id} not found")


class CycleDetectedError(LedgerError):
    """
    Raised when a relative due date reference would create a cycle.

    Attributes:
        transaction_id: The transaction being written (None on create).
        referenced_id: The reference that closes the loop.
        chain: Transaction ids walked from referenced_id back to transaction_id.
    """

    def __init__(
        self,
        transaction_id: uuid.UUID | None,
        referenced_id: uuid.UUID,
        chain: list[uuid.UUID] | None = None,
    ):
        self.transaction_id = transaction_id
        self.referenced_id = referenced_id
        self.chain = chain or []
        super().__init__(
            f"Relative due date of {transaction_id} -> {referenced_id} "
            f"would create a reference cycle"
        )


class TransactionAlreadyAppliedError(LedgerError):
    """Raised when applying a transaction that is already folded into the baseline."""

    def __init__(self, transaction_id: uuid.UUID):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} is already applied")


class PersistenceError(LedgerError):
    """Raised when a storage operation fails; the affected unit was rolled back."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Storage failure during {operation}; no changes were saved")


class InvalidPasskeyError(LedgerError):
    """Raised when a passkey doesn't match the stored hash."""

    def __init__(self):
        super().__init__("Invalid passkey")


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers with the FastAPI application.

    Each handler maps a domain exception to an HTTP status code and a
    consistent JSON body: {"detail": "...", "error_type": "..."}

    This is called once during app startup in main.py.
    """

    @app.exception_handler(TransactionNotFoundError)
    async def transaction_not_found_handler(
        request: Request, exc: TransactionNotFoundError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content={"detail": exc.detail, "error_type": "transaction_not_found"},
        )

    @app.exception_handler(ReferenceNotFoundError)
    async def reference_not_found_handler(
        request: Request, exc: ReferenceNotFoundError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={
                "detail": exc.detail,
                "error_type": "reference_not_found",
                "referenced_id": str(exc.referenced_id),
            },
        )

    @app.exception_handler(CycleDetectedError)
    async def cycle_detected_handler(
        request: Request, exc: CycleDetectedError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={
                "detail": exc.detail,
                "error_type": "cycle_detected",
                "chain": [str(node_id) for node_id in exc.chain],
            },
        )

    @app.exception_handler(TransactionAlreadyAppliedError)
    async def already_applied_handler(
        request: Request, exc: TransactionAlreadyAppliedError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=409,  # Conflict — the transaction is already in the baseline
            content={"detail": exc.detail, "error_type": "already_applied"},
        )

    @app.exception_handler(PersistenceError)
    async def persistence_error_handler(
        request: Request, exc: PersistenceError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=503,
            content={"detail": exc.detail, "error_type": "persistence_failure"},
        )

    @app.exception_handler(InvalidPasskeyError)
    async def invalid_passkey_handler(
        request: Request, exc: InvalidPasskeyError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=401,
            content={"detail": exc.detail, "error_type": "invalid_passkey"},
        )
