"""
Transactions router — the ledger's CRUD, apply and derived-value endpoints.

All endpoints require an active session.

  POST   /transactions                               — Create a transaction
  GET    /transactions                               — Ledger listing (with filters)
  GET    /transactions/parties                       — Distinct party names
  GET    /transactions/{id}                          — Get a single transaction
  PUT    /transactions/{id}                          — Update a transaction
  DELETE /transactions/{id}                          — Delete (dependents pinned)
  POST   /transactions/{id}/apply                    — Fold into the baseline
  PUT    /transactions/{id}/include-in-balance       — Toggle balance contribution
  GET    /transactions/{id}/due-date                 — Resolved due date
  GET    /transactions/{id}/balance                  — Balance at its due date

/parties is declared before the parameterized paths so it isn't parsed
as a transaction id.
"""

import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import require_session
from app.models.transaction import TransactionType
from app.schemas.transaction import (
    ApplyResponse,
    DueDateResponse,
    IncludeInBalanceRequest,
    TransactionBalanceResponse,
    TransactionCreateRequest,
    TransactionListResponse,
    TransactionResponse,
    TransactionUpdateRequest,
)
from app.services import balance_service, transaction_service
from app.services.due_date_service import load_reference_graph

router = APIRouter(dependencies=[Depends(require_session)])


@router.post(
    "",
    response_model=TransactionResponse,
    status_code=201,
    summary="Create a transaction",
)
async def create_transaction(
    request: TransactionCreateRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Create a deposit or withdrawal with a fixed or relative due date.

    A relative due date must reference an existing transaction.
    All amounts are in **integer minor units**.
    """
    return await transaction_service.create_transaction(
        db=db,
        txn_type=request.type,
        amount=request.amount,
        party=request.party,
        description=request.description,
        due_date=request.date,
        relative_due_date_transaction_id=request.relative_due_date_transaction_id,
        relative_due_date_offset_days=request.relative_due_date_offset_days,
        include_in_balance=request.include_in_balance,
    )


@router.get(
    "",
    response_model=TransactionListResponse,
    summary="List the ledger",
)
async def list_transactions(
    party: str | None = Query(None, description="Party name contains"),
    type: TransactionType | None = Query(None, description="deposit or withdraw"),
    min_amount: int | None = Query(None, ge=0),
    max_amount: int | None = Query(None, ge=0),
    keywords: str | None = Query(None, description="Description contains"),
    min_date: date | None = Query(None, description="Resolved due date on or after"),
    max_date: date | None = Query(None, description="Resolved due date on or before"),
    include_applied: bool = Query(False),
    db: AsyncSession = Depends(get_db),
):
    """
    List transactions ordered by resolved due date, then creation time.

    Each row carries its derived balance and resolved due date; rows whose
    due date doesn't resolve come last.
    """
    return await transaction_service.get_ledger(
        db=db,
        party=party,
        type_filter=type,
        min_amount=min_amount,
        max_amount=max_amount,
        keywords=keywords,
        min_date=min_date,
        max_date=max_date,
        include_applied=include_applied,
    )


@router.get(
    "/parties",
    response_model=list[str],
    summary="List distinct parties",
)
async def list_parties(db: AsyncSession = Depends(get_db)):
    """Distinct party names, most recently used first."""
    return await transaction_service.get_parties(db)


@router.get(
    "/{transaction_id}",
    response_model=TransactionResponse,
    summary="Get a single transaction",
)
async def get_transaction(
    transaction_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    return await transaction_service.get_transaction(db, transaction_id)


@router.put(
    "/{transaction_id}",
    response_model=TransactionResponse,
    summary="Update a transaction",
)
async def update_transaction(
    transaction_id: uuid.UUID,
    request: TransactionUpdateRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Replace a transaction's editable fields.

    Re-wiring the relative due date is rejected if the reference is missing
    or would create a cycle; the transaction is then left unchanged.
    """
    return await transaction_service.update_transaction(
        db=db,
        transaction_id=transaction_id,
        txn_type=request.type,
        amount=request.amount,
        party=request.party,
        description=request.description,
        due_date=request.date,
        relative_due_date_transaction_id=request.relative_due_date_transaction_id,
        relative_due_date_offset_days=request.relative_due_date_offset_days,
    )


@router.delete(
    "/{transaction_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a transaction",
)
async def delete_transaction(
    transaction_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """
    Delete a transaction.

    Transactions whose due date was relative to it keep their current
    resolved due date as a fixed date.
    """
    await transaction_service.delete_transaction(db, transaction_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{transaction_id}/apply",
    response_model=ApplyResponse,
    summary="Apply a transaction to the baseline",
)
async def apply_transaction(
    transaction_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """
    Fold a transaction into the baseline balance.

    The transaction stops counting toward balances; this cannot be undone.
    """
    baseline = await transaction_service.apply_transaction(db, transaction_id)
    return {"transaction_id": transaction_id, "baseline_balance": baseline}


@router.put(
    "/{transaction_id}/include-in-balance",
    response_model=TransactionResponse,
    summary="Include or exclude a transaction from balances",
)
async def set_include_in_balance(
    transaction_id: uuid.UUID,
    request: IncludeInBalanceRequest,
    db: AsyncSession = Depends(get_db),
):
    return await transaction_service.set_include_in_balance(
        db, transaction_id, request.include_in_balance
    )


@router.get(
    "/{transaction_id}/due-date",
    response_model=DueDateResponse,
    summary="Resolve a transaction's due date",
)
async def get_due_date(
    transaction_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """
    Resolve the effective due date.

    `status` explains a null due date: unanchored, dangling or cycle.
    """
    await transaction_service.get_transaction(db, transaction_id)
    graph = await load_reference_graph(db)
    return {
        "transaction_id": transaction_id,
        "due_date": graph.resolve(transaction_id),
        "status": graph.status(transaction_id),
    }


@router.get(
    "/{transaction_id}/balance",
    response_model=TransactionBalanceResponse,
    summary="Balance at a transaction's due date",
)
async def get_balance(
    transaction_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """
    Baseline plus every included, non-applied transaction due on or before
    this one. Falls back to the baseline when the due date doesn't resolve.
    """
    balance = await balance_service.compute_balance(db, transaction_id)
    return {"transaction_id": transaction_id, "balance": balance}
