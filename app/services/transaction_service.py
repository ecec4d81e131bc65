"""
Transaction service — the write path and listing of the ledger.

THIS IS THE ENTRY POINT the routers use for every transaction operation:
  - create / update (relative due dates validated by integrity_service)
  - delete (dependents pinned to fixed dates in the same unit of work)
  - apply (fold into the baseline, all-or-nothing)
  - include-in-balance toggle
  - filtered listing with derived balances and resolved due dates

Atomicity:
  Write-time integrity checks (missing reference, cycle) run BEFORE any
  attribute is touched, so a rejected write changes nothing. Apply and
  delete touch several records; both run inside unit_of_work(), which
  flushes them together or rolls all of them back.

Derived values:
  Balances and resolved due dates are never stored. Listing loads one
  ReferenceGraph snapshot and derives both from it.
"""

import logging
import uuid
from datetime import date

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import unit_of_work
from app.exceptions import TransactionNotFoundError, TransactionAlreadyAppliedError
from app.models.transaction import Transaction, TransactionType
from app.services import balance_service, integrity_service
from app.services.due_date_service import load_reference_graph
from app.services.settings_service import get_or_create_settings

logger = logging.getLogger(__name__)


async def get_transaction(db: AsyncSession, transaction_id: uuid.UUID) -> Transaction:
    """
    Get a single transaction by ID.

    Raises:
        TransactionNotFoundError: If the transaction doesn't exist.
    """
    result = await db.execute(
        select(Transaction).where(Transaction.id == transaction_id)
    )
    txn = result.scalar_one_or_none()

    if txn is None:
        raise TransactionNotFoundError(transaction_id)

    return txn


async def create_transaction(
    db: AsyncSession,
    txn_type: TransactionType,
    amount: int,
    party: str,
    description: str = "",
    due_date: date | None = None,
    relative_due_date_transaction_id: uuid.UUID | None = None,
    relative_due_date_offset_days: int | None = None,
    include_in_balance: bool = True,
) -> Transaction:
    """
    Create a transaction with a fixed or relative due date.

    Args:
        db: Database session.
        txn_type: Deposit or withdraw.
        amount: Positive integer amount in minor units.
        party: Counterparty name.
        description: Optional memo.
        due_date: Fixed due date.
        relative_due_date_transaction_id: Transaction the due date is relative to.
        relative_due_date_offset_days: Days after the referenced due date.
        include_in_balance: Whether the transaction counts toward balances.

    Returns:
        The created Transaction instance.

    Raises:
        ReferenceNotFoundError: If the referenced transaction doesn't exist.
    """
    if relative_due_date_transaction_id is not None:
        await integrity_service.validate_reference(
            db, None, relative_due_date_transaction_id
        )

    txn = Transaction(
        type=txn_type,
        amount=amount,
        party=party,
        description=description or "",
        date=due_date,
        relative_due_date_transaction_id=relative_due_date_transaction_id,
        relative_due_date_offset_days=relative_due_date_offset_days,
        include_in_balance=include_in_balance,
    )
    db.add(txn)
    await db.flush()

    logger.info("Created %s transaction %s", txn.type.value, txn.id)
    return txn


async def update_transaction(
    db: AsyncSession,
    transaction_id: uuid.UUID,
    txn_type: TransactionType,
    amount: int,
    party: str,
    description: str = "",
    due_date: date | None = None,
    relative_due_date_transaction_id: uuid.UUID | None = None,
    relative_due_date_offset_days: int | None = None,
) -> Transaction:
    """
    Replace the editable fields of a transaction.

    The relative reference (if any) is validated against the graph as it
    is stored now; on rejection the transaction is left untouched.
    Applied transactions are frozen: their signed amount already lives in
    the baseline.

    Raises:
        TransactionNotFoundError: If the transaction doesn't exist.
        TransactionAlreadyAppliedError: If the transaction was applied.
        ReferenceNotFoundError: If the referenced transaction doesn't exist.
        CycleDetectedError: If the reference would create a cycle.
    """
    txn = await get_transaction(db, transaction_id)
    if txn.applied:
        logger.info("Rejected update of applied transaction %s", transaction_id)
        raise TransactionAlreadyAppliedError(transaction_id)

    if relative_due_date_transaction_id is not None:
        await integrity_service.validate_reference(
            db, transaction_id, relative_due_date_transaction_id
        )

    txn.type = txn_type
    txn.amount = amount
    txn.party = party
    txn.description = description or ""
    txn.date = due_date
    txn.relative_due_date_transaction_id = relative_due_date_transaction_id
    txn.relative_due_date_offset_days = relative_due_date_offset_days
    await db.flush()

    logger.info("Updated transaction %s", txn.id)
    return txn


async def delete_transaction(db: AsyncSession, transaction_id: uuid.UUID) -> None:
    """
    Delete a transaction, pinning its dependents to fixed due dates.

    Dependents are resolved against the graph as it is BEFORE the delete,
    rewritten, and the delete is flushed in the same unit of work.

    Raises:
        TransactionNotFoundError: If the transaction doesn't exist.
        PersistenceError: If storage fails; nothing is changed.
    """
    txn = await get_transaction(db, transaction_id)
    graph = await load_reference_graph(db)

    async with unit_of_work(db, "delete"):
        await integrity_service.detach_dependents(db, graph, transaction_id)
        await db.delete(txn)

    logger.info("Deleted transaction %s", transaction_id)


async def apply_transaction(db: AsyncSession, transaction_id: uuid.UUID) -> int:
    """
    Fold a transaction into the baseline balance.

    The baseline moves by the transaction's signed amount and the
    transaction is marked applied, together or not at all. Applied
    transactions never count toward any balance again, and there is
    no way back.

    A repeated apply is rejected rather than silently accepted: it raises
    TransactionAlreadyAppliedError (409) and leaves the baseline as it is,
    so the effect on the baseline is the same however often apply is
    requested, while the caller still learns the request was a repeat.

    Returns:
        The new baseline balance.

    Raises:
        TransactionNotFoundError: If the transaction doesn't exist.
        TransactionAlreadyAppliedError: If it was applied before.
        PersistenceError: If storage fails; nothing is changed.
    """
    txn = await get_transaction(db, transaction_id)
    if txn.applied:
        # Repeat apply: reported as a conflict, baseline untouched
        raise TransactionAlreadyAppliedError(transaction_id)

    ledger = await get_or_create_settings(db)
    amount_change = txn.signed_amount

    async with unit_of_work(db, "apply"):
        ledger.baseline_balance += amount_change
        txn.applied = True

    logger.info(
        "Applied transaction %s (%+d), baseline is now %d",
        transaction_id, amount_change, ledger.baseline_balance,
    )
    return ledger.baseline_balance


async def set_include_in_balance(
    db: AsyncSession,
    transaction_id: uuid.UUID,
    include_in_balance: bool,
) -> Transaction:
    """
    Toggle whether a transaction counts toward balances.

    Raises:
        TransactionNotFoundError: If the transaction doesn't exist.
    """
    txn = await get_transaction(db, transaction_id)
    txn.include_in_balance = include_in_balance
    await db.flush()
    return txn


async def get_transactions(
    db: AsyncSession,
    party: str | None = None,
    type_filter: TransactionType | None = None,
    min_amount: int | None = None,
    max_amount: int | None = None,
    keywords: str | None = None,
    include_applied: bool = False,
) -> list[Transaction]:
    """
    List transactions matching the column filters, oldest first.

    Args:
        db: Database session.
        party: Substring of the party name.
        type_filter: Only deposits or only withdrawals.
        min_amount / max_amount: Inclusive amount bounds.
        keywords: Substring of the description.
        include_applied: Also return transactions already in the baseline.
    """
    query = select(Transaction).order_by(Transaction.created_at.asc())

    if not include_applied:
        query = query.where(Transaction.applied.is_(False))
    if party:
        query = query.where(Transaction.party.contains(party))
    if type_filter:
        query = query.where(Transaction.type == type_filter)
    if min_amount is not None:
        query = query.where(Transaction.amount >= min_amount)
    if max_amount is not None:
        query = query.where(Transaction.amount <= max_amount)
    if keywords:
        query = query.where(Transaction.description.contains(keywords))

    result = await db.execute(query)
    return list(result.scalars().all())


async def get_parties(db: AsyncSession) -> list[str]:
    """Distinct party names, most recently used first."""
    result = await db.execute(
        select(Transaction.party)
        .group_by(Transaction.party)
        .order_by(func.max(Transaction.created_at).desc())
    )
    return list(result.scalars().all())


async def get_ledger(
    db: AsyncSession,
    party: str | None = None,
    type_filter: TransactionType | None = None,
    min_amount: int | None = None,
    max_amount: int | None = None,
    keywords: str | None = None,
    min_date: date | None = None,
    max_date: date | None = None,
    include_applied: bool = False,
) -> dict:
    """
    Filtered, ordered ledger listing with derived values.

    Due-date bounds apply to the RESOLVED due date, so they are checked
    after the query; a transaction whose due date doesn't resolve is
    dropped whenever a bound is given.

    Returns:
        Dictionary matching the TransactionListResponse schema.
    """
    transactions = await get_transactions(
        db,
        party=party,
        type_filter=type_filter,
        min_amount=min_amount,
        max_amount=max_amount,
        keywords=keywords,
        include_applied=include_applied,
    )

    graph = await load_reference_graph(db)

    if min_date is not None or max_date is not None:
        transactions = [
            txn for txn in transactions
            if _within(graph.resolve(txn.id), min_date, max_date)
        ]

    balances = await balance_service.compute_balance_timeline(
        db, [txn.id for txn in transactions], graph=graph
    )
    ordered = balance_service.order_for_listing(transactions, graph)

    total = await db.execute(select(func.count()).select_from(Transaction))
    ledger = await get_or_create_settings(db)

    return {
        "transactions": [
            {
                "transaction": txn,
                "balance": balances[txn.id],
                "due_date_resolved": graph.resolve(txn.id),
                "due_date_status": graph.status(txn.id),
            }
            for txn in ordered
        ],
        "number_of_transactions": len(ordered),
        "total_number_of_transactions": total.scalar_one(),
        "baseline_balance": ledger.baseline_balance,
        "current_total_balance": await balance_service.compute_projected_balance(db),
    }


def _within(due: date | None, min_date: date | None, max_date: date | None) -> bool:
    if due is None:
        return False
    if min_date is not None and due < min_date:
        return False
    if max_date is not None and due > max_date:
        return False
    return True
