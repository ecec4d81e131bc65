"""
Balance service — derives running balances from the baseline.

No balance is stored anywhere. Every read recomputes:

    balance(T) = baseline
               + sum(signed amount of E for every eligible E
                     whose resolved due date <= resolved due date of T)

where:
  - eligible means applied = false AND include_in_balance = true
  - signed amount is +amount for deposits and -amount for withdrawals
  - the comparison is inclusive, so transactions due on the same day
    all count
  - an eligible transaction whose due date doesn't resolve never counts
  - if T's own due date doesn't resolve, the balance is the baseline alone

The target itself does not need to be eligible: an excluded or applied
transaction still gets a balance at its due date, it just doesn't add
its own amount.

Listing views use compute_balance_timeline(), which resolves the graph
once and answers every target from sorted prefix sums instead of
re-summing per row.
"""

import logging
import uuid
from bisect import bisect_right
from datetime import date, datetime, timezone
from itertools import accumulate
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import TransactionNotFoundError
from app.models.transaction import Transaction, TransactionType
from app.services.due_date_service import ReferenceGraph, load_reference_graph
from app.services.settings_service import get_baseline_balance

logger = logging.getLogger(__name__)


def signed_amount(txn_type: TransactionType, amount: int) -> int:
    return amount if txn_type == TransactionType.DEPOSIT else -amount


class BalanceTimeline:
    """
    Baseline plus eligible signed amounts ordered by resolved due date.

    balance_on(d) answers "what is the balance once everything due on or
    before d has happened" with a binary search over the sorted dates.
    """

    def __init__(self, baseline: int, entries: Iterable[tuple[date, int]]):
        ordered = sorted(entries, key=lambda entry: entry[0])
        self.baseline = baseline
        self._dates = [due for due, _ in ordered]
        self._running = list(accumulate(amount for _, amount in ordered))

    def balance_on(self, due: date | None) -> int:
        if due is None:
            return self.baseline
        position = bisect_right(self._dates, due)
        if position == 0:
            return self.baseline
        return self.baseline + self._running[position - 1]


async def _load_eligible(db: AsyncSession) -> list[tuple[uuid.UUID, int]]:
    """(id, signed amount) for every transaction that may contribute."""
    result = await db.execute(
        select(Transaction.id, Transaction.type, Transaction.amount)
        .where(Transaction.applied.is_(False))
        .where(Transaction.include_in_balance.is_(True))
    )
    return [(row.id, signed_amount(row.type, row.amount)) for row in result]


def _eligible_entries(
    graph: ReferenceGraph,
    eligible: list[tuple[uuid.UUID, int]],
) -> list[tuple[date, int]]:
    entries = []
    for txn_id, amount in eligible:
        due = graph.resolve(txn_id)
        if due is not None:
            entries.append((due, amount))
    return entries


async def build_timeline(db: AsyncSession, graph: ReferenceGraph) -> BalanceTimeline:
    baseline = await get_baseline_balance(db)
    eligible = await _load_eligible(db)
    return BalanceTimeline(baseline, _eligible_entries(graph, eligible))


async def compute_balance(db: AsyncSession, transaction_id: uuid.UUID) -> int:
    """
    Balance as of a transaction's resolved due date.

    Raises:
        TransactionNotFoundError: If the transaction doesn't exist.
    """
    if await db.get(Transaction, transaction_id) is None:
        raise TransactionNotFoundError(transaction_id)

    baseline = await get_baseline_balance(db)
    graph = await load_reference_graph(db)

    target_due = graph.resolve(transaction_id)
    if target_due is None:
        logger.debug(
            "Due date of %s unresolved (%s); balance falls back to baseline",
            transaction_id, graph.unresolved[transaction_id].value,
        )
        return baseline

    total = baseline
    for txn_id, amount in await _load_eligible(db):
        due = graph.resolve(txn_id)
        if due is not None and due <= target_due:
            total += amount
    return total


async def compute_balance_timeline(
    db: AsyncSession,
    transaction_ids: Iterable[uuid.UUID] | None = None,
    graph: ReferenceGraph | None = None,
) -> dict[uuid.UUID, int]:
    """
    Balances for many transactions from a single snapshot.

    Args:
        db: Database session.
        transaction_ids: Targets; defaults to every transaction.
            Ids that don't exist are left out of the result.
        graph: An already loaded ReferenceGraph to reuse.

    Returns:
        Mapping of transaction id to balance.
    """
    if graph is None:
        graph = await load_reference_graph(db)
    timeline = await build_timeline(db, graph)

    if transaction_ids is None:
        transaction_ids = list(graph.resolve_all())

    return {
        txn_id: timeline.balance_on(graph.resolve(txn_id))
        for txn_id in transaction_ids
        if txn_id in graph
    }


async def compute_balance_as_of(db: AsyncSession, on_date: date | None = None) -> int:
    """Balance once everything due on or before on_date (default: today) has happened."""
    if on_date is None:
        on_date = datetime.now(timezone.utc).date()
    graph = await load_reference_graph(db)
    timeline = await build_timeline(db, graph)
    return timeline.balance_on(on_date)


async def compute_projected_balance(db: AsyncSession) -> int:
    """Baseline plus every eligible transaction, whatever its due date."""
    baseline = await get_baseline_balance(db)
    return baseline + sum(amount for _, amount in await _load_eligible(db))


def order_for_listing(
    transactions: Iterable[Transaction],
    graph: ReferenceGraph,
) -> list[Transaction]:
    """
    Order transactions for display.

    Resolved due date ascending, then created_at ascending; transactions
    whose due date doesn't resolve go last (still by created_at).
    """
    def sort_key(txn: Transaction):
        due = graph.resolve(txn.id)
        # SQLite hands back naive UTC timestamps; other backends and fresh
        # objects hold aware ones, possibly in a non-UTC zone
        created_at = txn.created_at
        if created_at.tzinfo is not None:
            created_at = created_at.astimezone(timezone.utc).replace(tzinfo=None)
        return (due is None, due or date.min, created_at)

    return sorted(transactions, key=sort_key)
