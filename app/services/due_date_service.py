"""
Due-date service — resolves the effective due date of a transaction.

A transaction is due either on a fixed date or N calendar days after the
resolved due date of another transaction. Those references form a directed
graph that users can edit, so it may contain chains of any length, pointers
to deleted rows (dangling references) and, in legacy data, cycles.

Resolution model:
  The graph is loaded once per read into a ReferenceGraph: an explicit
  adjacency map from transaction id to its due-date fields. Resolving walks
  the reference chain ITERATIVELY with a visited set, then unwinds the
  collected path adding each offset. There is no recursion, so a pathological
  chain cannot exhaust the interpreter stack, and the walk is bounded by the
  number of transactions in the snapshot.

Outcomes:
  - fixed date, no reference      -> that date
  - reference                     -> referenced resolved date + offset days
  - reference to a missing row    -> None (DANGLING)
  - reference back into the walk  -> None (CYCLE, logged as a warning)
  - neither date nor reference    -> None (UNANCHORED)

An unresolved due date is not an error. Callers apply their own fallback
(the balance aggregator falls back to the baseline, listings sort it last).

Memoisation lives on the ReferenceGraph instance only, so results are
reused within one read and recomputed on the next.
"""

import enum
import logging
import uuid
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Iterator

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.transaction import Transaction

logger = logging.getLogger(__name__)


class UnresolvedReason(str, enum.Enum):
    """Why a due date could not be resolved."""
    MISSING = "missing"         # the transaction itself is not in the snapshot
    UNANCHORED = "unanchored"   # neither a fixed date nor a reference
    DANGLING = "dangling"       # the chain points at a deleted transaction
    CYCLE = "cycle"             # the chain loops back on itself
    OVERFLOW = "overflow"       # offsets push the date out of the calendar


RESOLVED_STATUS = "resolved"


@dataclass(frozen=True)
class DueDateNode:
    """The due-date fields of one transaction."""
    date: date | None
    reference_id: uuid.UUID | None
    offset_days: int | None

    @classmethod
    def from_transaction(cls, txn: Transaction) -> "DueDateNode":
        return cls(
            date=txn.date,
            reference_id=txn.relative_due_date_transaction_id,
            offset_days=txn.relative_due_date_offset_days,
        )


class ReferenceGraph:
    """
    Snapshot of the relative-due-date graph.

    Nodes are keyed by transaction id; edges are the reference ids stored
    on each node. Nothing here holds pointers between nodes, so edits
    to the underlying rows never leave stale links behind.
    """

    def __init__(self, nodes: dict[uuid.UUID, DueDateNode]):
        self._nodes = nodes
        self._resolved: dict[uuid.UUID, date | None] = {}
        self.unresolved: dict[uuid.UUID, UnresolvedReason] = {}

    def __contains__(self, transaction_id: uuid.UUID) -> bool:
        return transaction_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def node(self, transaction_id: uuid.UUID) -> DueDateNode | None:
        return self._nodes.get(transaction_id)

    def dependents_of(self, transaction_id: uuid.UUID) -> list[uuid.UUID]:
        """Ids of transactions whose relative due date references transaction_id."""
        return [
            node_id
            for node_id, node in self._nodes.items()
            if node.reference_id == transaction_id
        ]

    def walk_references(
        self,
        start_id: uuid.UUID,
        seen: Iterable[uuid.UUID] = (),
    ) -> Iterator[uuid.UUID]:
        """
        Yield start_id and then every id reached by following references.

        Stops at a node without a reference or at a missing node (the
        missing id is still yielded). An id that was already yielded, or
        is listed in `seen`, is yielded once more and ends the walk, so a
        caller can tell a loop from a chain that simply ends.
        """
        visited: set[uuid.UUID] = set(seen)
        current: uuid.UUID | None = start_id
        while current is not None:
            yield current
            if current in visited:
                return
            visited.add(current)
            node = self._nodes.get(current)
            if node is None:
                return
            current = node.reference_id

    def resolve(self, transaction_id: uuid.UUID) -> date | None:
        """
        Resolve the due date of transaction_id.

        Returns:
            The resolved date, or None when the chain is unanchored,
            dangling, cyclic or overflows the calendar. The reason is
            recorded in self.unresolved.
        """
        if transaction_id in self._resolved:
            return self._resolved[transaction_id]

        if transaction_id not in self._nodes:
            self.unresolved[transaction_id] = UnresolvedReason.MISSING
            return None

        # Relative nodes waiting for their base date, outermost first
        path: list[uuid.UUID] = []
        visited: set[uuid.UUID] = set()
        current = transaction_id
        base: date | None = None
        reason: UnresolvedReason | None = None

        while True:
            if current in self._resolved:
                base = self._resolved[current]
                reason = self.unresolved.get(current)
                break

            node = self._nodes.get(current)
            if node is None:
                reason = UnresolvedReason.DANGLING
                logger.info(
                    "Due date of %s is unresolved: reference %s no longer exists",
                    transaction_id, current,
                )
                break

            if current in visited:
                reason = UnresolvedReason.CYCLE
                logger.warning(
                    "Reference cycle detected while resolving %s (revisited %s)",
                    transaction_id, current,
                )
                break
            visited.add(current)

            if node.reference_id is None:
                base = node.date
                reason = None if base is not None else UnresolvedReason.UNANCHORED
                self._remember(current, base, reason)
                break

            path.append(current)
            current = node.reference_id

        for node_id in reversed(path):
            if base is not None:
                offset = self._nodes[node_id].offset_days or 0
                try:
                    base = base + timedelta(days=offset)
                except OverflowError:
                    base = None
                    reason = UnresolvedReason.OVERFLOW
            self._remember(node_id, base, reason)

        return self._resolved[transaction_id]

    def status(self, transaction_id: uuid.UUID) -> str:
        """Return "resolved" or the UnresolvedReason value for transaction_id."""
        if self.resolve(transaction_id) is not None:
            return RESOLVED_STATUS
        return self.unresolved[transaction_id].value

    def resolve_all(self) -> dict[uuid.UUID, date | None]:
        return {node_id: self.resolve(node_id) for node_id in self._nodes}

    def _remember(
        self,
        node_id: uuid.UUID,
        resolved: date | None,
        reason: UnresolvedReason | None,
    ) -> None:
        self._resolved[node_id] = resolved
        if resolved is None:
            self.unresolved[node_id] = reason or UnresolvedReason.UNANCHORED


async def load_reference_graph(db: AsyncSession) -> ReferenceGraph:
    """
    Load the due-date fields of every transaction into a ReferenceGraph.

    Applied transactions are included: they still anchor the due dates of
    transactions that reference them.
    """
    result = await db.execute(
        select(
            Transaction.id,
            Transaction.date,
            Transaction.relative_due_date_transaction_id,
            Transaction.relative_due_date_offset_days,
        )
    )
    return ReferenceGraph({
        row.id: DueDateNode(
            date=row.date,
            reference_id=row.relative_due_date_transaction_id,
            offset_days=row.relative_due_date_offset_days,
        )
        for row in result
    })


async def resolve_due_date(db: AsyncSession, transaction_id: uuid.UUID) -> date | None:
    """
    Resolve one transaction's effective due date.

    Returns None for unknown ids and for unresolvable chains.
    """
    graph = await load_reference_graph(db)
    return graph.resolve(transaction_id)
