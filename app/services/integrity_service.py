"""
Integrity service — keeps the relative-due-date graph valid at write time.

Two guards:

1. validate_reference() runs before a relative due date is created or
   re-wired. The referenced transaction must exist, and following its own
   chain forward must never lead back to the transaction being written
   or run into a loop that is already stored.
   Self-references and indirect loops are rejected before anything is
   persisted, so a cycle can only appear through data written outside
   this service (and the resolver degrades gracefully on those).

2. detach_dependents() runs as part of a delete. Every transaction whose
   relative due date points at the row being deleted is rewritten to a
   fixed date equal to its due date resolved BEFORE the delete, and its
   reference fields are cleared. The caller performs the delete inside the
   same unit of work, so no dependent ever observes a dangling pointer.
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import CycleDetectedError, ReferenceNotFoundError
from app.models.transaction import Transaction
from app.services.due_date_service import ReferenceGraph, load_reference_graph

logger = logging.getLogger(__name__)


async def validate_reference(
    db: AsyncSession,
    transaction_id: uuid.UUID | None,
    referenced_id: uuid.UUID,
) -> None:
    """
    Check that transaction_id may take a relative due date on referenced_id.

    Args:
        db: Database session.
        transaction_id: The transaction being written, or None for a
            transaction that doesn't exist yet.
        referenced_id: The transaction its due date will be relative to.

    Raises:
        ReferenceNotFoundError: If referenced_id doesn't exist.
        CycleDetectedError: If the reference would close a loop, or its
            chain already runs into one.
    """
    if await db.get(Transaction, referenced_id) is None:
        logger.info("Rejected relative due date: %s does not exist", referenced_id)
        raise ReferenceNotFoundError(referenced_id)

    # A brand-new transaction has no incoming references, so on create only
    # a loop already stored along the referenced chain can be found
    seen = () if transaction_id is None else (transaction_id,)

    graph = await load_reference_graph(db)
    chain: list[uuid.UUID] = []
    for node_id in graph.walk_references(referenced_id, seen=seen):
        revisited = node_id == transaction_id or node_id in chain
        chain.append(node_id)
        if revisited:
            logger.info(
                "Rejected relative due date %s -> %s: cycle through %s",
                transaction_id, referenced_id, chain,
            )
            raise CycleDetectedError(transaction_id, referenced_id, chain)


async def detach_dependents(
    db: AsyncSession,
    graph: ReferenceGraph,
    deleted_id: uuid.UUID,
) -> list[Transaction]:
    """
    Pin every dependent of deleted_id to its current resolved due date.

    Must run before the delete is flushed: the dates are resolved from
    `graph`, which still contains deleted_id.

    Returns:
        The rewritten dependents.
    """
    dependent_ids = [
        node_id for node_id in graph.dependents_of(deleted_id)
        if node_id != deleted_id
    ]
    if not dependent_ids:
        return []

    pinned = {node_id: graph.resolve(node_id) for node_id in dependent_ids}

    result = await db.execute(
        select(Transaction).where(Transaction.id.in_(dependent_ids))
    )
    dependents = list(result.scalars().all())
    for txn in dependents:
        txn.date = pinned[txn.id]
        txn.relative_due_date_transaction_id = None
        txn.relative_due_date_offset_days = None

    logger.info(
        "Detached %d dependent(s) of %s onto fixed due dates",
        len(dependents), deleted_id,
    )
    return dependents
