"""
Database engine, session management, and base model class.

This module sets up SQLAlchemy 2.0 with async support. Key components:

  - engine: The async database engine
  - AsyncSessionLocal: Factory for creating async database sessions
  - Base: Declarative base class that all ORM models inherit from
  - get_db(): FastAPI dependency that provides a session per request
  - unit_of_work(): all-or-nothing boundary for multi-record writes

Session lifecycle:
  Each API request gets its own session via get_db(). The session commits
  on success and rolls back on ANY exception. Integrity violations are
  raised before mutations, and a failed apply/delete must leave every
  record untouched, so there is no partial-commit path.
"""

import logging
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from app.config import settings
from app.exceptions import PersistenceError

logger = logging.getLogger(__name__)


# echo=True in debug mode logs all SQL statements.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
)

# expire_on_commit=False prevents lazy-load errors after commit —
# accessing attributes on a committed object would otherwise trigger
# a synchronous DB call, which fails in async context.
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


async def get_db():
    """
    FastAPI dependency that provides a database session.

    Usage in a route:
        @router.get("/items")
        async def list_items(db: AsyncSession = Depends(get_db)):
            ...

    The session is committed on success and rolled back on any exception,
    then closed when the request completes.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def unit_of_work(db: AsyncSession, operation: str):
    """
    Group several record mutations into one all-or-nothing unit.

    Everything done inside the block is flushed together when the block
    exits. If the block raises, or the flush fails, the session is rolled
    back so none of the mutations survive. Storage failures, including
    integers too large for their column, surface as PersistenceError.

    Usage:
        async with unit_of_work(db, "apply"):
            ledger.baseline_balance += change
            txn.applied = True
    """
    try:
        yield db
        await db.flush()
    except (SQLAlchemyError, OverflowError) as exc:
        await db.rollback()
        logger.exception("Unit of work %r failed, rolled back", operation)
        raise PersistenceError(operation) from exc
    except Exception:
        await db.rollback()
        raise
