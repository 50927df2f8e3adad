# castops/db/helpers.py
"""
Query helpers shared by the repositories.

Every helper accepts either the pool (borrow a connection) or an open
``connection`` (join the caller's transaction) and converts driver errors
into ``DatabaseError``.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import psycopg
from psycopg import sql

from castops.db.pool import DatabasePoolManager
from castops.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

Query = str | sql.Composable


class DatabaseError(Exception):
    """Storage failure raised by the repository layer."""

    def __init__(self, message: str, operation: str = "unknown", recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


def _short(query: Query) -> str:
    return str(query)[:100]


@asynccontextmanager
async def _borrow(
    pool: DatabasePoolManager, connection: psycopg.AsyncConnection | None
) -> AsyncIterator[psycopg.AsyncConnection]:
    if connection is not None:
        yield connection
        return
    async with pool.connection() as conn:
        yield conn


async def fetch_one(
    pool: DatabasePoolManager,
    query: Query,
    params: tuple = (),
    *,
    connection: psycopg.AsyncConnection | None = None,
) -> dict[str, Any] | None:
    """Run ``query`` and return the first row, or None when nothing matched."""
    try:
        async with _borrow(pool, connection) as conn:
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                return await cur.fetchone() or None
    except psycopg.Error as e:
        logger.error("Booking query failed", helper="fetch_one", query=_short(query), error=str(e))
        raise DatabaseError(f"Query failed: {e}", operation="fetch_one") from e


async def fetch_all(
    pool: DatabasePoolManager,
    query: Query,
    params: tuple = (),
    *,
    connection: psycopg.AsyncConnection | None = None,
) -> list[dict[str, Any]]:
    try:
        async with _borrow(pool, connection) as conn:
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                return await cur.fetchall()
    except psycopg.Error as e:
        logger.error("Booking query failed", helper="fetch_all", query=_short(query), error=str(e))
        raise DatabaseError(f"Query failed: {e}", operation="fetch_all") from e


async def execute_query(
    pool: DatabasePoolManager,
    query: Query,
    params: tuple = (),
    *,
    connection: psycopg.AsyncConnection | None = None,
) -> int:
    """Run a write statement; returns the affected row count."""
    try:
        async with _borrow(pool, connection) as conn:
            cursor = await conn.execute(query, params)
            return cursor.rowcount
    except psycopg.Error as e:
        logger.error("Booking write failed", query=_short(query), error=str(e))
        raise DatabaseError(f"Query failed: {e}", operation="execute") from e


async def execute_transaction(pool: DatabasePoolManager, statements: list[tuple[Query, tuple]]) -> int:
    """
    Apply ``statements`` atomically, e.g. a rename cascading over the
    bookings and contacts of one cast.

    Returns:
        Total number of affected rows
    """
    if not statements:
        return 0

    affected = 0
    try:
        async with pool.transaction() as conn:
            for query, params in statements:
                cursor = await conn.execute(query, params)
                affected += max(cursor.rowcount, 0)
    except psycopg.Error as e:
        logger.error("Booking transaction rolled back", statements=len(statements), error=str(e))
        raise DatabaseError(f"Transaction failed: {e}", operation="transaction") from e

    logger.debug("Booking transaction committed", statements=len(statements), affected=affected)
    return affected
