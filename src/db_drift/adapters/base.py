"""Connection protocol definitions.

The catalog engine never manages connection lifecycles itself.  It asks a
``ConnectionFactory`` for a scoped connection per operation and runs
read-only SQL through ``CatalogConnection.fetch_all()``.

SQL uses psycopg's ``%(name)s`` placeholders and is always executed with a
parameter mapping (so a literal ``%`` is written ``%%``).

Usage:
    from db_drift.adapters.base import ConnectionFactory

    async def count_tables(factory: ConnectionFactory) -> int:
        async with factory.connection() as conn:
            rows = await conn.fetch_all(
                "SELECT count(*) FROM pg_stat_user_tables", query="count"
            )
            return rows[0][0]
"""

from contextlib import AbstractAsyncContextManager
from typing import Any, Protocol


class CatalogConnection(Protocol):
    """A checked-out connection that can run one read-only query at a time."""

    async def fetch_all(
        self,
        sql: str,
        params: dict[str, Any] | None = None,
        *,
        query: str,
        target: str | None = None,
    ) -> list[tuple]:
        """Execute *sql* and return every row as a tuple.

        Args:
            sql: Statement with ``%(name)s`` placeholders.
            params: Bound values for the placeholders.
            query: Logical query name, used in error reports.
            target: Object being inspected, used in error reports.

        Raises:
            ConnectivityError: If the connection was lost.
            QueryError: If the statement failed.
        """
        ...


class ConnectionFactory(Protocol):
    """Scoped connection acquisition.

    ``connection()`` returns an async context manager; the connection is
    released when the block exits, whether normally, by exception, or by
    task cancellation.
    """

    def connection(self) -> AbstractAsyncContextManager[CatalogConnection]:
        """Acquire a connection for the duration of an ``async with`` block.

        Raises:
            ConnectivityError: If no connection can be established.
        """
        ...
