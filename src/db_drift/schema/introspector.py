"""PostgreSQL catalog introspection for managed objects.

This module queries the live database to enumerate the objects this system
owns (names matching the configured prefixes, in the configured schemas):
- Tables and their columns (``pg_stat_user_tables``, ``pg_attribute``)
- Document tables (managed tables with the document-table prefix)
- Functions, excluding triggers (``information_schema.routines``)
- Indexes with their DDL, keys and flags (``pg_index``)
- Function definitions plus DROP statements for every overload (``pg_proc``)
- Foreign keys (``information_schema.table_constraints``)

Every operation acquires its own connection from a ``ConnectionFactory``
and releases it before returning.  Nothing here writes to the database.
"""

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from db_drift.adapters.base import CatalogConnection, ConnectionFactory
from db_drift.config.models import CatalogSettings
from db_drift.errors import AmbiguousOverload, QueryError
from db_drift.schema.models import (
    ActualIndex,
    Column,
    ForeignKeyConstraint,
    FunctionBody,
    NotFound,
    ObjectName,
    SchemaTable,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def like_prefix(prefix: str) -> str:
    """Build a LIKE pattern matching names that start with *prefix* literally.

    ``_`` and ``%`` are LIKE wildcards, so ``mt_`` alone would also match
    ``mtx``.  Backslash is PostgreSQL's default LIKE escape.

    Example:
        >>> like_prefix("mt_")
        'mt\\\\_%'
    """
    escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return escaped + "%"


def _normalize_signature(arguments: str) -> str:
    return re.sub(r"\s+", " ", arguments).strip()


# ----------------------------------------------------------------------
# SQL
# ----------------------------------------------------------------------

MANAGED_TABLES_SQL = """
    SELECT schemaname, relname
    FROM pg_stat_user_tables
    WHERE relname LIKE %(pattern)s
      AND schemaname = ANY(%(schemas)s)
    ORDER BY schemaname, relname
"""

TABLE_COLUMNS_SQL = """
    SELECT n.nspname, c.relname, a.attname, format_type(a.atttypid, a.atttypmod)
    FROM pg_attribute AS a
    JOIN pg_class AS c ON c.oid = a.attrelid
    JOIN pg_namespace AS n ON n.oid = c.relnamespace
    WHERE n.nspname = ANY(%(schemas)s)
      AND c.relname LIKE %(pattern)s
      AND c.relkind IN ('r', 'p')
      AND a.attnum > 0
      AND NOT a.attisdropped
    ORDER BY n.nspname, c.relname, a.attnum
"""

MANAGED_FUNCTIONS_SQL = """
    SELECT DISTINCT specific_schema, routine_name
    FROM information_schema.routines
    WHERE type_udt_name != 'trigger'
      AND routine_name LIKE %(pattern)s
      AND specific_schema = ANY(%(schemas)s)
    ORDER BY specific_schema, routine_name
"""

INDEXES_SQL = """
    SELECT
        tn.nspname AS table_schema,
        t.relname AS table_name,
        i.relname AS index_name,
        pg_get_indexdef(i.oid) AS ddl,
        idx.indisunique AS is_unique,
        idx.indisprimary AS is_primary,
        am.amname AS index_type,
        ARRAY(
            SELECT pg_get_indexdef(idx.indexrelid, k + 1, TRUE)
            FROM generate_subscripts(idx.indkey, 1) AS k
            ORDER BY k
        ) AS index_keys,
        (idx.indexprs IS NOT NULL) OR (idx.indkey::int[] @> ARRAY[0]) AS is_functional,
        idx.indpred IS NOT NULL AS is_partial
    FROM pg_index AS idx
    JOIN pg_class AS i ON i.oid = idx.indexrelid
    JOIN pg_class AS t ON t.oid = idx.indrelid
    JOIN pg_namespace AS tn ON tn.oid = t.relnamespace
    JOIN pg_am AS am ON am.oid = i.relam
    WHERE tn.nspname = ANY(%(schemas)s)
      AND i.relname LIKE %(pattern)s
    ORDER BY tn.nspname, t.relname, i.relname
"""

FUNCTION_OVERLOADS_SQL = """
    SELECT
        pg_get_function_identity_arguments(p.oid) AS arguments,
        pg_get_functiondef(p.oid) AS definition,
        format('DROP FUNCTION %%s.%%s(%%s);',
               quote_ident(n.nspname),
               quote_ident(p.proname),
               pg_get_function_identity_arguments(p.oid)) AS drop_statement
    FROM pg_proc AS p
    JOIN pg_namespace AS n ON n.oid = p.pronamespace
    WHERE n.nspname = %(schema)s
      AND p.proname = %(function)s
      AND p.prokind = 'f'
    ORDER BY p.oid
"""

FOREIGN_KEYS_SQL = """
    SELECT constraint_name, constraint_schema, table_name
    FROM information_schema.table_constraints
    WHERE constraint_type = 'FOREIGN KEY'
      AND constraint_name LIKE %(pattern)s
      AND constraint_schema = ANY(%(schemas)s)
    ORDER BY constraint_schema, table_name, constraint_name
"""


def parse_index_row(row: tuple) -> ActualIndex:
    """Build an ``ActualIndex`` from a row of ``INDEXES_SQL``-shaped output."""
    (
        table_schema,
        table_name,
        index_name,
        ddl,
        is_unique,
        is_primary,
        index_type,
        index_keys,
        is_functional,
        is_partial,
    ) = row
    return ActualIndex(
        table=ObjectName(schema=table_schema, name=table_name),
        name=index_name,
        ddl=ddl,
        is_unique=is_unique,
        is_primary=is_primary,
        index_type=index_type,
        key_columns=list(index_keys or []),
        is_functional=bool(is_functional),
        is_partial=bool(is_partial),
    )


class CatalogReader:
    """Reads managed objects out of the PostgreSQL system catalog.

    Works with any PostgreSQL database (RDS, Supabase, local).  Holds no
    connection and no cache: every call queries a fresh snapshot, so calls
    may run concurrently.

    Usage:
        factory = PsycopgConnectionFactory(database_url)
        reader = CatalogReader(factory, CatalogSettings(schemas=["app"]))

        tables = await reader.list_managed_schema_tables()
        body = await reader.get_function_definition(
            ObjectName(schema="app", name="mt_upsert_order")
        )
        if isinstance(body, NotFound):
            ...
    """

    def __init__(
        self,
        connection_factory: ConnectionFactory,
        settings: CatalogSettings | None = None,
    ) -> None:
        """Initialize with a connection factory and naming conventions.

        Args:
            connection_factory: Source of scoped connections.
            settings: Prefixes, managed schemas and query timeout
                (default: ``CatalogSettings()``).
        """
        self._factory = connection_factory
        self._settings = settings or CatalogSettings()

    @property
    def settings(self) -> CatalogSettings:
        return self._settings

    async def _run(
        self,
        operation: str,
        work: Callable[[CatalogConnection], Awaitable[T]],
        target: str | None = None,
    ) -> T:
        """Run *work* on a scoped connection under the query timeout."""
        try:
            async with asyncio.timeout(self._settings.query_timeout):
                async with self._factory.connection() as conn:
                    return await work(conn)
        except TimeoutError as e:
            raise QueryError(
                f"Timed out after {self._settings.query_timeout}s",
                query=operation,
                target=target,
            ) from e

    async def _fetch(
        self,
        conn: CatalogConnection,
        query: str,
        sql: str,
        params: dict[str, Any],
        target: str | None = None,
    ) -> list[tuple]:
        rows = await conn.fetch_all(sql, params, query=query, target=target)
        logger.debug("Catalog query %s returned %d rows", query, len(rows))
        return rows

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    async def list_managed_schema_tables(self) -> list[SchemaTable]:
        """Enumerate managed tables in the managed schemas, with columns.

        Returns:
            Tables ordered by schema and name; columns in ordinal order.
        """
        params = {
            "pattern": like_prefix(self._settings.table_prefix),
            "schemas": list(self._settings.schemas),
        }

        async def work(conn: CatalogConnection) -> list[SchemaTable]:
            table_rows = await self._fetch(conn, "managed_tables", MANAGED_TABLES_SQL, params)
            names = [ObjectName(schema=schema, name=name) for schema, name in table_rows]
            if not names:
                return []

            column_rows = await self._fetch(conn, "managed_table_columns", TABLE_COLUMNS_SQL, params)
            columns: dict[ObjectName, list[Column]] = {name: [] for name in names}
            for schema, table, column_name, data_type in column_rows:
                key = ObjectName(schema=schema, name=table)
                if key in columns:
                    columns[key].append(Column(name=column_name, data_type=data_type))

            return [SchemaTable(name=name, columns=columns[name]) for name in names]

        return await self._run("managed_tables", work)

    async def list_document_tables(self) -> list[SchemaTable]:
        """Managed tables whose name also carries the document-table prefix."""
        prefix = self._settings.document_table_prefix
        tables = await self.list_managed_schema_tables()
        return [t for t in tables if t.name.name.startswith(prefix)]

    async def table_exists(self, name: ObjectName) -> bool:
        """Check whether *name* is one of the managed tables."""
        tables = await self.list_managed_schema_tables()
        return any(t.name == name for t in tables)

    # ------------------------------------------------------------------
    # Functions
    # ------------------------------------------------------------------

    async def list_managed_functions(self) -> list[ObjectName]:
        """Enumerate managed routines (triggers excluded), one per name."""
        params = {
            "pattern": like_prefix(self._settings.function_prefix),
            "schemas": list(self._settings.schemas),
        }

        async def work(conn: CatalogConnection) -> list[ObjectName]:
            rows = await self._fetch(conn, "managed_functions", MANAGED_FUNCTIONS_SQL, params)
            return [ObjectName(schema=schema, name=name) for schema, name in rows]

        return await self._run("managed_functions", work)

    async def get_function_definition(
        self,
        name: ObjectName,
        arguments: str | None = None,
    ) -> FunctionBody | NotFound:
        """Fetch a routine's definition and the DROPs for all its overloads.

        Args:
            name: Schema-qualified routine name.
            arguments: Identity signature (e.g. ``"doc jsonb, id uuid"``)
                selecting one overload when several exist.  Ignored when
                the routine has a single overload.

        Returns:
            ``FunctionBody`` for the selected overload, or ``NotFound`` when
            no routine of that name exists in that schema.

        Raises:
            AmbiguousOverload: Several overloads exist and *arguments* does
                not select exactly one of them.
        """
        target = str(name)
        params = {"schema": name.schema_name, "function": name.name}

        async def work(conn: CatalogConnection) -> list[tuple]:
            return await self._fetch(
                conn, "function_definition", FUNCTION_OVERLOADS_SQL, params, target=target
            )

        rows = await self._run("function_definition", work, target=target)
        if not rows:
            return NotFound(name=name)

        drops = [drop for _, _, drop in rows]
        candidates = rows
        if arguments is not None and len(rows) > 1:
            wanted = _normalize_signature(arguments)
            candidates = [row for row in rows if _normalize_signature(row[0]) == wanted]

        if len(candidates) != 1:
            raise AmbiguousOverload(target, [row[0] for row in rows])

        selected_arguments, definition, _ = candidates[0]
        return FunctionBody(
            name=name,
            drop_statements=drops,
            definition=definition,
            arguments=selected_arguments,
        )

    # ------------------------------------------------------------------
    # Indexes and constraints
    # ------------------------------------------------------------------

    async def list_indexes(self, table: ObjectName | None = None) -> list[ActualIndex]:
        """Enumerate managed indexes, optionally only those on *table*.

        Args:
            table: Owning table to filter by (exact ``ObjectName`` equality).
        """
        params = {
            "pattern": like_prefix(self._settings.index_prefix),
            "schemas": list(self._settings.schemas),
        }
        target = str(table) if table is not None else None

        async def work(conn: CatalogConnection) -> list[ActualIndex]:
            rows = await self._fetch(conn, "indexes", INDEXES_SQL, params, target=target)
            return [parse_index_row(row) for row in rows]

        indexes = await self._run("indexes", work, target=target)
        if table is None:
            return indexes
        return [idx for idx in indexes if idx.table == table]

    async def list_foreign_keys(self) -> list[ForeignKeyConstraint]:
        """Enumerate managed foreign key constraints."""
        params = {
            "pattern": like_prefix(self._settings.foreign_key_prefix),
            "schemas": list(self._settings.schemas),
        }

        async def work(conn: CatalogConnection) -> list[ForeignKeyConstraint]:
            rows = await self._fetch(conn, "foreign_keys", FOREIGN_KEYS_SQL, params)
            return [
                ForeignKeyConstraint(name=name, schema=schema, table_name=table)
                for name, schema, table in rows
            ]

        return await self._run("foreign_keys", work)

    async def test_connection(self) -> bool:
        """Test database connection health with ``SELECT 1``.

        Raises:
            ConnectivityError: If the database cannot be reached.
            QueryError: If the check query fails.
        """

        async def work(conn: CatalogConnection) -> bool:
            rows = await self._fetch(conn, "connection_check", "SELECT 1", {})
            return bool(rows) and rows[0][0] == 1

        return await self._run("connection_check", work)
