"""Read the live shape of one expected table.

``TableMaterializer.fetch_existing()`` answers "what does this table
actually look like right now?" for a single ``ExpectedTable``: its
columns, primary key and indexes, or ``Absent`` if it does not exist.
A missing table is normal (first-run bootstrap), not an error.

Usage:
    materializer = TableMaterializer(factory)
    actual = await materializer.fetch_existing(expected)
    differences = compare(expected, actual)
"""

import asyncio
import logging
from collections.abc import Hashable

from db_drift.adapters.base import CatalogConnection, ConnectionFactory
from db_drift.config.models import CatalogSettings
from db_drift.errors import QueryError
from db_drift.schema.expected import ExpectedSchemaSource
from db_drift.schema.introspector import parse_index_row
from db_drift.schema.models import Absent, ActualTable, Column, ExpectedTable, ObjectName

logger = logging.getLogger(__name__)


TABLE_LOOKUP_SQL = """
    SELECT 1
    FROM pg_class AS c
    JOIN pg_namespace AS n ON n.oid = c.relnamespace
    WHERE n.nspname = %(schema)s
      AND c.relname = %(table)s
      AND c.relkind IN ('r', 'p')
"""

COLUMNS_SQL = """
    SELECT a.attname, format_type(a.atttypid, a.atttypmod)
    FROM pg_attribute AS a
    JOIN pg_class AS c ON c.oid = a.attrelid
    JOIN pg_namespace AS n ON n.oid = c.relnamespace
    WHERE n.nspname = %(schema)s
      AND c.relname = %(table)s
      AND a.attnum > 0
      AND NOT a.attisdropped
    ORDER BY a.attnum
"""

PRIMARY_KEY_SQL = """
    SELECT a.attname
    FROM pg_index AS i
    JOIN pg_class AS c ON c.oid = i.indrelid
    JOIN pg_namespace AS n ON n.oid = c.relnamespace
    JOIN LATERAL unnest(i.indkey) WITH ORDINALITY AS k(attnum, ordinality) ON TRUE
    JOIN pg_attribute AS a ON a.attrelid = c.oid AND a.attnum = k.attnum
    WHERE n.nspname = %(schema)s
      AND c.relname = %(table)s
      AND i.indisprimary
    ORDER BY k.ordinality
"""

TABLE_INDEXES_SQL = """
    SELECT
        n.nspname AS table_schema,
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
    JOIN pg_namespace AS n ON n.oid = t.relnamespace
    JOIN pg_am AS am ON am.oid = i.relam
    WHERE n.nspname = %(schema)s
      AND t.relname = %(table)s
    ORDER BY i.relname
"""


class TableMaterializer:
    """Fetches the actual structure of a table for comparison.

    Args:
        connection_factory: Source of scoped connections.
        settings: Only ``query_timeout`` is used here.
    """

    def __init__(
        self,
        connection_factory: ConnectionFactory,
        settings: CatalogSettings | None = None,
    ) -> None:
        self._factory = connection_factory
        self._settings = settings or CatalogSettings()

    async def fetch_existing(self, expected: ExpectedTable) -> ActualTable | Absent:
        """Read the live table named by *expected*.

        Returns:
            ``ActualTable`` (columns in ordinal order, primary key in key
            order, all indexes on the table), or ``Absent``.
        """
        name = expected.name
        target = str(name)
        try:
            async with asyncio.timeout(self._settings.query_timeout):
                async with self._factory.connection() as conn:
                    return await self._read_table(conn, name)
        except TimeoutError as e:
            raise QueryError(
                f"Timed out after {self._settings.query_timeout}s",
                query="fetch_existing",
                target=target,
            ) from e

    async def _read_table(
        self, conn: CatalogConnection, name: ObjectName
    ) -> ActualTable | Absent:
        target = str(name)
        params = {"schema": name.schema_name, "table": name.name}

        found = await conn.fetch_all(TABLE_LOOKUP_SQL, params, query="table_lookup", target=target)
        if not found:
            logger.debug("Table %s not found", target)
            return Absent(name=name)

        column_rows = await conn.fetch_all(COLUMNS_SQL, params, query="table_columns", target=target)
        pk_rows = await conn.fetch_all(PRIMARY_KEY_SQL, params, query="primary_key", target=target)
        index_rows = await conn.fetch_all(
            TABLE_INDEXES_SQL, params, query="table_indexes", target=target
        )

        return ActualTable(
            name=name,
            columns=[Column(name=col, data_type=dtype) for col, dtype in column_rows],
            primary_key=[row[0] for row in pk_rows],
            indexes=[parse_index_row(row) for row in index_rows],
        )

    async def existing_table_for(
        self,
        type_identifier: Hashable,
        source: ExpectedSchemaSource,
    ) -> tuple[ExpectedTable, ActualTable | Absent]:
        """Resolve a document type to its expected table, then fetch it.

        The expected-schema source is consulted exactly once.
        """
        expected = source.expected_table_for(type_identifier)
        return expected, await self.fetch_existing(expected)
