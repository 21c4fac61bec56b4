"""Structural comparison of expected vs. actual catalog entities.

Pure logic -- no I/O, no database connections.  Every compared entity
yields exactly one ``StructuralDifference`` classified as ``missing``,
``extra``, ``altered`` or ``in_sync``.

Tables are compared field by field (column names and normalized types,
primary key as an ordered sequence; column order is ignored).  Indexes and
functions are compared as normalized DDL text, because their definitions
are too free-form to decompose reliably.

Usage:
    from db_drift.schema.comparator import compare
    from db_drift.schema.materializer import TableMaterializer

    actual = await TableMaterializer(factory).fetch_existing(expected)
    for diff in compare(expected, actual):
        print(diff.kind.value, diff.entity, diff.detail)
"""

import re
from collections.abc import Iterable

from db_drift.schema.models import (
    Absent,
    ActualIndex,
    ActualTable,
    ColumnChange,
    DifferenceKind,
    ExpectedFunction,
    ExpectedIndex,
    ExpectedTable,
    FunctionBody,
    NotFound,
    ObjectName,
    StructuralDifference,
    quote_identifier,
)

_TYPE_ALIASES = {
    "character varying": "varchar",
    "character": "char",
    "bpchar": "char",
    "timestamp with time zone": "timestamptz",
    "timestamp without time zone": "timestamp",
    "time with time zone": "timetz",
    "time without time zone": "time",
    "bit varying": "varbit",
    "integer": "int",
    "int4": "int",
    "int8": "bigint",
    "int2": "smallint",
    "boolean": "bool",
    "double precision": "float8",
    "real": "float4",
    "decimal": "numeric",
}

# Single-quoted literals and double-quoted identifiers are kept verbatim
_QUOTED = re.compile(r"('(?:[^']|'')*'|\"(?:[^\"]|\"\")*\")")

_TYPE_MODIFIER = re.compile(r"\s*\(([^)]*)\)")
_ARRAY_SUFFIX = re.compile(r"(\s*\[\s*\d*\s*\])+$")


def normalize_data_type(data_type: str) -> str:
    """Normalize PostgreSQL data type names for comparison.

    Accepts ``format_type()`` output and the usual DDL spellings.  Aliases
    fold to one name, type modifiers are kept (``character varying(100)``
    -> ``varchar(100)``) and array dimensions become ``[]`` each.
    Qualified user-defined types pass through unchanged apart from
    case and whitespace.  Only used for equality -- reports keep the
    declared types.

    Example:
        >>> normalize_data_type("Character Varying(100)")
        'varchar(100)'
        >>> normalize_data_type("timestamp(3) with time zone")
        'timestamptz(3)'
        >>> normalize_data_type("int4[]") == normalize_data_type("integer[]")
        True
    """
    key = re.sub(r"\s+", " ", data_type.strip().lower())

    dimensions = ""
    suffix = _ARRAY_SUFFIX.search(key)
    if suffix:
        dimensions = "[]" * suffix.group(0).count("[")
        key = key[: suffix.start()].rstrip()

    modifier = ""
    match = _TYPE_MODIFIER.search(key)
    if match:
        modifier = "(" + ",".join(part.strip() for part in match.group(1).split(",")) + ")"
        key = (key[: match.start()] + key[match.end():]).strip()
        key = re.sub(r"\s+", " ", key)

    return _TYPE_ALIASES.get(key, key) + modifier + dimensions


def normalize_ddl(text: str) -> str:
    """Normalize index/function DDL for textual comparison.

    - whitespace runs collapse to one space
    - whitespace next to ``(``, ``)`` and ``,`` is dropped
    - a trailing ``;`` is dropped
    - text outside quotes is lower-cased

    Example:
        >>> normalize_ddl("CREATE INDEX  idx ON t USING btree (a,  b);")
        'create index idx on t using btree(a,b)'
    """
    pieces = _QUOTED.split(text.strip())
    normalized: list[str] = []
    for i, piece in enumerate(pieces):
        if i % 2 == 1:
            normalized.append(piece)
            continue
        piece = re.sub(r"\s+", " ", piece.lower())
        piece = re.sub(r"\s*([(),])\s*", r"\1", piece)
        normalized.append(piece)
    return "".join(normalized).strip().rstrip(";").rstrip()


def _entity(table: ObjectName, part: str) -> str:
    return f"{table.qualified_name}.{quote_identifier(part)}"


def compare(
    expected: ExpectedTable,
    actual: ActualTable | Absent,
    index_prefix: str | None = None,
) -> list[StructuralDifference]:
    """Compare an expected table with what the database holds.

    Produces:
    - Missing: a single ``missing`` table difference when *actual* is
      ``Absent``
    - Altered: one ``altered`` table difference when expected columns are
      absent, have a different type, or the primary key differs (members
      or order)
    - Extra: one ``extra`` column difference per column only in the
      database (warning only)
    - In sync: one ``in_sync`` table difference when none of the above
    - Indexes: one difference per expected index, plus ``extra`` for
      unexpected non-primary indexes (restricted to *index_prefix* when
      given)

    Args:
        expected: The application's expected table.
        actual: Result of ``TableMaterializer.fetch_existing()``.
        index_prefix: Only report unexpected indexes with this prefix.

    Returns:
        List of ``StructuralDifference``; table-level entries first.

    Examples:
        >>> expected = ExpectedTable(
        ...     name="app.orders",
        ...     columns=[{"name": "id", "data_type": "uuid"}],
        ...     primary_key=["id"],
        ... )
        >>> [d.kind.value for d in compare(expected, Absent(name=expected.name))]
        ['missing']
    """
    entity = expected.name.qualified_name

    if isinstance(actual, Absent):
        return [
            StructuralDifference(
                kind=DifferenceKind.MISSING,
                entity_type="table",
                entity=entity,
                detail=f"Table '{entity}' does not exist",
            )
        ]

    changes: list[ColumnChange] = []
    for col in expected.columns:
        live = actual.column(col.name)
        if live is None:
            changes.append(
                ColumnChange(column=col.name, change="added", expected_type=col.data_type)
            )
        elif normalize_data_type(live.data_type) != normalize_data_type(col.data_type):
            changes.append(
                ColumnChange(
                    column=col.name,
                    change="type_changed",
                    actual_type=live.data_type,
                    expected_type=col.data_type,
                )
            )

    actual_pk = list(actual.primary_key)
    expected_pk = list(expected.primary_key)
    # Key order matters for the backing index
    pk_changed = actual_pk != expected_pk

    differences: list[StructuralDifference] = []
    if changes or pk_changed:
        notes = [change.describe() for change in changes]
        if pk_changed:
            notes.append(f"primary key ({', '.join(actual_pk)}) -> ({', '.join(expected_pk)})")
        differences.append(
            StructuralDifference(
                kind=DifferenceKind.ALTERED,
                entity_type="table",
                entity=entity,
                detail="; ".join(notes),
                changes=changes,
                actual_primary_key=actual_pk,
                expected_primary_key=expected_pk,
            )
        )

    expected_columns = {col.name for col in expected.columns}
    for col in actual.columns:
        if col.name in expected_columns:
            continue
        differences.append(
            StructuralDifference(
                kind=DifferenceKind.EXTRA,
                entity_type="column",
                entity=_entity(expected.name, col.name),
                detail=f"Column '{col.name}' ({col.data_type}) is not expected",
                changes=[ColumnChange(column=col.name, change="removed", actual_type=col.data_type)],
            )
        )

    if not differences:
        differences.append(
            StructuralDifference(kind=DifferenceKind.IN_SYNC, entity_type="table", entity=entity)
        )

    differences.extend(_compare_table_indexes(expected, actual, index_prefix))
    return differences


def _compare_table_indexes(
    expected: ExpectedTable,
    actual: ActualTable,
    index_prefix: str | None,
) -> list[StructuralDifference]:
    # The primary key index is covered by the primary key comparison
    live = {idx.name: idx for idx in actual.indexes if not idx.is_primary}

    differences = [
        compare_index(idx, live.get(idx.name), expected.name) for idx in expected.indexes
    ]

    expected_names = {idx.name for idx in expected.indexes}
    for name in sorted(set(live) - expected_names):
        if index_prefix is not None and not name.startswith(index_prefix):
            continue
        differences.append(
            StructuralDifference(
                kind=DifferenceKind.EXTRA,
                entity_type="index",
                entity=_entity(expected.name, name),
                detail=live[name].ddl,
            )
        )
    return differences


def compare_index(
    expected: ExpectedIndex,
    actual: ActualIndex | None,
    table: ObjectName,
) -> StructuralDifference:
    """Compare one expected index with the live index of the same name.

    Args:
        expected: The expected index.
        actual: The live index, or None if the table has no such index.
        table: Owning table (indexes live in their table's schema).
    """
    entity = ObjectName(schema=table.schema_name, name=expected.name).qualified_name

    if actual is None:
        return StructuralDifference(
            kind=DifferenceKind.MISSING,
            entity_type="index",
            entity=entity,
            detail=f"Index '{expected.name}' does not exist on {table.qualified_name}",
        )

    if normalize_ddl(actual.ddl) != normalize_ddl(expected.ddl):
        return StructuralDifference(
            kind=DifferenceKind.ALTERED,
            entity_type="index",
            entity=entity,
            detail=f"actual: {actual.ddl}\nexpected: {expected.ddl}",
        )

    return StructuralDifference(kind=DifferenceKind.IN_SYNC, entity_type="index", entity=entity)


def compare_function(
    expected: ExpectedFunction,
    actual: FunctionBody | NotFound,
) -> StructuralDifference:
    """Compare an expected routine with ``get_function_definition()``'s result."""
    entity = expected.name.qualified_name
    if expected.arguments is not None:
        entity = f"{entity}({expected.arguments})"

    if isinstance(actual, NotFound):
        return StructuralDifference(
            kind=DifferenceKind.MISSING,
            entity_type="function",
            entity=entity,
            detail=f"Function '{entity}' does not exist",
        )

    if normalize_ddl(actual.definition) != normalize_ddl(expected.definition):
        return StructuralDifference(
            kind=DifferenceKind.ALTERED,
            entity_type="function",
            entity=entity,
            detail=f"Definition of '{entity}' differs ({len(actual.drop_statements)} overload(s))",
        )

    return StructuralDifference(kind=DifferenceKind.IN_SYNC, entity_type="function", entity=entity)


def _extras(
    entity_type: str,
    expected: Iterable[ObjectName],
    actual: Iterable[ObjectName],
) -> list[StructuralDifference]:
    expected_set = set(expected)
    return [
        StructuralDifference(
            kind=DifferenceKind.EXTRA,
            entity_type=entity_type,
            entity=name.qualified_name,
            detail=f"Managed {entity_type} '{name.qualified_name}' is not expected",
        )
        for name in sorted(set(actual) - expected_set, key=lambda n: n.sort_key)
    ]


def extra_tables(
    expected: Iterable[ObjectName],
    actual: Iterable[ObjectName],
) -> list[StructuralDifference]:
    """``extra`` differences for live tables nobody expects (warning only)."""
    return _extras("table", expected, actual)


def extra_functions(
    expected: Iterable[ObjectName],
    actual: Iterable[ObjectName],
) -> list[StructuralDifference]:
    """``extra`` differences for live functions nobody expects (warning only)."""
    return _extras("function", expected, actual)
