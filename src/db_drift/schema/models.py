"""Pydantic models for catalog introspection and drift detection.

This module contains schema-domain models:
- Identity: ObjectName
- Catalog snapshots: Column, SchemaTable, ActualIndex, FunctionBody,
  ForeignKeyConstraint, ActualTable
- Explicit lookup outcomes: NotFound, Absent
- Expected shapes: ExpectedColumn, ExpectedIndex, ExpectedFunction,
  ExpectedTable
- Comparison results: DifferenceKind, ColumnChange, StructuralDifference,
  DriftReport

Configuration models (DatabaseProfile, CatalogSettings, DatabaseConfig)
live in db_drift.config.models.
"""

import re
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

_PLAIN_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_$]*$")


def quote_identifier(value: str) -> str:
    """Quote an identifier the way PostgreSQL prints it.

    Plain lower-case identifiers are returned unchanged; anything else is
    wrapped in double quotes with embedded quotes doubled.

    Example:
        >>> quote_identifier("mt_doc_user")
        'mt_doc_user'
        >>> quote_identifier("Orders")
        '"Orders"'
    """
    if _PLAIN_IDENTIFIER.match(value):
        return value
    return '"' + value.replace('"', '""') + '"'


def _finish_part(chars: list[str], quoted: bool, text: str) -> str:
    value = "".join(chars)
    if not quoted:
        # Unquoted identifiers fold to lower case
        value = value.strip().lower()
    if not value:
        raise ValueError(f"Empty identifier in '{text}'")
    return value


def split_identifier(text: str) -> list[str]:
    """Split a possibly-qualified, possibly-quoted identifier into parts.

    Example:
        >>> split_identifier('app."Order.Items"')
        ['app', 'Order.Items']
    """
    text = text.strip()
    parts: list[str] = []
    current: list[str] = []
    quoted = False
    in_quotes = False
    i = 0
    while i < len(text):
        ch = text[i]
        if in_quotes:
            if ch == '"':
                if i + 1 < len(text) and text[i + 1] == '"':
                    current.append('"')
                    i += 2
                    continue
                in_quotes = False
            else:
                current.append(ch)
        elif ch == '"':
            in_quotes = True
            quoted = True
        elif ch == ".":
            parts.append(_finish_part(current, quoted, text))
            current = []
            quoted = False
        else:
            current.append(ch)
        i += 1

    if in_quotes:
        raise ValueError(f"Unterminated quoted identifier in '{text}'")
    parts.append(_finish_part(current, quoted, text))
    return parts


# ============================================================================
# Identity
# ============================================================================


class ObjectName(BaseModel):
    """Canonical ``(schema, name)`` handle for any catalog object.

    Equality and hashing are exact on the stored catalog values, so
    ``ObjectName(schema="app", name="Orders")`` and
    ``ObjectName(schema="app", name="orders")`` are different objects --
    just as they are in PostgreSQL.  Strings are accepted wherever an
    ``ObjectName`` is expected and go through ``parse()``.

    Example:
        >>> name = ObjectName(schema="app", name="mt_doc_order")
        >>> str(name)
        'app.mt_doc_order'
        >>> ObjectName.parse("APP.MT_DOC_ORDER") == name
        True
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    schema_name: str = Field(alias="schema", min_length=1)
    name: str = Field(min_length=1)

    @model_validator(mode="before")
    @classmethod
    def _from_string(cls, data: Any) -> Any:
        if isinstance(data, str):
            parsed = cls.parse(data)
            return {"schema": parsed.schema_name, "name": parsed.name}
        return data

    @classmethod
    def parse(cls, text: str, default_schema: str = "public") -> "ObjectName":
        """Parse ``name``, ``schema.name`` or their quoted forms.

        Args:
            text: Identifier text, e.g. ``public.mt_doc_user`` or
                ``"My Schema"."Table"``.
            default_schema: Schema used when *text* is unqualified.

        Raises:
            ValueError: If *text* is empty, has more than two parts, or has
                an unterminated quote.
        """
        parts = split_identifier(text)
        if len(parts) == 1:
            return cls(schema=default_schema, name=parts[0])
        if len(parts) == 2:
            return cls(schema=parts[0], name=parts[1])
        raise ValueError(f"Expected 'name' or 'schema.name', got '{text}'")

    @property
    def qualified_name(self) -> str:
        """``schema.name`` with quoting where PostgreSQL would need it."""
        return f"{quote_identifier(self.schema_name)}.{quote_identifier(self.name)}"

    @property
    def sort_key(self) -> tuple[str, str]:
        return (self.schema_name, self.name)

    def __str__(self) -> str:
        return self.qualified_name


# ============================================================================
# Catalog Snapshot Models
# ============================================================================


class Column(BaseModel):
    """A column as declared in the catalog.

    Example:
        >>> col = Column(name="id", data_type="uuid")
        >>> col.data_type
        'uuid'
    """

    model_config = ConfigDict(frozen=True)

    name: str
    data_type: str


class SchemaTable(BaseModel):
    """A physical table found in the catalog, columns in ordinal order."""

    model_config = ConfigDict(frozen=True)

    name: ObjectName
    columns: list[Column] = Field(default_factory=list)


class ActualIndex(BaseModel):
    """An index found on a table.

    ``ddl`` (``pg_get_indexdef``) is what comparisons use; the decomposed
    flags are informational.
    """

    model_config = ConfigDict(frozen=True)

    table: ObjectName
    name: str
    ddl: str
    is_unique: bool = False
    is_primary: bool = False
    index_type: str = "btree"
    key_columns: list[str] = Field(default_factory=list)
    is_functional: bool = False
    is_partial: bool = False

    @property
    def object_name(self) -> ObjectName:
        """The index itself, which lives in its table's schema."""
        return ObjectName(schema=self.table.schema_name, name=self.name)


class FunctionBody(BaseModel):
    """A stored routine found in the catalog.

    Attributes:
        name: Schema-qualified routine name.
        drop_statements: One ``DROP FUNCTION`` per existing overload.
        definition: Full ``CREATE OR REPLACE FUNCTION`` text.
        arguments: Identity signature of the overload in ``definition``.
    """

    model_config = ConfigDict(frozen=True)

    name: ObjectName
    drop_statements: list[str] = Field(default_factory=list)
    definition: str
    arguments: str = ""


class ForeignKeyConstraint(BaseModel):
    """A foreign key constraint found in the catalog."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    schema_name: str = Field(alias="schema")
    table_name: str

    @property
    def table(self) -> ObjectName:
        return ObjectName(schema=self.schema_name, name=self.table_name)


class ActualTable(BaseModel):
    """The materialized shape of a live table."""

    model_config = ConfigDict(frozen=True)

    name: ObjectName
    columns: list[Column] = Field(default_factory=list)
    primary_key: list[str] = Field(default_factory=list)
    indexes: list[ActualIndex] = Field(default_factory=list)

    def column(self, name: str) -> Column | None:
        """Return the column called *name*, or None."""
        for col in self.columns:
            if col.name == name:
                return col
        return None


class NotFound(BaseModel):
    """A routine lookup that found nothing.  A normal outcome, not an error."""

    model_config = ConfigDict(frozen=True)

    name: ObjectName


class Absent(BaseModel):
    """A table lookup that found nothing.  A normal outcome, not an error."""

    model_config = ConfigDict(frozen=True)

    name: ObjectName


# ============================================================================
# Expected Schema Models
# ============================================================================


class ExpectedColumn(BaseModel):
    """A column the application expects."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    data_type: str = Field(min_length=1)


class ExpectedIndex(BaseModel):
    """An index the application expects, identified by name."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    ddl: str


class ExpectedFunction(BaseModel):
    """A stored routine the application expects.

    ``arguments`` is the identity signature (``"doc jsonb, id uuid"``)
    naming one overload; leave it unset for routines without overloads.
    """

    model_config = ConfigDict(frozen=True)

    name: ObjectName
    definition: str
    arguments: str | None = None


class ExpectedTable(BaseModel):
    """Application-declared target shape for a document table.

    Example:
        >>> table = ExpectedTable(
        ...     name="app.mt_doc_order",
        ...     columns=[{"name": "id", "data_type": "uuid"}],
        ...     primary_key=["id"],
        ... )
        >>> table.name.schema_name
        'app'
    """

    model_config = ConfigDict(frozen=True)

    name: ObjectName
    columns: list[ExpectedColumn] = Field(default_factory=list)
    primary_key: list[str] = Field(default_factory=list)
    indexes: list[ExpectedIndex] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_consistency(self) -> "ExpectedTable":
        names = [col.name for col in self.columns]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate columns in {self.name}: {', '.join(duplicates)}")

        unknown = [key for key in self.primary_key if key not in names]
        if unknown:
            raise ValueError(
                f"Primary key columns not declared in {self.name}: {', '.join(unknown)}"
            )

        index_names = [idx.name for idx in self.indexes]
        if len(index_names) != len(set(index_names)):
            raise ValueError(f"Duplicate index names in {self.name}")
        return self

    def column(self, name: str) -> ExpectedColumn | None:
        """Return the expected column called *name*, or None."""
        for col in self.columns:
            if col.name == name:
                return col
        return None


# ============================================================================
# Comparison Result Models
# ============================================================================


class DifferenceKind(str, Enum):
    """Relationship between an expected entity and its live counterpart."""

    MISSING = "missing"
    EXTRA = "extra"
    ALTERED = "altered"
    IN_SYNC = "in_sync"


class ColumnChange(BaseModel):
    """One column-level entry in an ``altered`` table difference.

    ``added`` means the column is expected but not in the database,
    ``removed`` means it is in the database but not expected.
    """

    model_config = ConfigDict(frozen=True)

    column: str
    change: Literal["added", "removed", "type_changed"]
    actual_type: str | None = None
    expected_type: str | None = None

    def describe(self) -> str:
        if self.change == "type_changed":
            return f"{self.column}: {self.actual_type} -> {self.expected_type}"
        if self.change == "added":
            return f"{self.column}: missing ({self.expected_type})"
        return f"{self.column}: not expected ({self.actual_type})"


class StructuralDifference(BaseModel):
    """Outcome of comparing one expected entity to its actual counterpart.

    Example:
        >>> diff = StructuralDifference(
        ...     kind=DifferenceKind.MISSING,
        ...     entity_type="table",
        ...     entity="app.orders",
        ... )
        >>> diff.changes
        []
    """

    model_config = ConfigDict(frozen=True)

    kind: DifferenceKind
    entity_type: Literal["table", "column", "index", "function"]
    entity: str
    detail: str = ""
    changes: list[ColumnChange] = Field(default_factory=list)
    actual_primary_key: list[str] | None = None
    expected_primary_key: list[str] | None = None

    @property
    def primary_key_changed(self) -> bool:
        return (
            self.actual_primary_key is not None
            and self.expected_primary_key is not None
            and self.actual_primary_key != self.expected_primary_key
        )


class DriftReport(BaseModel):
    """All differences found by one drift pass.

    ``extra`` differences are warnings: they never make the report invalid.

    Example:
        >>> report = DriftReport()
        >>> report.valid
        True
        >>> report.format_report()
        'Schema in sync'
    """

    differences: list[StructuralDifference] = Field(default_factory=list)

    def by_kind(self, kind: DifferenceKind) -> list[StructuralDifference]:
        return [d for d in self.differences if d.kind == kind]

    def count(self, kind: DifferenceKind) -> int:
        return len(self.by_kind(kind))

    @property
    def error_count(self) -> int:
        """Count of missing + altered entities."""
        return self.count(DifferenceKind.MISSING) + self.count(DifferenceKind.ALTERED)

    @property
    def valid(self) -> bool:
        return self.error_count == 0

    @property
    def has_drift(self) -> bool:
        """True if anything at all differs, extras included."""
        return any(d.kind != DifferenceKind.IN_SYNC for d in self.differences)

    def format_report(self) -> str:
        """Format the report as human-readable text."""
        if not self.has_drift:
            return "Schema in sync"

        lines = ["Schema drift detected:" if not self.valid else "Schema in sync with extras:"]

        missing = self.by_kind(DifferenceKind.MISSING)
        if missing:
            lines.append(f"\n  Missing ({len(missing)}):")
            for diff in missing:
                lines.append(f"    - {diff.entity_type} {diff.entity}")

        altered = self.by_kind(DifferenceKind.ALTERED)
        if altered:
            lines.append(f"\n  Altered ({len(altered)}):")
            for diff in altered:
                lines.append(f"    - {diff.entity_type} {diff.entity}")
                for change in diff.changes:
                    lines.append(f"        {change.describe()}")
                if diff.primary_key_changed:
                    lines.append(
                        f"        primary key: ({', '.join(diff.actual_primary_key or [])})"
                        f" -> ({', '.join(diff.expected_primary_key or [])})"
                    )

        extra = self.by_kind(DifferenceKind.EXTRA)
        if extra:
            names = ", ".join(f"{d.entity_type} {d.entity}" for d in extra)
            lines.append(f"\n  Extra (warning): {names}")

        return "\n".join(lines)
