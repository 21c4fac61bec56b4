"""Boundary contract for the application's expected schema.

The code that derives expected tables from application types lives
outside this package.  The engine only calls
``ExpectedSchemaSource.expected_table_for()``, which must be deterministic
and side-effect free.

``StaticExpectedSchema`` is a ready-made source backed by a mapping, and
``load_expected_schema()`` builds one from a JSON file::

    {
      "tables": {
        "Order": {
          "name": "app.mt_doc_order",
          "columns": [{"name": "id", "data_type": "uuid"},
                      {"name": "data", "data_type": "jsonb"}],
          "primary_key": ["id"],
          "indexes": [{"name": "mt_doc_order_idx_data", "ddl": "CREATE INDEX ..."}]
        }
      },
      "functions": [
        {"name": "app.mt_upsert_order", "arguments": "doc jsonb",
         "definition": "CREATE OR REPLACE FUNCTION ..."}
      ]
    }
"""

from collections.abc import Hashable, Iterable, Mapping
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, Field, ValidationError

from db_drift.schema.models import ExpectedFunction, ExpectedTable


class ExpectedSchemaSource(Protocol):
    """Supplies the expected table definition for an application type."""

    def expected_table_for(self, type_identifier: Hashable) -> ExpectedTable:
        """Return the expected table for *type_identifier*.

        Raises:
            KeyError: If the type is unknown to the source.
        """
        ...


class StaticExpectedSchema:
    """``ExpectedSchemaSource`` over a fixed mapping of type -> table.

    Example:
        source = StaticExpectedSchema({"Order": order_table})
        source.expected_table_for("Order")
    """

    def __init__(
        self,
        tables: Mapping[Hashable, ExpectedTable],
        functions: Iterable[ExpectedFunction] = (),
    ) -> None:
        self._tables = dict(tables)
        self._functions = list(functions)

    def expected_table_for(self, type_identifier: Hashable) -> ExpectedTable:
        try:
            return self._tables[type_identifier]
        except KeyError:
            raise KeyError(f"No expected table registered for type {type_identifier!r}") from None

    @property
    def type_identifiers(self) -> list[Hashable]:
        return list(self._tables)

    @property
    def functions(self) -> list[ExpectedFunction]:
        return list(self._functions)


class _ExpectedSchemaFile(BaseModel):
    tables: dict[str, ExpectedTable] = Field(default_factory=dict)
    functions: list[ExpectedFunction] = Field(default_factory=list)


def load_expected_schema(path: Path | str) -> StaticExpectedSchema:
    """Load expected tables and functions from a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the JSON is malformed or fails validation.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Expected schema file not found: {path}")

    try:
        parsed = _ExpectedSchemaFile.model_validate_json(path.read_text())
    except ValidationError as e:
        raise ValueError(f"Invalid expected schema in {path.name}: {e}") from e

    return StaticExpectedSchema(parsed.tables, parsed.functions)
