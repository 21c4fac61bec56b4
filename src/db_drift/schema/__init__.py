"""Catalog introspection and drift detection.

Provides live catalog reads (``CatalogReader``), table materialization
(``TableMaterializer``), pure comparison (``compare``, ``compare_index``,
``compare_function``), the expected-schema contract
(``ExpectedSchemaSource``), and drift passes (``DriftDetector``).

Usage:
    from db_drift.schema import CatalogReader, TableMaterializer, compare
    from db_drift.schema import ObjectName, ExpectedTable, DriftDetector
"""

from db_drift.schema.comparator import (
    compare,
    compare_function,
    compare_index,
    extra_functions,
    extra_tables,
    normalize_data_type,
    normalize_ddl,
)
from db_drift.schema.drift import DriftDetector
from db_drift.schema.expected import (
    ExpectedSchemaSource,
    StaticExpectedSchema,
    load_expected_schema,
)
from db_drift.schema.introspector import CatalogReader
from db_drift.schema.materializer import TableMaterializer
from db_drift.schema.models import (
    Absent,
    ActualIndex,
    ActualTable,
    Column,
    ColumnChange,
    DifferenceKind,
    DriftReport,
    ExpectedColumn,
    ExpectedFunction,
    ExpectedIndex,
    ExpectedTable,
    ForeignKeyConstraint,
    FunctionBody,
    NotFound,
    ObjectName,
    SchemaTable,
    StructuralDifference,
)

__all__ = [
    "CatalogReader",
    "TableMaterializer",
    "DriftDetector",
    "compare",
    "compare_index",
    "compare_function",
    "extra_tables",
    "extra_functions",
    "normalize_data_type",
    "normalize_ddl",
    "ExpectedSchemaSource",
    "StaticExpectedSchema",
    "load_expected_schema",
    "ObjectName",
    "Column",
    "SchemaTable",
    "ActualIndex",
    "FunctionBody",
    "ForeignKeyConstraint",
    "ActualTable",
    "NotFound",
    "Absent",
    "ExpectedColumn",
    "ExpectedIndex",
    "ExpectedFunction",
    "ExpectedTable",
    "DifferenceKind",
    "ColumnChange",
    "StructuralDifference",
    "DriftReport",
]
