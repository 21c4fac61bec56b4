"""db-drift: PostgreSQL catalog introspection and schema drift detection.

Reads the managed objects (tables, indexes, functions, foreign keys) that
actually exist in a live database and compares them against the schema an
application expects.  Read-only: it detects and reports, it never applies
DDL.

Usage:
    from db_drift import CatalogReader, TableMaterializer, compare
    from db_drift import PsycopgConnectionFactory, CatalogSettings
    from db_drift import ObjectName, ExpectedTable, NotFound, Absent
"""

__version__ = "0.1.0"

# Adapters
from db_drift.adapters.base import CatalogConnection, ConnectionFactory
from db_drift.adapters.postgres import EngineConnectionFactory, PsycopgConnectionFactory

# Config
from db_drift.config.loader import load_db_config
from db_drift.config.models import CatalogSettings, DatabaseConfig, DatabaseProfile

# Errors
from db_drift.errors import AmbiguousOverload, CatalogError, ConnectivityError, QueryError

# Factory
from db_drift.factory import Catalog, ProfileNotFoundError, get_catalog, resolve_url

# Schema
from db_drift.schema.comparator import compare, compare_function, compare_index
from db_drift.schema.drift import DriftDetector
from db_drift.schema.expected import ExpectedSchemaSource, StaticExpectedSchema
from db_drift.schema.introspector import CatalogReader
from db_drift.schema.materializer import TableMaterializer
from db_drift.schema.models import (
    Absent,
    ActualIndex,
    ActualTable,
    DifferenceKind,
    DriftReport,
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
    # Adapters
    "CatalogConnection",
    "ConnectionFactory",
    "PsycopgConnectionFactory",
    "EngineConnectionFactory",
    # Config
    "load_db_config",
    "CatalogSettings",
    "DatabaseConfig",
    "DatabaseProfile",
    # Errors
    "CatalogError",
    "ConnectivityError",
    "QueryError",
    "AmbiguousOverload",
    # Factory
    "Catalog",
    "get_catalog",
    "resolve_url",
    "ProfileNotFoundError",
    # Schema
    "CatalogReader",
    "TableMaterializer",
    "DriftDetector",
    "compare",
    "compare_index",
    "compare_function",
    "ExpectedSchemaSource",
    "StaticExpectedSchema",
    "ObjectName",
    "SchemaTable",
    "ActualIndex",
    "ActualTable",
    "FunctionBody",
    "ForeignKeyConstraint",
    "NotFound",
    "Absent",
    "ExpectedTable",
    "ExpectedIndex",
    "ExpectedFunction",
    "DifferenceKind",
    "StructuralDifference",
    "DriftReport",
]
