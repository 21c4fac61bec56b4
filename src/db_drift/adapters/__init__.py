"""Connection adapters package.

Provides the ``ConnectionFactory`` / ``CatalogConnection`` Protocols and
the two PostgreSQL implementations (direct psycopg and pooled SQLAlchemy).

Usage:
    from db_drift.adapters import PsycopgConnectionFactory, EngineConnectionFactory
"""

from db_drift.adapters.base import CatalogConnection, ConnectionFactory
from db_drift.adapters.postgres import (
    EngineConnectionFactory,
    PsycopgConnectionFactory,
    create_async_engine_pooled,
    normalize_url,
)

__all__ = [
    "CatalogConnection",
    "ConnectionFactory",
    "EngineConnectionFactory",
    "PsycopgConnectionFactory",
    "create_async_engine_pooled",
    "normalize_url",
]
