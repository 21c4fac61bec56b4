"""Configuration management: profiles, catalog conventions, TOML loading.

Usage:
    >>> from db_drift.config import load_db_config, CatalogSettings, DatabaseConfig
"""

from db_drift.config.loader import load_db_config
from db_drift.config.models import CatalogSettings, DatabaseConfig, DatabaseProfile

__all__ = ["load_db_config", "CatalogSettings", "DatabaseConfig", "DatabaseProfile"]
