"""Catalog factory.

Resolves a database profile from db.toml and builds the catalog services
for it.

Profile selection:
1. Explicit ``profile_name`` argument
2. ``{env_prefix}DB_PROFILE`` environment variable
3. ``ProfileNotFoundError``
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote

from db_drift.adapters.postgres import PsycopgConnectionFactory
from db_drift.config.loader import load_db_config
from db_drift.config.models import CatalogSettings, DatabaseProfile
from db_drift.schema.introspector import CatalogReader
from db_drift.schema.materializer import TableMaterializer

logger = logging.getLogger(__name__)


class ProfileNotFoundError(Exception):
    """Raised when no database profile is configured."""

    pass


@dataclass
class Catalog:
    """Catalog services bound to one profile."""

    profile_name: str
    settings: CatalogSettings
    reader: CatalogReader
    materializer: TableMaterializer


def get_active_profile_name(env_prefix: str = "") -> str:
    """Get active profile name from the environment.

    Args:
        env_prefix: Prefix for the variable name (``APP_`` reads
            ``APP_DB_PROFILE``).

    Raises:
        ProfileNotFoundError: If the variable is unset or empty.
    """
    env_var = f"{env_prefix}DB_PROFILE"
    env_profile = os.environ.get(env_var)
    if env_profile:
        return env_profile

    raise ProfileNotFoundError(
        "No database profile configured.\n"
        f"Set {env_var}=<name> or pass --profile <name>."
    )


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    Example:
        >>> resolve_url(DatabaseProfile(url="postgresql://u:[YOUR-PASSWORD]@h/db", db_password="p@ss"))
        'postgresql://u:p%40ss@h/db'
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


def get_catalog(
    profile_name: str | None = None,
    env_prefix: str = "",
    config_path: Path | str | None = None,
    connect_timeout: int = 10,
) -> Catalog:
    """Build catalog services for a configured profile.

    Nothing connects here; each catalog operation opens its own
    connection.

    Raises:
        ProfileNotFoundError: If no profile is selected or the name is not
            in db.toml.
        FileNotFoundError: If db.toml does not exist.
        ValueError: If db.toml is invalid.
    """
    if profile_name is None:
        profile_name = get_active_profile_name(env_prefix=env_prefix)

    config = load_db_config(config_path)
    if profile_name not in config.profiles:
        available = ", ".join(config.profiles) or "(none)"
        raise ProfileNotFoundError(
            f"Profile '{profile_name}' not found in db.toml.\n"
            f"Available profiles: {available}"
        )

    settings = config.catalog
    logger.debug(
        "Using profile %s (schemas: %s)", profile_name, ", ".join(settings.schemas)
    )
    factory = PsycopgConnectionFactory(
        resolve_url(config.profiles[profile_name]),
        connect_timeout=connect_timeout,
    )
    return Catalog(
        profile_name=profile_name,
        settings=settings,
        reader=CatalogReader(factory, settings),
        materializer=TableMaterializer(factory, settings),
    )
