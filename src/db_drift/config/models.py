"""Pydantic models for database configuration.

The naming conventions in ``CatalogSettings`` decide which catalog objects
the engine is allowed to report on, so they are configuration rather than
constants.
"""

from typing import Annotated

from pydantic import BaseModel, Field, field_validator, model_validator


# ============================================================================
# Configuration Models
# ============================================================================


class DatabaseProfile(BaseModel):
    """Database connection profile from db.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution


class CatalogSettings(BaseModel):
    """Managed-object conventions and query limits.

    Example:
        >>> settings = CatalogSettings(schemas=["app"])
        >>> settings.document_table_prefix
        'mt_doc_'
    """

    schemas: list[str] = Field(default_factory=lambda: ["public"], min_length=1)
    table_prefix: str = Field(default="mt_", min_length=1)
    document_table_prefix: str = Field(default="mt_doc_", min_length=1)
    function_prefix: str = Field(default="mt_", min_length=1)
    index_prefix: str = Field(default="mt_", min_length=1)
    foreign_key_prefix: str = Field(default="mt_", min_length=1)
    query_timeout: Annotated[float, Field(gt=0)] | None = 30.0

    @field_validator("schemas")
    @classmethod
    def _unique_schemas(cls, value: list[str]) -> list[str]:
        if any(not s for s in value):
            raise ValueError("Schema names must not be empty")
        if len(value) != len(set(value)):
            raise ValueError("Schema names must be unique")
        return value

    @model_validator(mode="after")
    def _document_prefix_is_managed(self) -> "CatalogSettings":
        # Every document table must also be a managed table
        if not self.document_table_prefix.startswith(self.table_prefix):
            raise ValueError(
                f"document_table_prefix '{self.document_table_prefix}' must start "
                f"with table_prefix '{self.table_prefix}'"
            )
        return self


class DatabaseConfig(BaseModel):
    """Complete database configuration from db.toml."""

    profiles: dict[str, DatabaseProfile] = Field(default_factory=dict)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
