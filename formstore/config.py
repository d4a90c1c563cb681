"""
Configuration for formstore.

Uses Pydantic Settings to load ``FORMSTORE_*`` environment variables, with
optional overrides from a ``.env`` file.
"""

from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .codec import MAX_FORM_FIELDS


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        database_url: SQLAlchemy URL of the store. When unset, the app uses
            ``app.db`` inside the Flask instance folder.
        entity: Built-in entity kind served over HTTP.
        max_form_fields: Number of form pairs kept from one request body.
        chunk_size: Bytes read from the request stream per dispatcher call.
        redirect_outcome: Append ``?outcome=...`` to post-write redirects.
        log_level: Root logging level for the CLI and dev server.
    """

    model_config = SettingsConfigDict(
        env_prefix="FORMSTORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: Optional[str] = Field(
        default=None,
        description="SQLAlchemy database URL",
    )
    entity: str = Field(
        default="todo",
        description="Entity kind exposed by the HTTP interface",
    )
    max_form_fields: int = Field(
        default=MAX_FORM_FIELDS,
        ge=1,
        description="Maximum number of form pairs parsed from a body",
    )
    chunk_size: int = Field(
        default=4096,
        ge=1,
        description="Request body chunk size handed to the dispatcher",
    )
    redirect_outcome: bool = Field(
        default=False,
        description="Carry the write outcome in the redirect location",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level name",
    )

    @field_validator("entity")
    @classmethod
    def normalize_entity(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return str(value).strip().upper()


def get_settings(**overrides) -> Settings:
    """Build settings from the environment, applying explicit overrides."""
    return Settings(**{key: value for key, value in overrides.items() if value is not None})
