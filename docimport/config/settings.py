"""
Importer settings.

Loads settings from an optional YAML file, then applies ``DOCIMPORT_*``
environment variables on top. A ``.env`` file in the working directory
is loaded into the environment first.

Expected YAML format:
```yaml
store: postgres
timeout_seconds: 10
max_document_size: 102400
database:
  host: localhost
  port: 5432
  name: docimport
  user: docimport
log_level: INFO
log_format: json
metrics_file: /var/lib/node_exporter/docimport.prom
```
"""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, field_validator

from docimport.observability.logger import LOG_LEVELS
from docimport.store.validation import DEFAULT_MAX_DOCUMENT_SIZE, DEFAULT_MAX_TRANSACTION_SIZE

ENV_PREFIX = "DOCIMPORT_"

# Environment variable suffix -> path in the settings document
ENV_FIELDS = {
    "STORE": ("store",),
    "TIMEOUT": ("timeout_seconds",),
    "MAX_DOCUMENT_SIZE": ("max_document_size",),
    "MAX_TRANSACTION_SIZE": ("max_transaction_size",),
    "LOG_LEVEL": ("log_level",),
    "LOG_FORMAT": ("log_format",),
    "METRICS_FILE": ("metrics_file",),
    "DB_HOST": ("database", "host"),
    "DB_PORT": ("database", "port"),
    "DB_NAME": ("database", "name"),
    "DB_USER": ("database", "user"),
    "DB_PASSWORD": ("database", "password"),
    "DB_MIN_POOL_SIZE": ("database", "min_pool_size"),
    "DB_MAX_POOL_SIZE": ("database", "max_pool_size"),
}


class DatabaseSettings(BaseModel):
    """PostgreSQL connection settings."""

    host: str = "localhost"
    port: int = Field(5432, gt=0)
    name: str = "docimport"
    user: str = "docimport"
    password: str | None = None
    min_pool_size: int = Field(1, ge=1)
    max_pool_size: int = Field(4, ge=1)


class Settings(BaseModel):
    """
    Settings of one importer process.

    Attributes:
        store: Collection store backend
        database: PostgreSQL connection settings
        timeout_seconds: Deadline of each store call
        max_document_size: Largest accepted encoded document in bytes
        max_transaction_size: Largest accepted insert batch in bytes
        log_level: Log level name
        log_format: "json" or "text"
        metrics_file: Where to write Prometheus metrics after an import
    """

    store: Literal["memory", "postgres"] = "memory"
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    timeout_seconds: float = Field(10.0, gt=0)
    max_document_size: int = Field(DEFAULT_MAX_DOCUMENT_SIZE, gt=0)
    max_transaction_size: int = Field(DEFAULT_MAX_TRANSACTION_SIZE, gt=0)
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "json"
    metrics_file: str | None = None

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, v):
        """Normalize and validate the log level name."""
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(LOG_LEVELS)}, got '{v}'")
        return level

    class Config:
        json_schema_extra = {
            "example": {
                "store": "postgres",
                "database": {"host": "localhost", "port": 5432, "name": "docimport"},
                "timeout_seconds": 10.0,
                "log_level": "INFO",
                "log_format": "json",
            }
        }


def _load_yaml(config_path: str | Path) -> dict[str, Any]:
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(path) as f:
        config = yaml.safe_load(f)

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ValueError(f"Configuration file must contain a mapping: {config_path}")

    return config


def _apply_environment(config: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    for suffix, path in ENV_FIELDS.items():
        value = environ.get(ENV_PREFIX + suffix)
        if value is None or value == "":
            continue

        target = config
        for part in path[:-1]:
            target = target.setdefault(part, {})
        target[path[-1]] = value

    return config


def load_settings(
    config_path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
    load_env_file: bool = True,
) -> Settings:
    """
    Load importer settings.

    Args:
        config_path: Optional YAML configuration file
        environ: Environment to read overrides from (defaults to os.environ)
        load_env_file: Load a ``.env`` file from the working directory first

    Returns:
        Validated settings

    Raises:
        FileNotFoundError: If config_path does not exist
        ValueError: If the file or resulting settings are invalid
    """
    if load_env_file:
        load_dotenv(find_dotenv(usecwd=True))

    config = _load_yaml(config_path) if config_path else {}
    config = _apply_environment(config, os.environ if environ is None else environ)

    return Settings.model_validate(config)
