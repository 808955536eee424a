"""Configuration management for the inventory service."""

import logging
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class InventoryConfig(BaseSettings):
    """Configuration for backend selection and client surfaces."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    backend: Literal["csv", "sql", "memory"] = Field(
        default="csv",
        description="Storage backend: csv (flat files), sql (SQLAlchemy) or memory",
    )

    database_url: str = Field(
        default="sqlite:///inventory.db",
        description="SQLAlchemy connection URL used by the sql backend",
    )

    sql_echo: bool = Field(
        default=False,
        description="Log every SQL statement emitted by the sql backend",
    )

    data_dir: Path = Field(
        default=Path.cwd() / "data",
        description="Directory holding the csv backend files",
    )

    stores_file: str = Field(default="stores.csv", description="Stores CSV file name")

    products_file: str = Field(default="products.csv", description="Products CSV file name")

    log_level: str = Field(default="INFO", description="Root log level")

    api_host: str = Field(
        default="0.0.0.0",
        description="API host address",
    )

    api_port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="API port",
    )

    @field_validator("backend", mode="before")
    @classmethod
    def normalize_backend(cls, v: str) -> str:
        """Accept backend names case-insensitively (CSV, SQLite...)."""
        if isinstance(v, str):
            v = v.strip().lower()
            if v == "sqlite":
                return "sql"
        return v

    def validate_config(self) -> None:
        """Validate configuration at startup. Raises ValueError if invalid."""
        errors = []

        if self.backend == "sql" and not self.database_url.strip():
            errors.append("DATABASE_URL required when BACKEND is sql")

        if self.backend == "csv":
            if not self.stores_file.strip() or not self.products_file.strip():
                errors.append("STORES_FILE and PRODUCTS_FILE cannot be empty")
            elif self.stores_file == self.products_file:
                errors.append("STORES_FILE and PRODUCTS_FILE must differ")

        if self.log_level.upper() not in _LOG_LEVELS:
            errors.append(f"LOG_LEVEL must be one of {', '.join(sorted(_LOG_LEVELS))}")

        if errors:
            raise ValueError(
                "Configuration validation failed:\n"
                + "\n".join(f"  - {e}" for e in errors)
            )


_config_instance = None


def get_config() -> InventoryConfig:
    """Get or create global configuration instance."""
    global _config_instance
    if _config_instance is None:
        _config_instance = InventoryConfig()
        _config_instance.validate_config()
        logger.info("Configuration validated successfully (backend=%s)", _config_instance.backend)
    return _config_instance


def reload_config() -> InventoryConfig:
    """Reload configuration (useful for testing)."""
    global _config_instance
    _config_instance = InventoryConfig()
    return _config_instance


def configure_logging(config: InventoryConfig, *, verbose: bool = False) -> None:
    """Configure root logging at LOG_LEVEL; ``verbose`` forces DEBUG."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else config.log_level.upper(),
        format=LOG_FORMAT,
    )
