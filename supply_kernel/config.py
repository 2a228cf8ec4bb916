"""
Fulfillment Configuration Schema.

Defines the structure and sensible defaults for the fulfillment kernel.
Override at instantiation, or load from a mapping, the environment, or a
YAML file:

    config = FulfillmentConfig.from_yaml("supply.yaml")
    config = FulfillmentConfig.from_env()
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Self

import yaml

from supply_kernel.logging_config import get_logger

logger = get_logger("config")

_ENV_VARS = {
    "database_url": "DATABASE_URL",
    "log_level": "SUPPLY_LOG_LEVEL",
    "max_persist_attempts": "SUPPLY_MAX_PERSIST_ATTEMPTS",
}


@dataclass
class FulfillmentConfig:
    """
    Configuration schema for the fulfillment kernel.

    Field defaults suit a single-process deployment on SQLite:

        config = FulfillmentConfig(
            database_url="postgresql://supply@localhost/supply",
            max_persist_attempts=5,
        )
    """

    # Persistence
    database_url: str = "sqlite:///supply.db"
    echo_sql: bool = False

    # Transient-failure retry at the command boundary
    max_persist_attempts: int = 3
    retry_backoff_seconds: float = 0.05

    # Purchase orders
    default_issue_on_create: bool = True
    generate_order_codes: bool = True
    order_code_prefix: str = "PO"

    # Logging
    log_level: str = "INFO"

    def __post_init__(self):
        if self.max_persist_attempts < 1:
            raise ValueError(
                f"max_persist_attempts ({self.max_persist_attempts}) must be at least 1"
            )
        if self.retry_backoff_seconds < 0:
            raise ValueError(
                f"retry_backoff_seconds ({self.retry_backoff_seconds}) must not be negative"
            )
        if not self.order_code_prefix.strip():
            raise ValueError("order_code_prefix must not be blank")
        logger.info(
            "fulfillment_config_initialized",
            extra={
                "dialect": self.database_url.split(":", 1)[0],
                "max_persist_attempts": self.max_persist_attempts,
                "default_issue_on_create": self.default_issue_on_create,
                "generate_order_codes": self.generate_order_codes,
                "order_code_prefix": self.order_code_prefix,
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with the built-in defaults."""
        logger.info("fulfillment_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from a mapping; unknown keys are rejected."""
        logger.info(
            "fulfillment_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown fulfillment config keys: {unknown}")
        return cls(**data)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> Self:
        """Create config from environment variables over the defaults."""
        env = os.environ if environ is None else environ
        data: dict[str, Any] = {}
        for field_name, var in _ENV_VARS.items():
            if var in env:
                data[field_name] = env[var]
        if "max_persist_attempts" in data:
            data["max_persist_attempts"] = int(data["max_persist_attempts"])
        return cls.from_dict(data)

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        """Create config from a YAML file.

        The file is either a flat mapping of config keys or holds them under
        a top-level ``fulfillment`` key.
        """
        with open(path, encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"{path}: expected a mapping at the top level")
        data = raw.get("fulfillment", raw)
        logger.info("fulfillment_config_loaded_from_yaml", extra={"path": str(path)})
        return cls.from_dict(dict(data))
