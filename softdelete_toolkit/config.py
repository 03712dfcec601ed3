"""
Configuration module for the soft-delete toolkit.

Provides centralized configuration for the statement pipeline and the
soft-delete rewrites.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union, get_args, get_origin

import pytz
import yaml
from pydantic import BaseModel, Field, field_validator


class SoftDeleteConfig(BaseModel):
    """Central configuration for soft-delete pipelines.

    Configuration Sources (in order of precedence):
        1. Programmatic settings (highest priority)
        2. Environment variables (SOFTDELETE_ prefix)
        3. Configuration files (JSON or YAML)
        4. Default values (lowest priority)

    Example:
        >>> config = SoftDeleteConfig(timezone="Europe/Berlin")
        >>> config.now().tzinfo is not None
        True

        Loading from environment:

        >>> import os
        >>> os.environ['SOFTDELETE_ALLOW_GLOBAL_UPDATE'] = 'true'
        >>> config = SoftDeleteConfig.from_env()

    Note:
        ``allow_global_update`` also permits a physical DELETE of every row
        when a pipeline runs unscoped. Leave it off outside of maintenance
        scripts.
    """

    timezone: str = Field("UTC", description="Time zone of deletion timestamps")
    naive_timestamps: bool = Field(
        False, description="Strip tzinfo from deletion timestamps before storing"
    )
    allow_global_update: bool = Field(
        False, description="Allow updates and deletes without a WHERE clause"
    )
    log_statements: bool = Field(
        False, description="Log rendered statements at DEBUG level"
    )

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Ensure the time zone is known to pytz."""
        if v not in pytz.all_timezones_set:
            raise ValueError(f"Unknown time zone: {v}")
        return v

    def now(self) -> datetime:
        """Current time in the configured time zone."""
        current = datetime.now(pytz.timezone(self.timezone))
        if self.naive_timestamps:
            return current.replace(tzinfo=None)
        return current

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return self.model_dump()

    @classmethod
    def from_env(cls, prefix: str = "SOFTDELETE_") -> "SoftDeleteConfig":
        """
        Load configuration from environment variables.

        Args:
            prefix: Prefix for environment variables

        Returns:
            Configuration instance
        """
        import os

        config_dict: Dict[str, Any] = {}

        for field_name, field_info in cls.model_fields.items():
            env_var = f"{prefix}{field_name.upper()}"
            if env_var not in os.environ:
                continue
            value = os.environ[env_var]

            field_type = field_info.annotation
            if get_origin(field_type) is Union:
                args = get_args(field_type)
                field_type = next((arg for arg in args if arg is not type(None)), str)

            if field_type == bool:
                config_dict[field_name] = value.lower() in ("true", "1", "yes", "on")
            else:
                config_dict[field_name] = value

        return cls.model_validate(config_dict)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "SoftDeleteConfig":
        """
        Load configuration from a JSON or YAML file.

        Args:
            path: File path; ``.yaml``/``.yml`` are read as YAML, anything
                else as JSON

        Returns:
            Configuration instance
        """
        path = Path(path)
        text = path.read_text(encoding="utf-8")
        if path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(text) or {}
        else:
            data = json.loads(text)
        return cls.model_validate(data)


# Global configuration instance
_config: Optional[SoftDeleteConfig] = None


def get_config() -> SoftDeleteConfig:
    """
    Get the global configuration instance.

    Returns:
        Global configuration
    """
    global _config

    if _config is None:
        _config = SoftDeleteConfig.from_env()

    return _config


def set_config(config: Optional[SoftDeleteConfig]) -> None:
    """
    Set the global configuration instance.

    Args:
        config: Configuration to set; None resets to environment defaults
    """
    global _config
    _config = config


def configure(**kwargs: Any) -> SoftDeleteConfig:
    """
    Configure the toolkit with keyword arguments.

    Args:
        **kwargs: Configuration parameters

    Returns:
        Updated configuration
    """
    global _config

    if _config is None:
        _config = SoftDeleteConfig(**kwargs)
    else:
        config_dict = _config.to_dict()
        config_dict.update(kwargs)
        _config = SoftDeleteConfig(**config_dict)

    return _config
