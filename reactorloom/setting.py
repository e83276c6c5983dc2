"""Runtime settings for reactorloom.

Settings come from ``config/reactorloom.yaml`` (or the file named by
``REACTORLOOM_CONFIG``), overlaid with ``REACTORLOOM_*`` environment
variables.  The loaded model is cached; call ``get_settings.cache_clear()``
after changing the environment.
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from .core.constants import (
    DEFAULT_METHOD_ORDER,
    DEFAULT_TERMINATION_PARAM,
    LISTENER_METHODS,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "reactorloom.yaml"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

# Environment variable -> settings field
_ENV_OVERRIDES = {
    "REACTORLOOM_LOG_LEVEL": "log_level",
    "REACTORLOOM_INDENT": "indent",
}


class MigrationSettings(BaseModel):
    """Settings shared by the rewriter, the engine, the CLI and the API."""

    log_level: str = Field("INFO", description="Root logging level")
    indent: str = Field("    ", description="One indentation step in generated code")
    listener_method_order: List[str] = Field(
        default_factory=lambda: list(DEFAULT_METHOD_ORDER),
        description="Order of the generated listener methods",
    )
    add_override_annotations: bool = Field(
        True, description="Annotate generated listener methods with @Override"
    )
    termination_param_name: str = Field(
        DEFAULT_TERMINATION_PARAM, description="Parameter name of doFinally"
    )
    file_extensions: List[str] = Field(
        default_factory=lambda: [".java"], description="Files the engine migrates"
    )
    extra_skip_directories: List[str] = Field(
        default_factory=list, description="Directory names skipped on tree walks"
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {_LOG_LEVELS}, got {value!r}")
        return level

    @field_validator("indent")
    @classmethod
    def _check_indent(cls, value: str) -> str:
        if not value or value.strip():
            raise ValueError("indent must be a non-empty run of spaces or tabs")
        return value

    @field_validator("listener_method_order")
    @classmethod
    def _check_method_order(cls, value: List[str]) -> List[str]:
        if sorted(value) != sorted(LISTENER_METHODS):
            raise ValueError(
                f"listener_method_order must be a permutation of {list(LISTENER_METHODS)}"
            )
        return value

    @field_validator("termination_param_name")
    @classmethod
    def _check_param_name(cls, value: str) -> str:
        if not value.isidentifier():
            raise ValueError(f"termination_param_name is not a valid identifier: {value!r}")
        return value


def load_settings(config_path: Optional[Path] = None) -> MigrationSettings:
    """Load settings from YAML and the environment.

    Args:
        config_path: Explicit YAML file.  Defaults to ``REACTORLOOM_CONFIG``
            and then ``config/reactorloom.yaml`` at the project root.

    Returns:
        Validated MigrationSettings

    Raises:
        pydantic.ValidationError: If a value is invalid
    """
    if config_path is None:
        env_path = os.getenv("REACTORLOOM_CONFIG")
        config_path = Path(env_path) if env_path else DEFAULT_CONFIG_PATH

    data = {}
    if config_path.is_file():
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        logger.debug("Loaded settings from %s", config_path)
    else:
        logger.debug("No settings file at %s, using defaults", config_path)

    for env_name, field_name in _ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value is not None:
            data[field_name] = value

    return MigrationSettings(**data)


@lru_cache(maxsize=1)
def get_settings() -> MigrationSettings:
    """Return the process-wide settings."""
    return load_settings()
