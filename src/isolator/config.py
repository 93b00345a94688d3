"""
Configuration for the isolator.

IsolatorConfig holds process-wide settings: where capsules are cached, how
many worker threads batch phases may use, and the default IsolateOptions
merged under every call.

Configuration is loaded from YAML:

    cache_root: ~/.cache/isolator
    max_workers: 8
    defaults:
      empty_root_dir: false
      install_options:
        dedupe: true

The cache root falls back to $ISOLATOR_CACHE_ROOT, then ~/.cache/isolator.
"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from isolator.errors import ConfigError
from isolator.schema import IsolateOptions

CACHE_ROOT_ENV = "ISOLATOR_CACHE_ROOT"
CAPSULES_DIR_NAME = "capsules"


def default_cache_root() -> Path:
    """Resolve the cache root from the environment or the user cache dir."""
    env_value = os.environ.get(CACHE_ROOT_ENV)
    if env_value:
        return Path(env_value).expanduser()
    return Path.home() / ".cache" / "isolator"


class IsolatorConfig(BaseModel):
    """
    Process-wide isolator configuration.

    Attributes:
        cache_root: Directory holding the capsules/ tree
        max_workers: Thread pool size for batch phases (None = executor default)
        defaults: IsolateOptions every call is merged onto
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    cache_root: Path = Field(default_factory=default_cache_root)
    max_workers: int | None = Field(default=None, gt=0)
    defaults: IsolateOptions = Field(default_factory=IsolateOptions)

    @field_validator("cache_root")
    @classmethod
    def expand_cache_root(cls, v: Path) -> Path:
        return Path(v).expanduser()

    @property
    def capsules_base_dir(self) -> Path:
        return self.cache_root / CAPSULES_DIR_NAME


def _validate(data: Any, source: str) -> IsolatorConfig:
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(config_path=source, validation_error="top level must be a mapping")
    try:
        return IsolatorConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(config_path=source, validation_error=str(e)) from e


def load_config(path: Path | str) -> IsolatorConfig:
    """
    Load an isolator configuration from a YAML file.

    Raises:
        ConfigError: If the file is missing, not YAML, or fails validation
    """
    path = Path(path)
    try:
        with path.open() as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(config_path=str(path), validation_error=str(e)) from e
    except yaml.YAMLError as e:
        raise ConfigError(config_path=str(path), validation_error=f"invalid YAML: {e}") from e
    return _validate(data, str(path))


def load_config_from_string(content: str) -> IsolatorConfig:
    """Load an isolator configuration from a YAML string."""
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(config_path="<string>", validation_error=f"invalid YAML: {e}") from e
    return _validate(data, "<string>")
