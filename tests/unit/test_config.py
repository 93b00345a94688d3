"""
Unit tests for configuration loading.

Tests cover:
- Defaults and environment fallback for the cache root
- Loading from YAML files and strings
- Invalid configuration handling
"""

from pathlib import Path

import pytest

from isolator.config import (
    CACHE_ROOT_ENV,
    IsolatorConfig,
    default_cache_root,
    load_config,
    load_config_from_string,
)
from isolator.errors import ConfigError


# =============================================================================
# Default Tests
# =============================================================================


class TestDefaults:
    """Tests for configuration defaults."""

    def test_cache_root_from_env(self, monkeypatch: pytest.MonkeyPatch, temp_dir: Path) -> None:
        """The environment variable sets the cache root."""
        monkeypatch.setenv(CACHE_ROOT_ENV, str(temp_dir / "c"))
        assert default_cache_root() == temp_dir / "c"
        assert IsolatorConfig().cache_root == temp_dir / "c"

    def test_cache_root_home_fallback(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Without the variable the user cache dir is used."""
        monkeypatch.delenv(CACHE_ROOT_ENV, raising=False)
        assert default_cache_root() == Path.home() / ".cache" / "isolator"

    def test_capsules_base_dir(self, temp_dir: Path) -> None:
        """Capsules live under <cache_root>/capsules."""
        config = IsolatorConfig(cache_root=temp_dir)
        assert config.capsules_base_dir == temp_dir / "capsules"

    def test_cache_root_expands_user(self) -> None:
        """~ in the cache root is expanded."""
        config = IsolatorConfig(cache_root=Path("~/isolator-cache"))
        assert "~" not in str(config.cache_root)


# =============================================================================
# Loading Tests
# =============================================================================


class TestLoadConfig:
    """Tests for load_config and load_config_from_string."""

    def test_load_from_string(self) -> None:
        """Nested defaults merge over the option defaults."""
        config = load_config_from_string(
            """
cache_root: /tmp/isolator-cache
max_workers: 2
defaults:
  empty_root_dir: true
  install_options:
    dedupe: false
"""
        )
        assert config.cache_root == Path("/tmp/isolator-cache")
        assert config.max_workers == 2
        assert config.defaults.empty_root_dir is True
        assert config.defaults.install_options.dedupe is False
        assert config.defaults.install_options.copy_peer_to_runtime_on_root is True

    def test_load_from_file(self, temp_dir: Path) -> None:
        """A YAML file on disk is loaded."""
        path = temp_dir / "isolator.yaml"
        path.write_text("max_workers: 3\n")
        assert load_config(path).max_workers == 3

    def test_empty_document_gives_defaults(self) -> None:
        """An empty document yields the defaults."""
        config = load_config_from_string("")
        assert config.max_workers is None

    def test_missing_file(self, temp_dir: Path) -> None:
        """A missing file raises ConfigError."""
        with pytest.raises(ConfigError):
            load_config(temp_dir / "missing.yaml")

    def test_invalid_yaml(self) -> None:
        """Malformed YAML raises ConfigError."""
        with pytest.raises(ConfigError, match="invalid YAML"):
            load_config_from_string("defaults: [unclosed")

    def test_unknown_key(self) -> None:
        """Unknown keys are rejected."""
        with pytest.raises(ConfigError):
            load_config_from_string("cache_dir: /tmp\n")

    def test_invalid_value(self) -> None:
        """Out-of-range values are rejected."""
        with pytest.raises(ConfigError):
            load_config_from_string("max_workers: 0\n")

    def test_non_mapping(self) -> None:
        """A non-mapping document is rejected."""
        with pytest.raises(ConfigError, match="mapping"):
            load_config_from_string("- a\n- b\n")
