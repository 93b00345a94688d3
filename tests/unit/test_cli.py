"""
Unit tests for the CLI.

Tests cover:
- --version
- list (table, JSON, empty root)
- root-dir
- Invalid configuration
"""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from isolator import __version__
from isolator.cli import app
from isolator.config import IsolatorConfig
from isolator.engine import get_capsules_root_dir

runner = CliRunner()


# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
def config_file(temp_dir: Path) -> Path:
    """Config file pointing the cache into the temp dir."""
    path = temp_dir / "isolator.yaml"
    path.write_text(f"cache_root: {temp_dir / 'cache'}\n")
    return path


@pytest.fixture
def populated_root(temp_dir: Path, workspace: Path) -> Path:
    """Isolation root with two capsule directories and a marker file."""
    root = get_capsules_root_dir(workspace.resolve(), IsolatorConfig(cache_root=temp_dir / "cache"))
    (root / "acme_button_1.0.0").mkdir(parents=True)
    (root / "acme_card").mkdir()
    (root / ".isolator_installed").write_text("")
    return root


# =============================================================================
# Command Tests
# =============================================================================


class TestVersion:
    """Tests for --version."""

    def test_version(self) -> None:
        """--version prints the package version."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestList:
    """Tests for the list command."""

    def test_empty(self, workspace: Path, config_file: Path) -> None:
        """A workspace without capsules is reported, not an error."""
        result = runner.invoke(app, ["list", str(workspace), "--config", str(config_file)])
        assert result.exit_code == 0
        assert "No capsules found" in result.output

    def test_table(self, workspace: Path, config_file: Path, populated_root: Path) -> None:
        """Capsules are shown in a table."""
        result = runner.invoke(app, ["list", str(workspace), "-c", str(config_file)])
        assert result.exit_code == 0
        assert "acme_button_1.0.0" in result.output
        assert "acme_card" in result.output
        assert "Total: 2" in result.output

    def test_json(self, workspace: Path, config_file: Path, populated_root: Path) -> None:
        """--json prints the capsule paths."""
        result = runner.invoke(app, ["list", str(workspace), "-c", str(config_file), "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["workspace"] == str(workspace.resolve())
        assert data["capsules"] == [
            str(populated_root / "acme_button_1.0.0"),
            str(populated_root / "acme_card"),
        ]

    def test_invalid_config(self, workspace: Path, temp_dir: Path) -> None:
        """An invalid config exits with code 1."""
        bad = temp_dir / "bad.yaml"
        bad.write_text("max_workers: -1\n")
        result = runner.invoke(app, ["list", str(workspace), "-c", str(bad)])
        assert result.exit_code == 1


class TestRootDir:
    """Tests for the root-dir command."""

    def test_root_dir(self, workspace: Path, config_file: Path, temp_dir: Path) -> None:
        """root-dir prints the isolation root of the workspace."""
        result = runner.invoke(app, ["root-dir", str(workspace), "-c", str(config_file)])
        assert result.exit_code == 0
        expected = get_capsules_root_dir(workspace.resolve(), IsolatorConfig(cache_root=temp_dir / "cache"))
        assert result.output.strip() == str(expected)
