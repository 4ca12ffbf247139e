"""
Tests for the kvdisk CLI.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from typer.testing import CliRunner

from kvdisk import __version__
from kvdisk.cli.main import app
from kvdisk.codec import BytesCodec
from kvdisk.config import StorageConfig
from kvdisk.hashing import file_name
from kvdisk.storage.disk import DiskStorage
from kvdisk.types import Expiry, SizeAccounting

runner = CliRunner()


@pytest.fixture
def populated_root(temp_dir: Path) -> Path:
    """A storage root with two expired and five live 300-byte entries."""
    root = temp_dir / "store"
    config = StorageConfig(name="cli", root=root, size_accounting=SizeAccounting.LOGICAL)
    base = datetime.now(timezone.utc) + timedelta(days=30)
    with DiskStorage(config, BytesCodec()) as storage:
        storage.add("dead1", b"x" * 100, Expiry.seconds(-60))
        storage.add("dead2", b"x" * 100, Expiry.seconds(-60))
        for i in range(5):
            storage.add(f"live{i}", b"x" * 300, Expiry.at(base + timedelta(minutes=i)))
    return root


class TestCommands:
    """Tests for CLI commands."""

    def test_version(self) -> None:
        """Test that version prints the package version."""
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_key_prints_file_name(self) -> None:
        """Test that key prints the hashed file name."""
        result = runner.invoke(app, ["key", "hello"])
        assert result.exit_code == 0
        assert result.output.strip() == file_name("hello")

    def test_stats_counts_entries(self, populated_root: Path) -> None:
        """Test that stats reports live and expired entries."""
        result = runner.invoke(app, ["stats", str(populated_root), "--logical-size"])

        assert result.exit_code == 0
        assert "Live" in result.output
        assert "Expired" in result.output
        assert "1.5 KB" in result.output
        assert "200 B" in result.output

    def test_sweep_evicts_over_budget(self, populated_root: Path) -> None:
        """Test that sweep removes expired entries and evicts down to half the budget."""
        result = runner.invoke(
            app, ["sweep", str(populated_root), "--max-size", "1000", "--logical-size"]
        )

        assert result.exit_code == 0
        remaining = sorted(p.name for p in populated_root.iterdir())
        assert remaining == [file_name("live0")]

    def test_sweep_oldest_first(self, populated_root: Path) -> None:
        """Test that --oldest-first keeps the newest entry."""
        result = runner.invoke(
            app,
            ["sweep", str(populated_root), "--max-size", "1000", "--logical-size", "--oldest-first"],
        )

        assert result.exit_code == 0
        remaining = sorted(p.name for p in populated_root.iterdir())
        assert remaining == [file_name("live4")]

    def test_clear_with_yes(self, populated_root: Path) -> None:
        """Test that clear --yes deletes the directory."""
        result = runner.invoke(app, ["clear", str(populated_root), "--yes"])

        assert result.exit_code == 0
        assert not populated_root.exists()

    def test_clear_aborts_without_confirmation(self, populated_root: Path) -> None:
        """Test that declining the prompt leaves the directory alone."""
        result = runner.invoke(app, ["clear", str(populated_root)], input="n\n")

        assert result.exit_code != 0
        assert populated_root.exists()

    def test_config_shows_settings(self, mock_env_vars: dict[str, str]) -> None:
        """Test that config lists the effective settings."""
        result = runner.invoke(app, ["config"])

        assert result.exit_code == 0
        assert "MAX_SIZE" in result.output
        assert "4096" in result.output
