"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from manaudit.core.registry import Registry
from tests.fixtures import ManTreeBuilder, write_registry

SAMPLE_ROWS = [
    ("f", "1", "ls", "system/core-os"),
    ("f", "1M", "mount", "system/core-os"),
    ("l", "1M", "umount", "system/core-os"),
    ("f", "2", "open", "system/kernel"),
    ("f", "4D", "open", "driver/a"),
    ("f", "4FS", "foo", "pkgA"),
    ("f", "5FS", "foo", "pkgB"),
    ("f", "7D", "open", "driver/b"),
    ("f", "8", "mount", "system/extra"),
]


@pytest.fixture
def runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def sample_rows() -> list[tuple[str, str, str, str]]:
    """Registry rows covering moved, rotated and untouched sections."""
    return list(SAMPLE_ROWS)


@pytest.fixture
def registry_file(tmp_path: Path) -> Path:
    """Persisted registry file built from ``SAMPLE_ROWS``."""
    return write_registry(tmp_path / "database.txt", SAMPLE_ROWS)


@pytest.fixture
def sample_registry(registry_file: Path) -> Registry:
    """Registry loaded from ``registry_file``."""
    return Registry.load(registry_file)


@pytest.fixture
def man_tree(tmp_path: Path) -> ManTreeBuilder:
    """Empty manual page source tree."""
    root = tmp_path / "man"
    root.mkdir()
    return ManTreeBuilder(root)
