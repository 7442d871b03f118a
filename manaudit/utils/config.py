"""Configuration objects and helpers for manaudit.

A ``RuntimeConfig`` is assembled from several sources (YAML configuration
file, environment variables and CLI overrides). Commands should only depend
on ``RuntimeConfig`` and must not read environment variables directly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Tuple

import yaml

from manaudit.utils.errors import ConfigurationError

# Environment variable used to locate the main configuration file.
ENV_CONFIG_PATH = "MANAUDIT_CONFIG"

# Default YAML configuration file name (looked up in current working dir).
DEFAULT_CONFIG_FILE_NAME = "manaudit_config.yaml"


@dataclass
class ToolsConfig:
    """Paths for external tools.

    A ``None`` path means the wrapper falls back to the stock location and
    then ``shutil.which()``.
    """

    pkgrepo_path: Path | None = None

    @classmethod
    def from_sources(
        cls,
        *,
        yaml_data: Mapping[str, Any] | None = None,
        env: Mapping[str, str] | None = None,
        overrides: Mapping[str, Any] | None = None,
    ) -> "ToolsConfig":
        """Build ``ToolsConfig`` from YAML, environment and overrides.

        Precedence (low -> high): defaults < YAML < ENV < overrides.
        """

        yaml_data = yaml_data or {}
        env = os.environ if env is None else env
        overrides = overrides or {}

        cfg = cls()

        for field in fields(cls):
            key = field.name
            if yaml_data.get(key) is not None:
                setattr(cfg, key, Path(str(yaml_data[key])))

        env_value = env.get("PKGREPO_PATH")
        if env_value:
            cfg.pkgrepo_path = Path(env_value)

        for field in fields(cls):
            key = field.name
            if overrides.get(key) is not None:
                setattr(cfg, key, Path(str(overrides[key])))

        return cfg


@dataclass
class AuditConfig:
    """Settings shared by the ingestion and analysis commands."""

    repository: str | None = None
    database: Path = Path("database.txt")
    man_root: Path | None = None

    # Ingestion
    workers: int = 8
    group_size: int = 1

    @classmethod
    def from_sources(
        cls,
        *,
        yaml_data: Mapping[str, Any] | None = None,
        overrides: Mapping[str, Any] | None = None,
    ) -> "AuditConfig":
        """Build ``AuditConfig`` from YAML and overrides.

        Precedence (low -> high): defaults < YAML < overrides.
        """

        yaml_data = yaml_data or {}
        overrides = overrides or {}

        cfg = cls()
        field_names = {f.name for f in fields(cls)}

        for source in (yaml_data, overrides):
            for key, value in source.items():
                if key in field_names and value is not None:
                    setattr(cfg, key, value)

        # YAML hands us plain strings
        cfg.database = Path(cfg.database)
        if cfg.man_root is not None:
            cfg.man_root = Path(cfg.man_root)

        return cfg

    def validate(self, source: Path | None = None) -> None:
        """Reject values no command can work with.

        Args:
            source: Configuration file the values came from, for error messages

        Raises:
            ConfigurationError: If a numeric setting is not a positive integer
        """
        for name in ("workers", "group_size"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                raise ConfigurationError(source, f"'{name}' must be a positive integer, got {value!r}")


@dataclass
class RuntimeConfig:
    """Aggregated runtime configuration."""

    tools: ToolsConfig
    audit: AuditConfig
    source: Path | None = None


def _load_yaml_file(config_path: Path) -> dict[str, Any]:
    """Load a YAML config file and validate its structure.

    Raises ``ConfigurationError`` if the file cannot be parsed or the
    top-level structure is not a mapping.
    """

    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(config_path, f"YAML parse error: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigurationError(config_path, "Top-level YAML must be a mapping")

    for section in ("tools", "audit"):
        if section in data and not isinstance(data[section], dict):
            raise ConfigurationError(config_path, f"'{section}' must be a mapping")

    return data


def load_yaml_config(
    config_file: Path | None,
    *,
    env: Mapping[str, str] | None = None,
) -> Tuple[dict[str, Any], Path | None]:
    """Load YAML configuration from explicit/ENV/default locations.

    Resolution order:
    1) Explicit ``config_file`` argument (if provided).
    2) ``MANAUDIT_CONFIG`` environment variable.
    3) ``./manaudit_config.yaml`` if it exists.

    Returns a tuple of ``(config_dict, resolved_path)`` where
    ``config_dict`` is empty when no configuration file is found.
    """

    env = os.environ if env is None else env

    if config_file is not None:
        if not config_file.exists():
            raise ConfigurationError(config_file, "Configuration file not found")
        return _load_yaml_file(config_file), config_file

    env_path_str = env.get(ENV_CONFIG_PATH)
    if env_path_str:
        env_path = Path(env_path_str)
        if not env_path.exists():
            raise ConfigurationError(env_path, "Configuration file not found")
        return _load_yaml_file(env_path), env_path

    default_path = Path(DEFAULT_CONFIG_FILE_NAME)
    if default_path.exists():
        return _load_yaml_file(default_path), default_path

    return {}, None


def build_runtime_config(
    *,
    config_file: Path | None = None,
    env: Mapping[str, str] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> RuntimeConfig:
    """Construct ``RuntimeConfig`` from multiple sources.

    Precedence (high -> low):
    1) CLI overrides (``cli_overrides``).
    2) Environment variables (tool paths and config file path only).
    3) YAML configuration file (if present).
    4) Dataclass defaults.
    """

    cli_overrides = cli_overrides or {}
    env = os.environ if env is None else env

    yaml_data, source = load_yaml_config(config_file, env=env)

    tools = ToolsConfig.from_sources(
        yaml_data=yaml_data.get("tools", {}),
        env=env,
        overrides=cli_overrides,
    )
    audit = AuditConfig.from_sources(
        yaml_data=yaml_data.get("audit", {}),
        overrides=cli_overrides,
    )
    audit.validate(source)

    return RuntimeConfig(tools=tools, audit=audit, source=source)
