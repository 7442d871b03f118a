"""Common CLI options and helpers for plugins."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import click

from manaudit.utils.config import RuntimeConfig, build_runtime_config
from manaudit.utils.errors import ManAuditError, handle_error


def database_option(func: Callable) -> Callable:
    """
    Add the -d/--database option to a Click command.

    The option defaults to None so that the configured (or built-in)
    registry path applies unless the user gives one explicitly.
    """
    return click.option(
        "-d",
        "--database",
        "database",
        type=click.Path(dir_okay=False, path_type=Path),
        default=None,
        help="Registry file (default: audit.database from config, else database.txt)",
    )(func)


def resolve_runtime_config(ctx: click.Context, **overrides: Any) -> RuntimeConfig:
    """
    Build the runtime configuration for a command, exiting on bad configuration.

    Args:
        ctx: Click context of the running command
        **overrides: Option values from the command line (None means "not given")

    Returns:
        Runtime configuration
    """
    root_obj = ctx.find_root().obj or {}
    try:
        return build_runtime_config(
            config_file=root_obj.get("config_file"),
            cli_overrides=overrides,
        )
    except ManAuditError as e:
        ctx.exit(handle_error(e, show_traceback=root_obj.get("verbose", 0) >= 2))
