"""
Conflicts plugin for finding page names shared by the 4/5/7 sections.
"""

from __future__ import annotations

from pathlib import Path

import click

from manaudit.core.conflicts import find_conflicts
from manaudit.core.registry import Registry
from manaudit.plugins import register_plugin
from manaudit.plugins.base import PluginBase
from manaudit.utils.cli_options import database_option, resolve_runtime_config
from manaudit.utils.errors import handle_error
from manaudit.utils.logger import console, get_logger

logger = get_logger(__name__)


@register_plugin
class ConflictsPlugin(PluginBase):
    """Plugin reporting pages that exist in several rotated section families."""

    @property
    def name(self) -> str:
        """Plugin name."""
        return "conflicts"

    def setup_cli(self, cli_group: click.Group) -> None:
        """Register the conflicts command."""

        @cli_group.command(name="conflicts")
        @database_option
        @click.pass_context
        def conflicts_command(ctx: click.Context, database: Path | None) -> None:
            """
            List page names found in more than one 4/5/7 section.

            Rotating the 4, 5 and 7 families cannot give such a page a
            collision-free home, so each one needs a manual decision.

            \b
            Examples:
              manaudit conflicts
              manaudit conflicts -d /tmp/database.txt

            \b
            Output:
              One line per page name followed by its sections, e.g.
              "open             4D  5D".
            """
            runtime = resolve_runtime_config(ctx, database=database)
            ctx.exit(self.execute(database=runtime.audit.database))

    def execute(self, database: Path) -> int:  # type: ignore[override]
        """
        Execute the conflicts plugin.

        Args:
            database: Registry file to read

        Returns:
            Exit code (0 for success, non-zero for failure)
        """
        try:
            registry = Registry.load(database)
            conflicts = find_conflicts(registry)
            for conflict in conflicts:
                console.print(conflict.format(), markup=False, highlight=False, soft_wrap=True)
            logger.info(f"{len(conflicts)} conflicting page name(s)")
            return 0
        except Exception as e:
            return handle_error(e, show_traceback=logger.getEffectiveLevel() <= 10)
