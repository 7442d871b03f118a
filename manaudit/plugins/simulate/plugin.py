"""
Simulate plugin for previewing the section renumbering.

The renumbering moves 1M to 8 and rotates the 4, 5 and 7 families. This
plugin reports every existing page whose name would be taken over by a
different page after the move.
"""

from __future__ import annotations

from pathlib import Path

import click

from manaudit.core.registry import Registry
from manaudit.core.transformer import simulate
from manaudit.plugins import register_plugin
from manaudit.plugins.base import PluginBase
from manaudit.utils.cli_options import database_option, resolve_runtime_config
from manaudit.utils.errors import handle_error
from manaudit.utils.logger import console, get_logger

logger = get_logger(__name__)


@register_plugin
class SimulatePlugin(PluginBase):
    """Plugin for the renumbering pre-flight check."""

    @property
    def name(self) -> str:
        """Plugin name."""
        return "simulate"

    def setup_cli(self, cli_group: click.Group) -> None:
        """Register the simulate command."""

        @cli_group.command(name="simulate")
        @database_option
        @click.option(
            "--show-occupant",
            is_flag=True,
            help="Also show which relocated page takes over each obscured name",
        )
        @click.pass_context
        def simulate_command(ctx: click.Context, database: Path | None, show_occupant: bool) -> None:
            """
            Report pages the section renumbering would make unreachable.

            Nothing is changed; the registry is only read.

            \b
            Examples:
              manaudit simulate
              manaudit simulate --show-occupant -d /tmp/database.txt

            \b
            Output:
              "old page PAGE(SECT) is obscured" for every affected page.
            """
            runtime = resolve_runtime_config(ctx, database=database)
            ctx.exit(self.execute(database=runtime.audit.database, show_occupant=show_occupant))

    def execute(self, database: Path, show_occupant: bool = False) -> int:  # type: ignore[override]
        """
        Execute the simulate plugin.

        Args:
            database: Registry file to read
            show_occupant: Whether to name the relocated page occupying each key

        Returns:
            Exit code (0 for success, non-zero for failure)
        """
        try:
            registry = Registry.load(database)
            for obscured in simulate(registry):
                line = str(obscured)
                if show_occupant:
                    occ = obscured.occupant
                    line += f" by {occ.page}({occ.provenance}) from {occ.owner}"
                console.print(line, markup=False, highlight=False, soft_wrap=True)
            return 0
        except Exception as e:
            return handle_error(e, show_traceback=logger.getEffectiveLevel() <= 10)
