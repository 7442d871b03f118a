"""Main CLI entry point for manaudit."""

import sys
from pathlib import Path

import click
from rich.markup import escape

from manaudit.plugins import discover_plugins, get_all_plugins
from manaudit.utils.logger import console_err, setup_logger

# Version
__version__ = "0.1.0"


_PLUGINS_REGISTERED = False


class ManAuditGroup(click.Group):
    """Click group that prints the description first and keeps the epilog left-aligned."""

    def list_commands(self, ctx):
        # Keep the order in which a renumbering is usually worked through
        order = ["mkdb", "conflicts", "simulate", "kinds"]
        return sorted(self.commands, key=lambda name: (order.index(name) if name in order else len(order), name))

    def format_help(self, ctx, formatter):
        if self.help:
            formatter.write(self.help + "\n\n")

        self.format_usage(ctx, formatter)
        self.format_options(ctx, formatter)

        if self.epilog:
            formatter.write("\n")
            formatter.write(self.epilog + "\n")


@click.group(
    cls=ManAuditGroup,
    context_settings=dict(help_option_names=["-h", "--help"]),
    epilog="""Examples:

  1. Build the registry from a package repository
     manaudit mkdb -r /path/to/repo.redist

  2. List pages that exist in more than one 4/5/7 section
     manaudit conflicts

  3. Preview which pages the renumbering would obscure
     manaudit simulate

  4. Check cross-references in the page sources
     manaudit kinds -m /path/to/usr/src/man

  For more information on a specific command:
    manaudit <command> --help
""",
)
@click.version_option(version=__version__, prog_name="manaudit")
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="Increase verbosity (-v for INFO, -vv for DEBUG)",
)
@click.option(
    "-c",
    "--config",
    "config_file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="YAML configuration file (default: $MANAUDIT_CONFIG or ./manaudit_config.yaml)",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Also write log messages to this file",
)
@click.pass_context
def cli(ctx: click.Context, verbose: int, config_file: Path | None, log_file: str | None) -> None:
    """
    manaudit - Manual page corpus audit tool.

    Builds a registry of the manual pages delivered by a package repository,
    and checks it ahead of a section renumbering.
    """
    ctx.ensure_object(dict)

    ctx.obj["verbose"] = verbose
    ctx.obj["config_file"] = config_file

    logger = setup_logger("manaudit", verbose, log_file)
    ctx.obj["logger"] = logger


def register_cli_plugins() -> None:
    """Discover plugins and register their CLI commands once."""
    global _PLUGINS_REGISTERED
    if _PLUGINS_REGISTERED:
        return

    discover_plugins()
    for plugin_class in get_all_plugins():
        plugin = plugin_class()
        plugin.setup_cli(cli)

    _PLUGINS_REGISTERED = True


# Ensure commands are available upon import for test invocation.
register_cli_plugins()


def main() -> None:
    """Main entry point for the CLI."""
    try:
        register_cli_plugins()
        cli(obj={})
    except KeyboardInterrupt:
        console_err.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
    except click.ClickException:
        raise
    except Exception as e:
        console_err.print(f"[red]Fatal error during initialization: {escape(str(e))}[/red]", highlight=False)
        console_err.print("[dim]This is likely a bug. Please report it.[/dim]")
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
