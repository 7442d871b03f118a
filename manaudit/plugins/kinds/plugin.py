"""
Kinds plugin for classifying manual pages and auditing their cross-references.

Each registered page file is read from the source tree and classified as
mdoc or roff. Roff pages are scanned for ``\\fBpage\\fR(sect)`` references,
and every reference is checked against the registry.
"""

from __future__ import annotations

from pathlib import Path

import click

from manaudit.core.page_source import ManualPageSource
from manaudit.core.registry import Registry
from manaudit.core.xref import XrefAuditor
from manaudit.plugins import register_plugin
from manaudit.plugins.base import PluginBase
from manaudit.utils.cli_options import database_option, resolve_runtime_config
from manaudit.utils.errors import ConfigurationError, handle_error
from manaudit.utils.logger import console, console_err, get_logger

logger = get_logger(__name__)


@register_plugin
class KindsPlugin(PluginBase):
    """Plugin for the page kind and cross-reference audit."""

    @property
    def name(self) -> str:
        """Plugin name."""
        return "kinds"

    def setup_cli(self, cli_group: click.Group) -> None:
        """Register the kinds command."""

        @cli_group.command(name="kinds")
        @database_option
        @click.option(
            "-m",
            "--man-root",
            "man_root",
            type=click.Path(file_okay=False, path_type=Path),
            default=None,
            help="Root of the manual page sources (the directory holding man1, man3c, ...)",
        )
        @click.option(
            "--fail-on-missing",
            is_flag=True,
            help="Exit with status 1 if any cross-reference does not resolve",
        )
        @click.pass_context
        def kinds_command(
            ctx: click.Context,
            database: Path | None,
            man_root: Path | None,
            fail_on_missing: bool,
        ) -> None:
            """
            Classify pages as mdoc or roff and check roff cross-references.

            \b
            Examples:
              manaudit kinds -m /ws/rti/usr/src/man
              manaudit kinds -m ./man -d database.txt --fail-on-missing

            \b
            Output:
              "mdoc PAGE(SECT)" or "roff PAGE(SECT)" per page, followed by
              "    -> PAGE(SECT)" for each resolved reference. Unresolved
              references are printed to stderr as "MISSING PAGE(SECT)?".
            """
            runtime = resolve_runtime_config(ctx, database=database, man_root=man_root)
            ctx.exit(
                self.execute(
                    database=runtime.audit.database,
                    man_root=runtime.audit.man_root,
                    fail_on_missing=fail_on_missing,
                )
            )

    def execute(  # type: ignore[override]
        self,
        database: Path,
        man_root: Path | None,
        fail_on_missing: bool = False,
    ) -> int:
        """
        Execute the kinds plugin.

        Args:
            database: Registry file to read
            man_root: Root of the manual page sources
            fail_on_missing: Return non-zero when references are missing

        Returns:
            Exit code (0 for success, non-zero for failure)
        """
        try:
            if man_root is None:
                raise ConfigurationError(None, "no manual page root given (use -m/--man-root or audit.man_root)")

            registry = Registry.load(database)
            auditor = XrefAuditor(registry, ManualPageSource(man_root))

            pages = 0
            missing = 0
            for result in auditor.audit():
                pages += 1
                console.print(f"{result.kind} {result.record}", markup=False, highlight=False, soft_wrap=True)
                for check in result.checks:
                    if check.resolved:
                        console.print(f"    -> {check.xref}", markup=False, highlight=False, soft_wrap=True)
                    else:
                        missing += 1
                        console_err.print(f"MISSING {check.xref}?", markup=False, highlight=False, soft_wrap=True)

            logger.info(f"Audited {pages} page(s), {missing} missing reference(s)")
            if fail_on_missing and missing:
                return 1
            return 0

        except Exception as e:
            return handle_error(e, show_traceback=logger.getEffectiveLevel() <= 10)
