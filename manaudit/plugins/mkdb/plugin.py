"""
Mkdb plugin for building the manual page registry.

This plugin lists every package in a repository, fetches the package
manifests concurrently, and records each manual page file and link the
packages deliver.
"""

from __future__ import annotations

from pathlib import Path

import click
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from manaudit.core.corpus_fetcher import ContentLister, CorpusFetcher, WorkItem
from manaudit.core.ips import Action, Package
from manaudit.core.manpath import man_entry
from manaudit.core.pkgrepo_wrapper import PkgrepoWrapper
from manaudit.core.registry import Registry
from manaudit.plugins import register_plugin
from manaudit.plugins.base import PluginBase
from manaudit.utils.cli_options import database_option, resolve_runtime_config
from manaudit.utils.errors import ConfigurationError, handle_error
from manaudit.utils.logger import console, console_err, get_logger

logger = get_logger(__name__)


def ingest_actions(registry: Registry, owner: str, actions: list[Action]) -> int:
    """
    Insert the manual pages delivered by one package.

    Args:
        registry: Registry being built
        owner: Package name recorded as the owner
        actions: The package's manifest actions

    Returns:
        Number of records inserted

    Raises:
        MalformedManifestPath: For manual page paths of an unexpected shape
        RegistryConflict: If another package already delivers the same page
    """
    count = 0
    for action in actions:
        entry = man_entry(action)
        if entry is None:
            continue
        is_alias, section, page = entry
        registry.insert(is_alias, section, page, owner)
        count += 1
    return count


def build_registry(
    repo: str,
    packages: list[Package],
    lister: ContentLister,
    workers: int = 8,
    group_size: int = 1,
    progress: Progress | None = None,
) -> Registry:
    """
    Fetch every package's contents and build the registry.

    Args:
        repo: Repository path or URI
        packages: Packages to ingest
        lister: Content lister, called from worker threads
        workers: Number of concurrent fetch workers
        group_size: Packages fetched and delivered together per work group
        progress: Optional progress display advanced per package

    Returns:
        Registry in canonical order

    Raises:
        ExternalToolFailure: If any package's contents cannot be listed
        MalformedManifestPath, RegistryConflict: From ingesting a manifest
    """
    fetcher = CorpusFetcher(lister)
    for start in range(0, len(packages), group_size):
        fetcher.append([WorkItem(repo=repo, package=p) for p in packages[start:start + group_size]])

    task = progress.add_task("Fetching manifests", total=len(packages)) if progress else None

    registry = Registry()
    with fetcher.run(workers) as batches:
        for batch in batches:
            for result in batch:
                added = ingest_actions(registry, result.package.name, result.actions)
                logger.info(f"{result.package.name}: {added} page(s)")
                if progress is not None and task is not None:
                    progress.advance(task)

    return registry


@register_plugin
class MkdbPlugin(PluginBase):
    """Plugin for building the registry from a package repository."""

    @property
    def name(self) -> str:
        """Plugin name."""
        return "mkdb"

    def setup_cli(self, cli_group: click.Group) -> None:
        """Register the mkdb command."""

        @cli_group.command(name="mkdb")
        @click.option(
            "-r",
            "--repo",
            "repository",
            type=str,
            default=None,
            help="Package repository to scan (default: audit.repository from config)",
        )
        @click.option(
            "-p",
            "--pattern",
            type=str,
            default=None,
            help="Only ingest packages matching this pkgrepo pattern",
        )
        @click.option(
            "-w",
            "--workers",
            type=click.IntRange(min=1),
            default=None,
            help="Number of concurrent manifest fetches (default: 8)",
        )
        @click.option(
            "-g",
            "--group-size",
            "group_size",
            type=click.IntRange(min=1),
            default=None,
            help="Packages fetched per work group (default: 1)",
        )
        @click.option(
            "--pkgrepo",
            "pkgrepo_path",
            type=click.Path(dir_okay=False, path_type=Path),
            default=None,
            help="Path to the pkgrepo executable",
        )
        @database_option
        @click.pass_context
        def mkdb_command(
            ctx: click.Context,
            repository: str | None,
            pattern: str | None,
            workers: int | None,
            group_size: int | None,
            pkgrepo_path: Path | None,
            database: Path | None,
        ) -> None:
            """
            Build the manual page registry from a package repository.

            Every package's manifest is fetched with pkgrepo, and each file or
            link delivered under usr/share/man becomes one registry record.
            Two packages delivering the same page is an error.

            \b
            Examples:
              # Build database.txt from a repository
              manaudit mkdb -r /ws/rti/packages/i386/nightly-nd/repo.redist

              # Only network packages, 16 parallel fetches
              manaudit mkdb -r /path/to/repo -p 'network/*' -w 16 -d net.txt

            \b
            Output:
              One line per record: kind (f|l), section, page, owning package.
            """
            runtime = resolve_runtime_config(
                ctx,
                repository=repository,
                workers=workers,
                group_size=group_size,
                database=database,
                pkgrepo_path=pkgrepo_path,
            )
            exit_code = self.execute(
                repository=runtime.audit.repository,
                database=runtime.audit.database,
                pattern=pattern,
                workers=runtime.audit.workers,
                group_size=runtime.audit.group_size,
                pkgrepo_path=runtime.tools.pkgrepo_path,
            )
            ctx.exit(exit_code)

    def execute(  # type: ignore[override]
        self,
        repository: str | None,
        database: Path,
        pattern: str | None = None,
        workers: int = 8,
        group_size: int = 1,
        pkgrepo_path: Path | None = None,
    ) -> int:
        """
        Execute the mkdb plugin.

        Args:
            repository: Repository to scan
            database: Registry file to write
            pattern: Optional package pattern
            workers: Number of concurrent fetch workers
            group_size: Packages per work group
            pkgrepo_path: Optional pkgrepo executable path

        Returns:
            Exit code (0 for success, non-zero for failure)
        """
        try:
            if not repository:
                raise ConfigurationError(None, "no repository given (use -r/--repo or audit.repository)")

            pkgrepo = PkgrepoWrapper(pkgrepo_path)
            packages = pkgrepo.list_packages(repository, pattern)
            logger.info(f"Found {len(packages)} package(s) in {repository}")

            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                console=console_err,
                transient=True,
            ) as progress:
                registry = build_registry(
                    repository,
                    packages,
                    pkgrepo.contents,
                    workers=workers,
                    group_size=group_size,
                    progress=progress,
                )

            registry.persist(database)
            console.print(
                f"[green]✓[/green] Wrote {len(registry)} records from {len(packages)} packages to {database}",
                highlight=False,
                soft_wrap=True,
            )
            return 0

        except Exception as e:
            return handle_error(e, show_traceback=logger.getEffectiveLevel() <= 10)  # DEBUG level
