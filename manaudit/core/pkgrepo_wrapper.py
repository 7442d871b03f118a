"""Wrapper for the pkgrepo command-line tool."""

from __future__ import annotations

import json
import shutil
import signal
import subprocess
from pathlib import Path

from manaudit.core.ips import Action, Package, parse_manifest
from manaudit.utils.errors import ExternalToolFailure, ManifestParseError
from manaudit.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_PKGREPO_PATH = Path("/usr/bin/pkgrepo")


def describe_result(result: subprocess.CompletedProcess[bytes]) -> str:
    """
    Summarize a failed command for error messages.

    The summary names the terminating signal or exit code, followed by the
    command's stderr. Tools that report failures on stdout get their stdout
    used instead when stderr is empty.

    Args:
        result: Completed process with captured stdout and stderr

    Returns:
        Human-readable description, e.g. "exit code 1: pkgrepo: no such repository"
    """
    parts: list[str] = []

    if result.returncode < 0:
        try:
            name = signal.Signals(-result.returncode).name
        except ValueError:
            name = str(-result.returncode)
        parts.append(f"killed by signal {name}")
    else:
        parts.append(f"exit code {result.returncode}")

    extra = (result.stderr or b"").decode("utf-8", errors="replace").strip()
    if not extra:
        extra = (result.stdout or b"").decode("utf-8", errors="replace").strip()

    out = ", ".join(parts)
    if extra:
        out += f": {extra}"
    return out


class PkgrepoWrapper:
    """Wrapper for executing pkgrepo commands against a package repository."""

    def __init__(self, pkgrepo_path: Path | None = None) -> None:
        """
        Initialize the wrapper and locate pkgrepo.

        Args:
            pkgrepo_path: Explicit pkgrepo path (from configuration), or None to search
        """
        self.pkgrepo_path = self._find_pkgrepo(pkgrepo_path)

    def _find_pkgrepo(self, hint: Path | None) -> str:
        """
        Find the pkgrepo executable.

        Args:
            hint: Configured path, used as-is when given

        Returns:
            Path to the pkgrepo executable

        Raises:
            ExternalToolFailure: If pkgrepo cannot be found
        """
        if hint is not None:
            return str(hint)
        if DEFAULT_PKGREPO_PATH.exists():
            return str(DEFAULT_PKGREPO_PATH)
        found = shutil.which("pkgrepo")
        if found is None:
            raise ExternalToolFailure("pkgrepo", "command not found")
        return found

    def execute(self, args: list[str], what: str) -> bytes:
        """
        Run pkgrepo with a cleared environment and return its stdout.

        Args:
            args: Arguments following the pkgrepo executable
            what: Short label used in error messages (e.g. "pkgrepo list (repo)")

        Returns:
            Raw stdout bytes

        Raises:
            ExternalToolFailure: If pkgrepo cannot be started or exits non-zero
        """
        cmd = [self.pkgrepo_path, *args]
        logger.debug(f"running {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                env={},
                check=False,
            )
        except OSError as e:
            raise ExternalToolFailure(what, str(e)) from e

        if result.returncode != 0:
            info = describe_result(result)
            logger.error(f"{what} failed: {info}")
            raise ExternalToolFailure(what, info)

        return result.stdout

    def list_packages(self, repo: str, pattern: str | None = None) -> list[Package]:
        """
        List the packages in a repository.

        Args:
            repo: Repository path or URI
            pattern: Optional package name pattern

        Returns:
            Package identities in the order pkgrepo reports them

        Raises:
            ExternalToolFailure: If pkgrepo fails or its output is not the expected JSON
        """
        args = ["list", "-F", "json", "-s", repo]
        if pattern is not None:
            args.append(pattern)

        what = f"pkgrepo list ({repo})"
        stdout = self.execute(args, what)

        try:
            entries = json.loads(stdout)
            fmris = [entry["pkg.fmri"] for entry in entries]
        except (ValueError, TypeError, KeyError) as e:
            raise ExternalToolFailure(what, f"unexpected output: {e}") from e

        return [Package.parse_fmri(fmri) for fmri in fmris]

    def contents(self, repo: str, package: Package) -> list[Action]:
        """
        Fetch and parse the manifest of one package.

        Args:
            repo: Repository path or URI
            package: Package to list

        Returns:
            Manifest actions in manifest order

        Raises:
            ExternalToolFailure: If pkgrepo fails or the manifest cannot be decoded/parsed
        """
        what = f"pkgrepo contents ({repo})"
        stdout = self.execute(["contents", "-m", "-s", repo, str(package)], what)

        try:
            manifest = stdout.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ExternalToolFailure(what, f"manifest for {package} is not UTF-8: {e}") from e

        try:
            return parse_manifest(manifest)
        except ManifestParseError as e:
            raise ExternalToolFailure(what, f"manifest for {package}: {e.message}") from e
