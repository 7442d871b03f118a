"""Error types and handling helpers for manaudit."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from rich.markup import escape

from manaudit.utils.logger import console_err


class ManAuditError(Exception):
    """Base exception for manaudit errors."""

    def __init__(self, message: str, suggestion: str | None = None):
        """
        Initialize error with message and optional suggestion.

        Args:
            message: Error message
            suggestion: Optional suggestion for fixing the error
        """
        self.message = message
        self.suggestion = suggestion
        super().__init__(message)

    def display(self) -> None:
        """Display error message with suggestion."""
        console_err.print(f"[bold red]Error:[/bold red] {escape(self.message)}", highlight=False)
        if self.suggestion:
            console_err.print(f"[yellow]Suggestion:[/yellow] {escape(self.suggestion)}", highlight=False)


class ExternalToolFailure(ManAuditError):
    """Error when an external tool (pkgrepo) exits abnormally."""

    def __init__(self, command: str, info: str):
        """
        Initialize external tool failure.

        Args:
            command: Short description of the failed invocation (e.g. "pkgrepo list (repo)")
            info: Diagnostic text captured from the tool (exit status and output)
        """
        self.command = command
        self.info = info
        message = f"{command}: {info}" if info else command
        suggestion = "Check that the repository path is correct and that pkgrepo can read it."
        super().__init__(message, suggestion)


class MalformedRegistryRecord(ManAuditError):
    """Error when a persisted registry row cannot be parsed."""

    def __init__(self, line_number: int, fields: list[str], reason: str):
        """
        Initialize malformed record error.

        Args:
            line_number: 1-based line number in the registry file
            fields: The tab-separated fields of the offending row
            reason: What is wrong with the row
        """
        self.line_number = line_number
        self.fields = fields
        message = f"Malformed registry record at line {line_number}: {reason} {fields!r}"
        suggestion = "Rebuild the registry with 'manaudit mkdb'."
        super().__init__(message, suggestion)


class RegistryConflict(ManAuditError):
    """Error when a (section, page) pair is inserted twice."""

    def __init__(self, new: Any, existing: Any):
        """
        Initialize registry conflict error.

        Args:
            new: The record that was being inserted
            existing: The record already holding the same (section, page)
        """
        self.new = new
        self.existing = existing
        message = f"new record {new!r} conflicts with existing record {existing!r}"
        super().__init__(message)


class MalformedManifestPath(ManAuditError):
    """Error when a manual page path does not have the expected shape."""

    def __init__(self, path: str, reason: str):
        """
        Initialize malformed manifest path error.

        Args:
            path: The offending path (or link target)
            reason: What is wrong with it
        """
        self.path = path
        message = f"{reason}: {path!r}"
        super().__init__(message)


class ManifestParseError(ManAuditError):
    """Error when an FMRI or manifest action cannot be parsed."""

    def __init__(self, text: str, reason: str):
        """
        Initialize manifest parse error.

        Args:
            text: The text that failed to parse
            reason: What is wrong with it
        """
        self.text = text
        message = f"{reason}: {text!r}"
        super().__init__(message)


class ParseStateError(ManAuditError):
    """Error when the page scanner meets a line it does not expect."""

    def __init__(self, state: str, line: str, source: Path | str | None = None):
        """
        Initialize parse state error.

        Args:
            state: Scanner state name at the time of failure
            line: The unexpected line
            source: Optional page file the line came from
        """
        self.state = state
        self.line = line
        self.source = source
        message = f"unexpected line in {state} state: {line!r}"
        if source is not None:
            message = f"{source}: {message}"
        super().__init__(message)


class EncodingError(ManAuditError):
    """Error when a manual page cannot be decoded as UTF-8."""

    def __init__(self, file_path: Path, reason: str):
        """
        Initialize encoding error.

        Args:
            file_path: Path to the undecodable file
            reason: Decoder error text
        """
        self.file_path = file_path
        message = f"Cannot decode {file_path}: {reason}"
        suggestion = "Manual pages are expected to be UTF-8 encoded."
        super().__init__(message, suggestion)


class ManualPageNotFoundError(ManAuditError):
    """Error when a registered manual page has no source file."""

    def __init__(self, file_path: Path):
        """
        Initialize manual page not found error.

        Args:
            file_path: Path where the page source was expected
        """
        self.file_path = file_path
        message = f"Manual page source not found: {file_path}"
        suggestion = "Check --man-root and that the registry matches the source tree."
        super().__init__(message, suggestion)


class ConfigurationError(ManAuditError):
    """Error when configuration is invalid."""

    def __init__(self, config_file: Path | None, reason: str):
        """
        Initialize configuration error.

        Args:
            config_file: Path to the configuration file, if one was involved
            reason: Reason for the error
        """
        if config_file is None:
            message = f"Invalid configuration: {reason}"
        else:
            message = f"Invalid configuration in {config_file}: {reason}"
        suggestion = "Please check the configuration file format and the command options."
        super().__init__(message, suggestion)


def handle_error(error: Exception, *, show_traceback: bool = False) -> int:
    """
    Handle an error and return appropriate exit code.

    Args:
        error: The exception to handle
        show_traceback: Whether to show full traceback (keyword-only)

    Returns:
        Exit code (non-zero)
    """
    if isinstance(error, ManAuditError):
        error.display()
    else:
        console_err.print(f"[bold red]Unexpected error:[/bold red] {escape(str(error))}", highlight=False)
        if not show_traceback:
            console_err.print("[dim]Run with -vv for more details[/dim]")

    if show_traceback:
        import traceback

        console_err.print("\n[dim]Traceback:[/dim]")
        traceback.print_exc()
    return 1
