"""Package identities (FMRIs) and manifest actions.

Only the subset of the IPS manifest format needed to find manual pages is
understood here: ``file`` and ``link`` actions and their ``path``/``target``
attributes. Every other action is kept as an opaque ``OtherAction``.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass, field

from manaudit.utils.errors import ManifestParseError
from manaudit.utils.text import split_lines


@dataclass(frozen=True)
class Package:
    """A package identity parsed from an FMRI."""

    name: str
    """Package stem (e.g. "system/kernel")"""

    publisher: str | None = None
    """Publisher prefix, if the FMRI carried one"""

    version: str | None = None
    """Everything after the "@" (release, branch and timestamp)"""

    @classmethod
    def parse_fmri(cls, fmri: str) -> Package:
        """
        Parse an FMRI string.

        Accepted forms::

            pkg://publisher/name@version
            pkg:/name@version
            name@version
            name

        Args:
            fmri: FMRI text

        Returns:
            Parsed package identity

        Raises:
            ManifestParseError: If no package name can be found
        """
        text = fmri.strip()
        publisher = None

        if text.startswith("pkg://"):
            rest = text[len("pkg://"):]
            publisher, sep, text = rest.partition("/")
            if not sep or not publisher:
                raise ManifestParseError(fmri, "FMRI has no publisher/name separator")
        elif text.startswith("pkg:/"):
            text = text[len("pkg:/"):]

        name, sep, version = text.partition("@")
        if not name:
            raise ManifestParseError(fmri, "FMRI has no package name")
        if sep and not version:
            raise ManifestParseError(fmri, "FMRI has an empty version")

        return cls(name=name, publisher=publisher, version=version or None)

    def __str__(self) -> str:
        out = f"pkg://{self.publisher}/{self.name}" if self.publisher else f"pkg:/{self.name}"
        if self.version:
            out += f"@{self.version}"
        return out


@dataclass(frozen=True)
class FileAction:
    """A ``file`` action."""

    path: str
    attrs: dict[str, str] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class LinkAction:
    """A ``link`` (symbolic link) action."""

    path: str
    target: str
    attrs: dict[str, str] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class OtherAction:
    """Any action other than ``file`` or ``link`` (dir, set, depend, ...)."""

    kind: str
    attrs: dict[str, str] = field(default_factory=dict, compare=False)


Action = FileAction | LinkAction | OtherAction


def _logical_lines(manifest: str) -> list[str]:
    """Join backslash-continued lines and drop blanks and comments."""
    lines: list[str] = []
    pending = ""
    for raw in split_lines(manifest):
        if raw.endswith("\\"):
            pending += raw[:-1] + " "
            continue
        line = (pending + raw).strip()
        pending = ""
        if line and not line.startswith("#"):
            lines.append(line)
    if pending.strip():
        lines.append(pending.strip())
    return lines


def parse_action(line: str) -> Action:
    """
    Parse a single manifest action line.

    Args:
        line: One logical manifest line, e.g. ``link path=usr/bin/ls target=../../bin/ls``

    Returns:
        The parsed action

    Raises:
        ManifestParseError: If the line cannot be tokenized or lacks required attributes
    """
    try:
        tokens = shlex.split(line)
    except ValueError as e:
        raise ManifestParseError(line, f"cannot tokenize action ({e})") from e

    if not tokens:
        raise ManifestParseError(line, "empty action")

    kind, rest = tokens[0], tokens[1:]
    attrs: dict[str, str] = {}
    for i, token in enumerate(rest):
        key, sep, value = token.partition("=")
        if not sep:
            # file actions may lead with a positional payload hash
            if i == 0 and kind == "file":
                attrs["hash"] = token
                continue
            raise ManifestParseError(line, f"attribute without value {token!r}")
        # repeated attributes (e.g. facets) keep the first value
        attrs.setdefault(key, value)

    if kind == "file":
        if "path" not in attrs:
            raise ManifestParseError(line, "file action without path")
        return FileAction(path=attrs["path"], attrs=attrs)
    if kind == "link":
        if "path" not in attrs or "target" not in attrs:
            raise ManifestParseError(line, "link action without path or target")
        return LinkAction(path=attrs["path"], target=attrs["target"], attrs=attrs)
    return OtherAction(kind=kind, attrs=attrs)


def parse_manifest(manifest: str) -> list[Action]:
    """
    Parse manifest text into an ordered list of actions.

    Args:
        manifest: Manifest text as emitted by ``pkgrepo contents -m``

    Returns:
        Actions in manifest order
    """
    return [parse_action(line) for line in _logical_lines(manifest)]
