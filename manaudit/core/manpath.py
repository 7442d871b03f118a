"""Mapping of packaged file paths to manual page (section, page) keys."""

from __future__ import annotations

from manaudit.core.ips import Action, FileAction, LinkAction
from manaudit.utils.errors import MalformedManifestPath

MAN_PREFIX = "usr/share/man/"
LEGACY_MAN_ROOT = "usr/man"

# Relative prefixes that packaged links use to reach the canonical page.
LINK_TARGET_PREFIXES = (
    "../man1/",
    "../../../has/man/man1has/",
    "./",
)


def path_to_man(path: str) -> tuple[str, str]:
    """
    Split a packaged manual page path into its section and page name.

    ``usr/share/man/man1m/foo.1m`` becomes ``("1M", "foo")``: the directory
    must be ``man<sect>`` and the file name must end in ``.<sect>``.

    Args:
        path: Packaged path, relative to the image root

    Returns:
        Tuple of (upper-cased section, page name)

    Raises:
        MalformedManifestPath: If the path does not have that shape
    """
    if not path.startswith(MAN_PREFIX):
        raise MalformedManifestPath(path, "not a manual page path")

    parts = path[len(MAN_PREFIX):].split("/")
    if len(parts) != 2 or not parts[0].startswith("man"):
        raise MalformedManifestPath(path, "unexpected manual page directory layout")

    sect = parts[0][len("man"):]
    suffix = f".{sect}"
    if not sect or not parts[1].endswith(suffix) or parts[1] == suffix:
        raise MalformedManifestPath(path, "file name does not match its section directory")

    page = parts[1][: -len(suffix)]
    return sect.upper(), page


def normalize_link_target(target: str) -> str:
    """
    Reduce a manual page link target to a bare file name.

    Args:
        target: Link target as packaged

    Returns:
        Target with known relative prefixes removed

    Raises:
        MalformedManifestPath: If the target still points into another directory
    """
    t = target
    for prefix in LINK_TARGET_PREFIXES:
        if t.startswith(prefix):
            t = t[len(prefix):]
    if "/" in t:
        raise MalformedManifestPath(target, "link target leaves the section directory")
    return t


def man_entry(action: Action) -> tuple[bool, str, str] | None:
    """
    Classify one manifest action for the registry.

    Args:
        action: Manifest action from a package

    Returns:
        ``(is_alias, section, page)`` for manual page files and links, or
        None for actions that do not deliver a manual page

    Raises:
        MalformedManifestPath: For pages delivered into the legacy ``usr/man``
            tree, or manual page paths/link targets of an unexpected shape
    """
    if isinstance(action, FileAction):
        if action.path.startswith(LEGACY_MAN_ROOT):
            raise MalformedManifestPath(action.path, "file delivered under legacy usr/man")
        if not action.path.startswith(MAN_PREFIX):
            return None
        sect, page = path_to_man(action.path)
        return False, sect, page

    if isinstance(action, LinkAction):
        # usr/man itself is allowed as the compatibility link to share/man
        if action.path != LEGACY_MAN_ROOT and action.path.startswith(LEGACY_MAN_ROOT):
            raise MalformedManifestPath(action.path, "link delivered under legacy usr/man")
        if not action.path.startswith(MAN_PREFIX):
            return None
        sect, page = path_to_man(action.path)
        normalize_link_target(action.target)
        return True, sect, page

    return None
