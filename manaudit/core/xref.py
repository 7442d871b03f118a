"""Cross-reference extraction and auditing for roff manual pages.

Pages are scanned line by line with a three-state machine:

* ``PREAMBLE``: the first line must be one of the known document leaders
  (comment markers, the ``tab-width``/``nroff`` mode lines, a copyright
  comment) or one of the pages that open directly with their title.
* ``COPYRIGHT``: comments and blank lines up to the ``.TH`` title line.
* ``CONTENT``: request lines (starting with ``.``) are skipped, every
  other line is searched for ``\\fBpage\\fR(sect)`` references.

The rules below are tuned to the corpus rather than to roff in general:
only references whose section token is upper case are trusted, and tokens
containing an italic escape are assumed to be mistyped function calls.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from manaudit.core.page_source import ManualPageSource
from manaudit.core.registry import Record, Registry
from manaudit.utils.errors import ParseStateError
from manaudit.utils.logger import get_logger
from manaudit.utils.text import split_lines

logger = get_logger(__name__)


class ScanState(Enum):
    """Scanner states."""

    PREAMBLE = "preamble"
    COPYRIGHT = "copyright"
    CONTENT = "content"


COMMENT_PREFIX = '.\\"'

# Leader lines accepted as the first line of a page.
PREAMBLE_LEADERS = frozenset(
    {
        "'\\\" te",
        '.\\"',
        "'\\\" t",
        "'\\\"",
        '.\\" -*- tab-width: 4 -*-',
        '.\\" -*- nroff -*-',
    }
)

# Pages that start with their title line and no preamble at all.
TITLE_EXCEPTIONS = (
    ".TH WHOIS",
    ".TH HOSTS_ACCESS",
)

TITLE_PREFIX = ".TH"
REQUEST_PREFIX = "."
ITALIC_ESCAPE = "\\fI"

# \fB\fBpage\fR\fR(sect)
DOUBLE_BOLD_XREF = re.compile(
    r"""
    \\fB
    \\fB
    (?P<page>[a-zA-Z_0-9+.-]+)
    \\fR
    \\fR
    \(
    (?P<sect>[0-9][^\[)]*)
    \)
    """,
    re.VERBOSE,
)

# \fBpage\fR(sect)
SINGLE_BOLD_XREF = re.compile(
    r"""
    \\fB
    (?P<page>[a-zA-Z_0-9+.-]+)
    \\fR
    \(
    (?P<sect>[0-9][^\[)]*)
    \)
    """,
    re.VERBOSE,
)

# Patterns are applied in this order and their results concatenated.
XREF_PATTERNS = (DOUBLE_BOLD_XREF, SINGLE_BOLD_XREF)


@dataclass(frozen=True)
class CrossReference:
    """A reference to another manual page found in a page body."""

    section: str
    page: str

    def __str__(self) -> str:
        return f"{self.page}({self.section})"


def find_xrefs_line(line: str) -> list[CrossReference]:
    """
    Extract cross-references from one content line.

    Both markup shapes are tried on every line; a reference matched by
    both is reported twice.

    Args:
        line: A body line (not a request line)

    Returns:
        Accepted references in match order
    """
    out: list[CrossReference] = []

    for pattern in XREF_PATTERNS:
        for m in pattern.finditer(line):
            page = m.group("page")
            sect = m.group("sect")

            if ITALIC_ESCAPE in sect:
                logger.debug(f"ignoring italic reference {page}({sect}): {line!r}")
                continue
            if sect != sect.upper():
                logger.warning(f"section {sect!r} is not in uppercase: {line!r}")
                continue

            out.append(CrossReference(section=sect, page=page))

    return out


def find_xrefs(content: str, source: Path | str | None = None) -> list[CrossReference]:
    """
    Scan a whole roff page for cross-references.

    Args:
        content: Page text
        source: Page file, used in error messages

    Returns:
        All accepted references in document order (duplicates kept)

    Raises:
        ParseStateError: If the page does not open with a known preamble or
            has anything other than comments before its title line
    """
    state = ScanState.PREAMBLE
    out: list[CrossReference] = []

    for line in split_lines(content):
        if state is ScanState.PREAMBLE:
            if line.startswith(TITLE_EXCEPTIONS):
                state = ScanState.CONTENT
            elif line in PREAMBLE_LEADERS or (
                line.startswith(COMMENT_PREFIX) and "Copyright" in line
            ):
                state = ScanState.COPYRIGHT
            else:
                raise ParseStateError(state.value, line, source)

        elif state is ScanState.COPYRIGHT:
            if line.startswith(COMMENT_PREFIX) or line == "":
                continue
            if line.startswith(TITLE_PREFIX):
                state = ScanState.CONTENT
            else:
                raise ParseStateError(state.value, line, source)

        else:
            if line.startswith(REQUEST_PREFIX):
                continue
            out.extend(find_xrefs_line(line))

    return out


def is_mdoc(content: str) -> bool:
    """Whether a page is written in mdoc (it carries an ``.Os`` macro)."""
    return any(line == ".Os" or line.startswith(".Os illumos") for line in split_lines(content))


@dataclass(frozen=True)
class XrefCheck:
    """Outcome of resolving one cross-reference."""

    xref: CrossReference
    target: Record | None

    @property
    def resolved(self) -> bool:
        return self.target is not None


@dataclass
class PageAudit:
    """Audit result for one manual page."""

    record: Record
    kind: str
    """Either "mdoc" or "roff"; only roff pages are scanned"""

    checks: list[XrefCheck] = field(default_factory=list)

    @property
    def missing(self) -> list[CrossReference]:
        """References that do not resolve against the registry."""
        return [c.xref for c in self.checks if not c.resolved]


class XrefAuditor:
    """Checks every cross-reference in a corpus against a registry."""

    def __init__(self, registry: Registry, source: ManualPageSource) -> None:
        """
        Initialize the auditor.

        Args:
            registry: Registry that references must resolve against
            source: Where page sources are read from
        """
        self.registry = registry
        self.source = source

    def check(self, xrefs: list[CrossReference]) -> list[XrefCheck]:
        """Resolve each reference against the registry."""
        return [
            XrefCheck(xref=x, target=self.registry.lookup(x.section, x.page))
            for x in xrefs
        ]

    def audit_page(self, record: Record) -> PageAudit | None:
        """
        Audit one registered page.

        Args:
            record: A page file record

        Returns:
            The audit, or None when the page is a generated page without source

        Raises:
            ManualPageNotFoundError, EncodingError, ParseStateError: The page
                cannot be read or scanned
        """
        content = self.source.read(record.section, record.page)
        if content is None:
            return None

        if is_mdoc(content):
            return PageAudit(record=record, kind="mdoc")

        path = self.source.path_for(record.section, record.page)
        xrefs = find_xrefs(content, source=path)
        return PageAudit(record=record, kind="roff", checks=self.check(xrefs))

    def audit(self) -> Iterator[PageAudit]:
        """
        Audit every page file in the registry, in registry order.

        Alias records are skipped since they point at a page audited on its
        own. The first unreadable or unparsable page ends the audit.
        """
        for record in self.registry:
            if record.is_alias:
                continue
            result = self.audit_page(record)
            if result is not None:
                yield result
