"""Detection of page names shared across the 4/5/7 section families."""

from __future__ import annotations

from dataclasses import dataclass

from manaudit.core.registry import Registry

# Leading digits of the families rotated by the renumbering.
ROTATED_FAMILIES = ("4", "5", "7")


@dataclass(frozen=True)
class SectionConflict:
    """A page name present in more than one rotated section."""

    page: str
    sections: tuple[str, ...]

    def format(self) -> str:
        """Render as a fixed-width report line."""
        cols = " ".join(f"{s:<3}" for s in self.sections)
        return f"{self.page:<16} {cols}".rstrip()


def find_conflicts(registry: Registry) -> list[SectionConflict]:
    """
    Report page names that exist in two or more of the 4/5/7 sections.

    No renumbering of those families can keep every such page reachable,
    since the rotation only permutes the sections the name already occupies.

    Args:
        registry: Registry to inspect

    Returns:
        Conflicts sorted by page name, each with its distinct sections sorted
    """
    by_page: dict[str, set[str]] = {}
    for record in registry:
        if record.section[:1] in ROTATED_FAMILIES:
            by_page.setdefault(record.page, set()).add(record.section)

    return [
        SectionConflict(page=page, sections=tuple(sorted(sections)))
        for page, sections in sorted(by_page.items())
        if len(sections) >= 2
    ]
