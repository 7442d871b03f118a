"""Section renumbering simulation.

The planned renumbering moves section 1M to 8 and rotates the 4/5/7
families: 4* becomes 5*, 5* becomes 7* and 7* becomes 4*, keeping the
family suffix (so 4FS becomes 5FS). A page is *obscured* when its current
(section, page) key would be taken over by some other page after the move.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from manaudit.core.registry import Record, Registry
from manaudit.utils.logger import get_logger

logger = get_logger(__name__)

# Leading digit rotation for the 4/5/7 families.
FAMILY_ROTATION = {
    "4": "5",
    "5": "7",
    "7": "4",
}

# Sections that move wholesale.
SECTION_MOVES = {
    "1M": "8",
}


def relocate_section(section: str) -> str | None:
    """
    Apply the renumbering rule to one section code.

    Args:
        section: Current section code

    Returns:
        The new section code, or None if the section does not move
    """
    if section in SECTION_MOVES:
        return SECTION_MOVES[section]

    lead = FAMILY_ROTATION.get(section[:1])
    if lead is None:
        return None
    return lead + section[1:]


def relocate(record: Record) -> Record:
    """
    Return ``record`` as it would look after renumbering.

    Moved records carry their old section as provenance; records that do
    not move are returned unchanged.
    """
    new_section = relocate_section(record.section)
    if new_section is None:
        return record
    return replace(record, section=new_section, provenance=record.section)


def transform(registry: Registry) -> Registry:
    """
    Build the registry that the renumbering would produce.

    Args:
        registry: Current registry

    Returns:
        Derived registry in (section, page) order
    """
    derived = Registry(relocate(record) for record in registry)
    derived.sort()
    return derived


@dataclass(frozen=True)
class ObscuredPage:
    """A page whose key is taken over by another page after renumbering."""

    record: Record
    """The page as it exists today"""

    occupant: Record
    """The relocated page that would answer to the same key"""

    def __str__(self) -> str:
        return f"old page {self.record.page}({self.record.section}) is obscured"


def simulate(registry: Registry, derived: Registry | None = None) -> list[ObscuredPage]:
    """
    Find pages that the renumbering would make unreachable.

    For every current record, the same (section, page) key is looked up in
    the derived registry. A hit on a relocated record (one with provenance)
    that is not this very record after its own move means that a reader
    asking for the old name would silently get a different page.

    Args:
        registry: Current registry
        derived: Result of :func:`transform`, computed when not given

    Returns:
        Obscured pages in the order of ``registry``
    """
    if derived is None:
        derived = transform(registry)

    obscured = []
    for record in registry:
        occupant = derived.lookup(record.section, record.page)
        if occupant is None or occupant.provenance is None:
            continue
        if occupant == relocate(record):
            continue
        obscured.append(ObscuredPage(record=record, occupant=occupant))

    logger.info(f"{len(obscured)} of {len(registry)} pages would be obscured")
    return obscured
