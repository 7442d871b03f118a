"""Registry of manual pages keyed by (section, page).

The registry is persisted as a flat UTF-8 text file with one record per
line and four tab-separated columns::

    <kind>\\t<section>\\t<page>\\t<owner>

where ``kind`` is ``f`` for a page file and ``l`` for an alias (link).
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path

from manaudit.utils.errors import MalformedRegistryRecord, RegistryConflict
from manaudit.utils.logger import get_logger
from manaudit.utils.text import split_lines

logger = get_logger(__name__)

KIND_ALIAS = "l"
KIND_FILE = "f"


@dataclass(frozen=True)
class Record:
    """One registry entry."""

    is_alias: bool
    """True for a link to a canonical page, False for the page file itself"""

    section: str
    """Section code, e.g. "1M" or "4FS" """

    page: str
    """Page name"""

    owner: str
    """Name of the package delivering the page"""

    provenance: str | None = None
    """Section held before a simulated relocation, None if never relocated"""

    @property
    def key(self) -> tuple[str, str]:
        """The (section, page) pair identifying this record."""
        return (self.section, self.page)

    @property
    def kind(self) -> str:
        """Persisted kind flag."""
        return KIND_ALIAS if self.is_alias else KIND_FILE

    def __str__(self) -> str:
        return f"{self.page}({self.section})"


def _sort_key(record: Record) -> tuple[str, str]:
    return record.key


class Registry:
    """Ordered, conflict-checked collection of records."""

    def __init__(self, records: Iterable[Record] = ()) -> None:
        """
        Create a registry holding ``records`` in the given order.

        No conflict checking happens here; derived registries (loaded or
        relocated) may legitimately hold records sharing a key. Lookups
        return the first such record.

        Args:
            records: Initial records
        """
        self._records: list[Record] = list(records)
        self._index: dict[tuple[str, str], Record] = {}
        for record in self._records:
            self._index.setdefault(record.key, record)

    @property
    def records(self) -> list[Record]:
        """Records in current order (a copy)."""
        return list(self._records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def sort(self) -> None:
        """Put records into canonical (section, page) order."""
        self._records.sort(key=_sort_key)

    def insert(self, is_alias: bool, section: str, page: str, owner: str) -> Record:
        """
        Add a record, keeping the registry in canonical order.

        Args:
            is_alias: Whether the record is a link to another page
            section: Section code
            page: Page name
            owner: Owning package name

        Returns:
            The inserted record

        Raises:
            RegistryConflict: If a record with the same (section, page) exists;
                the registry is left unchanged
        """
        record = Record(is_alias=is_alias, section=section, page=page, owner=owner)

        existing = self._index.get(record.key)
        if existing is not None:
            raise RegistryConflict(record, existing)

        self._records.append(record)
        self._index[record.key] = record
        self.sort()
        return record

    def lookup(self, section: str, page: str) -> Record | None:
        """
        Find the record for a (section, page) pair.

        Args:
            section: Section code
            page: Page name

        Returns:
            The matching record, or None if the page is not registered
        """
        return self._index.get((section, page))

    @classmethod
    def loads(cls, text: str) -> Registry:
        """
        Parse the persisted text form.

        Records keep their order in the text.

        Args:
            text: Registry file contents

        Returns:
            Loaded registry

        Raises:
            MalformedRegistryRecord: On a row without exactly four fields or
                with a kind flag other than ``l``/``f``
        """
        records = []
        for number, line in enumerate(split_lines(text), start=1):
            fields = line.split("\t")
            if len(fields) != 4:
                raise MalformedRegistryRecord(number, fields, "expected 4 tab-separated fields")

            kind, section, page, owner = fields
            if kind == KIND_ALIAS:
                is_alias = True
            elif kind == KIND_FILE:
                is_alias = False
            else:
                raise MalformedRegistryRecord(number, fields, f"invalid kind flag {kind!r}")

            records.append(Record(is_alias=is_alias, section=section, page=page, owner=owner))

        return cls(records)

    @classmethod
    def load(cls, path: Path) -> Registry:
        """
        Load a persisted registry file.

        Args:
            path: Registry file

        Returns:
            Loaded registry
        """
        # Records are separated by \n only; no newline translation on read
        registry = cls.loads(Path(path).read_bytes().decode("utf-8"))
        logger.info(f"Loaded {len(registry)} records from {path}")
        return registry

    def dumps(self) -> str:
        """Serialize records, in current order, to the persisted text form."""
        return "".join(
            f"{r.kind}\t{r.section}\t{r.page}\t{r.owner}\n" for r in self._records
        )

    def persist(self, path: Path) -> None:
        """
        Write the registry to ``path``.

        Args:
            path: Destination file (parent directories are created)
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.dumps().encode("utf-8"))
        logger.info(f"Wrote {len(self)} records to {path}")
