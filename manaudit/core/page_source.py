"""Access to manual page sources in an unpacked man tree."""

from __future__ import annotations

from pathlib import Path

from manaudit.utils.errors import EncodingError, ManualPageNotFoundError
from manaudit.utils.logger import get_logger

logger = get_logger(__name__)


def is_generated_page(section: str, page: str) -> bool:
    """
    Whether a page is produced at build time rather than kept as source.

    The CPU performance counter event pages in 3CPC are generated, so their
    absence from the source tree is expected.
    """
    return section == "3CPC" and "event" in page


class ManualPageSource:
    """Reads page sources laid out as ``<root>/man<sect>/<page>.<sect>``."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def path_for(self, section: str, page: str) -> Path:
        """Source path for a (section, page) pair."""
        sect = section.lower()
        return self.root / f"man{sect}" / f"{page}.{sect}"

    def read(self, section: str, page: str) -> str | None:
        """
        Read and decode one page source.

        Args:
            section: Section code
            page: Page name

        Returns:
            The page text, or None for a missing generated page

        Raises:
            ManualPageNotFoundError: If any other page source is missing
            EncodingError: If the source is not valid UTF-8
        """
        path = self.path_for(section, page)

        try:
            data = path.read_bytes()
        except FileNotFoundError:
            if is_generated_page(section, page):
                logger.info(f"Skipping generated page {page}({section})")
                return None
            raise ManualPageNotFoundError(path) from None

        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise EncodingError(path, str(e)) from e
