"""Snapshot accessor interface and an implementation over saved HTML pages."""
import logging
from pathlib import Path
from typing import Optional, Protocol, Sequence, runtime_checkable

from src.parse.models import RowBlock
from src.parse.orders_page import parse_orders_page

logger = logging.getLogger(__name__)


class ExtractionError(RuntimeError):
    """The accessor failed (navigation, render, timeout); the whole cycle is void."""


@runtime_checkable
class SnapshotAccessor(Protocol):
    """Supplies the row blocks of the current page and moves between pages."""

    async def get_row_blocks(self) -> Sequence[RowBlock]: ...

    async def advance_page(self) -> bool: ...


async def go_to_first_page(accessor: SnapshotAccessor) -> bool:
    """Best-effort return to page 1; accessors without the operation are left as is."""
    method = getattr(accessor, "go_to_first_page", None)
    if method is None:
        return False
    try:
        return bool(await method())
    except Exception as e:
        logger.warning(f"[ACCESSOR] Could not return to the first page: {e}")
        return False


class HtmlSnapshotAccessor:
    """
    Pages are saved HTML files (one file per listing page), read in name order.
    Useful for replaying captured pages through the pipeline.
    """

    def __init__(self, pages: Sequence[Path]):
        self.pages = [Path(p) for p in pages]
        self.index = 0

    @classmethod
    def from_directory(cls, directory: Path, pattern: str = "*.html") -> "HtmlSnapshotAccessor":
        pages = sorted(Path(directory).glob(pattern))
        if not pages:
            logger.warning(f"[ACCESSOR] No snapshot matching {pattern} in {directory}")
        return cls(pages)

    @property
    def current_page(self) -> Optional[Path]:
        if 0 <= self.index < len(self.pages):
            return self.pages[self.index]
        return None

    async def get_row_blocks(self) -> list[RowBlock]:
        page = self.current_page
        if page is None:
            return []
        try:
            html_content = page.read_text(encoding="utf-8")
        except OSError as e:
            raise ExtractionError(f"Could not read snapshot {page}: {e}") from e
        blocks = parse_orders_page(html_content)
        logger.debug(f"[ACCESSOR] {page.name}: {len(blocks)} row blocks")
        return blocks

    async def advance_page(self) -> bool:
        if self.index + 1 >= len(self.pages):
            return False
        self.index += 1
        return True

    async def go_to_first_page(self) -> bool:
        self.index = 0
        return True
