"""Raster output with Pillow: symbol files and printable pages.

Pages are composed from symbol PNGs already written to disk, one image
open at a time, on a white background. Columns are separated by a
fixed gap; rows are stacked without a gap because every symbol already
carries its own quiet zone and caption band.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import structlog
from PIL import Image

from .errors import IoError
from .layout import PageLayout

logger = structlog.get_logger(__name__)

COLUMN_GAP = 100  # pixels between columns


def _cell_size(image_paths: Sequence[Path]) -> tuple[int, int]:
    """Largest width and height among the images."""
    width = height = 0
    for path in image_paths:
        with Image.open(path) as img:
            width = max(width, img.width)
            height = max(height, img.height)
    return width, height


class PillowCanvas:
    """Default canvas: writes PNG files and pastes symbols into pages."""

    def __init__(self, column_gap: int = COLUMN_GAP) -> None:
        self.column_gap = column_gap

    def write_image(self, png_bytes: bytes, path: Path) -> None:
        """Write an encoded PNG to path.

        Raises:
            IoError: If the file cannot be written.
        """
        try:
            path.write_bytes(png_bytes)
        except OSError as e:
            raise IoError(f"Could not save png file {path}: {e}") from e

    def compose_page(self, image_paths: Sequence[Path], layout: PageLayout, path: Path) -> None:
        """Paste the images named by layout's slots onto one page and save it.

        Args:
            image_paths: All symbol images, indexed by the slots' item_index.
            layout: Page to compose.
            path: Output PNG path.

        Raises:
            IoError: If a symbol image cannot be read or the page cannot
                be written.
        """
        members = [image_paths[slot.item_index] for slot in layout.slots]
        try:
            cell_w, cell_h = _cell_size(members)
            columns = layout.columns_used
            rows = layout.rows_used
            page_w = columns * cell_w + (columns - 1) * self.column_gap
            page_h = rows * cell_h

            with Image.new("RGB", (page_w, page_h), "white") as page:
                for slot, member in zip(layout.slots, members):
                    with Image.open(member) as img:
                        x = slot.column * (cell_w + self.column_gap)
                        y = slot.row * cell_h
                        page.paste(img.convert("RGB"), (x, y))
                page.save(path, format="PNG")
        except OSError as e:
            raise IoError(f"Could not compose page {path}: {e}") from e

        logger.debug(
            "page_composed",
            page=layout.number,
            total=layout.total,
            symbols=len(members),
            size=f"{page_w}x{page_h}",
        )
