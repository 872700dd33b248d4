"""Page layout for printing many symbols per sheet.

Symbols are placed left to right, then top to bottom, ``width`` per row
and ``height`` rows per page. A partial final page only spans the rows
and columns it actually uses. The planner only assigns items to grid
cells; pixel offsets are left to the canvas.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field


@dataclass(frozen=True)
class PageSlot:
    """Placement of one item on a page.

    Attributes:
        item_index: Position of the item in the input sequence.
        column: Zero-based column, left to right.
        row: Zero-based row, top to bottom.
    """

    item_index: int
    column: int
    row: int


@dataclass(frozen=True)
class PageLayout:
    """One page of the layout.

    Attributes:
        number: 1-based page number.
        total: Total number of pages.
        width: Grid columns per page.
        height: Grid rows per page.
        slots: Placements, in input order.
    """

    number: int
    total: int
    width: int
    height: int
    slots: list[PageSlot] = field(default_factory=list)

    @property
    def item_indices(self) -> list[int]:
        """Indices of the items on this page, in input order."""
        return [slot.item_index for slot in self.slots]

    @property
    def columns_used(self) -> int:
        """Number of grid columns occupied by at least one item."""
        return max((slot.column for slot in self.slots), default=-1) + 1

    @property
    def rows_used(self) -> int:
        """Number of grid rows occupied by at least one item."""
        return max((slot.row for slot in self.slots), default=-1) + 1


def page_count(total_items: int, width: int, height: int) -> int:
    """Number of pages needed for total_items on a width x height grid."""
    return math.ceil(total_items / (width * height))


def compute_page_layout(total_items: int, width: int, height: int) -> list[PageLayout]:
    """Assign items to pages and grid cells.

    Args:
        total_items: Number of items (rendered symbols) to place.
        width: Columns per page (>= 1).
        height: Rows per page (>= 1).

    Returns:
        List of ceil(total_items / (width * height)) pages. Concatenating
        their item indices yields 0..total_items-1 in order.

    Raises:
        ValueError: If width or height is below 1 or total_items is negative.
    """
    if width < 1 or height < 1:
        raise ValueError(f"Page grid must be at least 1x1, got {width}x{height}")
    if total_items < 0:
        raise ValueError(f"total_items must be non-negative, got {total_items}")

    per_page = width * height
    total = page_count(total_items, width, height)

    pages: list[PageLayout] = []
    for page_idx in range(total):
        first = page_idx * per_page
        last = min(first + per_page, total_items)
        slots = [
            PageSlot(item_index=item, column=(item - first) % width, row=(item - first) // width)
            for item in range(first, last)
        ]
        pages.append(
            PageLayout(number=page_idx + 1, total=total, width=width, height=height, slots=slots)
        )

    return pages
