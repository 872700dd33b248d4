"""Run configuration.

One BackupConfig is built from the command line (or an API request),
validated once and passed to every pipeline call.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator

from .levels import DEFAULT_LEVEL, RobustnessLevel, select_level

_GRID_PATTERN = re.compile(r"^\s*(\d+)\s*[xX]\s*(\d+)\s*$")


def parse_grid(value: str) -> tuple[int, int]:
    """Parse a page grid such as ``4x5`` into (width, height).

    Raises:
        ValueError: If value is not ``<W>x<H>`` with both at least 1.
    """
    match = _GRID_PATTERN.match(value)
    if not match:
        raise ValueError(f"Invalid page grid '{value}'. Expected WxH, e.g. 4x5")
    width, height = int(match.group(1)), int(match.group(2))
    if width < 1 or height < 1:
        raise ValueError(f"Page grid must be at least 1x1, got {width}x{height}")
    return width, height


def _default_workers() -> int:
    return min(8, os.cpu_count() or 1)


class BackupConfig(BaseModel):
    """Settings shared by encode and decode runs."""

    level: str = Field(
        default=DEFAULT_LEVEL.name,
        description="Robustness level: L, M, Q or H",
    )
    page_width: int | None = Field(
        default=None,
        ge=1,
        description="Symbols per row on printable pages (None = no pages)",
    )
    page_height: int | None = Field(
        default=None,
        ge=1,
        description="Rows per printable page (None = no pages)",
    )
    max_codes: int = Field(
        default=0,
        ge=0,
        description="Stop searching an image after this many unique codes (0 = unlimited)",
    )
    workers: int = Field(
        default_factory=_default_workers,
        ge=1,
        description="Images decoded in parallel",
    )
    output_dir: Path | None = Field(
        default=None,
        description="Where output files are written (default: next to the input)",
    )
    keep_corrupted: bool = Field(
        default=False,
        description="Write reconstructed files even when their checksum fails",
    )

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        return select_level(value).name

    @model_validator(mode="after")
    def _grid_complete(self) -> BackupConfig:
        if (self.page_width is None) != (self.page_height is None):
            raise ValueError("page_width and page_height must be given together")
        return self

    @property
    def robustness(self) -> RobustnessLevel:
        return select_level(self.level)

    @property
    def grid(self) -> tuple[int, int] | None:
        if self.page_width is None or self.page_height is None:
            return None
        return self.page_width, self.page_height
