"""Capability interfaces used by the encode/decode pipeline.

The frame codec, splitter and reassembler only depend on these
protocols, so tests can substitute in-memory fakes for the QR and image
backends.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from .layout import PageLayout


class TextTranscoder(Protocol):
    """Converts frame bytes to transport text and back."""

    def encode(self, data: bytes) -> str: ...

    def decode(self, text: str) -> bytes: ...


class SymbolEncoder(Protocol):
    """Renders a transport string as a PNG image of one symbol."""

    def render(self, payload: str, title: str) -> bytes: ...


class SymbolDetector(Protocol):
    """Reads every symbol payload found in an image file.

    ``max_codes`` > 0 lets the detector stop searching once that many
    distinct payloads were read.
    """

    def detect(self, path: Path, max_codes: int = 0) -> list[str]: ...


class Canvas(Protocol):
    """Raster output: single symbol images and composite pages."""

    def write_image(self, png_bytes: bytes, path: Path) -> None: ...

    def compose_page(self, image_paths: Sequence[Path], layout: PageLayout, path: Path) -> None: ...
