"""SVG and PNG rendering of QR symbols.

A symbol image is the QR module matrix drawn as black squares on white,
with a caption band above it naming the file and the part number, so a
printed sheet can be checked by eye:

    +-------------------------------+
    |  report.pdf (03 / 12)         |   caption band
    +-------------------------------+
    |                               |
    |          QR symbol            |
    |                               |
    +-------------------------------+

The module matrix comes from the ``qrcode`` package. Rendering goes
through SVG first and is rasterized with CairoSVG.
"""

from __future__ import annotations

from xml.sax.saxutils import escape

import qrcode
import structlog
from qrcode.constants import ERROR_CORRECT_H, ERROR_CORRECT_L, ERROR_CORRECT_M, ERROR_CORRECT_Q
from qrcode.exceptions import DataOverflowError
from qrcode.util import QRData

from .errors import CapacityError
from .levels import DEFAULT_LEVEL, RobustnessLevel

logger = structlog.get_logger(__name__)

ERROR_CORRECTION = {
    "L": ERROR_CORRECT_L,
    "M": ERROR_CORRECT_M,
    "Q": ERROR_CORRECT_Q,
    "H": ERROR_CORRECT_H,
}

# Pixels per QR module and caption band height
DEFAULT_MODULE_SIZE = 10
DEFAULT_CAPTION_HEIGHT = 100
QUIET_ZONE = 4  # modules, as required by the QR standard

CAPTION_FONT = "Helvetica, Arial, sans-serif"


def build_matrix(payload: str, level: RobustnessLevel = DEFAULT_LEVEL) -> list[list[bool]]:
    """Compute the QR module matrix for payload, including the quiet zone.

    Args:
        payload: Transport string to encode.
        level: Robustness level selecting the error correction.

    Returns:
        Square matrix of booleans, True for dark modules.

    Raises:
        CapacityError: If payload does not fit a version 40 symbol.
    """
    qr = qrcode.QRCode(
        version=None,
        error_correction=ERROR_CORRECTION[level.name],
        box_size=1,
        border=QUIET_ZONE,
    )
    # A single segment keeps base32 text in alphanumeric mode throughout
    qr.add_data(QRData(payload))
    try:
        qr.make(fit=True)
    except DataOverflowError as e:
        raise CapacityError(
            f"Payload of {len(payload)} characters does not fit a level {level.name} symbol"
        ) from e

    logger.debug("qr_matrix_built", version=qr.version, level=level.name, chars=len(payload))
    return qr.get_matrix()


def _dark_runs(row: list[bool]) -> list[tuple[int, int]]:
    """Horizontal runs of dark modules in a matrix row as (start, length)."""
    runs: list[tuple[int, int]] = []
    start = None
    for x, dark in enumerate(row):
        if dark and start is None:
            start = x
        elif not dark and start is not None:
            runs.append((start, x - start))
            start = None
    if start is not None:
        runs.append((start, len(row) - start))
    return runs


def render_svg(
    matrix: list[list[bool]],
    title: str = "",
    module_size: int = DEFAULT_MODULE_SIZE,
    caption_height: int = DEFAULT_CAPTION_HEIGHT,
) -> str:
    """Render a module matrix as an SVG string.

    Args:
        matrix: QR module matrix from build_matrix().
        title: Caption text drawn above the symbol (empty = no caption band).
        module_size: Pixels per module.
        caption_height: Height of the caption band in pixels.

    Returns:
        Complete SVG document as a string.
    """
    band = caption_height if title else 0
    side = len(matrix) * module_size
    width = side
    height = side + band

    svg_parts: list[str] = [
        f'<svg xmlns="http://www.w3.org/2000/svg" '
        f'viewBox="0 0 {width} {height}" '
        f'width="{width}" height="{height}" shape-rendering="crispEdges">',
        f'  <rect width="{width}" height="{height}" fill="white"/>',
    ]

    if title:
        font_size = int(band * 0.6)
        svg_parts.append(
            f'  <text x="{module_size * QUIET_ZONE}" y="{int(band * 0.75)}" '
            f'font-family="{CAPTION_FONT}" font-size="{font_size}" '
            f'fill="black" class="caption">{escape(title)}</text>'
        )

    # One rect per horizontal run keeps the document small
    for y, row in enumerate(matrix):
        for x, length in _dark_runs(row):
            svg_parts.append(
                f'  <rect x="{x * module_size}" y="{band + y * module_size}" '
                f'width="{length * module_size}" height="{module_size}" fill="black"/>'
            )

    svg_parts.append("</svg>")
    svg_content = "\n".join(svg_parts)

    logger.debug("svg_rendered", modules=len(matrix), width=width, height=height)
    return svg_content


def render_png(
    matrix: list[list[bool]],
    title: str = "",
    module_size: int = DEFAULT_MODULE_SIZE,
    caption_height: int = DEFAULT_CAPTION_HEIGHT,
) -> bytes:
    """Render a module matrix as a PNG image.

    Generates SVG first, then converts to PNG via CairoSVG.

    Returns:
        PNG image bytes.
    """
    import cairosvg

    svg = render_svg(matrix, title, module_size, caption_height)
    band = caption_height if title else 0
    side = len(matrix) * module_size
    png_bytes = cairosvg.svg2png(
        bytestring=svg.encode("utf-8"),
        output_width=side,
        output_height=side + band,
    )

    logger.debug("png_rendered", width=side, height=side + band, bytes=len(png_bytes))
    return png_bytes


class QRSymbolEncoder:
    """Default symbol encoder: one captioned QR code per transport string."""

    def __init__(
        self,
        level: RobustnessLevel = DEFAULT_LEVEL,
        module_size: int = DEFAULT_MODULE_SIZE,
        caption_height: int = DEFAULT_CAPTION_HEIGHT,
    ) -> None:
        self.level = level
        self.module_size = module_size
        self.caption_height = caption_height

    def render(self, payload: str, title: str) -> bytes:
        """Render payload as a PNG symbol with title as its caption."""
        matrix = build_matrix(payload, self.level)
        return render_png(matrix, title, self.module_size, self.caption_height)

    def render_svg(self, payload: str, title: str) -> str:
        """Render payload as an SVG symbol with title as its caption."""
        matrix = build_matrix(payload, self.level)
        return render_svg(matrix, title, self.module_size, self.caption_height)
