"""QR symbol detection in scanned or photographed pages.

A printed backup page usually holds many symbols and is captured under
uneven light, so a single read rarely finds all of them. The detector
reads the image repeatedly:

1. Convert to grayscale
2. For each contrast in 1.0..3.0 (step 0.5) and exposure in 0..2 EV
   (step 0.5), adjust the image
3. Read symbols from the adjusted image, upright and rotated 180 degrees
4. Accumulate distinct payloads; stop early once ``max_codes`` distinct
   payloads were found (0 = run the whole search)

Reading is delegated to pyzbar; tests can inject any callable that maps
a grayscale array to a list of payload strings.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import numpy as np
import structlog
from PIL import Image, UnidentifiedImageError

from .collector import CodeCollector
from .errors import IoError
from .interfaces import SymbolDetector
from .transport import is_candidate

logger = structlog.get_logger(__name__)

CONTRAST_STEPS = [1.0, 1.5, 2.0, 2.5, 3.0]
EXPOSURE_STEPS = [0.0, 0.5, 1.0, 1.5, 2.0]
ROTATIONS = [0, 180]

SymbolReader = Callable[[np.ndarray], list[str]]


def read_symbols(gray: np.ndarray) -> list[str]:
    """Read all QR payloads from a grayscale image with pyzbar."""
    from pyzbar import pyzbar

    results: list[str] = []
    for symbol in pyzbar.decode(gray, symbols=[pyzbar.ZBarSymbol.QRCODE]):
        try:
            results.append(symbol.data.decode("utf-8"))
        except UnicodeDecodeError:
            logger.debug("symbol_not_text", bytes=len(symbol.data))
    return results


def adjust_image(gray: np.ndarray, exposure: float, contrast: float) -> np.ndarray:
    """Apply exposure (in EV stops) and contrast to a grayscale image.

    Exposure scales intensities by 2**exposure; contrast stretches them
    around mid-gray. Results are clipped to 0-255.
    """
    values = gray.astype(np.float32) * (2.0**exposure)
    values = (values - 127.5) * contrast + 127.5
    return np.clip(values, 0, 255).astype(np.uint8)


def search_attempts() -> Iterator[tuple[float, float, int]]:
    """Yield (contrast, exposure, rotation) in search order."""
    for contrast in CONTRAST_STEPS:
        for exposure in EXPOSURE_STEPS:
            for rotation in ROTATIONS:
                yield contrast, exposure, rotation


class QRDetector:
    """Default symbol detector backed by Pillow, numpy and pyzbar."""

    def __init__(self, reader: SymbolReader | None = None) -> None:
        self.reader = reader or read_symbols

    def detect_array(self, gray: np.ndarray, max_codes: int = 0, name: str = "") -> list[str]:
        """Run the adjustment search over a grayscale array."""
        found: set[str] = set()
        rotated = np.rot90(gray, 2)

        for contrast, exposure, rotation in search_attempts():
            source = rotated if rotation else gray
            adjusted = adjust_image(source, exposure, contrast)
            found.update(self.reader(adjusted))

            logger.debug(
                "detect_attempt",
                image=name,
                contrast=contrast,
                exposure=exposure,
                rotation=rotation,
                found=len(found),
            )
            if max_codes > 0 and len(found) >= max_codes:
                logger.info("detect_cap_reached", image=name, found=len(found))
                break

        return sorted(found)

    def detect(self, path: Path, max_codes: int = 0) -> list[str]:
        """Read every distinct symbol payload in the image at path.

        Raises:
            IoError: If the file cannot be opened as an image.
        """
        try:
            with Image.open(path) as img:
                gray = np.array(img.convert("L"))
        except (OSError, UnidentifiedImageError) as e:
            raise IoError(f"Could not read image from file {path}: {e}") from e

        return self.detect_array(gray, max_codes, name=path.name)


def detect_images(
    paths: Iterable[Path],
    detector: SymbolDetector,
    collector: CodeCollector,
    max_codes: int = 0,
    workers: int = 1,
    source: str = "images",
) -> list[Path]:
    """Detect symbols in many images concurrently.

    Each image is handled by one worker; payloads starting with the
    transport prefix are added to collector. Images that cannot be read
    are logged and skipped.

    Returns:
        Paths of images that could not be read.
    """

    def _detect_one(path: Path) -> Path | None:
        try:
            payloads = detector.detect(path, max_codes)
        except IoError as e:
            logger.error("image_unreadable", image=str(path), error=str(e))
            return path

        candidates = [payload for payload in payloads if is_candidate(payload)]
        new = collector.update(candidates, source)
        logger.info(
            "image_decoded",
            image=path.name,
            symbols=len(payloads),
            candidates=len(candidates),
            new=new,
        )
        return None

    with ThreadPoolExecutor(max_workers=workers) as pool:
        failures = [path for path in pool.map(_detect_one, paths) if path is not None]

    return failures
