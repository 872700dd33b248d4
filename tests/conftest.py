"""Shared fixtures: in-memory stand-ins for the QR and image backends."""

import io
from pathlib import Path

import pytest
from PIL import Image

from qrbackup.checksum import compute_crc32
from qrbackup.errors import IoError
from qrbackup.splitter import split_file
from qrbackup.transport import Base32Transcoder


class EchoEncoder:
    """Symbol encoder whose "image" is the transport string itself."""

    def __init__(self, level=None):
        self.level = level
        self.titles: list[str] = []

    def render(self, payload: str, title: str) -> bytes:
        self.titles.append(title)
        return payload.encode("ascii")


class TinyPngEncoder(EchoEncoder):
    """Symbol encoder producing a small real PNG, so pages can be composed."""

    def render(self, payload: str, title: str) -> bytes:
        super().render(payload, title)
        buf = io.BytesIO()
        Image.new("RGB", (24, 32), "black").save(buf, format="PNG")
        return buf.getvalue()


class RecordingCanvas:
    """Canvas that writes symbols as-is and records page memberships."""

    def __init__(self):
        self.pages: list[list[int]] = []

    def write_image(self, png_bytes: bytes, path: Path) -> None:
        path.write_bytes(png_bytes)

    def compose_page(self, image_paths, layout, path: Path) -> None:
        self.pages.append(layout.item_indices)
        path.write_text("\n".join(str(image_paths[i]) for i in layout.item_indices))


class TextFileDetector:
    """Detector for EchoEncoder output: every line of the file is a payload."""

    def __init__(self):
        self.calls: list[tuple[Path, int]] = []

    def detect(self, path: Path, max_codes: int = 0) -> list[str]:
        self.calls.append((path, max_codes))
        try:
            text = path.read_text()
        except OSError as e:
            raise IoError(f"Could not read image from file {path}: {e}") from e
        return [line for line in text.splitlines() if line]


@pytest.fixture
def transcoder():
    return Base32Transcoder()


@pytest.fixture
def echo_encoder():
    return EchoEncoder()


@pytest.fixture
def recording_canvas():
    return RecordingCanvas()


@pytest.fixture
def text_detector():
    return TextFileDetector()


@pytest.fixture
def tiny_png_encoder_cls():
    return TinyPngEncoder


@pytest.fixture
def make_codes(transcoder):
    """Split data and return (frames, transport strings)."""

    def _make(data: bytes, file_name: str = "notes.txt", budget: int = 60):
        frames = split_file(data, file_name, budget, compute_crc32(data))
        return frames, [transcoder.encode(frame.encode()) for frame in frames]

    return _make


@pytest.fixture
def echo_encoder_cls():
    return EchoEncoder


@pytest.fixture
def text_detector_cls():
    return TextFileDetector
