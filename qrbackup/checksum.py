"""CRC-32 integrity code for whole-file verification."""

from __future__ import annotations

import zlib

CRC32_INITIAL = 0


def compute_crc32(data: bytes) -> int:
    """Compute CRC-32 checksum.

    Uses the polynomial of zlib/gzip/zip with the algorithm's standard
    initial value.

    Args:
        data: Input bytes.

    Returns:
        CRC-32 value (0-4294967295).
    """
    return zlib.crc32(data, CRC32_INITIAL) & 0xFFFFFFFF


def format_checksum(checksum: int) -> str:
    """Render a checksum the way file identifiers display it (``0A1B2C3D``)."""
    return f"{checksum:08X}"
