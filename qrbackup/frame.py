"""Frame codec: the binary layout of one chunk of a split file.

Layout (all integers little-endian uint32):

    magic       : 4 bytes  5C A1 10 CF
    checksum    : 4 bytes  CRC-32 of the whole original file
    header_size : 4 bytes  length of everything before the body
    count       : 4 bytes  total number of frames for the file
    index       : 4 bytes  zero-based position of this frame
    file_name   : UTF-8 bytes, followed by one NUL
    padding     : zero bytes, so the final frame matches the others in size
    body        : remaining bytes, this frame's slice of the file

The magic is chosen so that its base32 rendering starts with the
transport prefix ``LSQRBT``.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from .errors import FormatError

FRAME_MAGIC = b"\x5c\xa1\x10\xcf"

# magic + checksum + header_size + count + index
FIXED_HEADER_SIZE = 20

# fixed header + at least one name byte + NUL terminator
MIN_FRAME_SIZE = FIXED_HEADER_SIZE + 1 + 1

UINT32_MAX = 0xFFFFFFFF

_FIXED_HEADER = struct.Struct("<4sIIII")


@dataclass(frozen=True)
class Frame:
    """One decoded (or to-be-encoded) frame.

    Attributes:
        file_name: Original file name, non-empty, no NUL.
        checksum: CRC-32 of the entire original file.
        count: Total number of frames in the file's sequence.
        index: Zero-based position of this frame.
        padding: Number of zero filler bytes after the name terminator.
        body: This frame's slice of the original file.
    """

    file_name: str
    checksum: int
    count: int
    index: int
    padding: int = 0
    body: bytes = b""

    @property
    def header_size(self) -> int:
        """Byte offset at which the body starts."""
        return FIXED_HEADER_SIZE + len(self.file_name.encode("utf-8")) + 1 + self.padding

    @property
    def identity(self) -> tuple[str, int]:
        """Key shared by every frame of the same original file."""
        return (self.file_name, self.checksum)

    def encode(self) -> bytes:
        """Serialize to the canonical byte layout."""
        return encode_frame(
            self.file_name,
            self.checksum,
            self.count,
            self.index,
            self.padding,
            self.body,
        )


def _check_uint32(name: str, value: int) -> None:
    if not 0 <= value <= UINT32_MAX:
        raise FormatError(f"{name} must fit in 4 bytes (0-{UINT32_MAX}), got {value}")


def encode_frame(
    file_name: str,
    checksum: int,
    count: int,
    index: int,
    padding: int,
    body: bytes,
) -> bytes:
    """Encode one frame.

    Args:
        file_name: Original file name (non-empty, no NUL).
        checksum: CRC-32 of the whole original file.
        count: Total number of frames.
        index: Zero-based frame index.
        padding: Number of zero bytes to insert after the name terminator.
        body: Frame body bytes.

    Returns:
        Encoded frame bytes.

    Raises:
        FormatError: If the name is empty or contains NUL, padding is
            negative, or an integer field does not fit in 4 bytes.
    """
    name = file_name.encode("utf-8")
    if not name:
        raise FormatError("file_name must not be empty")
    if b"\x00" in name:
        raise FormatError("file_name must not contain NUL characters")
    if padding < 0:
        raise FormatError(f"padding must be non-negative, got {padding}")
    _check_uint32("checksum", checksum)
    _check_uint32("count", count)
    _check_uint32("index", index)

    header_size = FIXED_HEADER_SIZE + len(name) + 1 + padding
    _check_uint32("header_size", header_size)

    return b"".join(
        [
            _FIXED_HEADER.pack(FRAME_MAGIC, checksum, header_size, count, index),
            name,
            b"\x00",
            bytes(padding),
            bytes(body),
        ]
    )


def decode_frame(data: bytes) -> Frame:
    """Decode one frame.

    The body is everything from ``header_size`` to the end of input; its
    length is not checked here.

    Args:
        data: Encoded frame bytes.

    Returns:
        Decoded Frame.

    Raises:
        FormatError: If the input is too short, the magic does not match,
            the header size is invalid, the name is empty or not UTF-8, or
            the byte before the body is not the zero terminator/padding.
    """
    data = bytes(data)
    if len(data) < MIN_FRAME_SIZE:
        raise FormatError(f"Frame too short: {len(data)} bytes (min {MIN_FRAME_SIZE})")

    magic, checksum, header_size, count, index = _FIXED_HEADER.unpack_from(data)
    if magic != FRAME_MAGIC:
        raise FormatError(f"Invalid frame magic: {magic.hex()}")
    if header_size < MIN_FRAME_SIZE:
        raise FormatError(f"Invalid header size: {header_size} (min {MIN_FRAME_SIZE})")
    if len(data) < header_size:
        raise FormatError(f"Frame truncated: {len(data)} bytes, header claims {header_size}")
    if data[FIXED_HEADER_SIZE] == 0:
        raise FormatError("Frame has an empty file name")
    if data[header_size - 1] != 0:
        raise FormatError("File name terminator missing before frame body")

    name_and_padding = data[FIXED_HEADER_SIZE:header_size]
    name_length = name_and_padding.index(b"\x00")
    try:
        file_name = name_and_padding[:name_length].decode("utf-8")
    except UnicodeDecodeError as e:
        raise FormatError(f"File name is not valid UTF-8: {e}") from e

    return Frame(
        file_name=file_name,
        checksum=checksum,
        count=count,
        index=index,
        padding=len(name_and_padding) - name_length - 1,
        body=data[header_size:],
    )


def frame_overhead(file_name: str) -> int:
    """Encoded size of a frame with no body and no padding for file_name."""
    return len(encode_frame(file_name, 0, 0, 0, 0, b""))
