"""Text transport encoding for frames.

Frames travel inside QR symbols and plain-text code lists as RFC 4648
base32. Every valid frame starts with the same four magic bytes, so
every transport string starts with the same token, ``LSQRBT``, which is
used to pick candidates out of scanner output.
"""

from __future__ import annotations

import base64
import binascii

from .errors import FormatError

TRANSPORT_PREFIX = "LSQRBT"


def is_candidate(text: str) -> bool:
    """True if text looks like a transport string (after trimming)."""
    return text.strip().startswith(TRANSPORT_PREFIX)


class Base32Transcoder:
    """Converts frame bytes to and from base32 transport strings."""

    def encode(self, data: bytes) -> str:
        """Encode bytes as an upper-case base32 string."""
        return base64.b32encode(data).decode("ascii")

    def decode(self, text: str) -> bytes:
        """Decode a base32 transport string.

        Surrounding whitespace is ignored, lower-case input is accepted
        and missing ``=`` padding is restored.

        Raises:
            FormatError: If text is not valid base32.
        """
        clean = text.strip()
        clean += "=" * (-len(clean) % 8)
        try:
            return base64.b32decode(clean, casefold=True)
        except (binascii.Error, ValueError) as e:
            raise FormatError(f"Invalid transport string: {e}") from e
