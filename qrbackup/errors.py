"""Exception types for qrbackup."""

from __future__ import annotations


class QRBackupError(Exception):
    """Base class for all qrbackup errors."""


class IoError(QRBackupError, OSError):
    """Raised when an input or output path cannot be read or written."""


class FormatError(QRBackupError, ValueError):
    """Raised when frame bytes or a transport string are malformed."""


class CapacityError(QRBackupError, ValueError):
    """Raised when a robustness level cannot fit the frame overhead."""


class ConflictingMetadataError(QRBackupError):
    """Raised when frames of one file disagree on count or part content."""

    def __init__(self, identifier: str, message: str) -> None:
        super().__init__(f"Detected conflicting data for file {identifier}: {message}")
        self.identifier = identifier


class MissingPartsError(QRBackupError):
    """Raised when a file cannot be rebuilt because parts were not found."""

    def __init__(
        self,
        identifier: str,
        missing: list[int],
        found: list[int],
        missing_count: int | None = None,
    ) -> None:
        if missing_count is None:
            missing_count = len(missing)
        listed = ", ".join(str(index) for index in missing)
        if missing_count > len(missing):
            # Only the first indices are listed for very large gaps
            listed += ", ..."
        super().__init__(
            f"Could not read {missing_count} parts of file {identifier}. "
            f"Missing parts: [{listed}] (found parts: {found})"
        )
        self.identifier = identifier
        self.missing = missing
        self.found = found
        self.missing_count = missing_count


class CorruptionError(QRBackupError):
    """Raised when a rebuilt file does not match its recorded CRC-32."""

    def __init__(self, identifier: str, expected: int, actual: int) -> None:
        super().__init__(
            f"Decoded file {identifier} has invalid checksum "
            f"(expected {expected:08X}, got {actual:08X})! File corrupted!"
        )
        self.identifier = identifier
        self.expected = expected
        self.actual = actual


class ReassemblyError(QRBackupError):
    """Raised when one group fails for a reason outside the checks above."""

    def __init__(self, identifier: str, message: str) -> None:
        super().__init__(f"Could not reassemble file {identifier}: {message}")
        self.identifier = identifier
