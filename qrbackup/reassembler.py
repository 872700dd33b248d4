"""Rebuild files from collected frames.

Reassembly algorithm:
1. Decode every transport string into a frame, dropping malformed ones
2. Group frames by identity (file name + whole-file CRC-32)
3. Per group, check that all frames agree on a non-zero part count and
   that every index lies below it
4. Check that every index 0..count-1 is present exactly once
   (byte-identical duplicates are tolerated, differing ones are not)
5. Concatenate bodies in index order
6. Recompute the CRC-32 and compare it with the recorded checksum

Groups are independent: a failure in one group is recorded in its
outcome and never stops the remaining groups.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

import structlog

from .checksum import compute_crc32, format_checksum
from .errors import (
    ConflictingMetadataError,
    CorruptionError,
    FormatError,
    MissingPartsError,
    QRBackupError,
    ReassemblyError,
)
from .frame import Frame, decode_frame
from .interfaces import TextTranscoder

logger = structlog.get_logger(__name__)

# Missing indices listed in a MissingPartsError; the total is always reported
MAX_LISTED_MISSING = 100


@dataclass
class DecodedFrames:
    """Frames decoded from transport strings.

    Attributes:
        frames: Successfully decoded frames.
        rejected: Transport strings that failed to decode, with the reason.
    """

    frames: list[Frame] = field(default_factory=list)
    rejected: list[tuple[str, FormatError]] = field(default_factory=list)


@dataclass(frozen=True)
class ReassembledFile:
    """A rebuilt file.

    Attributes:
        identifier: User-facing group identifier ("name CHECKSUM").
        file_name: Original file name as stored in the frames.
        checksum: CRC-32 recorded in the frames.
        data: Concatenated bodies.
        verified: True if the CRC-32 of data matches checksum.
    """

    identifier: str
    file_name: str
    checksum: int
    data: bytes
    verified: bool


@dataclass(frozen=True)
class GroupOutcome:
    """Result of reassembling one group.

    ``file`` is set whenever bodies could be concatenated, including when
    the checksum failed (``error`` is then a CorruptionError), so the
    caller can decide whether to keep the data for inspection.
    """

    identifier: str
    part_count: int
    file: ReassembledFile | None = None
    error: QRBackupError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def file_identifier(file_name: str, checksum: int) -> str:
    """Build the user-facing identifier for a group."""
    return f"{file_name} {format_checksum(checksum)}"


def decode_transport_strings(
    codes: Iterable[str],
    transcoder: TextTranscoder,
) -> DecodedFrames:
    """Decode transport strings into frames.

    Malformed strings are logged and collected in ``rejected``; they never
    abort the run.
    """
    result = DecodedFrames()
    for code in codes:
        try:
            frame = decode_frame(transcoder.decode(code))
        except FormatError as e:
            logger.warning("frame_decode_failed", code=code[:32], error=str(e))
            result.rejected.append((code, e))
            continue
        result.frames.append(frame)
    return result


def group_frames(frames: Iterable[Frame]) -> dict[tuple[str, int], list[Frame]]:
    """Group frames by (file_name, checksum), keeping arrival order."""
    groups: dict[tuple[str, int], list[Frame]] = {}
    for frame in frames:
        groups.setdefault(frame.identity, []).append(frame)
    return groups


def missing_indices(found: list[int], count: int, limit: int = MAX_LISTED_MISSING) -> list[int]:
    """First ``limit`` indices of 0..count-1 absent from sorted found.

    Work is bounded by len(found) + limit, never by count.
    """
    missing: list[int] = []
    previous = -1
    for index in [*found, count]:
        gap_end = min(index, previous + 1 + limit - len(missing))
        missing.extend(range(previous + 1, gap_end))
        if len(missing) >= limit:
            break
        previous = index
    return missing


def reassemble_group(frames: list[Frame]) -> ReassembledFile:
    """Rebuild one file from frames that share an identity.

    Args:
        frames: Non-empty list of frames with the same (file_name, checksum).

    Returns:
        ReassembledFile; ``verified`` reports the checksum comparison.

    Raises:
        ValueError: If frames is empty or mixes identities.
        ConflictingMetadataError: If frames disagree on count, the count
            is zero, an index is not below the count, or one index appears
            with two different bodies.
        MissingPartsError: If any index in 0..count-1 is missing.
    """
    if not frames:
        raise ValueError("Cannot reassemble an empty group")

    file_name, checksum = frames[0].identity
    identifier = file_identifier(file_name, checksum)
    if any(frame.identity != (file_name, checksum) for frame in frames):
        raise ValueError(f"Frames of different files passed as group {identifier}")

    counts = sorted({frame.count for frame in frames})
    if len(counts) != 1:
        raise ConflictingMetadataError(identifier, f"parts disagree on count: {counts}")
    count = counts[0]
    if count == 0:
        raise ConflictingMetadataError(identifier, "part count is zero")

    outside = sorted({frame.index for frame in frames if frame.index >= count})
    if outside:
        raise ConflictingMetadataError(
            identifier, f"parts {outside} are outside the range 0..{count - 1}"
        )

    bodies: dict[int, bytes] = {}
    for frame in frames:
        known = bodies.get(frame.index)
        if known is None:
            bodies[frame.index] = frame.body
        elif known != frame.body:
            raise ConflictingMetadataError(
                identifier, f"part {frame.index} was read with two different contents"
            )

    found = sorted(bodies)
    if len(found) < count:
        raise MissingPartsError(
            identifier,
            missing_indices(found, count),
            found,
            missing_count=count - len(found),
        )

    data = b"".join(bodies[index] for index in found)
    actual = compute_crc32(data)

    logger.debug(
        "group_reassembled",
        identifier=identifier,
        count=count,
        size=len(data),
        crc32=format_checksum(actual),
    )

    return ReassembledFile(
        identifier=identifier,
        file_name=file_name,
        checksum=checksum,
        data=data,
        verified=actual == checksum,
    )


def reassemble(frames: Iterable[Frame]) -> list[GroupOutcome]:
    """Rebuild every file found in frames.

    Each group is handled independently. Conflicts, missing parts and any
    unexpected failure are reported in the group's outcome; a checksum
    mismatch produces an outcome with both the data and a CorruptionError.
    """
    outcomes: list[GroupOutcome] = []

    for (file_name, checksum), group in group_frames(frames).items():
        identifier = file_identifier(file_name, checksum)
        logger.info("group_found", identifier=identifier, parts=len(group))

        try:
            rebuilt = reassemble_group(group)
        except QRBackupError as e:
            logger.error("group_failed", identifier=identifier, error=str(e))
            outcomes.append(GroupOutcome(identifier=identifier, part_count=len(group), error=e))
            continue
        except Exception as e:
            logger.exception("group_crashed", identifier=identifier)
            error = ReassemblyError(identifier, f"{type(e).__name__}: {e}")
            outcomes.append(
                GroupOutcome(identifier=identifier, part_count=len(group), error=error)
            )
            continue

        error = None
        if not rebuilt.verified:
            error = CorruptionError(identifier, checksum, compute_crc32(rebuilt.data))
            logger.error("group_corrupted", identifier=identifier, error=str(error))

        outcomes.append(
            GroupOutcome(
                identifier=identifier,
                part_count=len(group),
                file=rebuilt,
                error=error,
            )
        )

    return outcomes
