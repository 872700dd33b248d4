"""Split a file into equally sized frames.

Splitting algorithm:
1. Measure the frame overhead for the file name (header + name + NUL)
2. Whatever the budget leaves after the overhead is the body capacity
3. Cut the file into body-capacity slices; the final slice may be short
4. Pad the final frame with zero bytes after the name so every frame of
   the file encodes to exactly the same length

Because every frame has the same size, every QR symbol of a backup has
the same version and prints at the same physical size.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from .checksum import compute_crc32
from .errors import CapacityError
from .frame import Frame, frame_overhead

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SplitPlan:
    """How a file of a given size is cut into frames.

    Attributes:
        overhead: Encoded size of an empty frame for the file name.
        body_capacity: Body bytes carried by every full frame.
        count: Total number of frames.
        last_body_size: Body bytes carried by the final frame.
        last_padding: Zero bytes padding the final frame.
    """

    overhead: int
    body_capacity: int
    count: int
    last_body_size: int
    last_padding: int

    @property
    def frame_size(self) -> int:
        """Encoded length shared by every frame."""
        return self.overhead + self.body_capacity


def plan_split(file_size: int, file_name: str, budget: int) -> SplitPlan:
    """Compute the frame layout for a file.

    Args:
        file_size: Size of the file in bytes.
        file_name: Name stored in every frame.
        budget: Maximum encoded frame size in bytes.

    Returns:
        SplitPlan describing count, body capacity and final-frame padding.

    Raises:
        CapacityError: If the frame overhead for file_name does not leave
            room for at least one body byte.
    """
    overhead = frame_overhead(file_name)
    if overhead >= budget:
        raise CapacityError(
            f"File name too long: frame overhead is {overhead} bytes, "
            f"budget is {budget} bytes"
        )

    body_capacity = budget - overhead
    full_parts, remainder = divmod(file_size, body_capacity)

    if remainder == 0 and file_size > 0:
        count = full_parts
        last_body_size = body_capacity
        last_padding = 0
    else:
        # Short final frame; an empty file still gets one frame for its name
        count = full_parts + 1
        last_body_size = remainder
        last_padding = body_capacity - remainder

    return SplitPlan(
        overhead=overhead,
        body_capacity=body_capacity,
        count=count,
        last_body_size=last_body_size,
        last_padding=last_padding,
    )


def split_file(
    data: bytes,
    file_name: str,
    budget: int,
    checksum: int | None = None,
) -> list[Frame]:
    """Split file contents into an ordered list of frames.

    Args:
        data: Complete file contents.
        file_name: Name stored in every frame.
        budget: Maximum encoded frame size in bytes (see levels.py).
        checksum: CRC-32 of data, computed here when not supplied.

    Returns:
        Frames with index 0..count-1, all encoding to the same length.

    Raises:
        CapacityError: If the name does not fit the budget.
    """
    plan = plan_split(len(data), file_name, budget)
    if checksum is None:
        checksum = compute_crc32(data)

    logger.debug(
        "split_planned",
        file_name=file_name,
        file_size=len(data),
        count=plan.count,
        body_capacity=plan.body_capacity,
        last_padding=plan.last_padding,
    )

    frames: list[Frame] = []
    for index in range(plan.count):
        start = index * plan.body_capacity
        is_last = index == plan.count - 1
        end = start + (plan.last_body_size if is_last else plan.body_capacity)
        frames.append(
            Frame(
                file_name=file_name,
                checksum=checksum,
                count=plan.count,
                index=index,
                padding=plan.last_padding if is_last else 0,
                body=bytes(data[start:end]),
            )
        )

    return frames
