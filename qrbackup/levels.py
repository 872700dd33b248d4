"""Robustness levels for QR symbols.

Each level pairs a QR error-correction setting with the number of frame
bytes one symbol is allowed to carry. Frames are transported as base32
text, so every budget is a multiple of five bytes and its text form fits
the alphanumeric capacity of a version 40 symbol at that level.

Levels are listed by budget, largest first. The first entry is the
default.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RobustnessLevel:
    """A named capacity budget.

    Attributes:
        name: Level name as accepted on the command line (L, M, Q, H).
        budget: Maximum encoded frame size in bytes for one symbol.
        recovery: Approximate share of symbol damage QR can repair.
    """

    name: str
    budget: int
    recovery: float


LEVELS: list[RobustnessLevel] = [
    RobustnessLevel(name="L", budget=2680, recovery=0.07),
    RobustnessLevel(name="M", budget=2115, recovery=0.15),
    RobustnessLevel(name="Q", budget=1510, recovery=0.25),
    RobustnessLevel(name="H", budget=1155, recovery=0.30),
]

LEVEL_INDEX: dict[str, RobustnessLevel] = {level.name: level for level in LEVELS}

DEFAULT_LEVEL = LEVELS[0]


def select_level(name: str) -> RobustnessLevel:
    """Select a robustness level by name.

    Args:
        name: Level name (L, M, Q, H). Case-insensitive.

    Returns:
        RobustnessLevel for the requested name.

    Raises:
        ValueError: If name is not recognized.
    """
    key = name.upper()
    if key not in LEVEL_INDEX:
        valid = ", ".join(LEVEL_INDEX.keys())
        raise ValueError(f"Unknown robustness level '{name}'. Valid levels: {valid}")
    return LEVEL_INDEX[key]
