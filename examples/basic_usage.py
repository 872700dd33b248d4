#!/usr/bin/env python3
"""Basic usage example for qrbackup.

Demonstrates splitting data into frames, turning frames into transport
strings and symbols, and rebuilding the data from shuffled strings.

Usage:
    python examples/basic_usage.py
"""

import os
import random
import sys

# Add parent directory to path for direct script execution
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from qrbackup.checksum import compute_crc32, format_checksum
from qrbackup.layout import compute_page_layout
from qrbackup.levels import LEVELS, select_level
from qrbackup.reassembler import decode_transport_strings, reassemble
from qrbackup.renderer import QRSymbolEncoder
from qrbackup.splitter import plan_split, split_file
from qrbackup.transport import Base32Transcoder


def example_basic_roundtrip():
    """Split data into transport strings and rebuild it."""
    print("=" * 60)
    print("Example 1: Split and Reassemble")
    print("=" * 60)

    data = os.urandom(6000)
    level = select_level("M")
    transcoder = Base32Transcoder()
    print(f"  Input size:  {len(data)} bytes")
    print(f"  CRC-32:      {format_checksum(compute_crc32(data))}")

    frames = split_file(data, "random.bin", level.budget)
    codes = [transcoder.encode(frame.encode()) for frame in frames]
    print(f"  Frames:      {len(frames)} at level {level.name}")
    print(f"  Code length: {len(codes[0])} chars")

    # Scanners return symbols in any order, often more than once
    scanned = codes + codes[:2]
    random.shuffle(scanned)

    decoded = decode_transport_strings(set(scanned), transcoder)
    (outcome,) = reassemble(decoded.frames)
    print(f"  Identifier:  {outcome.identifier}")
    print(f"  Verified:    {outcome.ok}")
    print(f"  Match:       {outcome.file.data == data}")
    print()


def example_levels():
    """Compare how many symbols each robustness level needs."""
    print("=" * 60)
    print("Example 2: Robustness Levels")
    print("=" * 60)

    size = 100_000
    for level in LEVELS:
        plan = plan_split(size, "backup.tar.gz", level.budget)
        print(
            f"  Level {level.name}: budget {level.budget:4d} bytes, "
            f"{plan.body_capacity:4d} per code, {plan.count:3d} codes"
        )
    print()


def example_pages():
    """Plan printable pages and render one symbol."""
    print("=" * 60)
    print("Example 3: Pages and Symbols")
    print("=" * 60)

    for page in compute_page_layout(23, 4, 5):
        print(
            f"  Page {page.number}/{page.total}: codes {page.item_indices[0] + 1}"
            f"-{page.item_indices[-1] + 1}, grid {page.columns_used}x{page.rows_used}"
        )

    frames = split_file(b"hello, paper", "hello.txt", select_level("H").budget)
    code = Base32Transcoder().encode(frames[0].encode())
    svg = QRSymbolEncoder(select_level("H")).render_svg(code, " hello.txt (1 / 1)")
    print(f"  SVG length:  {len(svg)} chars")
    print()


if __name__ == "__main__":
    example_basic_roundtrip()
    example_levels()
    example_pages()
    print("All examples completed successfully.")
