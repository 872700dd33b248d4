"""Merge transport strings from scanned images and code lists.

Duplicates are collapsed by exact string equality, so the same symbol
scanned from two photos, or scanned once and also typed into a codes
file, contributes a single entry. The collector is safe to share between
detection worker threads.
"""

from __future__ import annotations

import threading
from collections import Counter
from collections.abc import Iterable

from .transport import is_candidate


class CodeCollector:
    """Thread-safe set of transport strings with per-source tallies."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._codes: set[str] = set()
        self._source_counts: Counter[str] = Counter()

    def add(self, code: str, source: str = "unknown") -> bool:
        """Add one code. Returns True if it was not seen before."""
        with self._lock:
            self._source_counts[source] += 1
            if code in self._codes:
                return False
            self._codes.add(code)
            return True

    def update(self, codes: Iterable[str], source: str = "unknown") -> int:
        """Add several codes. Returns how many were new."""
        return sum(1 for code in codes if self.add(code, source))

    def add_codes_text(self, text: str, source: str = "codes") -> int:
        """Add candidate lines from a codes file.

        Only lines whose trimmed content starts with the transport prefix
        are considered. Returns how many were new.
        """
        candidates = [line.strip() for line in text.splitlines() if is_candidate(line)]
        return self.update(candidates, source)

    def source_count(self, source: str) -> int:
        """Codes (including duplicates) contributed by source."""
        with self._lock:
            return self._source_counts[source]

    @property
    def codes(self) -> list[str]:
        """Unique codes, sorted."""
        with self._lock:
            return sorted(self._codes)

    def __len__(self) -> int:
        with self._lock:
            return len(self._codes)

    def __contains__(self, code: object) -> bool:
        with self._lock:
            return code in self._codes
