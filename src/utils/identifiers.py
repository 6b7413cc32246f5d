"""Local record identifiers of the form ``NUTRI-YYYYMMDD-NNNN``."""

from __future__ import annotations

import itertools
import threading
import time
from datetime import date
from typing import Iterator, Optional


class LocalIdSequence:
    """Process-wide, monotonically increasing and thread-safe id sequence.

    The counter is seeded from the clock so that ids issued by successive
    processes on the same day are unlikely to collide.
    """

    def __init__(self, start: Optional[int] = None) -> None:
        if start is None:
            start = int(time.time() * 1000) % 100000
        self._counter: Iterator[int] = itertools.count(start + 1)
        self._lock = threading.Lock()

    def next_value(self) -> int:
        with self._lock:
            return next(self._counter)

    def next_id(self, today: Optional[date] = None) -> str:
        today = today or date.today()
        return f"NUTRI-{today:%Y%m%d}-{self.next_value():04d}"


_SEQUENCE = LocalIdSequence()


def generate_local_id(today: Optional[date] = None) -> str:
    """Issue the next local id from the process-wide sequence."""
    return _SEQUENCE.next_id(today)
