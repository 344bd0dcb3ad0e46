"""Single-flight guard: acquire-or-reject, released on every exit path."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

from core.domain.errors import ScanInProgressError


class SingleFlightGuard:
    def __init__(self) -> None:
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def hold(self) -> Iterator[None]:
        """Enter the guarded section or raise `ScanInProgressError` immediately."""

        if not self._lock.acquire(blocking=False):
            raise ScanInProgressError()
        try:
            yield
        finally:
            self._lock.release()


# One per process: full scans never overlap.
SCAN_GUARD = SingleFlightGuard()
