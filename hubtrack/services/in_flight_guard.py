from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

from hubtrack.services.transit_state_machine import TransitFailure

InFlightKey = tuple[int, str]


class InFlightGuard:
    """
    Blocks a second write on the same (transit id, field) pair while the first
    one is still running. Different fields of one shipment are not serialized.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._busy: set[InFlightKey] = set()

    def try_acquire(self, key: InFlightKey) -> bool:
        with self._lock:
            if key in self._busy:
                return False
            self._busy.add(key)
            return True

    def release(self, key: InFlightKey) -> None:
        with self._lock:
            self._busy.discard(key)

    def is_busy(self, key: InFlightKey) -> bool:
        with self._lock:
            return key in self._busy

    @contextmanager
    def claim(self, key: InFlightKey) -> Iterator[None]:
        if not self.try_acquire(key):
            raise TransitFailure(
                code="TRANSITION_IN_PROGRESS",
                message="An update for this shipment is already in progress.",
                status_code=409,
                transit_id=key[0],
            )
        try:
            yield
        finally:
            self.release(key)


# Shared by all request handlers of this process.
transit_guard = InFlightGuard()
