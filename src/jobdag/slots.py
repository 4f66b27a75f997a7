# slots.py
from __future__ import annotations

import threading
from typing import Optional, Set

from .errors import ConfigurationError, InvariantError


class Slots:
    """
    Fixed pool of numbered execution slots 0..size-1.

    acquire() hands out the lowest free index, so a slot freed a moment ago is
    the first one reused.
    """

    def __init__(self, size: int):
        if size < 1:
            raise ConfigurationError("invalid_option", name="max_jobs", reason=f"must be >= 1, got {size}")
        self.size = size
        self._free: Set[int] = set(range(size))
        self._cond = threading.Condition()
        self.acquired = 0
        self.released = 0

    def acquire(self, blocking: bool = True) -> Optional[int]:
        """
        Take a free slot, waiting for one if needed.

        Returns None only when blocking=False and every slot is held.
        """
        with self._cond:
            if not blocking and not self._free:
                return None
            self._cond.wait_for(lambda: bool(self._free))
            index = min(self._free)
            self._free.remove(index)
            self.acquired += 1
            return index

    def release(self, index: int) -> None:
        with self._cond:
            if index in self._free or not 0 <= index < self.size:
                raise InvariantError("slot_not_held", slot=index)
            self._free.add(index)
            self.released += 1
            self._cond.notify()

    def available_count(self) -> int:
        with self._cond:
            return len(self._free)
