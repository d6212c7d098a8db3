from __future__ import annotations

import threading
from typing import Iterable, List, Sequence, Tuple, TypeVar

from scanroom.core.errors import InvariantViolation

T = TypeVar("T")

# Largest 32-bit value; never issued, means "there is no object here".
NO_ID = 2**32 - 1

FIRST_ID = 1

# Placeholder for corners migrated from saves that predate corner IDs.
# Never issued since allocation starts at FIRST_ID.
UNASSIGNED_ID = 0


def _successor(i: int) -> int:
    # Wraps past NO_ID to FIRST_ID, skipping UNASSIGNED_ID.
    nxt = (i + 1) % NO_ID
    return FIRST_ID if nxt < FIRST_ID else nxt


class IdAllocator:
    """
    Thread-safe issuer of process-unique entity IDs.

    Read from both the editing thread and asynchronous upload workers, so
    issuance is guarded by a lock.
    """

    def __init__(self, start: int = FIRST_ID) -> None:
        self._lock = threading.Lock()
        self._next = int(start)

    @property
    def high_water(self) -> int:
        with self._lock:
            return self._next

    def next_id(self) -> int:
        with self._lock:
            i = self._next
            self._next = _successor(i)
            return i

    def zip_ids(self, items: Iterable[T]) -> List[Tuple[int, T]]:
        return [(self.next_id(), x) for x in items]

    def advance_past(self, used: Iterable[int]) -> None:
        """Make sure no ID in `used` is issued again."""
        with self._lock:
            top = max(used, default=None)
            if top is not None and top + 1 > self._next:
                self._next = _successor(int(top))


def bump_id(i: int, n: int) -> int:
    out = int(i) + int(n)
    if out >= NO_ID:
        raise InvariantViolation(f"ID {i} bumped by {n} overflows the 32-bit ID space")
    return out


def assert_unique_ids(ids: Sequence[int], label: str) -> None:
    seen = set()
    for i in ids:
        if i in seen:
            raise InvariantViolation(f"Duplicate {label} id: {i}")
        seen.add(i)
