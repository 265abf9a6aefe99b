"""Per-session serialization points."""

import asyncio
from typing import Dict


class SessionLockRegistry:
    """
    One asyncio.Lock per upload id.

    Sessions never share a lock, so work on different uploads proceeds
    independently.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}

    def get(self, upload_id: str) -> asyncio.Lock:
        lock = self._locks.get(upload_id)
        if lock is None:
            lock = self._locks.setdefault(upload_id, asyncio.Lock())
        return lock

    def is_locked(self, upload_id: str) -> bool:
        lock = self._locks.get(upload_id)
        return lock is not None and lock.locked()

    def discard(self, upload_id: str) -> None:
        """Forget the lock of a removed session if nobody holds it."""
        lock = self._locks.get(upload_id)
        if lock is not None and not lock.locked():
            del self._locks[upload_id]

    def __len__(self) -> int:
        return len(self._locks)
