"""Per-key asyncio locks used to serialize work on one agent container."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from app.core.logging import TRACE_LEVEL, get_logger

logger = get_logger(__name__)


@dataclass(slots=True)
class _LockEntry:
    lock: asyncio.Lock
    holders: int = 0


class KeyedLocks:
    """Map of key -> lock; entries are dropped once nobody holds or waits on them."""

    def __init__(self) -> None:
        self._entries: dict[str, _LockEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def is_locked(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.lock.locked()

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        entry = self._entries.get(key)
        if entry is None:
            entry = _LockEntry(lock=asyncio.Lock())
            self._entries[key] = entry
        entry.holders += 1
        try:
            if entry.lock.locked():
                logger.log(TRACE_LEVEL, "locks.wait key=%s waiters=%s", key, entry.holders - 1)
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1
            if entry.holders == 0:
                self._entries.pop(key, None)
