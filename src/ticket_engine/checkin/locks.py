"""Keyed lock table — one asyncio.Lock per ticket code, created on demand."""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator

from ticket_engine.common.exceptions import BusyError


@dataclass
class _Entry:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    holders: int = 0  # tasks holding or waiting on the lock


class KeyedLockTable:
    """Exclusive sections per key with a bounded wait.

    Different keys never block each other. An entry is dropped as soon as
    no task holds or waits on it, so the table only grows with in-flight
    keys.
    """

    def __init__(self, timeout: float = 3.0):
        self.timeout = timeout
        self._entries: dict[str, _Entry] = {}

    @asynccontextmanager
    async def hold(self, key: str, timeout: float | None = None) -> AsyncIterator[None]:
        """Enter the section for ``key`` or raise BusyError after ``timeout`` seconds."""
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _Entry()
        entry.holders += 1
        try:
            try:
                await asyncio.wait_for(
                    entry.lock.acquire(),
                    timeout=self.timeout if timeout is None else timeout,
                )
            except asyncio.TimeoutError:
                raise BusyError() from None
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            entry.holders -= 1
            if entry.holders == 0 and self._entries.get(key) is entry:
                del self._entries[key]

    def is_locked(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.lock.locked()

    def __len__(self) -> int:
        return len(self._entries)
