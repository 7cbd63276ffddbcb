"""
Shared-read / exclusive-write lock for asyncio.

asyncio only ships a mutex. The in-memory and Kubernetes backends want
concurrent readers, so this wraps an asyncio.Condition:

    lock = RWLock()
    async with lock.read():     # many at once
        ...
    async with lock.write():    # alone
        ...

Waiting writers block new readers, so a steady stream of reads cannot
starve a write.
"""

import asyncio
from contextlib import asynccontextmanager


class RWLock:
    """Many readers or one writer. Not reentrant."""

    def __init__(self):
        self._cond = asyncio.Condition()
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @asynccontextmanager
    async def read(self):
        async with self._cond:
            await self._cond.wait_for(
                lambda: not self._writer and not self._waiting_writers
            )
            self._readers += 1
        try:
            yield
        finally:
            async with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @asynccontextmanager
    async def write(self):
        async with self._cond:
            self._waiting_writers += 1
            try:
                await self._cond.wait_for(
                    lambda: not self._writer and not self._readers
                )
            except BaseException:
                self._waiting_writers -= 1
                self._cond.notify_all()
                raise
            self._waiting_writers -= 1
            self._writer = True
        try:
            yield
        finally:
            async with self._cond:
                self._writer = False
                self._cond.notify_all()

    @property
    def readers(self) -> int:
        return self._readers

    @property
    def locked(self) -> bool:
        """True while a writer holds the lock."""
        return self._writer
