"""
In-memory backend — a dict behind a read/write lock.

Nothing is persisted; the data lives exactly as long as some handle does.
Useful for tests, local development, and as the reference behaviour the
other backends are checked against.

CONCURRENCY:
  get() takes the shared side of the lock, so lookups run side by side.
  set() and delete() take the exclusive side for their one mutation.
  There are no multi-key transactions.
"""

import copy
import logging

from ..locks import RWLock
from .base import Backend

logger = logging.getLogger(__name__)


class InMemoryBackend(Backend):
    """
    Ephemeral key-value backend.

    Usage:
        backend = InMemoryBackend()
        await backend.set("color", "blue")
        await backend.get("color")      # → "blue"
    """

    def __init__(self):
        self._store: dict[str, str] = {}
        self._lock = RWLock()

    async def get(self, key):
        async with self._lock.read():
            return self._store.get(key)

    async def set(self, key, value):
        async with self._lock.write():
            self._store[key] = value
        logger.debug("memory set %s", key)

    async def delete(self, key):
        async with self._lock.write():
            self._store.pop(key, None)
        logger.debug("memory delete %s", key)

    def clone(self):
        # Shallow copy: the clone holds the same dict and lock objects.
        return copy.copy(self)

    def __len__(self):
        return len(self._store)

    def __repr__(self):
        return f"<InMemoryBackend {len(self._store)} keys>"
