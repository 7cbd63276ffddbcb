"""
Abstract backend interface.

Every backend implements the same surface:

    get(key)          → str | None     None for absent (and for lenient read failures)
    set(key, value)   → None           raises OperationError on failure
    delete(key)       → None           absent key is not an error
    clone()           → Backend        new handle, same underlying state

All four are cheap to get right and easy to get subtly different, so the
shared contract lives here and the parity tests run every backend through
the same sequence.
"""

from abc import ABC, abstractmethod


class Backend(ABC):
    """
    Minimal async key-value backend.

    Subclasses must implement get/set/delete/clone. Handles are cheap:
    clone() never copies data, it hands out another reference to the same
    guarded state (dict, connection or cache).
    """

    # ── Required ──────────────────────────────────────────────

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """
        Return the value stored under key, or None.

        Must not raise for a missing key.
        """
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """
        Insert or overwrite key. Last writer wins.

        Raises OperationError if the store rejects the write.
        """
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """
        Remove key if present. Deleting an absent key succeeds.

        Raises OperationError if the store rejects the delete.
        """
        ...

    @abstractmethod
    def clone(self) -> "Backend":
        """Return a new handle sharing this backend's state."""
        ...

    # ── Repr ──────────────────────────────────────────────────

    def __repr__(self):
        return f"<{self.__class__.__name__}>"
