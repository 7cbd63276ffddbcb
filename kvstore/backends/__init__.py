"""
kvstore Backends — Pluggable Storage Adapters
=============================================

Each backend implements the same async three-method interface (see
base.Backend):

    class SomeBackend(Backend):
        async def get(self, key: str) -> str | None: ...
        async def set(self, key: str, value: str) -> None: ...
        async def delete(self, key: str) -> None: ...
        def clone(self) -> "SomeBackend": ...

Available backends:
    - inmemory.py   — dict behind a read/write lock (ephemeral)
    - sqlite.py     — single-table SQLite file (durable, local)
    - kubernetes.py — ConfigMap or Secret with a local read cache
                      (durable, shared across the cluster)

The interface is intentionally minimal. Everything storage-specific
(SQL dialect, base64 for Secrets, merge-patch shapes, cache bookkeeping)
lives INSIDE each backend. Callers see the same three results everywhere:
a value or None from get(), and set()/delete() that either return or raise
OperationError. Deleting a missing key is never an error.

Callers normally don't pick a backend class directly; they go through
kvstore.KeyValueStore or kvstore.connect().
"""

from .base import Backend
from .inmemory import InMemoryBackend
from .kubernetes import KubernetesBackend, ResourceKind
from .sqlite import SQLiteBackend

__all__ = [
    "Backend",
    "InMemoryBackend",
    "KubernetesBackend",
    "ResourceKind",
    "SQLiteBackend",
]
