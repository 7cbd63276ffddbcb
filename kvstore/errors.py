"""
Exception types for kvstore.

    KVStoreError
     ├── BackendSetupError     construction failed (fatal, never retried)
     ├── OperationError        set/delete/refresh rejected by the engine or API
     │    └── InvalidKeyError  key outside the Kubernetes key alphabet
     ├── ReadError             strict-mode read failure (SQLite only)
     └── SerializationError    typed layer could not encode a value

Lookups never raise by default: "not found" and "read failed" are both None.
"""


class KVStoreError(Exception):
    """Base exception for kvstore; catch this for any package-raised error."""

    pass


class BackendSetupError(KVStoreError):
    """A backend could not be constructed (file, table, cluster or resource)."""


class OperationError(KVStoreError):
    """A write or delete was rejected by the underlying store."""


class InvalidKeyError(OperationError, ValueError):
    """Key cannot be stored in a ConfigMap/Secret. See kvstore.keys.normalize()."""


class ReadError(KVStoreError):
    """A lookup failed for a reason other than the key being absent."""


class SerializationError(KVStoreError, ValueError):
    """A value could not be encoded to its JSON wire form."""


__all__ = [
    "KVStoreError",
    "BackendSetupError",
    "OperationError",
    "InvalidKeyError",
    "ReadError",
    "SerializationError",
]
