"""
kvstore — a simple key-value store with interchangeable backends.

    from kvstore import connect, normalize

    store = await connect("configmap://default/app-state", normalize_keys=True)
    await store.set("device/switch/state", "on")   # stored as device_switch_state
    await store.get("device/switch/state")         # → "on"

Backends: in-memory dict, SQLite file, Kubernetes ConfigMap/Secret.
See kvstore.backends for what each one guarantees.
"""

from .backends import (
    Backend,
    InMemoryBackend,
    KubernetesBackend,
    ResourceKind,
    SQLiteBackend,
)
from .connectors import connect, parse_url
from .errors import (
    BackendSetupError,
    InvalidKeyError,
    KVStoreError,
    OperationError,
    ReadError,
    SerializationError,
)
from .keys import is_valid_key, normalize
from .store import KeyValueStore, StoreKind

__version__ = "0.1.0"

__all__ = [
    "Backend",
    "BackendSetupError",
    "InMemoryBackend",
    "InvalidKeyError",
    "KVStoreError",
    "KeyValueStore",
    "KubernetesBackend",
    "OperationError",
    "ReadError",
    "ResourceKind",
    "SQLiteBackend",
    "SerializationError",
    "StoreKind",
    "connect",
    "is_valid_key",
    "normalize",
    "parse_url",
]
