"""
KeyValueStore — one interface over every backend.

A KeyValueStore is a tag (StoreKind) plus exactly one backend handle. The
set of tags is closed: memory, sqlite, kubernetes. Every operation forwards
to the active backend and returns the same shape whichever it is:

    store = KeyValueStore.memory()
    store = KeyValueStore.sqlite("kv.db")
    store = await KeyValueStore.kubernetes("default", "app-state", "secret")

    await store.set("color", "blue")
    await store.get("color")          # → "blue"
    await store.delete("color")
    await store.get("color")          # → None

    await store.set_json("limits", {"cpu": 2})
    await store.get_json("limits")    # → {"cpu": 2}

Tag-specific extras (strict reads on SQLite, refresh() on Kubernetes) are
dispatched on the tag, not on the backend's class.
"""

import enum
import json
import logging

from .backends import (
    Backend,
    InMemoryBackend,
    KubernetesBackend,
    ResourceKind,
    SQLiteBackend,
)
from .errors import SerializationError
from .keys import normalize

logger = logging.getLogger(__name__)


class StoreKind(enum.Enum):
    MEMORY = "memory"
    SQLITE = "sqlite"
    KUBERNETES = "kubernetes"


_BACKEND_CLASSES = {
    StoreKind.MEMORY: InMemoryBackend,
    StoreKind.SQLITE: SQLiteBackend,
    StoreKind.KUBERNETES: KubernetesBackend,
}


class KeyValueStore:
    """
    Multi-backend key-value store.

    Args:
        kind:           Which backend variant is active.
        backend:        The backend handle for that variant.
        normalize_keys: Run every key through kvstore.keys.normalize()
                        before it reaches the backend. Keeps keys portable
                        between backends (Kubernetes rejects '/', ':', '@').
    """

    def __init__(self, kind: StoreKind, backend: Backend, *, normalize_keys: bool = False):
        kind = StoreKind(kind)
        expected = _BACKEND_CLASSES[kind]
        if not isinstance(backend, expected):
            raise TypeError(f"{kind.value} store needs a {expected.__name__}, got {backend!r}")
        self.kind = kind
        self.backend = backend
        self.normalize_keys = normalize_keys

    # ── Constructors ──────────────────────────────────────────

    @classmethod
    def memory(cls, *, normalize_keys: bool = False) -> "KeyValueStore":
        return cls(StoreKind.MEMORY, InMemoryBackend(), normalize_keys=normalize_keys)

    @classmethod
    def sqlite(cls, db_path: str = "kv.db", *, normalize_keys: bool = False) -> "KeyValueStore":
        return cls(StoreKind.SQLITE, SQLiteBackend(db_path), normalize_keys=normalize_keys)

    @classmethod
    async def kubernetes(
        cls,
        namespace: str,
        name: str,
        kind: ResourceKind | str = ResourceKind.CONFIGMAP,
        *,
        api=None,
        normalize_keys: bool = False,
    ) -> "KeyValueStore":
        backend = await KubernetesBackend.create(namespace, name, ResourceKind(kind), api=api)
        return cls(StoreKind.KUBERNETES, backend, normalize_keys=normalize_keys)

    # ── Raw string interface ──────────────────────────────────

    def _key(self, key: str) -> str:
        return normalize(key) if self.normalize_keys else key

    async def get(self, key: str, *, strict: bool = False) -> str | None:
        """
        Value for key, or None.

        strict=True only changes anything on SQLite, where it turns a failed
        query into ReadError instead of None. The other backends have no
        failing read path.
        """
        key = self._key(key)
        if self.kind is StoreKind.SQLITE:
            return await self.backend.get(key, strict=strict)
        return await self.backend.get(key)

    async def set(self, key: str, value: str) -> None:
        await self.backend.set(self._key(key), value)

    async def delete(self, key: str) -> None:
        await self.backend.delete(self._key(key))

    async def refresh(self) -> None:
        """Reload the Kubernetes cache. No-op for the other backends."""
        if self.kind is StoreKind.KUBERNETES:
            await self.backend.refresh()

    # ── Typed (JSON) interface ────────────────────────────────

    async def set_json(self, key: str, value) -> None:
        """Store any JSON-serializable value under key."""
        try:
            text = json.dumps(value, separators=(",", ":"), sort_keys=True)
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"value for {key!r} is not JSON-serializable: {exc}") from exc
        await self.set(key, text)

    async def get_json(self, key: str, default=None):
        """
        Decoded value for key, or default.

        Malformed stored text reads as absent rather than raising — the
        same lenient policy as a failed lookup.
        """
        text = await self.get(key)
        if text is None:
            return default
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            logger.debug("stored value for %r is not valid JSON, treating as absent", key)
            return default

    # ── Handles ───────────────────────────────────────────────

    def clone(self) -> "KeyValueStore":
        """New store over a clone of the same backend; both see the same data."""
        return KeyValueStore(self.kind, self.backend.clone(), normalize_keys=self.normalize_keys)

    def __repr__(self):
        return f"<KeyValueStore {self.kind.value} {self.backend!r}>"
