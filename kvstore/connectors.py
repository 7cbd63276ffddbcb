"""
kvstore connectors — one function, any backend.

Usage:

    from kvstore import connect

    # From a URL (scheme determines backend):
    store = await connect("memory://")
    store = await connect("sqlite:///path/to/kv.db")
    store = await connect("configmap://default/app-state")
    store = await connect("secret://default/app-credentials")

    # From $KVSTORE_URL or ~/.kvstore.json (auto-detect):
    store = await connect()

    # Then use the universal interface:
    await store.set("color", "blue")
    await store.get("color")        # → "blue"
    await store.delete("color")

Config file (~/.kvstore.json, or the path in $KVSTORE_CONFIG):

    {
      "backend": "sqlite",               # memory | sqlite | kubernetes
      "normalize_keys": true,
      "sqlite": {"db_path": "~/.kvstore/kv.db"},
      "kubernetes": {"namespace": "default", "name": "app-state",
                     "kind": "configmap"}
    }

$KVSTORE_BACKEND overrides "backend".
"""

import json
import logging
import os

from .backends import ResourceKind
from .store import KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_CFG_PATH = "~/.kvstore.json"

# ── URL scheme → backend mapping ──────────────────────────────

_SCHEMES = {
    "memory": "memory",
    "mem": "memory",
    "sqlite": "sqlite",
    "configmap": "configmap",
    "cm": "configmap",
    "secret": "secret",
}


async def connect(url: str = None, **overrides) -> KeyValueStore:
    """
    Create a KeyValueStore.

    Args:
        url:         Store URL. Scheme determines backend:
                     memory://  sqlite:///  configmap://  secret://
                     If omitted, uses $KVSTORE_URL, then the config file.
        **overrides: Extra kwargs for the store constructor
                     (normalize_keys, and api for Kubernetes).

    Returns:
        KeyValueStore with the chosen backend active.

    Examples:
        await connect("sqlite:///var/lib/app/kv.db")
        await connect("secret://prod/app-credentials", normalize_keys=True)
        await connect()  # auto-detect
    """
    url = url or os.environ.get("KVSTORE_URL")
    if url:
        return await _from_url(url, **overrides)
    return await _from_config(**overrides)


def parse_url(url: str) -> tuple[str, dict]:
    """
    Split a store URL into (backend, params).

        "sqlite:///tmp/kv.db"          → ("sqlite", {"db_path": "/tmp/kv.db"})
        "configmap://default/state"    → ("configmap", {"namespace": "default", "name": "state"})
    """
    scheme = url.split("://")[0].lower() if "://" in url else ""
    backend = _SCHEMES.get(scheme)

    if not backend:
        raise ValueError(
            f"Unknown URL scheme '{scheme}'. "
            f"Supported: {', '.join(sorted(set(_SCHEMES.values())))}"
        )

    rest = url.split("://", 1)[1]

    if backend == "memory":
        return backend, {}

    if backend == "sqlite":
        # sqlite:///absolute/path keeps its leading slash,
        # sqlite://relative/path is used as-is.
        if not rest:
            raise ValueError(f"No database path in URL: {url}")
        return backend, {"db_path": rest}

    # configmap://namespace/name, secret://namespace/name
    parts = rest.strip("/").split("/")
    if len(parts) != 2 or not all(parts):
        raise ValueError(f"Expected {scheme}://<namespace>/<name>, got: {url}")
    return backend, {"namespace": parts[0], "name": parts[1]}


async def _from_url(url: str, **overrides) -> KeyValueStore:
    """Parse a store URL and build the matching store."""
    backend, params = parse_url(url)
    logger.debug("connecting to %s store from URL", backend)

    if backend == "memory":
        return KeyValueStore.memory(**overrides)

    elif backend == "sqlite":
        return KeyValueStore.sqlite(params["db_path"], **overrides)

    elif backend in ("configmap", "secret"):
        return await KeyValueStore.kubernetes(
            params["namespace"], params["name"], ResourceKind(backend), **overrides
        )

    raise ValueError(f"Unsupported backend: {backend}")


async def _from_config(**overrides) -> KeyValueStore:
    """Read the config file and build the configured store."""
    cfg_path = os.path.expanduser(os.environ.get("KVSTORE_CONFIG") or DEFAULT_CFG_PATH)
    if not os.path.exists(cfg_path):
        raise FileNotFoundError(
            f"No URL provided, KVSTORE_URL not set and no config at {cfg_path}. "
            f"Pass a store URL or create {DEFAULT_CFG_PATH}."
        )

    with open(cfg_path) as f:
        cfg = json.load(f)

    backend = (
        os.environ.get("KVSTORE_BACKEND")
        or cfg.get("backend", "")
    ).lower().strip()

    if not backend:
        raise ValueError(
            f"No 'backend' in {cfg_path} and KVSTORE_BACKEND not set."
        )

    overrides.setdefault("normalize_keys", bool(cfg.get("normalize_keys", False)))

    if backend in ("memory", "mem"):
        return KeyValueStore.memory(**overrides)

    elif backend == "sqlite":
        sc = cfg.get("sqlite", {})
        db_path = sc.get("db_path")
        if not db_path:
            raise ValueError(f"Missing sqlite.db_path in {cfg_path}")
        return KeyValueStore.sqlite(db_path, **overrides)

    elif backend in ("kubernetes", "k8s", "configmap", "secret"):
        kc = cfg.get("kubernetes", {})
        namespace = kc.get("namespace")
        name = kc.get("name")
        if not namespace or not name:
            raise ValueError(f"Missing kubernetes.namespace or kubernetes.name in {cfg_path}")
        kind = backend if backend in ("configmap", "secret") else kc.get("kind", "configmap")
        return await KeyValueStore.kubernetes(
            namespace, name, ResourceKind(kind.lower()), **overrides
        )

    raise ValueError(f"Unknown backend '{backend}' in {cfg_path}")
