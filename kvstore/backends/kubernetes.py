#!/usr/bin/env python3
"""
kvstore Kubernetes Backend — ConfigMap / Secret as a Shared Key-Value Store
============================================================================

This backend keeps its data in the `data` field of one named Kubernetes
object. Anything that can reach the API server (other pods, operators,
kubectl) sees the same entries, and they survive pod restarts.

RESOURCE KINDS:

  1. ConfigMap
     - `data` is a plain map of string → string
     - Values are stored exactly as given

  2. Secret
     - `data` values must be base64 on the wire
     - set() encodes before sending; the cache always holds plain text
     - On load, values that aren't valid base64 or don't decode as UTF-8
       are DROPPED from the cache (lossy decode). A Secret written by some
       other tool with binary payloads therefore loads partially instead
       of failing the whole backend. Dropped keys are logged by name.

KEY ALPHABET:
  The API server only accepts data keys matching [-._a-zA-Z0-9]+. Run keys
  through kvstore.keys.normalize() first; set() raises InvalidKeyError
  rather than sending a key the server would reject.

LOCAL CACHE:
  get() never talks to the cluster. The cache is filled once at
  construction and then updated by this handle's own set()/delete():

    create()  → read object (create it empty if the read fails) → load cache
    get()     → cache only
    set()     → merge patch {"data": {key: value}} → cache[key] = value
    delete()  → merge patch with the full remaining data + {key: null}
                → drop key from cache

  The cache is only updated after the API call succeeds, so a failed write
  leaves it exactly as it was. delete() follows the same order: the key
  leaves the cache once the patch is accepted, not before it is sent.

  There is NO watch. If someone else edits the object, this handle keeps
  serving what it last saw until refresh() is called. Treat the cache as
  "what this process wrote or last loaded", not as the truth.

WRITES:
  Writes are JSON merge patches (application/merge-patch+json) sent with
  field manager "simple-kv-store". A merge patch only touches the keys it
  names, so set() never clobbers keys owned by other writers. Merge patches
  can't drop a map entry by leaving it out, so delete() sends the whole
  post-deletion `data` plus an explicit null for the removed key, which is
  the merge-patch spelling of "remove this key".

CONCURRENCY:
  A read/write lock guards the cache. The API call for set()/delete() runs
  while the write lock is held: a slow API server stalls local reads on
  this handle for that long, in exchange for the cache never disagreeing
  with what this handle last sent. No timeouts are applied here; wrap calls
  in asyncio.wait_for() if you need bounded latency.

  The kubernetes client is synchronous, so every API call runs in a worker
  thread via asyncio.to_thread().
"""

import asyncio
import base64
import binascii
import copy
import enum
import logging

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException
from urllib3.exceptions import HTTPError

from ..errors import BackendSetupError, InvalidKeyError, OperationError
from ..keys import is_valid_key
from ..locks import RWLock
from .base import Backend

logger = logging.getLogger(__name__)

FIELD_MANAGER = "simple-kv-store"
MERGE_PATCH = "application/merge-patch+json"

# ApiException: the server answered with an error. HTTPError: it never answered.
API_ERRORS = (ApiException, HTTPError)


class ResourceKind(enum.Enum):
    CONFIGMAP = "configmap"
    SECRET = "secret"


def load_api():
    """
    Build a CoreV1Api from the environment.

    In-cluster service account first (we're running in a pod), then the
    local kubeconfig (we're on a laptop). Raises BackendSetupError if
    neither works.
    """
    try:
        config.load_incluster_config()
    except config.ConfigException:
        try:
            config.load_kube_config()
        except config.ConfigException as exc:
            raise BackendSetupError(f"no usable Kubernetes configuration: {exc}") from exc
    return client.CoreV1Api()


def _encode(value):
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


def _decode(value):
    return base64.b64decode(value, validate=True).decode("utf-8")


def _describe(exc):
    if isinstance(exc, ApiException):
        return f"{exc.status} {exc.reason}"
    if isinstance(exc, UnicodeEncodeError):
        return f"value is not encodable as UTF-8 ({exc.reason})"
    return str(exc)


class KubernetesBackend(Backend):
    """
    ConfigMap/Secret-backed key-value backend with a local read cache.

    Build it with the async factory, which makes sure the object exists
    and loads the cache:

        backend = await KubernetesBackend.create(
            "default", "app-state", ResourceKind.CONFIGMAP
        )
        await backend.set("device_switch_state", "on")
        await backend.get("device_switch_state")   # → "on", no API call
    """

    def __init__(self, namespace, name, kind, api):
        self.namespace = namespace
        self.name = name
        self.kind = ResourceKind(kind)
        self._api = api
        self._cache: dict[str, str] = {}
        self._lock = RWLock()

    @classmethod
    async def create(cls, namespace, name, kind=ResourceKind.CONFIGMAP, api=None):
        """
        Connect, ensure the object exists, and load the cache.

        Args:
            namespace: Namespace of the ConfigMap/Secret.
            name:      Object name.
            kind:      ResourceKind (or its string value).
            api:       A CoreV1Api. Built with load_api() when omitted.

        Raises:
            BackendSetupError: no cluster config, the object couldn't be
                               created, or it couldn't be read back.
        """
        if api is None:
            api = await asyncio.to_thread(load_api)
        backend = cls(namespace, name, kind, api)

        try:
            await asyncio.to_thread(backend._read)
        except HTTPError as exc:
            raise BackendSetupError(f"cannot reach the Kubernetes API: {exc}") from exc
        except ApiException as exc:
            # Any read failure is taken to mean "doesn't exist yet".
            logger.info(
                "%s %s/%s not readable (%s), creating it empty",
                backend.kind.value, namespace, name, exc.status,
            )
            try:
                await asyncio.to_thread(backend._create)
            except API_ERRORS as create_exc:
                raise BackendSetupError(
                    f"cannot create {backend.kind.value} {namespace}/{name}: {_describe(create_exc)}"
                ) from create_exc

        try:
            obj = await asyncio.to_thread(backend._read)
        except API_ERRORS as exc:
            raise BackendSetupError(
                f"cannot read {backend.kind.value} {namespace}/{name}: {_describe(exc)}"
            ) from exc
        backend._cache = backend._decode_data(obj.data)
        logger.debug(
            "loaded %d keys from %s %s/%s",
            len(backend._cache), backend.kind.value, namespace, name,
        )
        return backend

    # ── API calls (blocking, run in worker threads) ───────────

    def _read(self):
        if self.kind is ResourceKind.CONFIGMAP:
            return self._api.read_namespaced_config_map(self.name, self.namespace)
        return self._api.read_namespaced_secret(self.name, self.namespace)

    def _create(self):
        metadata = client.V1ObjectMeta(name=self.name, namespace=self.namespace)
        if self.kind is ResourceKind.CONFIGMAP:
            body = client.V1ConfigMap(metadata=metadata, data={})
            return self._api.create_namespaced_config_map(self.namespace, body)
        body = client.V1Secret(metadata=metadata, data={})
        return self._api.create_namespaced_secret(self.namespace, body)

    def _patch(self, data):
        body = {"data": data}
        if self.kind is ResourceKind.CONFIGMAP:
            return self._api.patch_namespaced_config_map(
                self.name, self.namespace, body,
                field_manager=FIELD_MANAGER, _content_type=MERGE_PATCH,
            )
        return self._api.patch_namespaced_secret(
            self.name, self.namespace, body,
            field_manager=FIELD_MANAGER, _content_type=MERGE_PATCH,
        )

    # ── Wire encoding ─────────────────────────────────────────

    def _encode_value(self, value):
        return _encode(value) if self.kind is ResourceKind.SECRET else value

    def _decode_data(self, data):
        """Remote `data` → cache contents, sorted by key."""
        data = data or {}
        if self.kind is ResourceKind.CONFIGMAP:
            return dict(sorted(data.items()))

        decoded = {}
        for key, value in sorted(data.items()):
            try:
                decoded[key] = _decode(value)
            except (binascii.Error, UnicodeDecodeError):
                logger.warning(
                    "dropping key %r from secret %s/%s: value is not base64-encoded UTF-8",
                    key, self.namespace, self.name,
                )
        return decoded

    # ── Interface ─────────────────────────────────────────────

    async def get(self, key):
        """Cache lookup. Never calls the API."""
        async with self._lock.read():
            return self._cache.get(key)

    async def set(self, key, value):
        if not is_valid_key(key):
            raise InvalidKeyError(
                f"key {key!r} is not a valid {self.kind.value} data key; "
                f"use kvstore.keys.normalize()"
            )
        async with self._lock.write():
            try:
                data = {key: self._encode_value(value)}
                await asyncio.to_thread(self._patch, data)
            except (*API_ERRORS, UnicodeEncodeError) as exc:
                raise OperationError(
                    f"patch of {key!r} on {self.kind.value} {self.namespace}/{self.name} "
                    f"failed: {_describe(exc)}"
                ) from exc
            self._cache[key] = value
        logger.debug("%s set %s", self.kind.value, key)

    async def delete(self, key):
        async with self._lock.write():
            if key not in self._cache:
                return
            remaining = {k: v for k, v in self._cache.items() if k != key}
            data = {k: self._encode_value(v) for k, v in sorted(remaining.items())}
            data[key] = None
            try:
                await asyncio.to_thread(self._patch, data)
            except API_ERRORS as exc:
                raise OperationError(
                    f"delete of {key!r} on {self.kind.value} {self.namespace}/{self.name} "
                    f"failed: {_describe(exc)}"
                ) from exc
            del self._cache[key]
        logger.debug("%s delete %s", self.kind.value, key)

    async def refresh(self):
        """
        Reload the cache from the cluster.

        The only way to pick up changes made outside this handle's lineage.
        Raises OperationError if the read fails; the cache is left as is.
        """
        async with self._lock.write():
            try:
                obj = await asyncio.to_thread(self._read)
            except API_ERRORS as exc:
                raise OperationError(
                    f"refresh of {self.kind.value} {self.namespace}/{self.name} "
                    f"failed: {_describe(exc)}"
                ) from exc
            # Update in place: clones share this dict.
            self._cache.clear()
            self._cache.update(self._decode_data(obj.data))
        logger.debug("refreshed %s %s/%s", self.kind.value, self.namespace, self.name)

    def clone(self):
        return copy.copy(self)

    def __repr__(self):
        return f"<KubernetesBackend {self.kind.value} {self.namespace}/{self.name}>"
