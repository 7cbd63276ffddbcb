"""
Key normalization.

Kubernetes ConfigMap and Secret data keys accept only [-._a-zA-Z0-9]+.
Callers usually have richer keys ("device/switch/state", "user@domain.com"),
so every character outside that alphabet is mapped to '_':

    normalize("device/switch/state")  → "device_switch_state"
    normalize("user@domain.com")      → "user_domain.com"

The mapping is per character, so it is total and idempotent. Different keys
can collide after normalization ("a/b" and "a:b" both become "a_b").
"""

import re

# The API server caps data keys at the DNS subdomain length.
MAX_KEY_LENGTH = 253

_ALLOWED = frozenset(
    "abcdefghijklmnopqrstuvwxyz"
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    "0123456789"
    "-_."
)

_VALID_KEY = re.compile(r"^[-._a-zA-Z0-9]+$")


def normalize(key: str) -> str:
    """Map every character outside [A-Za-z0-9._-] to '_'."""
    return "".join(c if c in _ALLOWED else "_" for c in key)


def is_valid_key(key: str) -> bool:
    """True if the key can be stored as-is in a ConfigMap/Secret."""
    return bool(key) and len(key) <= MAX_KEY_LENGTH and bool(_VALID_KEY.match(key))
