"""Deterministic fingerprints for graph node identity.

Every node written by the indexer is keyed by a fingerprint of its natural
key (an entity name, a URL, a composite of several fields). The backfill job
and every worker must agree on these values bit for bit, so the function is a
plain SHA256 over the UTF-8 bytes of the key: no salt, no normalization, no
machine-specific state.

This is part of the Shared Kernel - changes here re-key the whole graph.
"""

from __future__ import annotations

import hashlib

# Joins the parts of a composite natural key before hashing.
KEY_SEPARATOR = "|"


def fingerprint(value: str) -> str:
    """Return the 64-character hex SHA256 digest of a natural key.

    Args:
        value: The natural key. Hashed exactly as given; callers decide
            whether any normalization applies before calling.

    Returns:
        Lowercase hex digest (256 bits).

    Raises:
        TypeError: If value is not a string.

    Example:
        >>> fingerprint("A") == fingerprint("A")
        True
        >>> len(fingerprint("A"))
        64
    """
    if not isinstance(value, str):
        raise TypeError(f"fingerprint expects str, got {type(value).__name__}")

    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def composite_fingerprint(*parts: str) -> str:
    """Fingerprint a natural key made of several fields.

    The parts are joined with KEY_SEPARATOR, so
    ``composite_fingerprint("a", "b") == fingerprint("a|b")``.

    Raises:
        ValueError: If no parts are given.
    """
    if not parts:
        raise ValueError("composite_fingerprint requires at least one part")

    return fingerprint(KEY_SEPARATOR.join(parts))
