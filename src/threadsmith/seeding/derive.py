"""Content-addressed seeds and identifiers derived from stable string keys.

Both functions hash the same canonical key (a version tag, a scope name and
the stringified parts joined with ``|``) with SHA-256, so they are pure
functions of their inputs and stable across processes and interpreter runs.
``hash()`` is never used because string hashing is salted per process.
"""

from __future__ import annotations

import hashlib
import uuid

_KEY_VERSION = "threadsmith-id-v1"
_SEED_MASK = (1 << 63) - 1


def _normalize_part(part: object) -> str:
    if part is None:
        return ""
    return str(part).strip()


def _digest(scope: str, parts: tuple[object, ...]) -> bytes:
    if not scope or not scope.strip():
        raise ValueError("scope must be a non-empty string")
    key = "|".join([_KEY_VERSION, scope.strip(), *(_normalize_part(p) for p in parts)])
    return hashlib.sha256(key.encode("utf-8")).digest()


def derive_seed(scope: str, *parts: object) -> int:
    """Derive a non-negative 63-bit integer seed from a scope and key parts.

    Args:
        scope: Namespace for the seed, e.g. ``"thread-plan"``.
        *parts: Ordered key parts.  ``None`` and blank values normalize to
            the empty string; other values are stringified and stripped.

    Returns:
        An integer in ``[0, 2**63)``.

    Raises:
        ValueError: If *scope* is empty.
    """
    digest = _digest(scope, parts)
    return int.from_bytes(digest[:8], "big") & _SEED_MASK


def derive_id(scope: str, *parts: object) -> uuid.UUID:
    """Derive a 128-bit identifier from a scope and key parts.

    Args:
        scope: Namespace for the identifier, e.g. ``"email-message"``.
        *parts: Ordered key parts, normalized as in :func:`derive_seed`.

    Returns:
        A ``uuid.UUID`` built from the first 16 bytes of the digest.
    """
    return uuid.UUID(bytes=_digest(scope, parts)[:16])


def derive_token(scope: str, *parts: object, length: int = 16) -> str:
    """Derive a short lowercase hex token, used for message-id local parts."""
    if length <= 0 or length > 64:
        raise ValueError("length must be between 1 and 64")
    return _digest(scope, parts).hex()[:length]
