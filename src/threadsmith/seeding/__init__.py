"""Deterministic seed and identifier derivation."""

from threadsmith.seeding.derive import derive_id, derive_seed, derive_token
from threadsmith.seeding.rng import create_rng

__all__ = [
    "create_rng",
    "derive_id",
    "derive_seed",
    "derive_token",
]
