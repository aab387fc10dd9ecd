"""Per-unit pseudo-random streams built from derived seeds.

Every unit of work (a thread plan, a beat partition, a participant draw)
receives its own ``random.Random`` instance.  Instances are never shared
between concurrent units, so no locking is needed and each stream depends
only on the keys that produced its seed.
"""

from __future__ import annotations

import random

from threadsmith.seeding.derive import derive_seed


def create_rng(scope: str, *parts: object) -> random.Random:
    """Return a fresh generator seeded from ``derive_seed(scope, *parts)``.

    Args:
        scope: Namespace for the stream, e.g. ``"thread-plan"``.
        *parts: Ordered key parts such as the run seed and a thread id.

    Returns:
        A new ``random.Random`` that is owned by the caller.
    """
    return random.Random(derive_seed(scope, *parts))
