"""Thread-level participant selection over a flat character arena.

Characters are grouped by their ``organization`` name.  Internal threads
stay within one organization; external threads span up to two.  Responsive
and hot threads include a key character whenever one is available.
"""

from __future__ import annotations

import random
from collections.abc import Iterable, Sequence

from threadsmith.domain.models import Character
from threadsmith.domain.types import ThreadScope
from threadsmith.email.models import EmailThread

INTERNAL_MIN_PARTICIPANTS = 2
INTERNAL_MAX_PARTICIPANTS = 5
EXTERNAL_MIN_PER_ORG = 1
EXTERNAL_MAX_PER_ORG = 3
EXTERNAL_MAX_ORGS = 2


def group_by_organization(characters: Iterable[Character]) -> dict[str, list[Character]]:
    """Group characters with an email address by organization, keeping input order."""
    groups: dict[str, list[Character]] = {}
    for character in characters:
        if not character.email:
            continue
        groups.setdefault(character.organization, []).append(character)
    return groups


def _has_key(members: Sequence[Character]) -> bool:
    return any(c.is_key_character for c in members)


def _pick_distinct(pool: Sequence[Character], count: int, rng: random.Random) -> list[Character]:
    if count <= 0 or not pool:
        return []
    return rng.sample(list(pool), min(count, len(pool)))


def _select_members(
    members: Sequence[Character],
    target: int,
    forced: Character | None,
    rng: random.Random,
) -> list[Character]:
    target = max(1, min(target, len(members)))
    selected: list[Character] = [forced] if forced is not None else []
    remaining = [c for c in members if forced is None or c.id != forced.id]
    selected.extend(_pick_distinct(remaining, target - len(selected), rng))
    return selected


def _select_internal(
    groups: dict[str, list[Character]], requires_key: bool, rng: random.Random
) -> tuple[list[str], list[Character]]:
    names = list(groups)
    if requires_key:
        key_names = [n for n in names if _has_key(groups[n])]
        if key_names:
            names = key_names
    organization = names[rng.randrange(len(names))]
    members = groups[organization]

    forced = None
    if requires_key:
        keys = [c for c in members if c.is_key_character]
        if keys:
            forced = keys[rng.randrange(len(keys))]

    target = rng.randint(INTERNAL_MIN_PARTICIPANTS, INTERNAL_MAX_PARTICIPANTS)
    return [organization], _select_members(members, target, forced, rng)


def _select_external(
    groups: dict[str, list[Character]], requires_key: bool, rng: random.Random
) -> tuple[list[str], list[Character]]:
    names = list(groups)
    if len(names) <= EXTERNAL_MAX_ORGS:
        selected = list(names)
        rng.shuffle(selected)
    else:
        selected = rng.sample(names, EXTERNAL_MAX_ORGS)
        if requires_key and not any(_has_key(groups[n]) for n in selected):
            candidates = [n for n in names if n not in selected and _has_key(groups[n])]
            if candidates:
                selected[rng.randrange(len(selected))] = candidates[rng.randrange(len(candidates))]

    forced: Character | None = None
    if requires_key:
        keys = [c for n in selected for c in groups[n] if c.is_key_character]
        if keys:
            forced = keys[rng.randrange(len(keys))]

    chosen: list[Character] = []
    for name in selected:
        members = groups[name]
        target = rng.randint(EXTERNAL_MIN_PER_ORG, EXTERNAL_MAX_PER_ORG)
        org_forced = forced if forced is not None and forced.organization == name else None
        chosen.extend(_select_members(members, target, org_forced, rng))

    return selected, list({c.id: c for c in chosen}.values())


def assign_thread_participants(
    thread: EmailThread,
    characters: Sequence[Character],
    rng: random.Random,
) -> list[Character]:
    """Choose participants for *thread* and record them on the thread.

    Args:
        thread: Thread to update; its scope and relevance drive selection.
        characters: The full character arena.
        rng: Caller-owned random stream.

    Returns:
        The selected characters in selection order.  Empty when no
        character has an email address.
    """
    groups = group_by_organization(characters)
    if not groups:
        thread.set_participants([], [])
        return []

    requires_key = thread.is_responsive
    if thread.scope == ThreadScope.EXTERNAL:
        organizations, selected = _select_external(groups, requires_key, rng)
    else:
        organizations, selected = _select_internal(groups, requires_key, rng)

    thread.set_participants((c.id for c in selected), organizations)
    return selected


def resolve_thread_participants(
    thread: EmailThread, characters: Sequence[Character]
) -> list[Character]:
    """Map the thread's participant ids back to characters.

    Falls back to every character with an email address when the thread
    has no resolvable participants.
    """
    by_id = {c.id: c for c in characters}
    resolved = [by_id[i] for i in thread.participant_ids if i in by_id and by_id[i].email]
    if resolved:
        return resolved
    return [c for c in characters if c.email]
