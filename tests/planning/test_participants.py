"""Tests for thread participant selection."""

import random

import pytest

from threadsmith.domain.models import Character
from threadsmith.domain.types import ThreadRelevance, ThreadScope
from threadsmith.email.models import EmailThread
from threadsmith.planning.participants import (
    assign_thread_participants,
    group_by_organization,
    resolve_thread_participants,
)


def _thread(scope: ThreadScope, responsive: bool) -> EmailThread:
    return EmailThread(
        scope=scope,
        relevance=ThreadRelevance.RESPONSIVE if responsive else ThreadRelevance.NON_RESPONSIVE,
    )


class TestGroupByOrganization:
    def test_groups_keep_input_order(self, characters: list[Character]) -> None:
        groups = group_by_organization(characters)
        assert list(groups) == ["Acme", "Globex"]
        assert [c.first_name for c in groups["Acme"]] == ["Alice", "Bob", "Carol", "Dan"]


class TestAssignInternal:
    @pytest.mark.parametrize("seed", range(15))
    def test_responsive_internal_thread_has_key_character(
        self, seed: int, characters: list[Character]
    ) -> None:
        thread = _thread(ThreadScope.INTERNAL, responsive=True)
        selected = assign_thread_participants(thread, characters, random.Random(seed))

        assert {c.organization for c in selected} == {"Acme"}
        assert any(c.is_key_character for c in selected)
        assert 2 <= len(selected) <= 4
        assert thread.participant_ids == tuple(c.id for c in selected)
        assert thread.organizations == ("Acme",)

    @pytest.mark.parametrize("seed", range(15))
    def test_internal_thread_stays_in_one_organization(
        self, seed: int, characters: list[Character]
    ) -> None:
        thread = _thread(ThreadScope.INTERNAL, responsive=False)
        selected = assign_thread_participants(thread, characters, random.Random(seed))
        assert len({c.organization for c in selected}) == 1
        assert len({c.id for c in selected}) == len(selected)


class TestAssignExternal:
    @pytest.mark.parametrize("seed", range(15))
    def test_external_thread_spans_both_organizations(
        self, seed: int, characters: list[Character]
    ) -> None:
        thread = _thread(ThreadScope.EXTERNAL, responsive=True)
        selected = assign_thread_participants(thread, characters, random.Random(seed))

        assert {c.organization for c in selected} == {"Acme", "Globex"}
        assert any(c.is_key_character for c in selected)
        assert set(thread.organizations) == {"Acme", "Globex"}
        assert len({c.id for c in selected}) == len(selected)

    def test_caps_organizations_at_two(self, character_factory, characters: list[Character]) -> None:
        arena = [*characters, character_factory("Gina", "Initech"), character_factory("Hank", "Initech")]
        for seed in range(15):
            thread = _thread(ThreadScope.EXTERNAL, responsive=True)
            selected = assign_thread_participants(thread, arena, random.Random(seed))
            assert len({c.organization for c in selected}) <= 2
            assert any(c.is_key_character for c in selected)


class TestEdgeCases:
    def test_no_characters(self) -> None:
        thread = _thread(ThreadScope.INTERNAL, responsive=True)
        assert assign_thread_participants(thread, [], random.Random(0)) == []
        assert thread.participant_ids == ()

    def test_same_seed_same_participants(self, characters: list[Character]) -> None:
        first = assign_thread_participants(
            _thread(ThreadScope.EXTERNAL, False), characters, random.Random(3)
        )
        second = assign_thread_participants(
            _thread(ThreadScope.EXTERNAL, False), characters, random.Random(3)
        )
        assert [c.id for c in first] == [c.id for c in second]


class TestResolveThreadParticipants:
    def test_maps_ids_back(self, characters: list[Character]) -> None:
        thread = EmailThread()
        thread.set_participants([characters[2].id, characters[0].id])
        assert resolve_thread_participants(thread, characters) == [characters[2], characters[0]]

    def test_falls_back_to_everyone(self, characters: list[Character]) -> None:
        assert resolve_thread_participants(EmailThread(), characters) == characters
