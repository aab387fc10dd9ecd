"""Shared pytest fixtures for the threadsmith test suite."""

from datetime import datetime

import pytest

from threadsmith.domain.models import Character, GenerationConfig
from threadsmith.planning.models import StoryBeat
from threadsmith.seeding.derive import derive_id


def make_character(
    first_name: str,
    organization: str,
    *,
    is_key_character: bool = False,
    domain: str | None = None,
) -> Character:
    """Build a character whose id and address derive from the name."""
    domain = domain or f"{organization.lower().replace(' ', '')}.example"
    return Character(
        id=derive_id("test-character", first_name, organization),
        first_name=first_name,
        last_name="Tester",
        email=f"{first_name.lower()}@{domain}",
        organization=organization,
        role="Analyst",
        signature_block=f"{first_name} Tester\n{organization}",
        is_key_character=is_key_character,
    )


@pytest.fixture
def character_factory():
    """Factory for characters built with ``make_character``."""
    return make_character


@pytest.fixture
def acme_characters() -> list[Character]:
    """Four people at Acme, two of them key characters."""
    return [
        make_character("Alice", "Acme", is_key_character=True),
        make_character("Bob", "Acme"),
        make_character("Carol", "Acme", is_key_character=True),
        make_character("Dan", "Acme"),
    ]


@pytest.fixture
def globex_characters() -> list[Character]:
    """Two people at Globex, none of them key characters."""
    return [
        make_character("Erin", "Globex"),
        make_character("Frank", "Globex"),
    ]


@pytest.fixture
def characters(
    acme_characters: list[Character], globex_characters: list[Character]
) -> list[Character]:
    """The full arena across both organizations."""
    return [*acme_characters, *globex_characters]


@pytest.fixture
def base_config() -> GenerationConfig:
    """A one-week window with documents enabled and no retries beyond the defaults."""
    return GenerationConfig(
        start_date=datetime(2024, 3, 4, 9, 0),
        end_date=datetime(2024, 3, 8, 17, 0),
        attachment_percentage=20,
        include_images=False,
        include_voicemails=False,
        include_calendar_invites=False,
    )


@pytest.fixture
def story_beat() -> StoryBeat:
    """A single Monday-to-Friday beat."""
    storyline_id = derive_id("storyline", "Test storyline")
    return StoryBeat(
        beat_id=derive_id("story-beat", storyline_id, 0),
        storyline_id=storyline_id,
        name="Budget review",
        start_date=datetime(2024, 3, 4, 9, 0),
        end_date=datetime(2024, 3, 8, 17, 0),
        plot="The quarterly budget is over target.",
    )


@pytest.fixture
def scenario_data(characters: list[Character]) -> dict:
    """Raw scenario JSON with two beats and the full arena."""
    return {
        "storyline": "Quarterly budget overrun",
        "seed": 7,
        "characters": [c.model_dump(mode="json") for c in characters],
        "beats": [
            {
                "name": "Budget review",
                "start_date": "2024-03-04T09:00:00",
                "end_date": "2024-03-08T17:00:00",
                "topic": "Q1 budget",
            },
            {
                "name": "Vendor escalation",
                "start_date": "2024-03-11T09:00:00",
                "end_date": "2024-03-15T17:00:00",
            },
        ],
        "config": {"attachment_percentage": 25, "include_calendar_invites": False},
    }
