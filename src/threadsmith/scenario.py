"""Pydantic v2 models for the JSON scenario files read by the CLI.

A scenario names a storyline, lists its dated beats and the flat character
arena, and may override any ``GenerationConfig`` field.  ``build_beats``
turns it into ``StoryBeat`` objects with deterministic ids.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from threadsmith.domain.models import Character
from threadsmith.planning.models import StoryBeat
from threadsmith.seeding.derive import derive_id


class BeatSpec(BaseModel):
    """One dated segment of the storyline."""

    model_config = ConfigDict(frozen=True)

    name: str
    start_date: datetime
    end_date: datetime
    plot: str = ""
    topic: str = ""

    @field_validator("name")
    @classmethod
    def name_must_not_be_empty(cls, v: str) -> str:
        """Ensure the beat name is not empty or whitespace-only."""
        if not v.strip():
            raise ValueError("name must not be empty")
        return v

    @model_validator(mode="after")
    def end_must_not_precede_start(self) -> BeatSpec:
        if self.end_date < self.start_date:
            raise ValueError(f"beat '{self.name}' ends before it starts")
        return self


class Scenario(BaseModel):
    """A storyline to plan and generate."""

    model_config = ConfigDict(frozen=True)

    storyline: str = Field(description="Storyline name; also seeds beat ids")
    seed: int | None = Field(default=None, description="Run seed; falls back to settings")
    key_participant_count: int | None = Field(
        default=None,
        ge=1,
        description="Drives email volume; defaults to the number of key characters",
    )
    characters: list[Character]
    beats: list[BeatSpec]
    config: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def must_have_people_and_beats(self) -> Scenario:
        if not self.characters:
            raise ValueError("scenario needs at least one character")
        if not self.beats:
            raise ValueError("scenario needs at least one beat")
        return self

    @property
    def resolved_key_participant_count(self) -> int:
        if self.key_participant_count is not None:
            return self.key_participant_count
        return max(1, sum(1 for c in self.characters if c.is_key_character))


def load_scenario(path: Path) -> Scenario:
    """Read and validate a scenario JSON file.

    Raises:
        OSError: If the file cannot be read.
        pydantic.ValidationError: If the content does not match ``Scenario``.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    return Scenario.model_validate(data)


def build_beats(scenario: Scenario) -> list[StoryBeat]:
    """Create ``StoryBeat`` objects with ids derived from the storyline name."""
    storyline_id = derive_id("storyline", scenario.storyline)
    return [
        StoryBeat(
            beat_id=derive_id("story-beat", storyline_id, index),
            storyline_id=storyline_id,
            name=spec.name,
            start_date=spec.start_date,
            end_date=spec.end_date,
            plot=spec.plot,
        )
        for index, spec in enumerate(scenario.beats)
    ]
