"""Tests for characters, generation configuration and domain errors."""

from __future__ import annotations

from datetime import datetime

import pydantic
import pytest

from threadsmith.domain.errors import (
    ExternalCallFailure,
    InvalidTransitionError,
    RangeError,
    StateError,
    ThreadsmithError,
)
from threadsmith.domain.models import Character, GenerationConfig
from threadsmith.domain.types import AttachmentType
from threadsmith.seeding.derive import derive_id


class TestCharacter:
    def test_names_and_domain(self) -> None:
        character = Character(
            id=derive_id("character", "grace"),
            first_name="Grace",
            last_name="Hopper",
            email=" grace@navy.example ",
        )
        assert character.email == "grace@navy.example"
        assert character.full_name == "Grace Hopper"
        assert character.display_name == "Grace Hopper <grace@navy.example>"
        assert character.domain == "navy.example"

    @pytest.mark.parametrize("email", ["grace", "@navy.example", "grace@"])
    def test_invalid_email(self, email: str) -> None:
        with pytest.raises(pydantic.ValidationError, match="invalid email address"):
            Character(id=derive_id("character", email), first_name="Grace", email=email)

    def test_frozen(self, acme_characters: list[Character]) -> None:
        with pytest.raises(pydantic.ValidationError):
            acme_characters[0].role = "Director"  # type: ignore[misc]


class TestGenerationConfig:
    def test_enabled_attachment_types(self) -> None:
        assert GenerationConfig().enabled_attachment_types == [
            AttachmentType.WORD,
            AttachmentType.EXCEL,
            AttachmentType.POWERPOINT,
        ]
        assert GenerationConfig(
            include_word=False, include_powerpoint=False
        ).enabled_attachment_types == [AttachmentType.EXCEL]

    def test_inverted_range(self) -> None:
        with pytest.raises(pydantic.ValidationError, match="must not precede"):
            GenerationConfig(start_date=datetime(2024, 3, 8), end_date=datetime(2024, 3, 4))

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("attachment_percentage", 101),
            ("image_percentage", -1),
            ("parallel_threads", 0),
            ("max_thread_attempts", 0),
            ("max_email_repair_attempts", -1),
        ],
    )
    def test_bounds(self, field: str, value: int) -> None:
        with pytest.raises(pydantic.ValidationError):
            GenerationConfig(**{field: value})


class TestErrors:
    def test_range_error_is_value_error(self) -> None:
        assert issubclass(RangeError, ValueError)
        assert issubclass(RangeError, ThreadsmithError)

    def test_invalid_transition(self) -> None:
        error = InvalidTransitionError("succeeded", "start")
        assert isinstance(error, StateError)
        assert error.current_state == "succeeded"
        assert str(error) == "Cannot apply event 'start' in state 'succeeded'"

    def test_external_call_failure(self) -> None:
        error = ExternalCallFailure("Email Generation", "timeout")
        assert error.operation == "Email Generation"
        assert error.detail == "timeout"
        assert str(error) == "Email Generation failed: timeout"
