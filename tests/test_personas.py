from __future__ import annotations

import dataclasses

import pytest

from personaspec import templates
from personaspec.errors import ValidationError
from personaspec.personas import define_persona


def _fields(**overrides):
    fields = {
        "name": "  Alex ",
        "role": " Trial Evaluator",
        "background": "PM at a Series A startup ",
        "goals": [" Determine if the product delivers  "],
        "behaviors": ["Skims content quickly ", " Looks for social proof"],
    }
    fields.update(overrides)
    return fields


def test_define_persona_trims_all_fields() -> None:
    persona = define_persona(**_fields())
    assert persona.name == "Alex"
    assert persona.role == "Trial Evaluator"
    assert persona.background == "PM at a Series A startup"
    assert persona.goals == ("Determine if the product delivers",)
    assert persona.behaviors == ("Skims content quickly", "Looks for social proof")
    assert persona.identity == "Alex - Trial Evaluator"


@pytest.mark.parametrize("field_name", ["name", "role", "background"])
@pytest.mark.parametrize("value", ["", "   ", "\t\n"])
def test_define_persona_rejects_blank_text(field_name: str, value: str) -> None:
    with pytest.raises(ValidationError, match=f"must have a {field_name}"):
        define_persona(**_fields(**{field_name: value}))


@pytest.mark.parametrize("field_name,label", [("goals", "goal"), ("behaviors", "behavior")])
def test_define_persona_rejects_empty_sequences(field_name: str, label: str) -> None:
    with pytest.raises(ValidationError, match=f"at least one {label}"):
        define_persona(**_fields(**{field_name: []}))
    with pytest.raises(ValidationError, match=f"at least one {label}"):
        define_persona(**_fields(**{field_name: ["  ", ""]}))


def test_define_persona_rejects_bare_string_sequence() -> None:
    with pytest.raises(ValidationError):
        define_persona(**_fields(goals="Find pricing"))


def test_persona_is_immutable() -> None:
    persona = define_persona(**_fields())
    with pytest.raises(dataclasses.FrozenInstanceError):
        persona.name = "Sam"  # type: ignore[misc]


def test_template_override_replaces_sequences_wholesale() -> None:
    persona = templates.first_time_visitor(goals=["g"])
    assert persona.goals == ("g",)
    assert persona.name == "Alex"
    assert persona.role == "First-Time Visitor"
    assert len(persona.behaviors) == 4


def test_template_override_is_validated() -> None:
    with pytest.raises(ValidationError, match="at least one behavior"):
        templates.power_user(behaviors=[])
    with pytest.raises(ValidationError, match="Unknown persona field"):
        templates.mobile_user(nickname="T")


def test_all_templates_build() -> None:
    names = templates.names()
    assert "first_time_visitor" in names
    assert "accessibility_auditor" in names
    for name in names:
        persona = templates.get(name)
        assert persona.goals and persona.behaviors


def test_unknown_template_name() -> None:
    with pytest.raises(ValidationError, match="Unknown persona template"):
        templates.get("night_owl")
