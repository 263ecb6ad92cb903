"""Persona definitions.

A persona frames a test session: who is using the product, what they want, and
how they tend to behave. Definitions are immutable once built; use
``define_persona`` (or a template from ``personaspec.templates``) so every field
is trimmed and validated.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from .errors import ValidationError


PERSONA_FIELDS = ("name", "role", "background", "goals", "behaviors")


@dataclass(frozen=True)
class PersonaDefinition:
    name: str
    role: str
    background: str
    goals: tuple[str, ...]
    behaviors: tuple[str, ...]

    @property
    def identity(self) -> str:
        return f"{self.name} - {self.role}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "role": self.role,
            "background": self.background,
            "goals": list(self.goals),
            "behaviors": list(self.behaviors),
        }


def _required_text(value: Any, field_name: str) -> str:
    text = value.strip() if isinstance(value, str) else ""
    if not text:
        raise ValidationError(f"Persona must have a {field_name}")
    return text


def _required_items(value: Any, label: str) -> tuple[str, ...]:
    if isinstance(value, str) or not isinstance(value, Iterable):
        raise ValidationError(f"Persona {label}s must be a list of strings")
    items = tuple(str(item).strip() for item in value if str(item).strip())
    if not items:
        raise ValidationError(f"Persona must have at least one {label}")
    return items


def define_persona(
    *,
    name: str,
    role: str,
    background: str,
    goals: Iterable[str],
    behaviors: Iterable[str],
) -> PersonaDefinition:
    """Build a validated persona.

    >>> define_persona(
    ...     name=" Alex ",
    ...     role="Trial Evaluator",
    ...     background="PM at a Series A startup, has 10 min between meetings",
    ...     goals=["Determine if the product delivers on its promise"],
    ...     behaviors=["Skims content quickly", "Looks for social proof"],
    ... ).name
    'Alex'
    """

    return PersonaDefinition(
        name=_required_text(name, "name"),
        role=_required_text(role, "role"),
        background=_required_text(background, "background"),
        goals=_required_items(goals, "goal"),
        behaviors=_required_items(behaviors, "behavior"),
    )


def persona_from_mapping(payload: Mapping[str, Any]) -> PersonaDefinition:
    unknown = sorted(set(payload) - set(PERSONA_FIELDS))
    if unknown:
        raise ValidationError(f"Unknown persona field(s): {', '.join(unknown)}")
    return define_persona(
        name=payload.get("name", ""),
        role=payload.get("role", ""),
        background=payload.get("background", ""),
        goals=payload.get("goals", ()),
        behaviors=payload.get("behaviors", ()),
    )
