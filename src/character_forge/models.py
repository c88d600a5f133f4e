"""
Data models for character records, validation results and reference tables.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from shortuuid import random


# Ability score names, in sheet order
ABILITY_SCORES = (
    "Strength",
    "Dexterity",
    "Constitution",
    "Intelligence",
    "Wisdom",
    "Charisma",
)

LOCAL_ID_LENGTH = 12


def new_local_id() -> str:
    """Generate a client-side identity for a record without a server id."""
    return random(length=LOCAL_ID_LENGTH)


class WireModel(BaseModel):
    """Base for models exchanged with the character API (camelCase on the wire)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class Reference(WireModel):
    """A by-name reference into a reference table. Empty name means unset."""
    name: str = ""


class ClassLevels(WireModel):
    """Levels taken in a single class, with the hit points rolled for them."""
    name: str = ""
    levels: int = 1
    hit_points: list[int] = Field(default_factory=list)
    archetype: Reference | None = None


class BackgroundChoice(WireModel):
    """Chosen background and the feat it grants."""
    name: str = ""
    feat: Reference | None = None


class RawCharacter(WireModel):
    """A character draft as edited by the user. The unit of storage and sync."""
    id: str | None = None
    local_id: str = Field(default_factory=new_local_id)
    user_id: str | None = None
    name: str = ""
    species: Reference | None = None
    classes: list[ClassLevels] = Field(default_factory=list)
    base_ability_scores: dict[str, int | float] = Field(default_factory=dict)
    background: BackgroundChoice | None = None
    builder_version: str = ""
    changed_at: int = 0

    @property
    def identity(self) -> str:
        """Key used to coalesce remote writes for this record."""
        return self.local_id or self.id or ""

    @property
    def is_blank(self) -> bool:
        """True if no field was ever set on this draft."""
        return not self.model_fields_set and not self.model_extra

    def to_json_data(self) -> str:
        """Serialize to the ``jsonData`` string stored by the remote API."""
        return self.model_dump_json(by_alias=True, exclude_none=True)

    @classmethod
    def from_json_data(cls, json_data: str) -> RawCharacter:
        return cls.model_validate_json(json_data)


class CharacterEnvelope(WireModel):
    """A character row as returned by the remote API."""
    id: str
    user_id: str | None = None
    json_data: str

    def to_raw_character(self) -> RawCharacter:
        """Merge the envelope's server identity onto the stored payload."""
        payload = json.loads(self.json_data)
        if not isinstance(payload, dict):
            raise ValueError(f"jsonData must be a JSON object, got {type(payload).__name__}")
        payload["id"] = self.id
        payload["userId"] = self.user_id
        return RawCharacter.model_validate(payload)


class ValidationResult(BaseModel):
    """Outcome of validating a draft. Code 0 means every rule passed."""
    code: int
    message: str
    is_valid: bool

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class ReferenceTables(BaseModel):
    """Materialized reference tables consumed by the rules engine.

    Each table is a list of records (plain mappings) keyed by ``name``.
    """
    classes: list[dict[str, Any]] = Field(default_factory=list)
    archetypes: list[dict[str, Any]] = Field(default_factory=list)
    species: list[dict[str, Any]] = Field(default_factory=list)
    equipment: list[dict[str, Any]] = Field(default_factory=list)
    enhanced_items: list[dict[str, Any]] = Field(default_factory=list)
    powers: list[dict[str, Any]] = Field(default_factory=list)
    feats: list[dict[str, Any]] = Field(default_factory=list)
    backgrounds: list[dict[str, Any]] = Field(default_factory=list)
    character_advancements: list[dict[str, Any]] = Field(default_factory=list)
    skills: list[dict[str, Any]] = Field(default_factory=list)
    conditions: list[dict[str, Any]] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    def as_positional(self) -> tuple[list[dict[str, Any]], ...]:
        """Return the tables in the order the rules engine expects them."""
        return (
            self.classes,
            self.archetypes,
            self.species,
            self.equipment,
            self.enhanced_items,
            self.powers,
            self.feats,
            self.backgrounds,
            self.character_advancements,
            self.skills,
            self.conditions,
        )


class AbilityScoreSummary(BaseModel):
    value: int
    modifier: int


class Speed(BaseModel):
    base: str = "30ft"
    special: str = ""


class CombatStats(BaseModel):
    """Combat numbers derived from abilities and proficiency."""
    proficiency_bonus: int
    initiative: int
    armor_class: int
    passive_perception: int
    inspiration: bool = False
    vision: str = "normal"
    speed: Speed = Field(default_factory=Speed)


class DerivedClass(BaseModel):
    name: str
    levels: int
    archetype: str | None = None
    hit_die: int


class DerivedCharacter(BaseModel):
    """Fully computed, read-only character sheet. Never persisted."""
    name: str
    species: str
    background: str
    classes: list[DerivedClass]
    total_level: int
    ability_scores: dict[str, AbilityScoreSummary]
    hit_points_max: int
    combat_stats: CombatStats
    feats: list[str] = Field(default_factory=list)
    builder_version: str = ""

    model_config = ConfigDict(frozen=True)
