"""Rules engine: compute a complete character sheet from a valid draft.

Given a draft and the reference tables, the engine resolves the chosen
classes and species, applies species ability increases, and derives hit
points, proficiency and combat numbers. It assumes the draft already passed
validation and raises CharacterGenerationError when the draft references
content the tables do not contain.
"""

from __future__ import annotations

from typing import Any

from .models import (
    ABILITY_SCORES,
    AbilityScoreSummary,
    CombatStats,
    DerivedCharacter,
    DerivedClass,
    RawCharacter,
    Speed,
)


MAX_ABILITY_SCORE = 30
DEFAULT_HIT_DIE = 8


class CharacterGenerationError(Exception):
    """Raised when the engine cannot derive a sheet from a draft."""


def _normalize_index(name: str) -> str:
    """Convert user-facing name to lookup form (lowercase, hyphenated)."""
    return name.strip().lower().replace(" ", "-").replace("_", "-")


def _find(table: list[dict[str, Any]], name: str) -> dict[str, Any] | None:
    index = _normalize_index(name)
    for record in table:
        if _normalize_index(str(record.get("name", ""))) == index:
            return record
    return None


def ability_modifier(score: int) -> int:
    return (score - 10) // 2


def proficiency_bonus(
    level: int, character_advancements: list[dict[str, Any]]
) -> int:
    """Proficiency bonus from the advancement table, falling back to the PHB curve."""
    for row in character_advancements:
        if row.get("level") == level and "proficiencyBonus" in row:
            return int(row["proficiencyBonus"])
    return 2 + (level - 1) // 4


def _apply_species_bonuses(
    scores: dict[str, int], species_def: dict[str, Any]
) -> dict[str, int]:
    for ability, bonus in species_def.get("abilityScoreIncreases", {}).items():
        if ability in scores:
            scores[ability] = min(scores[ability] + int(bonus), MAX_ABILITY_SCORE)
    return scores


def _calculate_hp(
    raw: RawCharacter, hit_dice: list[int], con_mod: int
) -> int:
    """Max HP: first level is the full hit die, later levels use the rolled values.

    CON modifier applies per level, with a minimum of 1 HP per level.
    """
    hp = max(hit_dice[0] + con_mod, 1)
    for char_class in raw.classes:
        for rolled in char_class.hit_points:
            hp += max(rolled + con_mod, 1)
    return hp


def compute_derived_sheet(
    raw: RawCharacter,
    classes: list[dict[str, Any]],
    archetypes: list[dict[str, Any]],
    species: list[dict[str, Any]],
    equipment: list[dict[str, Any]],
    enhanced_items: list[dict[str, Any]],
    powers: list[dict[str, Any]],
    feats: list[dict[str, Any]],
    backgrounds: list[dict[str, Any]],
    character_advancements: list[dict[str, Any]],
    skills: list[dict[str, Any]],
    conditions: list[dict[str, Any]],
) -> DerivedCharacter:
    """
    Derive the full character sheet from a validated draft.

    Equipment, enhanced items, powers, skills and conditions are accepted so
    every engine shares one signature; this engine does not read them yet.

    Raises:
        CharacterGenerationError: If a class or the species is not in the tables
    """
    species_name = raw.species.name if raw.species else ""
    species_def = _find(species, species_name)
    if species_def is None:
        raise CharacterGenerationError(f"Species '{species_name}' not found in reference tables")

    derived_classes: list[DerivedClass] = []
    for char_class in raw.classes:
        class_def = _find(classes, char_class.name)
        if class_def is None:
            raise CharacterGenerationError(f"Class '{char_class.name}' not found in reference tables")

        archetype_name = None
        if char_class.archetype and char_class.archetype.name:
            archetype_def = _find(archetypes, char_class.archetype.name)
            archetype_name = archetype_def["name"] if archetype_def else char_class.archetype.name

        derived_classes.append(DerivedClass(
            name=class_def["name"],
            levels=char_class.levels,
            archetype=archetype_name,
            hit_die=int(class_def.get("hitDiceDieType", DEFAULT_HIT_DIE)),
        ))

    scores = {ability: int(raw.base_ability_scores[ability]) for ability in ABILITY_SCORES}
    scores = _apply_species_bonuses(scores, species_def)
    modifiers = {ability: ability_modifier(score) for ability, score in scores.items()}

    total_level = sum(c.levels for c in derived_classes)
    proficiency = proficiency_bonus(total_level, character_advancements)
    hit_points = _calculate_hp(raw, [c.hit_die for c in derived_classes], modifiers["Constitution"])

    background_name = raw.background.name if raw.background else ""
    background_def = _find(backgrounds, background_name)
    feat_names = []
    if raw.background and raw.background.feat and raw.background.feat.name:
        feat_def = _find(feats, raw.background.feat.name)
        feat_names.append(feat_def["name"] if feat_def else raw.background.feat.name)

    return DerivedCharacter(
        name=raw.name,
        species=species_def["name"],
        background=background_def["name"] if background_def else background_name,
        classes=derived_classes,
        total_level=total_level,
        ability_scores={
            ability: AbilityScoreSummary(value=scores[ability], modifier=modifiers[ability])
            for ability in ABILITY_SCORES
        },
        hit_points_max=hit_points,
        combat_stats=CombatStats(
            proficiency_bonus=proficiency,
            initiative=modifiers["Dexterity"],
            armor_class=10 + modifiers["Dexterity"],
            passive_perception=10 + modifiers["Wisdom"],
            speed=Speed(base=str(species_def.get("speed", "30ft"))),
        ),
        feats=feat_names,
        builder_version=raw.builder_version,
    )
