"""
Character draft validation.

A draft is checked against an ordered list of legality rules and the first
failing rule is reported. Validation is informational: failures are returned
as data, never raised, and a nonzero code means the draft must not be
passed to the generator.
"""

from __future__ import annotations

from typing import Any, Callable

from .models import ABILITY_SCORES, RawCharacter, ValidationResult


NO_CHARACTER = ValidationResult(code=1, message="No Character Found", is_valid=False)
ALL_CHECKS_PASSED = ValidationResult(code=0, message="All checks passed", is_valid=True)

# Fields that identify or stamp a record rather than describe the character
META_FIELDS = {"id", "local_id", "user_id", "builder_version"}


def _has_valid_hit_points(character: RawCharacter) -> bool:
    # The first class level's hit points are the die maximum, so they are not rolled
    return all(
        len(char_class.hit_points) == char_class.levels - (0 if index else 1)
        for index, char_class in enumerate(character.classes)
    )


def _has_valid_ability_scores(character: RawCharacter) -> bool:
    scores = character.base_ability_scores
    return (
        sorted(scores) == sorted(ABILITY_SCORES)
        and all(score > 0 for score in scores.values())
    )


# Ordered: codes are 1 + position in this list
RULES: list[tuple[str, Callable[[RawCharacter], bool]]] = [
    ("No character found", lambda c: not c.is_blank),
    ("Missing a name", lambda c: c.name != ""),
    ("Missing a species", lambda c: c.species is not None and c.species.name != ""),
    ("Missing class levels", lambda c: len(c.classes) > 0),
    ("Missing hit points for a class", _has_valid_hit_points),
    ("Missing an ability score", _has_valid_ability_scores),
    ("Missing a background", lambda c: c.background is not None and c.background.name != ""),
    (
        "Missing a background feat",
        lambda c: c.background is not None
        and c.background.feat is not None
        and c.background.feat.name != "",
    ),
]


def validate_character(character: RawCharacter | None) -> ValidationResult:
    """
    Check a draft against the legality rules, stopping at the first failure.

    Args:
        character: The draft to check, or None if no draft was found

    Returns:
        ValidationResult for the first failing rule, or code 0 if all pass
    """
    if character is None:
        return NO_CHARACTER

    for index, (message, check) in enumerate(RULES):
        if not check(character):
            return ValidationResult(code=index + 1, message=message, is_valid=False)

    return ALL_CHECKS_PASSED


def _is_blank_value(value: Any) -> bool:
    if isinstance(value, dict):
        return all(_is_blank_value(v) for v in value.values())
    return value in (None, "", [], {})


def is_empty_character(character: RawCharacter | None) -> bool:
    """Return True if the draft holds no user-entered content.

    Identity fields and the builder version are ignored, so a freshly
    created draft that has only been given a localId counts as empty. A
    draft that has been saved carries a changedAt and is not empty.
    """
    if character is None or character.is_blank:
        return True
    content = character.model_dump(exclude=META_FIELDS, exclude_defaults=True)
    return all(_is_blank_value(value) for value in content.values())
