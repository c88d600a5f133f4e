"""
Pytest configuration and fixtures for character-forge tests.
"""

import sys
from pathlib import Path

import pytest

# Add src directory to Python path to allow importing character_forge
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from character_forge.config import Settings
from character_forge.models import (
    BackgroundChoice,
    ClassLevels,
    RawCharacter,
    Reference,
    ReferenceTables,
)


@pytest.fixture
def complete_draft() -> RawCharacter:
    """A fully legal two-class draft."""
    return RawCharacter(
        local_id="local-kira",
        name="Kira Vos",
        species=Reference(name="Human"),
        classes=[
            ClassLevels(name="Operative", levels=3, hit_points=[5, 6]),
            ClassLevels(name="Scout", levels=1, hit_points=[4]),
        ],
        base_ability_scores={
            "Strength": 10,
            "Dexterity": 16,
            "Constitution": 14,
            "Intelligence": 12,
            "Wisdom": 13,
            "Charisma": 8,
        },
        background=BackgroundChoice(name="Bounty Hunter", feat=Reference(name="Tough")),
    )


@pytest.fixture
def reference_tables() -> ReferenceTables:
    return ReferenceTables(
        classes=[
            {"name": "Operative", "hitDiceDieType": 8},
            {"name": "Scout", "hitDiceDieType": 8},
            {"name": "Guardian", "hitDiceDieType": 10},
        ],
        archetypes=[{"name": "Gunslinger", "className": "Operative"}],
        species=[
            {"name": "Human", "abilityScoreIncreases": {"Dexterity": 1, "Wisdom": 1}, "speed": "30ft"},
            {"name": "Wookiee", "abilityScoreIncreases": {"Strength": 2}, "speed": "30ft"},
        ],
        feats=[{"name": "Tough"}],
        backgrounds=[{"name": "Bounty Hunter"}],
        character_advancements=[
            {"level": 1, "proficiencyBonus": 2},
            {"level": 4, "proficiencyBonus": 2},
            {"level": 5, "proficiencyBonus": 3},
        ],
    )


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with short windows so sync tests run quickly."""
    return Settings(debounce_ms=20, max_retries=3, retry_backoff=0.0, builder_version="9.9.9")
