"""Tests for the rules engine and the generation pipeline."""

from unittest.mock import MagicMock

import pytest

from character_forge.engine import (
    CharacterGenerationError,
    ability_modifier,
    compute_derived_sheet,
    proficiency_bonus,
)
from character_forge.generator import generate_character
from character_forge.models import ClassLevels, Reference


class TestComputeDerivedSheet:

    def test_derives_full_sheet(self, complete_draft, reference_tables):
        sheet = compute_derived_sheet(complete_draft, *reference_tables.as_positional())

        assert sheet.name == "Kira Vos"
        assert sheet.species == "Human"
        assert sheet.total_level == 4
        assert sheet.ability_scores["Dexterity"].value == 17
        assert sheet.ability_scores["Dexterity"].modifier == 3
        assert sheet.ability_scores["Charisma"].modifier == -1
        # 8 + 2 at first level, then (5+2) + (6+2) + (4+2)
        assert sheet.hit_points_max == 31
        assert sheet.combat_stats.proficiency_bonus == 2
        assert sheet.combat_stats.initiative == 3
        assert sheet.combat_stats.armor_class == 13
        assert sheet.combat_stats.passive_perception == 12
        assert sheet.feats == ["Tough"]
        assert [c.name for c in sheet.classes] == ["Operative", "Scout"]

    def test_archetype_is_resolved(self, complete_draft, reference_tables):
        classes = list(complete_draft.classes)
        classes[0] = classes[0].model_copy(update={"archetype": Reference(name="gunslinger")})
        draft = complete_draft.model_copy(update={"classes": classes})
        sheet = compute_derived_sheet(draft, *reference_tables.as_positional())
        assert sheet.classes[0].archetype == "Gunslinger"

    def test_unknown_class_raises(self, complete_draft, reference_tables):
        draft = complete_draft.model_copy(
            update={"classes": [ClassLevels(name="Jedi", levels=1, hit_points=[])]}
        )
        with pytest.raises(CharacterGenerationError, match="Jedi"):
            compute_derived_sheet(draft, *reference_tables.as_positional())

    def test_unknown_species_raises(self, complete_draft, reference_tables):
        draft = complete_draft.model_copy(update={"species": Reference(name="Hutt")})
        with pytest.raises(CharacterGenerationError, match="Hutt"):
            compute_derived_sheet(draft, *reference_tables.as_positional())

    @pytest.mark.parametrize("score,modifier", [(1, -5), (8, -1), (10, 0), (11, 0), (15, 2), (20, 5)])
    def test_ability_modifier(self, score, modifier):
        assert ability_modifier(score) == modifier

    def test_proficiency_falls_back_to_level_curve(self):
        assert proficiency_bonus(9, []) == 4
        assert proficiency_bonus(5, [{"level": 5, "proficiencyBonus": 3}]) == 3


class TestGenerateCharacter:

    def test_returns_sheet_for_valid_draft(self, complete_draft, reference_tables):
        assert generate_character(complete_draft, reference_tables) is not None

    def test_passes_tables_positionally_in_order(self, complete_draft, reference_tables):
        compute = MagicMock(return_value="sheet")
        assert generate_character(complete_draft, reference_tables, compute) == "sheet"
        args = compute.call_args.args
        assert args[0] is complete_draft
        assert args[1] is reference_tables.classes
        assert args[3] is reference_tables.species
        assert args[9] is reference_tables.character_advancements
        assert len(args) == 12

    def test_failure_is_logged_and_returns_none(self, complete_draft, reference_tables, caplog):
        draft = complete_draft.model_copy(update={"builder_version": "1.2.3"})
        compute = MagicMock(side_effect=ValueError("boom"))

        with caplog.at_level("ERROR", logger="character-forge.generator"):
            assert generate_character(draft, reference_tables, compute) is None

        assert "1.2.3" in caplog.text
