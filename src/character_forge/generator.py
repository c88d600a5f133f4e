"""
Generation pipeline: raw draft plus reference tables to a derived sheet.

Generation failures are never fatal to the caller. Any error raised by the
rules computation is logged with the draft's builder version and reported
as None.
"""

from __future__ import annotations

import logging
from typing import Callable

from .engine import compute_derived_sheet
from .models import DerivedCharacter, RawCharacter, ReferenceTables

logger = logging.getLogger("character-forge.generator")

# compute(raw, classes, archetypes, species, equipment, enhanced_items, powers,
#         feats, backgrounds, character_advancements, skills, conditions)
ComputeFn = Callable[..., DerivedCharacter]


def generate_character(
    raw: RawCharacter,
    tables: ReferenceTables,
    compute: ComputeFn = compute_derived_sheet,
) -> DerivedCharacter | None:
    """
    Run the rules computation for a draft that already passed validation.

    Args:
        raw: Validated character draft
        tables: Reference tables, passed to compute positionally
        compute: Rules computation to run

    Returns:
        The derived sheet, or None if the computation failed
    """
    try:
        return compute(raw, *tables.as_positional())
    except Exception:
        logger.exception(
            "Character generation failed for %s. Character built with builder version %s",
            raw.local_id,
            raw.builder_version or "unknown",
        )
        return None

