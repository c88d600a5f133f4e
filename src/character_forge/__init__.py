"""
Character Forge - character record lifecycle for a tabletop RPG character builder.
"""

from .config import Settings, load_settings, package_version
from .engine import CharacterGenerationError, compute_derived_sheet
from .generator import generate_character
from .models import (
    ABILITY_SCORES,
    BackgroundChoice,
    CharacterEnvelope,
    ClassLevels,
    DerivedCharacter,
    RawCharacter,
    Reference,
    ReferenceTables,
    ValidationResult,
)
from .remote import CharacterApiClient, RemoteSyncError
from .service import CharacterService
from .store import CharacterStore, remove_character, upsert_character
from .sync import SyncMediator
from .validator import is_empty_character, validate_character

__version__ = package_version()

__all__ = [
    "ABILITY_SCORES",
    "BackgroundChoice",
    "CharacterApiClient",
    "CharacterEnvelope",
    "CharacterGenerationError",
    "CharacterService",
    "CharacterStore",
    "ClassLevels",
    "DerivedCharacter",
    "RawCharacter",
    "Reference",
    "ReferenceTables",
    "RemoteSyncError",
    "Settings",
    "SyncMediator",
    "ValidationResult",
    "compute_derived_sheet",
    "generate_character",
    "is_empty_character",
    "load_settings",
    "remove_character",
    "upsert_character",
    "validate_character",
]
