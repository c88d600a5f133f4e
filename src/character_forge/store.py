"""
Character collection ownership and identity-based merging.

Every write path (local save, server echo, bulk fetch) goes through
``upsert_character``. A record is identified by its server ``id`` when both
sides have one, otherwise by its client ``localId``. The pure list functions
never mutate their input; ``CharacterStore`` commits their results.
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from .models import RawCharacter

logger = logging.getLogger("character-forge.store")


def find_match_index(characters: Sequence[RawCharacter], record: RawCharacter) -> int:
    """Index of the stored record sharing an identity with ``record``, or -1."""
    if record.id:
        for index, existing in enumerate(characters):
            if existing.id and existing.id == record.id:
                return index
    if record.local_id:
        for index, existing in enumerate(characters):
            if existing.local_id and existing.local_id == record.local_id:
                return index
    return -1


def upsert_character(
    characters: Sequence[RawCharacter], record: RawCharacter
) -> list[RawCharacter]:
    """Replace the matching record in place, or append if none matches."""
    updated = list(characters)
    index = find_match_index(updated, record)
    if index < 0:
        updated.append(record)
    else:
        updated[index] = record
    return updated


def remove_character(
    characters: Sequence[RawCharacter], record: RawCharacter
) -> list[RawCharacter]:
    """Drop every record matching the target by localId or by id.

    Either identity is enough, so a record that gained a server id since the
    caller last saw it is still removed. Empty identities never match.
    """
    return [
        existing for existing in characters
        if not (
            (record.local_id and existing.local_id == record.local_id)
            or (record.id and existing.id == record.id)
        )
    ]


class CharacterStore:
    """Owns the ordered list of a user's characters.

    All mutation goes through upsert/remove/clear/replace_all so that no
    two records ever share an id or a localId.
    """

    def __init__(self, characters: Iterable[RawCharacter] = ()) -> None:
        self._characters: list[RawCharacter] = []
        self.replace_all(characters)

    @property
    def characters(self) -> list[RawCharacter]:
        """Snapshot of the collection, in insertion order."""
        return list(self._characters)

    def __len__(self) -> int:
        return len(self._characters)

    def find_by_either_id(self, target_id: str) -> RawCharacter | None:
        """Look up by server id first, then by localId."""
        for character in self._characters:
            if character.id == target_id:
                return character
        for character in self._characters:
            if character.local_id == target_id:
                return character
        return None

    def find_match(self, record: RawCharacter) -> RawCharacter | None:
        """Return the stored record upsert would replace for ``record``."""
        index = find_match_index(self._characters, record)
        return self._characters[index] if index >= 0 else None

    def upsert(self, record: RawCharacter) -> list[RawCharacter]:
        self._characters = upsert_character(self._characters, record)
        return self.characters

    def remove(self, record: RawCharacter) -> list[RawCharacter]:
        before = len(self._characters)
        self._characters = remove_character(self._characters, record)
        logger.debug("Removed %d record(s) for %s", before - len(self._characters), record.identity)
        return self.characters

    def clear(self) -> list[RawCharacter]:
        self._characters = []
        return self.characters

    def replace_all(self, records: Iterable[RawCharacter]) -> list[RawCharacter]:
        """Replace the whole collection, collapsing duplicate identities."""
        characters: list[RawCharacter] = []
        for record in records:
            characters = upsert_character(characters, record)
        self._characters = characters
        return self.characters
