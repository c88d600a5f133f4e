"""
Character service: the single entry point for character records.

Wires validation, generation, the character store and the sync mediator
together. Reference tables and authentication are supplied by the caller as
provider callables so that every call sees their current state.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable

from .config import Settings
from .engine import compute_derived_sheet
from .generator import ComputeFn, generate_character
from .models import DerivedCharacter, RawCharacter, ReferenceTables, ValidationResult
from .remote import CharacterApiClient
from .store import CharacterStore
from .sync import HeaderProvider, SyncMediator, now_ms
from .validator import is_empty_character, validate_character

logger = logging.getLogger("character-forge")


def _signed_out() -> None:
    return None


class CharacterService:
    """Public surface for saving, fetching, validating and generating characters.

    Usage:
        service = CharacterService(
            tables_provider=lambda: catalog.tables(),
            header_provider=session.auth_header,
            settings=load_settings(),
        )

        saved = await service.save_character(draft)
        sheet = service.generate_complete_character(saved)
    """

    def __init__(
        self,
        tables_provider: Callable[[], ReferenceTables],
        header_provider: HeaderProvider = _signed_out,
        *,
        client: Any = None,
        settings: Settings | None = None,
        compute: ComputeFn = compute_derived_sheet,
        characters: Iterable[RawCharacter] = (),
        clock: Callable[[], int] = now_ms,
    ) -> None:
        """
        Initialize the service.

        Args:
            tables_provider: Returns the current, fully loaded reference tables
            header_provider: Returns auth headers, or None/empty when signed out
            client: Character API client; a CharacterApiClient is built from settings if omitted
            settings: Sync settings; defaults apply if omitted
            compute: Rules computation used for generation
            characters: Records to hydrate the store with (e.g. a local cache)
            clock: Epoch-millisecond clock used to stamp saves
        """
        self.settings = settings or Settings()
        self._tables_provider = tables_provider
        self._compute = compute
        self.store = CharacterStore(characters)
        if client is None:
            client = CharacterApiClient(self.settings.api_url, timeout=self.settings.timeout)
        self.sync = SyncMediator(
            self.store,
            client,
            header_provider,
            settings=self.settings,
            clock=clock,
        )

    @property
    def characters(self) -> list[RawCharacter]:
        return self.store.characters

    @property
    def pending_sync(self) -> frozenset[str]:
        return self.sync.pending_sync

    # --- Records ---

    async def save_character(self, draft: RawCharacter) -> RawCharacter:
        """Save locally now and, when signed in, remotely after the debounce window."""
        return self.sync.save(draft)

    def save_character_locally(self, draft: RawCharacter) -> RawCharacter:
        return self.sync.save_locally(draft)

    async def fetch_characters(self) -> list[RawCharacter]:
        return await self.sync.fetch_all()

    async def delete_character(self, character: RawCharacter) -> list[RawCharacter]:
        return await self.sync.delete(character)

    def clear_local_characters(self) -> list[RawCharacter]:
        return self.sync.clear_local()

    def retry_pending_sync(self) -> int:
        return self.sync.retry_pending()

    def get_character_by_id(self, character_id: str) -> RawCharacter | None:
        return self.store.find_by_either_id(character_id)

    # --- Rules ---

    def get_character_validation(self, draft: RawCharacter | None) -> ValidationResult:
        return validate_character(draft)

    def is_empty_character(self, draft: RawCharacter | None) -> bool:
        return is_empty_character(draft)

    def generate_complete_character(self, draft: RawCharacter | None) -> DerivedCharacter | None:
        """Derive the full sheet, or None if the draft is invalid or generation fails."""
        validation = validate_character(draft)
        if not validation.is_valid:
            logger.debug("Skipping generation: %s", validation.message)
            return None
        return generate_character(draft, self._tables_provider(), self._compute)

    # --- Lifecycle ---

    async def flush(self) -> None:
        await self.sync.flush()

    async def aclose(self) -> None:
        await self.sync.aclose()
