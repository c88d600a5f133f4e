"""Sync mediator: local-first character saves with debounced remote writes.

Every save is committed to the CharacterStore immediately. When the user is
signed in, the save also schedules a remote write that waits for a quiet
period so that rapid edits to the same character collapse into a single
POST carrying the latest draft. The server's echo is absorbed back into the
store so a local-only record picks up its server id without duplicating.

Online/Offline is decided on every call from the auth header provider.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, Mapping

from .config import Settings
from .models import RawCharacter
from .remote import RemoteSyncError
from .store import CharacterStore

logger = logging.getLogger("character-forge.sync")

HeaderProvider = Callable[[], Mapping[str, str] | None]


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class PendingWrite:
    """A debounced remote write waiting for its quiet period to elapse."""
    key: str
    record: RawCharacter
    handle: asyncio.TimerHandle


class SyncMediator:
    """Coordinates CharacterStore mutations with optional remote persistence.

    Manages:
    - Optimistic local commits for every save
    - Per-record trailing-edge debounce of remote writes
    - Absorbing server echoes without clobbering newer local edits
    - Retrying failed writes and tracking records left unsynced
    """

    def __init__(
        self,
        store: CharacterStore,
        client: Any,
        header_provider: HeaderProvider,
        settings: Settings | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._store = store
        self._client = client
        self._header_provider = header_provider
        self._settings = settings or Settings()
        self._clock = clock
        self._pending_writes: dict[str, PendingWrite] = {}
        self._in_flight: set[asyncio.Task[None]] = set()
        self._pending_sync: set[str] = set()

    # --- State ---

    def auth_headers(self) -> dict[str, str] | None:
        """Current auth headers, or None when signed out."""
        headers = self._header_provider()
        return dict(headers) if headers else None

    @property
    def is_online(self) -> bool:
        return self.auth_headers() is not None

    @property
    def pending_sync(self) -> frozenset[str]:
        """Identities of records whose last remote write failed."""
        return frozenset(self._pending_sync)

    @property
    def has_pending_writes(self) -> bool:
        return bool(self._pending_writes or self._in_flight)

    # --- Saving ---

    def stamp(self, draft: RawCharacter) -> RawCharacter:
        """Copy of the draft with the builder version and a fresh changedAt.

        changedAt never goes backwards for a record, even if the clock does,
        and a server id already known for the record is carried forward.
        """
        changed_at = self._clock()
        update: dict[str, Any] = {"builder_version": self._settings.builder_version}
        previous = self._store.find_match(draft)
        if previous is not None:
            if changed_at <= previous.changed_at:
                changed_at = previous.changed_at + 1
            # A draft copied before its echo arrived keeps the server identity
            if previous.id and not draft.id:
                update["id"] = previous.id
                update["user_id"] = previous.user_id
        update["changed_at"] = changed_at
        return draft.model_copy(update=update)

    def save_locally(self, draft: RawCharacter) -> RawCharacter:
        """Commit a draft to the local store only."""
        record = self.stamp(draft)
        self._store.upsert(record)
        return record

    def save(self, draft: RawCharacter) -> RawCharacter:
        """Commit locally, then schedule a remote write if signed in."""
        record = self.save_locally(draft)
        if self.is_online:
            self._schedule_write(record)
        return record

    def _schedule_write(self, record: RawCharacter) -> None:
        key = record.identity
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop, remote save of %s left pending", key)
            self._pending_sync.add(key)
            return

        self._cancel_write(key)
        handle = loop.call_later(self._settings.debounce_seconds, self._fire_write, key)
        self._pending_writes[key] = PendingWrite(key=key, record=record, handle=handle)

    def _cancel_write(self, key: str) -> bool:
        pending = self._pending_writes.pop(key, None)
        if pending is None:
            return False
        pending.handle.cancel()
        return True

    def _fire_write(self, key: str) -> None:
        """Start the remote write once the debounce window has elapsed."""
        pending = self._pending_writes.pop(key, None)
        if pending is None:
            return

        # Send the store's current copy, which may have absorbed a server id since
        record = self._store.find_match(pending.record)
        if record is None:
            logger.debug("Record %s was removed before its remote write fired", key)
            return

        task = asyncio.get_running_loop().create_task(self._write_remote(record))
        self._in_flight.add(task)
        task.add_done_callback(partial(self._on_write_done, record.identity))

    def _on_write_done(self, key: str, task: asyncio.Task[None]) -> None:
        self._in_flight.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "Remote write of %s crashed, kept locally as pending", key,
                exc_info=task.exception(),
            )
            self._pending_sync.add(key)

    async def _write_remote(self, record: RawCharacter) -> None:
        key = record.identity
        headers = self.auth_headers()
        if headers is None:
            logger.info("Signed out before remote save of %s, left pending", key)
            self._pending_sync.add(key)
            return

        last_error: RemoteSyncError | None = None
        for attempt in range(self._settings.max_retries):
            try:
                echo = await self._client.save_character(record, headers)
            except RemoteSyncError as e:
                last_error = e
                if not e.retryable:
                    break
                if attempt + 1 < self._settings.max_retries:
                    wait = self._settings.retry_backoff * 2 ** attempt
                    logger.warning(
                        "Remote save of %s failed (attempt %d), retrying in %.2fs: %s",
                        key, attempt + 1, wait, e,
                    )
                    await asyncio.sleep(wait)
            else:
                self._pending_sync.discard(key)
                self.absorb_echo(record, echo)
                return

        logger.error("Remote save of %s failed, kept locally as pending: %s", key, last_error)
        self._pending_sync.add(key)

    def absorb_echo(self, sent: RawCharacter, echo: RawCharacter) -> RawCharacter | None:
        """Fold the server's echo of a write back into the store.

        The echo keeps the sent localId if the server dropped it. If the
        record was edited locally after the write was sent, only the server
        identity fields are taken from the echo. Echoes for records removed
        in the meantime are dropped.
        """
        if "local_id" not in echo.model_fields_set:
            echo = echo.model_copy(update={"local_id": sent.local_id})

        current = self._store.find_match(echo)
        if current is None:
            logger.warning("Dropping server echo for removed character %s", sent.identity)
            return None

        if current.changed_at > sent.changed_at:
            merged = current.model_copy(update={"id": echo.id, "user_id": echo.user_id})
        else:
            merged = echo
        self._store.upsert(merged)
        return merged

    # --- Fetching / deleting ---

    async def fetch_all(self) -> list[RawCharacter]:
        """Replace local characters with the server's list when signed in.

        Signed out, the local collection is returned untouched.

        Raises:
            RemoteSyncError: If the list request fails (local state unchanged)
        """
        headers = self.auth_headers()
        if headers is None:
            return self._store.characters

        records = await self._client.list_characters(headers)
        characters = self._store.replace_all(records)
        self._pending_sync &= {c.identity for c in characters}
        logger.info("Fetched %d characters from remote", len(characters))
        return characters

    async def delete(self, record: RawCharacter) -> list[RawCharacter]:
        """Delete remotely (when signed in and server-known), then locally.

        Raises:
            RemoteSyncError: If the remote delete fails; the record stays local
        """
        target = self._store.find_match(record) or record
        cancelled = self._cancel_write(target.identity) | self._cancel_write(record.identity)

        headers = self.auth_headers()
        remote_id = target.id or record.id
        if headers is not None and remote_id:
            try:
                await self._client.delete_character(remote_id, headers)
            except RemoteSyncError:
                if cancelled:
                    self._pending_sync.add(target.identity)
                raise

        self._pending_sync.discard(target.identity)
        return self._store.remove(target)

    def clear_local(self) -> list[RawCharacter]:
        """Forget every local character and pending write. Never touches remote."""
        for key in list(self._pending_writes):
            self._cancel_write(key)
        self._pending_sync.clear()
        return self._store.clear()

    def retry_pending(self) -> int:
        """Reschedule remote writes for records marked pending. Returns the count."""
        if not self.is_online:
            return 0
        scheduled = 0
        for key in sorted(self._pending_sync):
            record = self._store.find_by_either_id(key)
            if record is None:
                self._pending_sync.discard(key)
                continue
            self._schedule_write(record)
            scheduled += 1
        return scheduled

    async def flush(self) -> None:
        """Send every debounced write now and wait for all writes to finish."""
        for key in list(self._pending_writes):
            pending = self._pending_writes.get(key)
            if pending is not None:
                pending.handle.cancel()
                self._fire_write(key)
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    async def aclose(self) -> None:
        await self.flush()
        close = getattr(self._client, "aclose", None)
        if close is not None:
            await close()
