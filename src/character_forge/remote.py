"""
Client for the remote character API.

The API stores each character as an opaque ``jsonData`` string alongside its
server id and owning user id:

- ``GET /character`` lists the user's characters
- ``POST /character`` creates or updates one and echoes the stored row
- ``DELETE /character/{id}`` removes one

Transport failures are reported as RemoteSyncError, flagged as retryable
when a later attempt could succeed (timeouts, connection errors, 5xx, 429).
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx

from .models import CharacterEnvelope, RawCharacter

logger = logging.getLogger("character-forge.remote")

DEFAULT_TIMEOUT = 10.0
CHARACTER_PATH = "/character"


class RemoteSyncError(Exception):
    """Raised when a request to the character API fails."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable


class CharacterApiClient:
    """Async wrapper over the character endpoints.

    Pass ``client`` to reuse an existing ``httpx.AsyncClient`` (it must have
    ``base_url`` set); otherwise one is created on first use and closed by
    ``aclose()``.
    """

    def __init__(
        self,
        base_url: str = "",
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def send(
        self,
        method: str,
        path: str,
        headers: Mapping[str, str],
        body: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """
        Send one request to the API.

        Raises:
            RemoteSyncError: On timeout, connection failure or non-2xx status
        """
        try:
            response = await self._get_client().request(
                method, path, headers=dict(headers), json=body
            )
            response.raise_for_status()
        except httpx.TimeoutException:
            raise RemoteSyncError(
                f"Character API timed out on {method} {path}", retryable=True
            ) from None
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise RemoteSyncError(
                f"Character API returned HTTP {status} on {method} {path}: {e.response.reason_phrase}",
                status_code=status,
                retryable=status >= 500 or status == 429,
            ) from None
        except httpx.RequestError as e:
            raise RemoteSyncError(
                f"Failed to connect to character API: {e}", retryable=True
            ) from None
        return response

    async def list_characters(self, headers: Mapping[str, str]) -> list[RawCharacter]:
        """Fetch every stored character, with server identity merged in."""
        response = await self.send("GET", CHARACTER_PATH, headers)
        try:
            data = response.json()
            if not isinstance(data, list):
                raise RemoteSyncError("Invalid response from character API: expected a list")
            return [CharacterEnvelope.model_validate(row).to_raw_character() for row in data]
        except ValueError as e:
            raise RemoteSyncError(f"Invalid character data from API: {e}") from e

    async def save_character(
        self, character: RawCharacter, headers: Mapping[str, str]
    ) -> RawCharacter:
        """Store a character and return the server's echo of it."""
        body: dict[str, Any] = {"jsonData": character.to_json_data()}
        if character.id:
            body["id"] = character.id
        response = await self.send("POST", CHARACTER_PATH, headers, body)
        try:
            envelope = CharacterEnvelope.model_validate(response.json())
            echo = envelope.to_raw_character()
        except ValueError as e:
            raise RemoteSyncError(f"Invalid character echo from API: {e}") from e
        logger.debug("Stored character %s as %s", character.identity, envelope.id)
        return echo

    async def delete_character(self, character_id: str, headers: Mapping[str, str]) -> None:
        await self.send("DELETE", f"{CHARACTER_PATH}/{character_id}", headers)
