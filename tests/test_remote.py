"""Tests for the character API client."""

import json

import httpx
import pytest

from character_forge.models import RawCharacter
from character_forge.remote import CharacterApiClient, RemoteSyncError

HEADERS = {"Authorization": "Bearer token"}


def _client(handler) -> CharacterApiClient:
    http = httpx.AsyncClient(
        base_url="https://api.example.test/api",
        transport=httpx.MockTransport(handler),
    )
    return CharacterApiClient(client=http)


class TestListCharacters:

    @pytest.mark.asyncio
    async def test_merges_envelope_identity(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=[
                {
                    "id": "srv-1",
                    "userId": "user-7",
                    "jsonData": json.dumps({"name": "Kira", "localId": "loc-1"}),
                },
            ])

        characters = await _client(handler).list_characters(HEADERS)

        assert requests[0].method == "GET"
        assert requests[0].url.path == "/api/character"
        assert requests[0].headers["Authorization"] == "Bearer token"
        assert characters == [
            RawCharacter(id="srv-1", user_id="user-7", local_id="loc-1", name="Kira")
        ]

    @pytest.mark.asyncio
    async def test_invalid_payload(self):
        client = _client(lambda request: httpx.Response(200, json={"not": "a list"}))
        with pytest.raises(RemoteSyncError, match="expected a list"):
            await client.list_characters(HEADERS)

    @pytest.mark.asyncio
    async def test_json_data_must_be_an_object(self):
        client = _client(lambda request: httpx.Response(200, json=[
            {"id": "srv-1", "userId": "user-7", "jsonData": "[]"},
        ]))
        with pytest.raises(RemoteSyncError, match="JSON object"):
            await client.list_characters(HEADERS)


class TestSaveCharacter:

    @pytest.mark.asyncio
    async def test_posts_json_data_and_returns_echo(self):
        sent = {}

        def handler(request: httpx.Request) -> httpx.Response:
            sent.update(json.loads(request.content))
            return httpx.Response(200, json={
                "id": "srv-1",
                "userId": "user-7",
                "jsonData": sent["jsonData"],
            })

        character = RawCharacter(local_id="loc-1", name="Kira")
        echo = await _client(handler).save_character(character, HEADERS)

        assert "id" not in sent
        assert json.loads(sent["jsonData"])["localId"] == "loc-1"
        assert echo.id == "srv-1"
        assert echo.user_id == "user-7"
        assert echo.local_id == "loc-1"

    @pytest.mark.asyncio
    async def test_sends_existing_id(self):
        sent = {}

        def handler(request: httpx.Request) -> httpx.Response:
            sent.update(json.loads(request.content))
            return httpx.Response(200, json={"id": "srv-1", "userId": None, "jsonData": sent["jsonData"]})

        await _client(handler).save_character(RawCharacter(id="srv-1", local_id="loc-1"), HEADERS)
        assert sent["id"] == "srv-1"

    @pytest.mark.asyncio
    async def test_null_echo_payload(self):
        client = _client(lambda request: httpx.Response(200, json={
            "id": "srv-1", "userId": "user-7", "jsonData": "null",
        }))
        with pytest.raises(RemoteSyncError, match="Invalid character echo"):
            await client.save_character(RawCharacter(local_id="loc-1"), HEADERS)


class TestErrors:

    @pytest.mark.asyncio
    async def test_server_error_is_retryable(self):
        client = _client(lambda request: httpx.Response(503))
        with pytest.raises(RemoteSyncError) as exc_info:
            await client.delete_character("srv-1", HEADERS)
        assert exc_info.value.status_code == 503
        assert exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_client_error_is_not_retryable(self):
        client = _client(lambda request: httpx.Response(404))
        with pytest.raises(RemoteSyncError) as exc_info:
            await client.delete_character("srv-1", HEADERS)
        assert exc_info.value.status_code == 404
        assert not exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(RemoteSyncError, match="timed out") as exc_info:
            await _client(handler).list_characters(HEADERS)
        assert exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(RemoteSyncError, match="Failed to connect"):
            await _client(handler).list_characters(HEADERS)

    @pytest.mark.asyncio
    async def test_delete_path(self):
        paths = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append((request.method, request.url.path))
            return httpx.Response(204)

        await _client(handler).delete_character("srv-1", HEADERS)
        assert paths == [("DELETE", "/api/character/srv-1")]
