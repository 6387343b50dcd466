import base64
import json

import httpx
import pytest

from sakanka.audio.types import AudioSample
from sakanka.client import MarketplaceClient
from sakanka.errors import (
    GENERIC_FAILURE_MESSAGE,
    AuthenticationError,
    EmptyTranscriptError,
    PermissionDeniedError,
    PersistenceError,
    QuotaExhaustedError,
    RateLimitedError,
    UpstreamError,
)
from sakanka.languages import Language
from sakanka.models import Action, ProductDraft, TranscriptTurn, TurnRole


def _client(handler, **kwargs) -> MarketplaceClient:
    return MarketplaceClient(base_url="http://service.test/", transport=httpx.MockTransport(handler), **kwargs)


def _json(request: httpx.Request) -> dict:
    return json.loads(request.content)


@pytest.mark.asyncio
async def test_transcribe_sends_base64_audio_and_language():
    seen = {}

    def handler(request):
        seen.update(path=request.url.path, body=_json(request), apikey=request.headers.get("apikey"))
        return httpx.Response(200, json={"text": " Me tɔn nkate ", "language": "twi"})

    async with _client(handler, api_key="anon-key") as client:
        text = await client.transcribe(AudioSample(data=b"abc", mime_type="audio/wav"), language=Language.TWI)

    assert text == "Me tɔn nkate"
    assert seen["path"] == "/voice-to-text"
    assert seen["body"] == {"audio": base64.b64encode(b"abc").decode(), "mimeType": "audio/wav", "language": "twi"}
    assert seen["apikey"] == "anon-key"


@pytest.mark.asyncio
async def test_transcribe_empty_text_is_terminal():
    async with _client(lambda request: httpx.Response(200, json={"text": ""})) as client:
        with pytest.raises(EmptyTranscriptError):
            await client.transcribe(AudioSample(data=b"abc", mime_type="audio/wav"), language=Language.GA)


@pytest.mark.asyncio
async def test_extract_builds_draft():
    def handler(request):
        assert _json(request) == {"text": "rice", "language": "hausa", "action": "buy"}
        return httpx.Response(200, json={"title": "Rice", "price": 20, "quantity": 2, "location": "Tamale"})

    async with _client(handler) as client:
        draft = await client.extract("rice", language=Language.HAUSA, action=Action.BUY)

    assert draft.title == "Rice"
    assert draft.language is Language.HAUSA
    assert draft.original_text == "rice"


@pytest.mark.parametrize(
    "status, expected, message",
    [
        (429, RateLimitedError, "Rate limit exceeded. Please try again in a moment."),
        (402, QuotaExhaustedError, "AI credits exhausted. Please contact support."),
        (500, UpstreamError, GENERIC_FAILURE_MESSAGE),
        (502, UpstreamError, GENERIC_FAILURE_MESSAGE),
    ],
)
@pytest.mark.asyncio
async def test_status_mapping(status, expected, message):
    async with _client(lambda request: httpx.Response(status, json={"error": "upstream said no"})) as client:
        with pytest.raises(expected) as excinfo:
            await client.extract("rice", language=Language.TWI)

    assert type(excinfo.value) is expected
    assert excinfo.value.message == message


@pytest.mark.asyncio
async def test_network_failure_is_generic_upstream_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as client:
        with pytest.raises(UpstreamError) as excinfo:
            await client.chat([TranscriptTurn(role=TurnRole.USER, content="hi")], language=Language.TWI)

    assert excinfo.value.message == GENERIC_FAILURE_MESSAGE


@pytest.mark.asyncio
async def test_chat_sends_whole_history():
    seen = {}

    def handler(request):
        seen["body"] = _json(request)
        return httpx.Response(200, json={"message": "How much per bag?"})

    history = [
        TranscriptTurn(role=TurnRole.USER, content="I sell rice"),
        TranscriptTurn(role=TurnRole.ASSISTANT, content="Great"),
        TranscriptTurn(role=TurnRole.USER, content="Five bags"),
    ]
    async with _client(handler) as client:
        reply = await client.chat(history, language=Language.ENGLISH)

    assert reply == "How much per bag?"
    assert seen["body"]["messages"] == [turn.as_message() for turn in history]
    assert seen["body"]["language"] == "english"


@pytest.mark.asyncio
async def test_synthesize_decodes_audio():
    payload = {"audioContent": base64.b64encode(b"ID3...").decode(), "format": "mp3"}

    async with _client(lambda request: httpx.Response(200, json=payload)) as client:
        speech = await client.synthesize("Akwaaba", language=Language.TWI)

    assert speech.data == b"ID3..."
    assert speech.format == "mp3"


@pytest.mark.asyncio
async def test_create_product_uses_user_token():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["authorization"]
        seen["body"] = _json(request)
        product = {"id": "p1", "seller_id": "u1", "title": "Rice", "price": 20, "quantity": 5, "status": "active"}
        return httpx.Response(200, json={"success": True, "product": product})

    draft = ProductDraft(title="Rice", price=20, quantity=5, location="Accra", language=Language.GA)
    async with _client(handler, api_key="anon-key") as client:
        product = await client.create_product(draft, access_token="user-jwt")

    assert product.id == "p1"
    assert seen["auth"] == "Bearer user-jwt"
    assert seen["body"]["language"] == "ga"
    assert seen["body"]["price"] == 20.0


@pytest.mark.parametrize(
    "status, expected",
    [(401, AuthenticationError), (403, PermissionDeniedError), (500, PersistenceError)],
)
@pytest.mark.asyncio
async def test_create_product_errors(status, expected):
    async with _client(lambda request: httpx.Response(status, json={"error": "nope"})) as client:
        with pytest.raises(expected):
            await client.create_product(ProductDraft(title="Rice"), access_token="t")


@pytest.mark.asyncio
async def test_create_product_malformed_product_is_persistence_error():
    def handler(request):
        return httpx.Response(200, json={"success": True, "product": {"id": "p1"}})

    async with _client(handler) as client:
        with pytest.raises(PersistenceError):
            await client.create_product(ProductDraft(title="Rice"), access_token="t")


@pytest.mark.asyncio
async def test_search_and_browse():
    calls = []

    def handler(request):
        calls.append((request.method, request.url.path, dict(request.url.params)))
        product = {"id": "p1", "seller_id": "u1", "title": "Rice"}
        return httpx.Response(200, json={"products": [product], "count": 1})

    async with _client(handler) as client:
        found = await client.search("rice", location="Accra")
        newest = await client.browse(limit=10)

    assert found[0].title == "Rice"
    assert newest[0].id == "p1"
    assert calls[0][:2] == ("POST", "/search-products")
    assert calls[1] == ("GET", "/products", {"limit": "10"})


@pytest.mark.asyncio
async def test_create_product_network_failure_is_persistence_error(mocker):
    async def _raise(*args, **kwargs):
        raise httpx.ReadTimeout("timed out")

    mocked = mocker.patch("httpx.AsyncClient.request", side_effect=_raise)

    async with _client(lambda request: httpx.Response(200, json={})) as client:
        with pytest.raises(PersistenceError):
            await client.create_product(ProductDraft(title="Rice"), access_token="t")

    assert mocked.call_count == 1
