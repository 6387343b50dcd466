import asyncio
import base64

import pytest
from fastapi.testclient import TestClient

from sakanka import app as marketplace_app
from sakanka.asr import AsrService
from sakanka.asr.providers.mock import MockAsrProvider
from sakanka.audio import AudioIngestor, IngestLimits
from sakanka.errors import QuotaExhaustedError, RateLimitedError
from sakanka.storage import MemoryProductStore, listing_record


@pytest.fixture
def client():
    return TestClient(marketplace_app.app)


@pytest.fixture
def store(monkeypatch):
    memory = MemoryProductStore()
    memory.register_user(token="seller-token", user_id="seller-1", seller=True, phone="0244000000")
    memory.register_user(token="buyer-token", user_id="buyer-1", seller=False)
    monkeypatch.setattr(marketplace_app, "store", memory)
    return memory


def _seed(store: MemoryProductStore, title: str, location: str) -> None:
    record = listing_record(
        seller_id="seller-1", title=title, description=None, price=1, quantity=1, location=location
    )
    asyncio.run(store.insert_product(record))


def _audio(data: bytes = b"webm-audio") -> str:
    return base64.b64encode(data).decode("ascii")


class _RaisingExtractor:
    def __init__(self, error) -> None:
        self.error = error

    async def extract(self, text, *, language, action):
        raise self.error


class _StubChat:
    def __init__(self, reply="Akwaaba! What are you selling?", error=None) -> None:
        self.reply_text = reply
        self.error = error
        self.calls = []

    async def reply(self, messages, *, language):
        self.calls.append((list(messages), language))
        if self.error is not None:
            raise self.error
        return self.reply_text


def test_health(client):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_voice_to_text_accepts_audio_base64(client):
    resp = client.post("/voice-to-text", json={"audioBase64": _audio(), "language": "twi"})

    assert resp.status_code == 200
    assert resp.json() == {
        "text": "I am selling five bags of rice at 20 cedis in Accra",
        "language": "twi",
    }


def test_voice_to_text_requires_audio(client):
    resp = client.post("/voice-to-text", json={"language": "ga"})

    assert resp.status_code == 400
    assert resp.json() == {"error": "No audio data provided"}


def test_voice_to_text_rejects_oversized_audio(monkeypatch, client):
    monkeypatch.setattr(marketplace_app, "audio_ingestor", AudioIngestor(limits=IngestLimits(max_bytes=4)))

    resp = client.post("/voice-to-text", json={"audio": _audio(b"0123456789")})

    assert resp.status_code == 413


def test_voice_to_text_empty_transcript_is_an_error(monkeypatch, client):
    monkeypatch.setattr(marketplace_app, "asr_service", AsrService(provider=MockAsrProvider(text="  ")))

    resp = client.post("/voice-to-text", json={"audio": _audio()})

    assert resp.status_code == 502
    assert "error" in resp.json()


def test_extract_product_info_falls_back_without_llm(client):
    resp = client.post("/extract-product-info", json={"text": "Kente cloth", "language": "english"})

    assert resp.status_code == 200
    assert resp.json() == {
        "title": "Kente cloth",
        "description": "Kente cloth",
        "price": 0.0,
        "quantity": 1,
        "location": "Not specified",
        "language": "english",
        "originalText": "Kente cloth",
    }


@pytest.mark.parametrize(
    "error, status, message",
    [
        (RateLimitedError(service="extraction"), 429, "Rate limit exceeded. Please try again in a moment."),
        (QuotaExhaustedError(service="extraction"), 402, "AI credits exhausted. Please contact support."),
    ],
)
def test_extract_product_info_maps_gateway_errors(monkeypatch, client, error, status, message):
    monkeypatch.setattr(marketplace_app, "extractor", _RaisingExtractor(error))

    resp = client.post("/extract-product-info", json={"text": "rice", "language": "twi", "action": "sell"})

    assert resp.status_code == status
    assert resp.json() == {"error": message}


def test_extract_product_info_requires_text(client):
    resp = client.post("/extract-product-info", json={"text": "  "})

    assert resp.status_code == 400


def test_invalid_body_is_bad_request(client):
    resp = client.post("/extract-product-info", content=b"not json", headers={"content-type": "application/json"})

    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid request body"}


def test_voice_assistant_returns_message(monkeypatch, client):
    chat = _StubChat()
    monkeypatch.setattr(marketplace_app, "chat_service", chat)

    resp = client.post(
        "/voice-assistant",
        json={
            "messages": [
                {"role": "user", "content": "I want to sell rice"},
                {"role": "assistant", "content": "How much?"},
                {"role": "user", "content": "20 cedis"},
            ],
            "language": "hausa",
        },
    )

    assert resp.status_code == 200
    assert resp.json() == {"message": "Akwaaba! What are you selling?"}
    messages, language = chat.calls[0]
    assert [turn.content for turn in messages] == ["I want to sell rice", "How much?", "20 cedis"]
    assert language.value == "hausa"


def test_voice_assistant_requires_user_turn(client):
    resp = client.post("/voice-assistant", json={"messages": [], "language": "twi"})

    assert resp.status_code == 400


def test_voice_assistant_maps_quota_error(monkeypatch, client):
    monkeypatch.setattr(marketplace_app, "chat_service", _StubChat(error=QuotaExhaustedError(service="assistant")))

    resp = client.post("/voice-assistant", json={"messages": [{"role": "user", "content": "hi"}]})

    assert resp.status_code == 402


def test_text_to_speech_returns_base64_audio(client):
    resp = client.post("/text-to-speech", json={"text": "Akwaaba", "language": "twi"})

    body = resp.json()
    assert resp.status_code == 200
    assert body["format"] == "wav"
    assert base64.b64decode(body["audioContent"]).startswith(b"RIFF")


def test_create_product_requires_authorization(client, store):
    resp = client.post("/create-product", json={"title": "Rice"})

    assert resp.status_code == 401
    assert resp.json() == {"error": "No authorization header"}


def test_create_product_rejects_invalid_token(client, store):
    resp = client.post("/create-product", json={"title": "Rice"}, headers={"Authorization": "Bearer nope"})

    assert resp.status_code == 401


def test_create_product_requires_seller_role(client, store):
    resp = client.post("/create-product", json={"title": "Rice"}, headers={"Authorization": "Bearer buyer-token"})

    assert resp.status_code == 403
    assert resp.json() == {"error": "User does not have seller role"}


def test_create_product_inserts_active_listing(client, store):
    resp = client.post(
        "/create-product",
        json={"title": "Rice", "description": "Five bags", "price": "20", "quantity": "5", "location": "Accra"},
        headers={"Authorization": "Bearer seller-token"},
    )

    body = resp.json()
    assert resp.status_code == 200
    assert body["success"] is True
    product = body["product"]
    assert product["seller_id"] == "seller-1"
    assert product["status"] == "active"
    assert product["language"] == "twi"
    assert product["price"] == 20.0
    assert product["quantity"] == 5
    assert product["phone_number"] == "0244000000"


def test_create_product_keeps_supplied_phone(client, store):
    resp = client.post(
        "/create-product",
        json={"title": "Yam", "phone_number": "0200111222", "language": "ga"},
        headers={"Authorization": "Bearer seller-token"},
    )

    product = resp.json()["product"]
    assert product["phone_number"] == "0200111222"
    assert product["language"] == "ga"


def test_search_products(client, store):
    for title, location in [("Rice", "Accra"), ("Brown rice", "Kumasi"), ("Yam", "Accra")]:
        _seed(store, title, location)

    resp = client.post("/search-products", json={"query": "RICE", "location": "accra"})

    body = resp.json()
    assert resp.status_code == 200
    assert body["count"] == 1
    assert body["query"] == "RICE"
    assert body["location"] == "accra"
    assert body["products"][0]["title"] == "Rice"


def test_search_products_requires_query(client, store):
    resp = client.post("/search-products", json={"query": " "})

    assert resp.status_code == 400
    assert resp.json() == {"error": "Search query is required"}


def test_browse_caps_limit(client, store):
    for index in range(3):
        _seed(store, f"Item {index}", "")

    resp = client.get("/products", params={"limit": 2})

    body = resp.json()
    assert body["count"] == 2
    assert [p["title"] for p in body["products"]] == ["Item 2", "Item 1"]
    assert "query" not in body


def test_cors_preflight(client):
    resp = client.options(
        "/create-product",
        headers={
            "Origin": "https://market.example",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "authorization, content-type",
        },
    )

    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "*"
