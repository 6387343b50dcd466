import base64
import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .asr import AsrService
from .audio import AudioIngestor, IngestLimits
from .chat_service import ChatService
from .errors import (
    AuthenticationError,
    BadRequestError,
    MarketplaceError,
    PayloadTooLargeError,
    PermissionDeniedError,
)
from .extraction import ProductExtractor
from .languages import Language
from .logging_config import setup_logging
from .models import (
    ChatRequest,
    ChatResponse,
    CreateProductRequest,
    ExtractionRequest,
    ProductListResponse,
    SearchRequest,
    SpeechRequest,
    SpeechResponse,
    TranscriptionRequest,
    TranscriptionResponse,
    TurnRole,
)
from .settings import settings as runtime_settings
from .storage import build_store, listing_record
from .tts import TtsService

logger = logging.getLogger(__name__)

CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]

audio_ingestor = AudioIngestor(limits=IngestLimits(max_bytes=runtime_settings.asr.max_bytes))
chat_service = ChatService()
extractor = ProductExtractor()

try:
    asr_service = AsrService.from_settings(runtime_settings.asr, runtime_settings.openai)
except Exception:  # pragma: no cover - fallback to mock provider if config invalid
    logger.exception("app.asr.provider_init_failed")
    asr_service = AsrService()

try:
    tts_service = TtsService.from_settings(runtime_settings.tts, runtime_settings.openai)
except Exception:  # pragma: no cover - fallback to mock provider if config invalid
    logger.exception("app.tts.provider_init_failed")
    tts_service = TtsService()

store = build_store(runtime_settings.backend)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "app.startup",
        extra={
            "asr_provider": asr_service.provider.name,
            "tts_provider": tts_service.provider.name,
            "backend": store.name,
            "llm_enabled": runtime_settings.llm.enabled,
        },
    )
    yield
    await asr_service.close()
    await tts_service.close()
    await store.close()
    logger.info("app.shutdown")


app = FastAPI(title="sakanka", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(runtime_settings.service.cors_origins),
    allow_methods=["*"],
    allow_headers=CORS_ALLOW_HEADERS,
)


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(MarketplaceError)
async def _marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "request.failed",
        extra={"path": request.url.path, "status": exc.status_code, "error": exc.message},
    )
    return _error_response(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("request.invalid", extra={"path": request.url.path, "errors": len(exc.errors())})
    return _error_response(400, "Invalid request body")


@app.get("/health")
async def health() -> Dict[str, Any]:
    return {
        "status": "ok",
        "service": "sakanka",
        "llm_enabled": runtime_settings.llm.enabled,
        "asr_provider": asr_service.provider.name,
        "tts_provider": tts_service.provider.name,
        "backend": store.name,
    }


@app.post("/voice-to-text", response_model=TranscriptionResponse)
async def voice_to_text(body: TranscriptionRequest) -> TranscriptionResponse:
    try:
        sample = audio_ingestor.from_base64(body.encoded_audio, mime_type=body.mime_type)
    except ValueError as exc:
        message = str(exc)
        if "size limit" in message:
            raise PayloadTooLargeError() from exc
        if message == "audio required":
            raise BadRequestError("No audio data provided") from exc
        raise BadRequestError("Invalid audio encoding") from exc

    result = await asr_service.transcribe(sample, language=body.language)
    return TranscriptionResponse(text=result.text, language=body.language)


@app.post("/extract-product-info")
async def extract_product_info(body: ExtractionRequest) -> Dict[str, Any]:
    text = body.text.strip()
    if not text:
        raise BadRequestError("Text is required")
    draft = await extractor.extract(text, language=body.language, action=body.action)
    return draft.model_dump(mode="json", by_alias=True)


@app.post("/voice-assistant", response_model=ChatResponse)
async def voice_assistant(body: ChatRequest) -> ChatResponse:
    if not any(turn.role is TurnRole.USER for turn in body.messages):
        raise BadRequestError("At least one user message is required")
    message = await chat_service.reply(body.messages, language=body.language)
    return ChatResponse(message=message)


@app.post("/text-to-speech", response_model=SpeechResponse)
async def text_to_speech(body: SpeechRequest) -> SpeechResponse:
    text = body.text.strip()
    if not text:
        raise BadRequestError("Text is required")
    speech = await tts_service.synthesize(text, language=body.language)
    encoded = base64.b64encode(speech.data).decode("ascii")
    return SpeechResponse(audio_content=encoded, format=speech.format)


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise AuthenticationError("No authorization header")
    scheme, _, token = authorization.partition(" ")
    token = token.strip() if scheme.lower() == "bearer" else authorization.strip()
    if not token:
        raise AuthenticationError("No authorization header")
    return token


@app.post("/create-product")
async def create_product(
    body: CreateProductRequest,
    authorization: Optional[str] = Header(default=None),
) -> Dict[str, Any]:
    user_id = await store.authenticate(_bearer_token(authorization))
    if not await store.is_seller(user_id):
        raise PermissionDeniedError()
    if not body.title.strip():
        raise BadRequestError("Title is required")

    phone_number = body.phone_number or await store.profile_phone(user_id)
    record = listing_record(
        seller_id=user_id,
        title=body.title.strip(),
        description=body.description,
        price=body.price,
        quantity=body.quantity,
        location=body.location,
        language=body.language or Language.TWI.value,
        image_url=body.image_url,
        phone_number=phone_number,
    )
    product = await store.insert_product(record)
    logger.info("product.created", extra={"product_id": product.id, "seller_id": user_id})
    return {"success": True, "product": product.model_dump(mode="json")}


@app.post("/search-products")
async def search_products(body: SearchRequest) -> Dict[str, Any]:
    query = body.query.strip()
    if not query:
        raise BadRequestError("Search query is required")
    location = (body.location or "").strip() or None
    products = await store.search_products(
        query=query,
        location=location,
        limit=runtime_settings.backend.search_limit,
    )
    logger.info("product.search", extra={"query": query, "location": location, "count": len(products)})
    response = ProductListResponse(products=products, count=len(products), query=query, location=location)
    return response.model_dump(mode="json")


@app.get("/products")
async def list_products(limit: Optional[int] = None) -> Dict[str, Any]:
    cap = runtime_settings.backend.browse_limit
    effective = cap if limit is None or limit < 1 else min(limit, cap)
    products = await store.list_products(limit=effective)
    response = ProductListResponse(products=products, count=len(products))
    return response.model_dump(mode="json", exclude={"query", "location"})


def run() -> None:
    import uvicorn

    service_cfg = runtime_settings.service
    setup_logging(service_cfg.log_level, log_file=service_cfg.log_file)
    uvicorn.run("sakanka.app:app", host="0.0.0.0", port=int(os.getenv("PORT", "8100")), reload=False)


if __name__ == "__main__":
    run()
