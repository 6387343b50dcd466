"""Voice assistant conversation loop."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import List, Optional, Protocol, Sequence, Union

from .audio.capture import RecordingSession
from .audio.playback import AudioPlayer
from .audio.types import AudioSample
from .errors import AssistantBusyError, CaptureError, MarketplaceError
from .intent import Intent, IntentClassifier, KeywordIntentClassifier
from .languages import Language
from .models import Action, ProductDraft, TranscriptTurn, TurnRole
from .tts.base import SpeechAudio

logger = logging.getLogger(__name__)

GREETING = "Hello! I'm here to help you sell or buy products. What would you like to do today?"


class AssistantState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    TRANSCRIBING = "transcribing"
    RESPONDING = "responding"
    SPEAKING = "speaking"


class AssistantBackend(Protocol):
    async def transcribe(self, sample: AudioSample, *, language: Language) -> str: ...

    async def chat(self, history: Sequence[TranscriptTurn], *, language: Language) -> str: ...

    async def synthesize(self, text: str, *, language: Language) -> SpeechAudio: ...

    async def extract(self, text: str, *, language: Language, action: Action = Action.SELL) -> ProductDraft: ...


ProductCallback = Callable[[ProductDraft], Union[None, Awaitable[None]]]
ErrorCallback = Callable[[MarketplaceError], None]


class AssistantSession:
    """One conversation with the marketplace assistant.

    Only one exchange runs at a time: ``start_listening`` is accepted from the
    idle state alone, and every exchange ends back in idle whether it succeeds
    or fails. Failures are reported through ``on_error`` and never retried.
    """

    def __init__(
        self,
        *,
        backend: AssistantBackend,
        language: Language = Language.ENGLISH,
        session_factory: Optional[Callable[[], RecordingSession]] = None,
        player: Optional[AudioPlayer] = None,
        intent_classifier: Optional[IntentClassifier] = None,
        on_product_extracted: Optional[ProductCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._backend = backend
        self._language = language
        self._session_factory = session_factory or RecordingSession
        self._player = player or AudioPlayer()
        self._intent = intent_classifier or KeywordIntentClassifier()
        self._on_product_extracted = on_product_extracted
        self._on_error = on_error
        self._state = AssistantState.IDLE
        self._recording: Optional[RecordingSession] = None
        self._history: List[TranscriptTurn] = []

    @property
    def state(self) -> AssistantState:
        return self._state

    @property
    def language(self) -> Language:
        return self._language

    @property
    def history(self) -> tuple[TranscriptTurn, ...]:
        return tuple(self._history)

    async def greet(self) -> None:
        self._require_idle()
        try:
            await self._speak(GREETING)
        except Exception as exc:
            self._fail("greet", exc)
        finally:
            self._state = AssistantState.IDLE

    def start_listening(self) -> None:
        self._require_idle()
        recording = self._session_factory()
        self._state = AssistantState.LISTENING
        try:
            recording.start()
        except MarketplaceError as exc:
            recording.close()
            self._state = AssistantState.IDLE
            self._report(exc)
            raise
        self._recording = recording
        logger.info("assistant.listening", extra={"language": self._language.value})

    async def stop_listening(self) -> Optional[str]:
        """Run one exchange for the current recording.

        Returns the reply, or ``None`` when no reply was produced. Speech and
        extraction failures are reported through ``on_error`` but keep the reply.
        """
        if self._state is not AssistantState.LISTENING or self._recording is None:
            raise CaptureError("No recording in progress.")

        recording, self._recording = self._recording, None
        try:
            self._state = AssistantState.TRANSCRIBING
            try:
                sample = recording.stop()
            finally:
                recording.close()
            user_text = await self._backend.transcribe(sample, language=self._language)
            earlier = list(self._history)
            self._history.append(TranscriptTurn(role=TurnRole.USER, content=user_text))

            self._state = AssistantState.RESPONDING
            reply = await self._backend.chat(self.history, language=self._language)
            self._history.append(TranscriptTurn(role=TurnRole.ASSISTANT, content=reply))
        except Exception as exc:
            self._fail("exchange", exc)
            self._state = AssistantState.IDLE
            return None

        try:
            await self._speak(reply)
        except Exception as exc:
            self._fail("speak", exc)

        try:
            if self._intent.classify(earlier, user_text) is Intent.SELL:
                await self._extract(user_text)
        except Exception as exc:
            self._fail("extract", exc)
        finally:
            self._state = AssistantState.IDLE
        return reply

    def cancel(self) -> None:
        """Abandon the current recording, if any, and return to idle."""
        recording, self._recording = self._recording, None
        if recording is not None:
            recording.close()
        self._state = AssistantState.IDLE

    def reset(self) -> None:
        self.cancel()
        self._history.clear()

    async def _speak(self, text: str) -> None:
        self._state = AssistantState.SPEAKING
        speech = await self._backend.synthesize(text, language=self._language)
        await self._player.play(speech.data)

    async def _extract(self, text: str) -> None:
        draft = await self._backend.extract(text, language=self._language, action=Action.SELL)
        logger.info("assistant.product.extracted", extra={"title": draft.title})
        if self._on_product_extracted is not None:
            result = self._on_product_extracted(draft)
            if inspect.isawaitable(result):
                await result

    def _require_idle(self) -> None:
        if self._state is not AssistantState.IDLE:
            raise AssistantBusyError()

    def _fail(self, stage: str, exc: Exception) -> None:
        if isinstance(exc, MarketplaceError):
            error = exc
            logger.warning("assistant.%s.failed", stage, extra={"error": error.message})
        else:
            logger.exception("assistant.%s.unexpected", stage)
            error = MarketplaceError()
        self._report(error)

    def _report(self, error: MarketplaceError) -> None:
        if self._on_error is not None:
            self._on_error(error)


__all__ = ["AssistantSession", "AssistantState", "AssistantBackend", "GREETING"]
