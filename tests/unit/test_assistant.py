from typing import List

import numpy as np
import pytest

from sakanka.assistant import GREETING, AssistantSession, AssistantState
from sakanka.audio.capture import RecordingSession
from sakanka.errors import (
    AssistantBusyError,
    CaptureError,
    DeviceUnavailableError,
    RateLimitedError,
    UpstreamError,
)
from sakanka.languages import Language
from sakanka.models import ProductDraft, TurnRole
from sakanka.tts.base import SpeechAudio


class _FakeStream:
    def __init__(self, *, fail: bool = False, **kwargs) -> None:
        self.callback = kwargs["callback"]
        self.fail = fail
        self.closed = False

    def start(self):
        if self.fail:
            raise OSError("no input device")
        frames = np.zeros((160, 1), dtype=np.int16)
        self.callback(frames, 160, None, None)

    def stop(self):
        pass

    def close(self):
        self.closed = True


class _Sessions:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.streams: List[_FakeStream] = []

    def __call__(self) -> RecordingSession:
        return RecordingSession(stream_factory=self._stream)

    def _stream(self, **kwargs):
        stream = _FakeStream(fail=self.fail, **kwargs)
        self.streams.append(stream)
        return stream


class _Player:
    def __init__(self) -> None:
        self.played: List[bytes] = []

    async def play(self, audio: bytes) -> None:
        self.played.append(audio)


class _Backend:
    def __init__(self, transcripts: List[str], *, chat_error=None, speak_error=None) -> None:
        self.transcripts = list(transcripts)
        self.chat_error = chat_error
        self.speak_error = speak_error
        self.chat_calls = []
        self.spoken: List[str] = []
        self.extracted: List[str] = []
        self.observed_states: List[AssistantState] = []
        self.session = None

    def _observe(self):
        if self.session is not None:
            self.observed_states.append(self.session.state)

    async def transcribe(self, sample, *, language):
        self._observe()
        return self.transcripts.pop(0)

    async def chat(self, history, *, language):
        self._observe()
        self.chat_calls.append([turn.content for turn in history])
        if self.chat_error is not None:
            raise self.chat_error
        return f"reply {len(self.chat_calls)}"

    async def synthesize(self, text, *, language):
        self._observe()
        self.spoken.append(text)
        if self.speak_error is not None:
            raise self.speak_error
        return SpeechAudio(data=b"RIFF", format="wav")

    async def extract(self, text, *, language, action):
        self.extracted.append(text)
        return ProductDraft(title="Rice", description=text, language=language, original_text=text)


def _session(backend, sessions=None, **kwargs) -> AssistantSession:
    session = AssistantSession(
        backend=backend,
        language=Language.TWI,
        session_factory=sessions or _Sessions(),
        player=_Player(),
        **kwargs,
    )
    backend.session = session
    return session


async def _exchange(session: AssistantSession):
    session.start_listening()
    return await session.stop_listening()


@pytest.mark.asyncio
async def test_greet_speaks_fixed_greeting_and_returns_to_idle():
    backend = _Backend([])
    session = _session(backend)

    await session.greet()

    assert backend.spoken == [GREETING]
    assert backend.observed_states == [AssistantState.SPEAKING]
    assert session.state is AssistantState.IDLE
    assert session.history == ()


@pytest.mark.asyncio
async def test_exchange_walks_through_states_and_records_turns():
    backend = _Backend(["Hello there"])
    session = _session(backend)

    reply = await _exchange(session)

    assert reply == "reply 1"
    assert backend.observed_states == [
        AssistantState.TRANSCRIBING,
        AssistantState.RESPONDING,
        AssistantState.SPEAKING,
    ]
    assert [(t.role, t.content) for t in session.history] == [
        (TurnRole.USER, "Hello there"),
        (TurnRole.ASSISTANT, "reply 1"),
    ]
    assert session.state is AssistantState.IDLE


@pytest.mark.asyncio
async def test_history_grows_two_turns_per_exchange_and_is_sent_whole():
    backend = _Backend(["one", "two", "three"])
    session = _session(backend)

    for _ in range(3):
        await _exchange(session)

    assert len(session.history) == 6
    assert backend.chat_calls[-1] == ["one", "reply 1", "two", "reply 2", "three"]


@pytest.mark.asyncio
async def test_start_listening_only_from_idle():
    sessions = _Sessions()
    session = _session(_Backend(["x"]), sessions)
    session.start_listening()

    with pytest.raises(AssistantBusyError):
        session.start_listening()

    assert len(sessions.streams) == 1
    session.cancel()
    assert sessions.streams[0].closed
    assert session.state is AssistantState.IDLE


@pytest.mark.asyncio
async def test_greet_while_listening_is_rejected():
    session = _session(_Backend(["x"]))
    session.start_listening()

    with pytest.raises(AssistantBusyError):
        await session.greet()
    session.cancel()


@pytest.mark.asyncio
async def test_stop_without_recording_is_rejected():
    session = _session(_Backend([]))

    with pytest.raises(CaptureError):
        await session.stop_listening()


@pytest.mark.asyncio
async def test_selling_intent_triggers_extraction():
    drafts = []
    backend = _Backend(["I want to sell rice", "Twenty cedis"])
    session = _session(backend, on_product_extracted=drafts.append)

    await _exchange(session)
    await _exchange(session)

    assert backend.extracted == ["I want to sell rice", "Twenty cedis"]
    assert [d.original_text for d in drafts] == ["I want to sell rice", "Twenty cedis"]


@pytest.mark.asyncio
async def test_async_extraction_callback_is_awaited():
    drafts = []

    async def collect(draft):
        drafts.append(draft)

    session = _session(_Backend(["selling yams"]), on_product_extracted=collect)

    await _exchange(session)

    assert len(drafts) == 1


@pytest.mark.asyncio
async def test_no_extraction_without_selling_intent():
    backend = _Backend(["What is the weather like"])
    session = _session(backend, on_product_extracted=lambda draft: pytest.fail("unexpected draft"))

    await _exchange(session)

    assert backend.extracted == []


@pytest.mark.asyncio
async def test_failure_reports_error_and_returns_to_idle():
    errors = []
    backend = _Backend(["sell rice"], chat_error=RateLimitedError(service="assistant"))
    sessions = _Sessions()
    session = _session(backend, sessions, on_error=errors.append)

    reply = await _exchange(session)

    assert reply is None
    assert session.state is AssistantState.IDLE
    assert [type(e) for e in errors] == [RateLimitedError]
    assert sessions.streams[0].closed
    assert len(backend.chat_calls) == 1
    assert backend.extracted == []


@pytest.mark.asyncio
async def test_speech_failure_keeps_reply_and_still_extracts():
    errors = []
    drafts = []
    backend = _Backend(["I am selling rice"], speak_error=UpstreamError("tts down", service="speech synthesis"))
    session = _session(backend, on_error=errors.append, on_product_extracted=drafts.append)

    reply = await _exchange(session)

    assert reply == "reply 1"
    assert backend.extracted == ["I am selling rice"]
    assert len(drafts) == 1
    assert [type(e) for e in errors] == [UpstreamError]
    assert len(session.history) == 2
    assert session.state is AssistantState.IDLE


@pytest.mark.asyncio
async def test_unexpected_speech_failure_is_reported_generically():
    errors = []
    backend = _Backend(["hello"], speak_error=OSError("audio device gone"))
    session = _session(backend, on_error=errors.append)

    reply = await _exchange(session)

    assert reply == "reply 1"
    assert session.state is AssistantState.IDLE
    assert len(errors) == 1
    assert errors[0].message == "Could not process your request. Please try again."


class _ReentrantBackend(_Backend):
    """Tries to open a second recording while an exchange is in flight."""

    def __init__(self, transcripts: List[str], *, during: str) -> None:
        super().__init__(transcripts)
        self.during = during
        self.rejected: List[AssistantState] = []

    def _try_start(self, stage: str) -> None:
        if stage != self.during:
            return
        with pytest.raises(AssistantBusyError):
            self.session.start_listening()
        self.rejected.append(self.session.state)

    async def chat(self, history, *, language):
        self._try_start("chat")
        return await super().chat(history, language=language)

    async def synthesize(self, text, *, language):
        self._try_start("synthesize")
        return await super().synthesize(text, language=language)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "during, expected_state",
    [("chat", AssistantState.RESPONDING), ("synthesize", AssistantState.SPEAKING)],
)
async def test_start_listening_rejected_while_responding_or_speaking(during, expected_state):
    sessions = _Sessions()
    backend = _ReentrantBackend(["hello"], during=during)
    session = _session(backend, sessions)

    reply = await _exchange(session)

    assert backend.rejected == [expected_state]
    assert len(sessions.streams) == 1
    assert reply == "reply 1"
    assert session.state is AssistantState.IDLE


@pytest.mark.asyncio
async def test_extraction_failure_keeps_reply():
    errors = []

    class _FailingExtract(_Backend):
        async def extract(self, text, *, language, action):
            raise RateLimitedError(service="extraction")

    backend = _FailingExtract(["selling yams"])
    session = _session(backend, on_error=errors.append)

    reply = await _exchange(session)

    assert reply == "reply 1"
    assert [type(e) for e in errors] == [RateLimitedError]
    assert session.state is AssistantState.IDLE


@pytest.mark.asyncio
async def test_device_failure_keeps_session_idle():
    errors = []
    session = _session(_Backend([]), _Sessions(fail=True), on_error=errors.append)

    with pytest.raises(DeviceUnavailableError):
        session.start_listening()

    assert session.state is AssistantState.IDLE
    assert [type(e) for e in errors] == [DeviceUnavailableError]
