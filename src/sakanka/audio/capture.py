from __future__ import annotations

import io
import logging
import threading
from typing import Any, Callable, List, Optional

try:  # pragma: no cover - optional dependency guard
    import numpy as np
except Exception:  # pragma: no cover
    np = None  # type: ignore[assignment]

try:  # pragma: no cover - PortAudio may be missing on headless hosts
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore[assignment]

try:  # pragma: no cover - optional dependency guard
    import soundfile as sf
except Exception:  # pragma: no cover
    sf = None  # type: ignore[assignment]

from ..errors import CaptureError, DeviceUnavailableError
from .types import AudioSample

logger = logging.getLogger(__name__)

StreamFactory = Callable[..., Any]


class RecordingSession:
    """Owns one microphone stream and the chunks it produces.

    ``close()`` is the only teardown path; ``stop()``, failed starts and
    ``__exit__`` all go through it, so the device is released on every exit.
    """

    def __init__(
        self,
        *,
        sample_rate: int = 16000,
        channels: int = 1,
        device: Optional[str] = None,
        stream_factory: Optional[StreamFactory] = None,
    ) -> None:
        self._sample_rate = sample_rate
        self._channels = channels
        self._device = device
        self._stream_factory = stream_factory
        self._stream: Any = None
        self._chunks: List[Any] = []
        self._lock = threading.Lock()

    @property
    def is_recording(self) -> bool:
        return self._stream is not None

    def start(self) -> None:
        with self._lock:
            if self._stream is not None:
                raise CaptureError()
            self._chunks = []
            factory = self._stream_factory or self._default_factory()
            stream = None
            try:
                stream = factory(
                    samplerate=self._sample_rate,
                    channels=self._channels,
                    dtype="int16",
                    device=self._device,
                    callback=self._on_chunk,
                )
                stream.start()
            except Exception as exc:
                logger.warning("capture.start.failed", extra={"error": repr(exc)})
                self._release(stream)
                self._chunks = []
                raise DeviceUnavailableError() from exc
            self._stream = stream
        logger.info("capture.start", extra={"sample_rate": self._sample_rate, "channels": self._channels})

    def stop(self) -> AudioSample:
        if self._stream is None:
            raise CaptureError("No recording in progress.")
        chunks = list(self._chunks)
        self.close()
        sample = AudioSample(data=self._encode_wav(chunks), mime_type="audio/wav")
        logger.info("capture.stop", extra={"chunks": len(chunks), "bytes": len(sample.data)})
        return sample

    def close(self) -> None:
        with self._lock:
            stream, self._stream = self._stream, None
            self._chunks = []
        self._release(stream)

    def __enter__(self) -> "RecordingSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _on_chunk(self, indata, frames, time_info, status) -> None:
        if status:
            logger.warning("capture.chunk.status", extra={"status": str(status)})
        self._chunks.append(indata.copy())

    def _default_factory(self) -> StreamFactory:
        if sd is None:
            raise DeviceUnavailableError("Audio input is not available on this system.")
        return sd.InputStream

    def _release(self, stream: Any) -> None:
        if stream is None:
            return
        try:
            stream.stop()
        except Exception:  # pragma: no cover - best effort cleanup
            logger.debug("capture.stream.stop_failed", exc_info=True)
        try:
            stream.close()
        except Exception:  # pragma: no cover - best effort cleanup
            logger.debug("capture.stream.close_failed", exc_info=True)

    def _encode_wav(self, chunks: List[Any]) -> bytes:
        if np is None or sf is None:
            raise CaptureError("numpy and soundfile are required to encode recordings.")
        if chunks:
            frames = np.concatenate(chunks, axis=0)
        else:
            frames = np.zeros((0, self._channels), dtype=np.int16)
        buffer = io.BytesIO()
        sf.write(buffer, frames, self._sample_rate, format="WAV", subtype="PCM_16")
        return buffer.getvalue()


__all__ = ["RecordingSession"]
