from __future__ import annotations

import abc

from ...audio.types import AudioSample
from ..types import AsrOptions, AsrResult


class AsrProvider(abc.ABC):
    """Interface for ASR providers."""

    name: str

    @abc.abstractmethod
    async def transcribe(self, *, sample: AudioSample, options: AsrOptions) -> AsrResult:
        """Produce a transcription for the provided audio."""
        raise NotImplementedError

    async def close(self) -> None:
        return None
