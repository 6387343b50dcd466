from __future__ import annotations

from ...audio.types import AudioSample
from ..types import AsrOptions, AsrResult
from .base import AsrProvider


class MockAsrProvider(AsrProvider):
    name = "mock"

    def __init__(self, *, text: str = "I am selling five bags of rice at 20 cedis in Accra") -> None:
        self._text = text

    async def transcribe(self, *, sample: AudioSample, options: AsrOptions) -> AsrResult:
        return AsrResult(text=self._text, language=options.language_hint, provider=self.name)
