from __future__ import annotations

import base64
from dataclasses import dataclass


@dataclass(slots=True)
class AudioSample:
    """Encoded audio for a single recording; discarded after transcription."""

    data: bytes
    mime_type: str

    @property
    def filename(self) -> str:
        subtype = self.mime_type.split("/", 1)[-1].split(";", 1)[0].strip() or "bin"
        return f"audio.{subtype}"

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")
