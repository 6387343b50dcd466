from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Optional

from .types import AudioSample


@dataclass(slots=True)
class IngestLimits:
    max_bytes: int


class AudioIngestor:
    """Parses inbound base64 payloads into AudioSample objects."""

    def __init__(self, *, limits: IngestLimits) -> None:
        self._limits = limits

    def from_base64(self, encoded: Optional[str], *, mime_type: str) -> AudioSample:
        if not isinstance(encoded, str) or not encoded.strip():
            raise ValueError("audio required")
        # Tolerate data URLs as produced by FileReader.readAsDataURL.
        if encoded.startswith("data:") and "," in encoded:
            encoded = encoded.split(",", 1)[1]
        try:
            data = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError("invalid audio encoding") from exc
        return self.from_bytes(data, mime_type=mime_type)

    def from_bytes(self, data: bytes, *, mime_type: str) -> AudioSample:
        if not data:
            raise ValueError("audio required")
        self._enforce_size(len(data))
        return AudioSample(data=data, mime_type=mime_type)

    def _enforce_size(self, size: int) -> None:
        if size > self._limits.max_bytes:
            raise ValueError("audio payload exceeds configured size limit")
