from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(slots=True)
class AsrOptions:
    language_hint: Optional[str] = None
    prompt: Optional[str] = None


@dataclass(slots=True)
class AsrResult:
    text: str
    language: Optional[str] = None
    provider: Optional[str] = None
