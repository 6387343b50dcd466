"""Intent classification for assistant turns."""

from __future__ import annotations

import abc
import re
from collections.abc import Iterable, Sequence
from enum import Enum

from .models import TranscriptTurn, TurnRole

DEFAULT_SELL_KEYWORDS = ("sell", "selling", "sells", "sale")
DEFAULT_BUY_KEYWORDS = ("buy", "buying", "purchase")

_WORD = re.compile(r"[^\W\d_]+", re.UNICODE)


class Intent(str, Enum):
    SELL = "sell"
    BUY = "buy"
    NONE = "none"


class IntentClassifier(abc.ABC):
    """Decides whether the conversation so far expresses a trading intent."""

    @abc.abstractmethod
    def classify(self, history: Sequence[TranscriptTurn], latest: str) -> Intent:
        raise NotImplementedError


class KeywordIntentClassifier(IntentClassifier):
    """Whole-word keyword heuristic over the user's own turns.

    A selling keyword in the latest utterance or in any earlier user turn wins
    over a buying keyword. Assistant turns are ignored since the assistant
    routinely mentions selling itself.
    """

    def __init__(
        self,
        *,
        sell_keywords: Iterable[str] = DEFAULT_SELL_KEYWORDS,
        buy_keywords: Iterable[str] = DEFAULT_BUY_KEYWORDS,
    ) -> None:
        self._sell = frozenset(word.lower() for word in sell_keywords)
        self._buy = frozenset(word.lower() for word in buy_keywords)

    def classify(self, history: Sequence[TranscriptTurn], latest: str) -> Intent:
        words: set[str] = set(self._words(latest))
        for turn in history:
            if turn.role is TurnRole.USER:
                words.update(self._words(turn.content))
        if words & self._sell:
            return Intent.SELL
        if words & self._buy:
            return Intent.BUY
        return Intent.NONE

    @staticmethod
    def _words(text: str) -> list[str]:
        return [word.lower() for word in _WORD.findall(text or "")]


__all__ = [
    "Intent",
    "IntentClassifier",
    "KeywordIntentClassifier",
    "DEFAULT_SELL_KEYWORDS",
    "DEFAULT_BUY_KEYWORDS",
]
