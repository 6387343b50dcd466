"""Supported languages and the assistant persona configured for each."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

_PERSONA_TAIL = (
    "Help traders buy and sell products. Be warm, patient, and helpful. Keep responses concise. "
    "When users describe products, extract: name, price, quantity, location."
)


class Language(str, Enum):
    TWI = "twi"
    GA = "ga"
    HAUSA = "hausa"
    ENGLISH = "english"

    @classmethod
    def parse(cls, value: Optional[str], default: "Language | None" = None) -> "Language":
        """Resolve a loose language hint, falling back to ``default`` (English)."""
        fallback = default or cls.ENGLISH
        if value is None:
            return fallback
        normalized = str(value).strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        return fallback


@dataclass(frozen=True)
class Persona:
    name: Optional[str]
    system_prompt: str


DEFAULT_PERSONA = Persona(
    name=None,
    system_prompt=(
        "You are a friendly Ghanaian marketplace assistant. Help traders buy and sell products using "
        "simple English. Be warm, patient, and helpful. Keep responses concise and clear. "
        "When users describe products, extract: name, price, quantity, location."
    ),
)

PERSONAS: dict[Language, Persona] = {
    Language.TWI: Persona(
        name="Akua",
        system_prompt=f"You are Akua, a friendly Ghanaian marketplace assistant speaking Twi. {_PERSONA_TAIL}",
    ),
    Language.GA: Persona(
        name="Tetteh",
        system_prompt=f"You are Tetteh, a friendly Ghanaian marketplace assistant speaking Ga. {_PERSONA_TAIL}",
    ),
    Language.HAUSA: Persona(
        name="Amina",
        system_prompt=f"You are Amina, a friendly Ghanaian marketplace assistant speaking Hausa. {_PERSONA_TAIL}",
    ),
    Language.ENGLISH: DEFAULT_PERSONA,
}


def persona_for(language: Language) -> Persona:
    return PERSONAS.get(language, DEFAULT_PERSONA)


__all__ = ["Language", "Persona", "PERSONAS", "DEFAULT_PERSONA", "persona_for"]
