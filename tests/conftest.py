import dataclasses
from typing import Any

import pytest

from sakanka.settings import Settings, load_settings


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: unit tests")
    config.addinivalue_line("markers", "integration: integration tests")


@pytest.fixture
def make_settings(monkeypatch):
    """Build Settings from a clean environment, replacing whole sections by keyword."""

    for name in ("ENABLE_REAL_LLM", "ASR_PROVIDER", "TTS_PROVIDER", "BACKEND_PROVIDER", "OPENAI_API_KEY"):
        monkeypatch.delenv(name, raising=False)

    def _make(**sections: Any) -> Settings:
        base = load_settings()
        updates = {}
        for section, overrides in sections.items():
            current = getattr(base, section)
            updates[section] = dataclasses.replace(current, **overrides)
        return dataclasses.replace(base, **updates)

    return _make
