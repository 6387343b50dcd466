"""Speech-to-text for marketplace recordings."""

from .service import AsrService, build_prompt
from .types import AsrOptions, AsrResult

__all__ = ["AsrService", "AsrOptions", "AsrResult", "build_prompt"]
