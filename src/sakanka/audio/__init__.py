"""Audio capture, ingestion and playback."""

from .capture import RecordingSession
from .ingest import AudioIngestor, IngestLimits
from .playback import AudioPlayer
from .types import AudioSample

__all__ = [
    "AudioIngestor",
    "IngestLimits",
    "AudioPlayer",
    "AudioSample",
    "RecordingSession",
]
