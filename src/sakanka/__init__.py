"""Voice-driven marketplace: speech to structured product listings."""

__version__ = "0.1.0"
