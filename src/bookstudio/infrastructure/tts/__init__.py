"""Text-to-speech provider implementations."""

from .base import ProviderError, Snapshot, SpeechProvider
from .elevenlabs_provider import ElevenLabsProvider

__all__ = [
    "ElevenLabsProvider",
    "ProviderError",
    "Snapshot",
    "SpeechProvider",
]
