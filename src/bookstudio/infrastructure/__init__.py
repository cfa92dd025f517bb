"""I/O boundary adapters (object storage, speech provider)."""

from .spaces import SpacesClient, StoredArtifact
from .tts import ElevenLabsProvider, ProviderError, Snapshot, SpeechProvider

__all__ = [
    "ElevenLabsProvider",
    "ProviderError",
    "Snapshot",
    "SpacesClient",
    "SpeechProvider",
    "StoredArtifact",
]
