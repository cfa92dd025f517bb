"""Generation pipeline and cast management building blocks live here."""

from .cast_coordinator import CastVoiceCoordinator
from .generation_orchestrator import GenerationOrchestrator, GenerationResult
