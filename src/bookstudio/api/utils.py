"""FastAPI dependency providers for the services behind the routers."""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bookstudio.api.settings import get_settings
from bookstudio.database import get_db
from bookstudio.infrastructure.spaces import SpacesClient
from bookstudio.infrastructure.tts import ElevenLabsProvider, SpeechProvider
from bookstudio.services.cast_coordinator import (
    CastVoiceCoordinator,
    CelerySideEffects,
    InlineSideEffects,
    SideEffectDispatcher,
)
from bookstudio.services.credit_ledger import CreditLedger
from bookstudio.services.generation_log import GenerationLog
from bookstudio.services.generation_orchestrator import GenerationOrchestrator
from bookstudio.services.speech_synthesis import SpeechSynthesisClient
from bookstudio.services.studio_repository import StudioRepository


@lru_cache
def get_speech_provider() -> SpeechProvider:
    return ElevenLabsProvider()


@lru_cache
def get_spaces_client() -> SpacesClient:
    return SpacesClient()


def get_side_effects(
    provider: SpeechProvider = Depends(get_speech_provider),
) -> SideEffectDispatcher:
    if get_settings().side_effects_backend == "inline":
        return InlineSideEffects(provider)
    return CelerySideEffects()


def get_repository(db: AsyncSession = Depends(get_db)) -> StudioRepository:
    return StudioRepository(db)


def get_ledger(db: AsyncSession = Depends(get_db)) -> CreditLedger:
    return CreditLedger(db)


def get_generation_log(db: AsyncSession = Depends(get_db)) -> GenerationLog:
    return GenerationLog(db)


def get_synthesis_client(
    provider: SpeechProvider = Depends(get_speech_provider),
) -> SpeechSynthesisClient:
    return SpeechSynthesisClient(provider)


def get_orchestrator(
    repository: StudioRepository = Depends(get_repository),
    ledger: CreditLedger = Depends(get_ledger),
    synthesis: SpeechSynthesisClient = Depends(get_synthesis_client),
    store: SpacesClient = Depends(get_spaces_client),
    generation_log: GenerationLog = Depends(get_generation_log),
) -> GenerationOrchestrator:
    return GenerationOrchestrator(
        repository=repository,
        ledger=ledger,
        synthesis=synthesis,
        store=store,
        generation_log=generation_log,
    )


def get_cast_coordinator(
    repository: StudioRepository = Depends(get_repository),
    side_effects: SideEffectDispatcher = Depends(get_side_effects),
) -> CastVoiceCoordinator:
    return CastVoiceCoordinator(repository, side_effects)
