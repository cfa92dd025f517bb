"""Provider voice settings, expressed in the studio's UI terms."""

import logging

from fastapi import APIRouter, Depends

from bookstudio.api.auth import get_current_principal
from bookstudio.models import OverrideSettings, VoiceSettingsResponse
from bookstudio.services.speech_synthesis import SpeechSynthesisClient

from .utils import get_synthesis_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/voices", tags=["Voices"])


@router.get("/{voice_id}/settings", response_model=VoiceSettingsResponse)
async def get_voice_settings(
    voice_id: str,
    principal_id: str = Depends(get_current_principal),
    synthesis: SpeechSynthesisClient = Depends(get_synthesis_client),
) -> VoiceSettingsResponse:
    logger.info(f"Voice settings for {voice_id} requested by {principal_id}")
    settings = await synthesis.get_voice_settings(voice_id)
    return VoiceSettingsResponse(
        message="Voice settings retrieved successfully", voice_id=voice_id, settings=settings
    )


@router.put("/{voice_id}/settings", response_model=VoiceSettingsResponse)
async def update_voice_settings(
    voice_id: str,
    settings: OverrideSettings,
    principal_id: str = Depends(get_current_principal),
    synthesis: SpeechSynthesisClient = Depends(get_synthesis_client),
) -> VoiceSettingsResponse:
    """Replace the provider's stored settings for a voice; unset fields take defaults."""
    logger.info(f"Voice settings for {voice_id} updated by {principal_id}")
    await synthesis.update_voice_settings(voice_id, settings)
    return VoiceSettingsResponse(
        message="Voice settings updated successfully", voice_id=voice_id, settings=settings
    )
