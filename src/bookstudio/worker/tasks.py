"""Provider pushes that must not fail the request that caused them."""

import asyncio
import logging

from bookstudio.infrastructure.tts import ElevenLabsProvider

from .celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(
    name="bookstudio.worker.tasks.push_voice_settings",
    autoretry_for=(Exception,),
    retry_kwargs={"max_retries": 3, "countdown": 10},
    retry_backoff=True,
)
def push_voice_settings(voice_id, settings):
    logger.info(f"[Celery] Pushing voice settings for {voice_id}")
    asyncio.run(ElevenLabsProvider().update_voice_settings(voice_id, settings))
    return f"Voice settings updated: {voice_id}"


@celery_app.task(
    name="bookstudio.worker.tasks.push_chapter_content",
    autoretry_for=(Exception,),
    retry_kwargs={"max_retries": 3, "countdown": 10},
    retry_backoff=True,
)
def push_chapter_content(studio_id, chapter_id, content):
    """Replace the provider's copy of a chapter after a local voice rewrite."""
    logger.info(f"[Celery] Pushing chapter {chapter_id} of studio {studio_id}")
    asyncio.run(ElevenLabsProvider().update_chapter_content(studio_id, chapter_id, content))
    return f"Chapter content pushed: {chapter_id}"
