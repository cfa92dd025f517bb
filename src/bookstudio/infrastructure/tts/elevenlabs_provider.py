from __future__ import annotations

import inspect
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from elevenlabs import VoiceSettings
from elevenlabs.client import AsyncElevenLabs
from elevenlabs.core.api_error import ApiError

from bookstudio.api.settings import Settings, get_settings
from bookstudio.infrastructure.tts.base import ProviderError, Snapshot, SpeechProvider

logger = logging.getLogger(__name__)


async def _read_audio(result: Any) -> bytes:
    """Drain an SDK audio response (awaitable, async iterator or bytes) into one buffer."""
    if inspect.isawaitable(result):
        result = await result
    if isinstance(result, bytes | bytearray):
        return bytes(result)
    chunks = bytearray()
    async for chunk in result:
        if isinstance(chunk, bytes | bytearray):
            chunks.extend(chunk)
    return bytes(chunks)


@asynccontextmanager
async def _provider_call(operation: str) -> AsyncIterator[None]:
    try:
        yield
    except ApiError as e:
        logger.error(f"ElevenLabs {operation} failed: {e.status_code} - {e.body}")
        raise ProviderError(f"ElevenLabs {operation} failed: {e.body}", e.status_code) from e
    except ProviderError:
        raise
    except Exception as e:
        logger.error(f"ElevenLabs {operation} failed: {type(e).__name__}: {e}")
        raise ProviderError(f"ElevenLabs {operation} failed: {e}") from e


class ElevenLabsProvider(SpeechProvider):
    """Speech provider backed by the ElevenLabs text-to-speech and Studio APIs."""

    name: str = "eleven"

    def __init__(
        self,
        api_key: str | None = None,
        settings: Settings | None = None,
        client: AsyncElevenLabs | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.model_id = settings.eleven_labs_model_id
        self.output_format = settings.eleven_labs_output_format
        if client is not None:
            self.client = client
            return
        key = api_key or settings.eleven_labs_api_key
        if not key:
            raise ValueError("ElevenLabs API key not found. Set ELEVEN_LABS_API_KEY or pass api_key.")
        self.client = AsyncElevenLabs(api_key=key)

    async def synthesize(self, *, text: str, voice_id: str) -> bytes:
        async with _provider_call("text-to-speech"):
            stream = self.client.text_to_speech.convert(
                voice_id=voice_id,
                text=text,
                model_id=self.model_id,
                output_format=self.output_format,
            )
            return await _read_audio(stream)

    async def convert_chapter(self, studio_id: str, chapter_id: str) -> None:
        logger.info(f"Converting chapter {chapter_id} in studio {studio_id}")
        async with _provider_call("chapter convert"):
            await self.client.studio.projects.chapters.convert(studio_id, chapter_id)

    async def convert_project(self, studio_id: str) -> None:
        logger.info(f"Converting studio project {studio_id}")
        async with _provider_call("project convert"):
            await self.client.studio.projects.convert(studio_id)

    async def list_chapter_snapshots(self, studio_id: str, chapter_id: str) -> list[Snapshot]:
        async with _provider_call("chapter snapshots"):
            response = await self.client.studio.projects.chapters.snapshots.list(
                studio_id, chapter_id
            )
        return [
            Snapshot(
                snapshot_id=s.chapter_snapshot_id,
                created_at_unix=int(s.created_at_unix),
                name=getattr(s, "name", None),
            )
            for s in response.snapshots or []
        ]

    async def list_project_snapshots(self, studio_id: str) -> list[Snapshot]:
        async with _provider_call("project snapshots"):
            response = await self.client.studio.projects.snapshots.list(studio_id)
        return [
            Snapshot(
                snapshot_id=s.project_snapshot_id,
                created_at_unix=int(s.created_at_unix),
                name=getattr(s, "name", None),
            )
            for s in response.snapshots or []
        ]

    async def stream_chapter_snapshot(
        self, studio_id: str, chapter_id: str, snapshot_id: str
    ) -> bytes:
        async with _provider_call("chapter snapshot stream"):
            stream = self.client.studio.projects.chapters.snapshots.stream(
                studio_id, chapter_id, snapshot_id, convert_to_mpeg=True
            )
            return await _read_audio(stream)

    async def stream_project_snapshot(self, studio_id: str, snapshot_id: str) -> bytes:
        async with _provider_call("project snapshot stream"):
            stream = self.client.studio.projects.snapshots.stream(
                studio_id, snapshot_id, convert_to_mpeg=True
            )
            return await _read_audio(stream)

    async def get_voice_settings(self, voice_id: str) -> dict[str, Any]:
        async with _provider_call("voice settings read"):
            settings = await self.client.voices.settings.get(voice_id)
        return settings.model_dump(exclude_none=True)

    async def update_voice_settings(self, voice_id: str, settings: dict[str, Any]) -> None:
        async with _provider_call("voice settings update"):
            await self.client.voices.settings.update(voice_id, request=VoiceSettings(**settings))

    async def update_chapter_content(
        self, studio_id: str, chapter_id: str, content: dict[str, Any]
    ) -> None:
        async with _provider_call("chapter update"):
            await self.client.studio.projects.chapters.update(
                studio_id, chapter_id, content=content
            )
