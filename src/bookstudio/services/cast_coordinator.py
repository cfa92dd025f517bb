"""Cast roster changes and the provider calls they trigger.

The roster and chapter content live on the studio row. Provider updates
(voice settings, chapter content) are best-effort and never fail a roster
change; they run through a ``SideEffectDispatcher`` so production can hand
them to Celery while tests and single-process setups await them inline.
"""

from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any

from bookstudio.errors import NotFoundError, ValidationError
from bookstudio.infrastructure.tts.base import ProviderError, SpeechProvider
from bookstudio.models import (
    AddCastMemberRequest,
    CastMember,
    ChapterRecord,
    EditCastMemberRequest,
)
from bookstudio.services.studio_repository import StudioRepository

logger = logging.getLogger(__name__)


class SideEffectDispatcher(ABC):
    @abstractmethod
    async def push_voice_settings(self, voice_id: str, settings: dict[str, Any]) -> None: ...

    @abstractmethod
    async def push_chapter_content(
        self, studio_id: str, chapter_id: str, content: dict[str, Any]
    ) -> None: ...


class InlineSideEffects(SideEffectDispatcher):
    """Await the provider call in the request and log failures."""

    def __init__(self, provider: SpeechProvider):
        self.provider = provider

    async def push_voice_settings(self, voice_id: str, settings: dict[str, Any]) -> None:
        try:
            await self.provider.update_voice_settings(voice_id, settings)
            logger.info(f"Voice settings updated for {voice_id}")
        except ProviderError as e:
            logger.warning(f"Failed to update voice settings for {voice_id}: {e}")

    async def push_chapter_content(
        self, studio_id: str, chapter_id: str, content: dict[str, Any]
    ) -> None:
        try:
            await self.provider.update_chapter_content(studio_id, chapter_id, content)
            logger.info(f"Chapter {chapter_id} content pushed to provider")
        except ProviderError as e:
            logger.warning(f"Failed to push chapter {chapter_id} to provider: {e}")


class CelerySideEffects(SideEffectDispatcher):
    """Queue provider calls on the worker, which retries them."""

    async def push_voice_settings(self, voice_id: str, settings: dict[str, Any]) -> None:
        from bookstudio.worker.tasks import push_voice_settings

        try:
            push_voice_settings.delay(voice_id, settings)
        except Exception as e:
            logger.error(f"Failed to enqueue voice settings push for {voice_id}: {e}")

    async def push_chapter_content(
        self, studio_id: str, chapter_id: str, content: dict[str, Any]
    ) -> None:
        from bookstudio.worker.tasks import push_chapter_content

        try:
            push_chapter_content.delay(studio_id, chapter_id, content)
        except Exception as e:
            logger.error(f"Failed to enqueue content push for chapter {chapter_id}: {e}")


def revert_voice(
    chapters: list[ChapterRecord], voice_id: str, original_voice_id: str
) -> tuple[list[ChapterRecord], list[ChapterRecord]]:
    """Point every node voiced by *voice_id* back at *original_voice_id*.

    Returns ``(all_chapters, changed_chapters)``, both in roster order.
    Nodes with any other voice are left untouched, and nothing changes when
    the two ids are the same.
    """
    if voice_id == original_voice_id:
        return list(chapters), []
    updated: list[ChapterRecord] = []
    changed: list[ChapterRecord] = []
    for chapter in chapters:
        chapter_changed = False
        blocks = []
        for block in chapter.blocks:
            if any(node.voice_id == voice_id for node in block.nodes):
                block = block.with_nodes(
                    [
                        node.model_copy(update={"voice_id": original_voice_id})
                        if node.voice_id == voice_id
                        else node
                        for node in block.nodes
                    ]
                )
                chapter_changed = True
            blocks.append(block)
        if chapter_changed:
            chapter = chapter.with_blocks(blocks)
            changed.append(chapter)
        updated.append(chapter)
    return updated, changed


class CastVoiceCoordinator:
    def __init__(self, repository: StudioRepository, side_effects: SideEffectDispatcher):
        self.repository = repository
        self.side_effects = side_effects

    async def list_cast(self, studio_id: str) -> list[CastMember]:
        return await self.repository.get_cast(studio_id)

    async def add_cast_member(
        self, studio_id: str, request: AddCastMemberRequest
    ) -> tuple[CastMember, list[CastMember]]:
        cast = await self.repository.get_cast(studio_id)

        if request.override_settings is not None:
            await self.side_effects.push_voice_settings(
                request.voice_id, request.override_settings.to_voice_settings()
            )

        member = CastMember(
            id=str(uuid.uuid4()),
            nickname=request.nickname,
            original_voice_id=request.voice_id,
            voice_id=request.voice_id,
            override_globally=request.override_globally,
            override_settings=request.override_settings,
        )
        cast = [*cast, member]
        await self.repository.save_studio(studio_id, cast=cast)
        logger.info(f"Added cast member {member.id} ({member.nickname}) to studio {studio_id}")
        return member, cast

    async def edit_cast_member(
        self, studio_id: str, cast_id: str, request: EditCastMemberRequest
    ) -> tuple[CastMember, list[CastMember]]:
        if not cast_id:
            raise ValidationError("Missing required fields")
        cast = await self.repository.get_cast(studio_id)
        index = _index_of(cast, cast_id)

        current = cast[index]
        override_globally = (
            request.override_globally
            if request.override_globally is not None
            else current.override_globally
        )
        member = current.model_copy(
            update={
                "nickname": request.nickname or current.nickname,
                "voice_id": request.voice_id or current.voice_id,
                "override_globally": override_globally,
                "override_settings": (
                    (request.override_settings or current.override_settings)
                    if override_globally
                    else None
                ),
            }
        )
        cast = [*cast[:index], member, *cast[index + 1 :]]
        await self.repository.save_studio(studio_id, cast=cast)
        return member, cast

    async def delete_cast_member(self, studio_id: str, cast_id: str) -> list[CastMember]:
        if not cast_id:
            raise ValidationError("Missing required fields")
        cast = await self.repository.get_cast(studio_id)
        index = _index_of(cast, cast_id)
        member = cast[index]

        chapters = await self.repository.get_chapters(studio_id)
        chapters, changed = revert_voice(chapters, member.voice_id, member.original_voice_id)
        remaining = [*cast[:index], *cast[index + 1 :]]

        await self.repository.save_studio(studio_id, chapters=chapters, cast=remaining)
        logger.info(
            f"Removed cast member {cast_id}; reverted voice {member.voice_id} -> "
            f"{member.original_voice_id} in {len(changed)} chapters"
        )

        for chapter in changed:
            content = chapter.content_json.model_dump(mode="json", exclude_unset=True)
            await self.side_effects.push_chapter_content(studio_id, chapter.id, content)
        return remaining


def _index_of(cast: list[CastMember], cast_id: str) -> int:
    for i, member in enumerate(cast):
        if member.id == cast_id:
            return i
    raise NotFoundError("Cast member not found")
