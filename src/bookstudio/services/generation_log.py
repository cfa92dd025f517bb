"""Records of the content each block/chapter audio was last generated from."""

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bookstudio.database import BlockAudioGenerationLog, ChapterAudioGenerationLog, utcnow
from bookstudio.errors import PersistenceError

logger = logging.getLogger(__name__)


class GenerationLog:
    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def _block_row(
        self, project_id: str, studio_id: str, chapter_id: str, block_id: str
    ) -> BlockAudioGenerationLog | None:
        result = await self.db_session.execute(
            select(BlockAudioGenerationLog).where(
                BlockAudioGenerationLog.project_id == project_id,
                BlockAudioGenerationLog.studio_id == studio_id,
                BlockAudioGenerationLog.chapter_id == chapter_id,
                BlockAudioGenerationLog.block_id == block_id,
            )
        )
        return result.scalar_one_or_none()

    async def _chapter_row(
        self, project_id: str, studio_id: str, chapter_id: str
    ) -> ChapterAudioGenerationLog | None:
        result = await self.db_session.execute(
            select(ChapterAudioGenerationLog).where(
                ChapterAudioGenerationLog.project_id == project_id,
                ChapterAudioGenerationLog.studio_id == studio_id,
                ChapterAudioGenerationLog.chapter_id == chapter_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_block_snapshot(
        self, project_id: str, studio_id: str, chapter_id: str, block_id: str
    ) -> dict[str, Any] | None:
        row = await self._block_row(project_id, studio_id, chapter_id, block_id)
        return row.block_snapshot if row else None

    async def save_block_snapshot(
        self,
        project_id: str,
        studio_id: str,
        chapter_id: str,
        block_id: str,
        block_snapshot: dict[str, Any],
    ) -> bool:
        """Upsert the block snapshot. Returns True when a new row was created."""
        try:
            row = await self._block_row(project_id, studio_id, chapter_id, block_id)
            created = row is None
            if created:
                self.db_session.add(
                    BlockAudioGenerationLog(
                        project_id=project_id,
                        studio_id=studio_id,
                        chapter_id=chapter_id,
                        block_id=block_id,
                        block_snapshot=block_snapshot,
                    )
                )
            else:
                row.block_snapshot = block_snapshot
                row.updated_at = utcnow()
            await self.db_session.commit()
        except SQLAlchemyError as e:
            await self.db_session.rollback()
            raise PersistenceError(f"Failed to save block audio log: {e}") from e

        logger.info(
            f"{'Created' if created else 'Updated'} block audio log for block {block_id} "
            f"(chapter {chapter_id})"
        )
        return created

    async def get_chapter_snapshot(
        self, project_id: str, studio_id: str, chapter_id: str
    ) -> dict[str, Any] | None:
        row = await self._chapter_row(project_id, studio_id, chapter_id)
        return row.chapter_snapshot if row else None

    async def save_chapter_snapshot(
        self,
        project_id: str,
        studio_id: str,
        chapter_id: str,
        chapter_snapshot: dict[str, Any],
    ) -> bool:
        try:
            row = await self._chapter_row(project_id, studio_id, chapter_id)
            created = row is None
            if created:
                self.db_session.add(
                    ChapterAudioGenerationLog(
                        project_id=project_id,
                        studio_id=studio_id,
                        chapter_id=chapter_id,
                        chapter_snapshot=chapter_snapshot,
                    )
                )
            else:
                row.chapter_snapshot = chapter_snapshot
                row.updated_at = utcnow()
            await self.db_session.commit()
        except SQLAlchemyError as e:
            await self.db_session.rollback()
            raise PersistenceError(f"Failed to save chapter audio log: {e}") from e

        logger.info(
            f"{'Created' if created else 'Updated'} chapter audio log for chapter {chapter_id}"
        )
        return created
