"""Project/studio document access.

Chapters and cast are stored as whole JSON values on the studio row and are
always replaced wholesale; concurrent writers are last-write-wins.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bookstudio.database import Gallery, Project, Studio, utcnow
from bookstudio.errors import NotFoundError, PersistenceError, ValidationError
from bookstudio.models import (
    CastMember,
    ChapterRecord,
    dump_cast,
    dump_chapters,
    parse_cast,
    parse_chapters,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProjectContext:
    """A project the principal may access, with its studio content loaded."""

    project_id: str
    studio_id: str
    gallery_id: str | None
    chapters: list[ChapterRecord]

    def find_chapter(self, chapter_id: str) -> ChapterRecord:
        for chapter in self.chapters:
            if chapter.id == chapter_id:
                return chapter
        raise NotFoundError("Chapter not found")


class StudioRepository:
    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def get_project(self, principal_id: str, project_id: str) -> Project:
        """Return the project if *principal_id* owns it or is on its access list."""
        if not project_id:
            raise ValidationError("project_id is required")
        project = await self.db_session.get(Project, project_id)
        if project is None or not project.is_accessible_by(principal_id):
            # Same answer for missing and forbidden projects.
            raise NotFoundError("Project not found or access denied")
        if not project.studio_id:
            raise NotFoundError("No studio associated with this project")
        return project

    async def ensure_studio_access(self, principal_id: str, studio_id: str) -> None:
        """Raise ``NotFoundError`` unless a project the principal can access uses *studio_id*."""
        result = await self.db_session.execute(
            select(Project).where(Project.studio_id == studio_id)
        )
        if not any(project.is_accessible_by(principal_id) for project in result.scalars()):
            raise NotFoundError("Studio not found or access denied")

    async def get_studio(self, studio_id: str) -> Studio:
        studio = await self.db_session.get(Studio, studio_id, populate_existing=True)
        if studio is None:
            raise NotFoundError("Studio not found")
        return studio

    async def load_project(self, principal_id: str, project_id: str) -> ProjectContext:
        project = await self.get_project(principal_id, project_id)
        studio = await self.get_studio(project.studio_id)
        return ProjectContext(
            project_id=project.id,
            studio_id=studio.id,
            gallery_id=project.gallery_id,
            chapters=parse_chapters(studio.chapters),
        )

    async def get_chapters(self, studio_id: str) -> list[ChapterRecord]:
        studio = await self.get_studio(studio_id)
        return parse_chapters(studio.chapters)

    async def get_cast(self, studio_id: str) -> list[CastMember]:
        studio = await self.get_studio(studio_id)
        return parse_cast(studio.cast)

    async def save_studio(
        self,
        studio_id: str,
        *,
        chapters: list[ChapterRecord] | None = None,
        cast: list[CastMember] | None = None,
    ) -> None:
        """Replace the studio's chapters and/or cast JSON in one commit."""
        studio = await self.get_studio(studio_id)
        if chapters is not None:
            studio.chapters = dump_chapters(chapters, stored=studio.chapters)
        if cast is not None:
            studio.cast = dump_cast(cast)
        studio.updated_at = utcnow()
        try:
            await self.db_session.commit()
        except SQLAlchemyError as e:
            await self.db_session.rollback()
            raise PersistenceError(f"Failed to update studio: {e}") from e

    async def append_gallery_file(self, gallery_id: str, entry: dict[str, Any]) -> bool:
        """Append *entry* to the gallery's files; returns False when the gallery is missing."""
        gallery = await self.db_session.get(Gallery, gallery_id, populate_existing=True)
        if gallery is None:
            logger.warning(f"Could not find gallery {gallery_id} to update")
            return False
        gallery.files = [*(gallery.files or []), entry]
        try:
            await self.db_session.commit()
        except SQLAlchemyError as e:
            await self.db_session.rollback()
            raise PersistenceError(f"Failed to update gallery {gallery_id}: {e}") from e
        return True


def gallery_entry(project_id: str, url: str, file_type: str = "full_project_audio") -> dict[str, Any]:
    return {
        "id": str(uuid.uuid4()),
        "url": url,
        "projectId": project_id,
        "type": file_type,
        "createdAt": datetime.now(timezone.utc).isoformat(),
    }
