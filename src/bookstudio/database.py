import uuid
from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

from bookstudio.api.settings import get_settings

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the timezone-less DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# Only the columns the generation pipeline and cast management read or write.


class Studio(Base):
    """Production workspace; ``id`` is also the provider-side studio project id."""

    __tablename__ = "studio"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    chapters: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)
    cast: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )


class Project(Base):
    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    # User ids granted access besides the owner
    access_levels: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    studio_id: Mapped[str | None] = mapped_column(String, ForeignKey("studio.id"), nullable=True)
    gallery_id: Mapped[str | None] = mapped_column(String, ForeignKey("galleries.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    def is_accessible_by(self, principal_id: str) -> bool:
        return self.owner_id == principal_id or principal_id in (self.access_levels or [])


class Gallery(Base):
    __tablename__ = "galleries"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    files: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)


class CreditAllocation(Base):
    """Prepaid credit balance of one billing principal."""

    __tablename__ = "credits_allocation"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)
    credits_available: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    credits_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_credits_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )


class BlockAudioGenerationLog(Base):
    """Last block content an audio generation was produced from."""

    __tablename__ = "block_audio_generation_log"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    project_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    studio_id: Mapped[str] = mapped_column(String, nullable=False)
    chapter_id: Mapped[str] = mapped_column(String, nullable=False)
    block_id: Mapped[str] = mapped_column(String, nullable=False)
    block_snapshot: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        UniqueConstraint(
            "project_id", "studio_id", "chapter_id", "block_id", name="unique_block_audio_log"
        ),
    )


class ChapterAudioGenerationLog(Base):
    """Last chapter content an audio generation was produced from."""

    __tablename__ = "chapter_audio_generation_log"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    project_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    studio_id: Mapped[str] = mapped_column(String, nullable=False)
    chapter_id: Mapped[str] = mapped_column(String, nullable=False)
    chapter_snapshot: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        UniqueConstraint("project_id", "studio_id", "chapter_id", name="unique_chapter_audio_log"),
    )


settings = get_settings()
engine = create_async_engine(settings.database_url, echo=settings.env == "dev", future=True)
AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
