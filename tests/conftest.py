import os

# Settings are cached on first import; configure the test environment before that.
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("SIDE_EFFECTS_BACKEND", "inline")
os.environ.setdefault("SNAPSHOT_POLL_INTERVAL_SECONDS", "0")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from bookstudio.database import Base  # noqa: E402
from bookstudio.models import ChapterRecord, parse_chapters  # noqa: E402

from .factories import make_chapter, make_node  # noqa: E402


@pytest.fixture
def raw_chapters() -> list[dict]:
    """Two chapters: a heading plus two paragraphs, then a single paragraph."""
    return [
        make_chapter(
            "chapter-1",
            [
                {"block_id": "b-title", "sub_type": "h1", "nodes": [make_node("Chapter One")]},
                {
                    "block_id": "b-1",
                    "sub_type": "p",
                    "nodes": [
                        make_node("Marcus opened the door. ", "voice-narrator"),
                        make_node("Who's there?", "voice-marcus"),
                    ],
                },
                {
                    "block_id": "b-2",
                    "nodes": [make_node("Nobody answered.", "voice-narrator")],
                },
            ],
        ),
        make_chapter(
            "chapter-2",
            [
                {
                    "block_id": "b-3",
                    "sub_type": "p",
                    "nodes": [make_node("Again, Marcus waited.", "voice-marcus")],
                },
            ],
        ),
    ]


@pytest.fixture
def chapters(raw_chapters) -> list[ChapterRecord]:
    return parse_chapters(raw_chapters)


@pytest_asyncio.fixture
async def db_session():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    async with session_factory() as session:
        yield session
    await engine.dispose()
