import pytest

from bookstudio.services.generation_log import GenerationLog


@pytest.mark.asyncio
async def test_block_snapshot_upsert(db_session):
    log = GenerationLog(db_session)
    key = ("project-1", "studio-1", "chapter-1", "b-1")

    assert await log.get_block_snapshot(*key) is None
    assert await log.save_block_snapshot(*key, {"nodes": [{"text": "v1"}]}) is True
    assert await log.save_block_snapshot(*key, {"nodes": [{"text": "v2"}]}) is False

    assert await log.get_block_snapshot(*key) == {"nodes": [{"text": "v2"}]}
    assert await log.get_block_snapshot("project-1", "studio-1", "chapter-1", "b-2") is None


@pytest.mark.asyncio
async def test_chapter_snapshot_upsert(db_session):
    log = GenerationLog(db_session)

    await log.save_chapter_snapshot("project-1", "studio-1", "chapter-1", {"blocks": []})
    created = await log.save_chapter_snapshot(
        "project-1", "studio-1", "chapter-1", {"blocks": [{"block_id": "b-1"}]}
    )

    assert created is False
    snapshot = await log.get_chapter_snapshot("project-1", "studio-1", "chapter-1")
    assert snapshot == {"blocks": [{"block_id": "b-1"}]}
