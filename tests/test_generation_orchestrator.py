"""Pipeline ordering and failure handling of the generation orchestrator."""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from bookstudio.database import CreditAllocation
from bookstudio.errors import (
    AccountingError,
    InsufficientCreditsError,
    NotFoundError,
    PersistenceError,
    UpstreamSynthesisError,
)
from bookstudio.infrastructure.spaces import SpacesClient, StoredArtifact
from bookstudio.infrastructure.tts import SpeechProvider
from bookstudio.models import Granularity, parse_chapters
from bookstudio.services.credit_ledger import CreditBalance, CreditLedger
from bookstudio.services.generation_log import GenerationLog
from bookstudio.services.generation_orchestrator import GenerationOrchestrator
from bookstudio.services.speech_synthesis import SpeechSynthesisClient
from bookstudio.services.studio_repository import ProjectContext, StudioRepository

from .factories import make_chapter, make_node


@pytest.fixture
def project_context(chapters):
    return ProjectContext(
        project_id="project-1",
        studio_id="studio-1",
        gallery_id="gallery-1",
        chapters=chapters,
    )


@pytest.fixture
def repository(project_context):
    repo = AsyncMock(spec=StudioRepository)
    repo.load_project.return_value = project_context
    return repo


@pytest.fixture
def ledger():
    ledger = AsyncMock(spec=CreditLedger)
    ledger.require.return_value = CreditBalance(available=10, used=0, total_used=0)
    ledger.debit.return_value = CreditBalance(available=9, used=1, total_used=1)
    return ledger


@pytest.fixture
def synthesis():
    client = AsyncMock(spec=SpeechSynthesisClient)
    client.synthesize_nodes.return_value = [b"AA", b"BBB"]
    client.render_chapter.return_value = ("snap-c", b"chapter-audio")
    client.render_project.return_value = ("snap-p", b"project-audio")
    return client


@pytest.fixture
def store():
    store = MagicMock(spec=SpacesClient)

    async def upload_artifact(key, data, content_type="audio/mpeg"):
        return StoredArtifact(artifact_id=f"id-{key}", url=f"https://cdn.test/{key}", path=key)

    store.upload_artifact = AsyncMock(side_effect=upload_artifact)
    store.artifact_exists = AsyncMock(return_value=True)
    store.public_url.side_effect = lambda key: f"https://cdn.test/{key}"
    return store


@pytest.fixture
def generation_log():
    log = AsyncMock(spec=GenerationLog)
    log.get_block_snapshot.return_value = None
    return log


@pytest.fixture
def orchestrator(repository, ledger, synthesis, store, generation_log):
    return GenerationOrchestrator(
        repository=repository,
        ledger=ledger,
        synthesis=synthesis,
        store=store,
        generation_log=generation_log,
    )


@pytest.mark.asyncio
async def test_block_generation_runs_full_pipeline(
    orchestrator, ledger, synthesis, store, generation_log, chapters
):
    result = await orchestrator.generate_block("user-1", "project-1", "chapter-1", "b-1")

    nodes = synthesis.synthesize_nodes.await_args.args[0]
    assert [n.voice_id for n in nodes] == ["voice-narrator", "voice-marcus"]
    store.upload_artifact.assert_awaited_once_with("studio-1/blocks/b-1.mp3", b"AABBB")
    ledger.require.assert_awaited_once_with("user-1", 1)
    ledger.debit.assert_awaited_once_with("user-1", 1)

    block = chapters[0].content_json.find_block("b-1")
    generation_log.save_block_snapshot.assert_awaited_once_with(
        "project-1", "studio-1", "chapter-1", "b-1", block.model_dump(mode="json")
    )
    assert result.granularity == Granularity.BLOCK
    assert result.artifact_url == "https://cdn.test/studio-1/blocks/b-1.mp3"
    assert result.credits_charged == 1
    assert result.character_count == len("Marcus opened the door. Who's there?")
    assert result.cached is False


@pytest.mark.asyncio
async def test_insufficient_credits_stops_before_synthesis(orchestrator, ledger, synthesis, store):
    ledger.require.side_effect = InsufficientCreditsError(required=1, available=0)

    with pytest.raises(InsufficientCreditsError):
        await orchestrator.generate_block("user-1", "project-1", "chapter-1", "b-1")

    synthesis.synthesize_nodes.assert_not_awaited()
    store.upload_artifact.assert_not_awaited()
    ledger.debit.assert_not_awaited()


@pytest.mark.asyncio
async def test_synthesis_failure_charges_nothing(orchestrator, ledger, synthesis, store):
    synthesis.synthesize_nodes.side_effect = UpstreamSynthesisError("boom", node_index=1)

    with pytest.raises(UpstreamSynthesisError):
        await orchestrator.generate_block("user-1", "project-1", "chapter-1", "b-1")

    store.upload_artifact.assert_not_awaited()
    ledger.debit.assert_not_awaited()


@pytest.mark.asyncio
async def test_persist_failure_charges_nothing(orchestrator, ledger, store, generation_log):
    store.upload_artifact.side_effect = PersistenceError("Failed to upload file")

    with pytest.raises(PersistenceError):
        await orchestrator.generate_block("user-1", "project-1", "chapter-1", "b-1")

    ledger.debit.assert_not_awaited()
    generation_log.save_block_snapshot.assert_not_awaited()


@pytest.mark.asyncio
async def test_debit_failure_still_returns_artifact(orchestrator, ledger, caplog):
    ledger.debit.side_effect = AccountingError("database unavailable")

    with caplog.at_level(logging.CRITICAL):
        result = await orchestrator.generate_block("user-1", "project-1", "chapter-1", "b-1")

    assert result.artifact_url.endswith("studio-1/blocks/b-1.mp3")
    assert result.credits_charged == 1
    assert any(record.levelno == logging.CRITICAL for record in caplog.records)


@pytest.mark.asyncio
async def test_log_failure_is_swallowed(orchestrator, generation_log):
    generation_log.save_block_snapshot.side_effect = PersistenceError("log write failed")

    result = await orchestrator.generate_block("user-1", "project-1", "chapter-1", "b-1")

    assert result.cached is False


@pytest.mark.asyncio
async def test_unchanged_block_is_regenerated_by_default(
    orchestrator, ledger, synthesis, store, generation_log, chapters
):
    block = chapters[0].content_json.find_block("b-1")
    generation_log.get_block_snapshot.return_value = block.model_dump(mode="json")

    result = await orchestrator.generate_block("user-1", "project-1", "chapter-1", "b-1")

    assert result.cached is False
    assert result.artifact_id == "id-studio-1/blocks/b-1.mp3"
    synthesis.synthesize_nodes.assert_awaited_once()
    store.upload_artifact.assert_awaited_once()
    ledger.debit.assert_awaited_once_with("user-1", 1)
    generation_log.get_block_snapshot.assert_not_awaited()


@pytest.mark.asyncio
async def test_reuse_unchanged_returns_stored_audio(
    orchestrator, ledger, synthesis, store, generation_log, chapters
):
    block = chapters[0].content_json.find_block("b-1")
    generation_log.get_block_snapshot.return_value = block.model_dump(mode="json")

    result = await orchestrator.generate_block(
        "user-1", "project-1", "chapter-1", "b-1", reuse_unchanged=True
    )

    assert result.cached is True
    assert result.credits_charged == 0
    assert result.artifact_url == "https://cdn.test/studio-1/blocks/b-1.mp3"
    ledger.require.assert_not_awaited()
    synthesis.synthesize_nodes.assert_not_awaited()
    ledger.debit.assert_not_awaited()


@pytest.mark.asyncio
async def test_reuse_unchanged_regenerates_edited_block(orchestrator, synthesis, generation_log):
    generation_log.get_block_snapshot.return_value = {"block_id": "b-1", "nodes": []}

    result = await orchestrator.generate_block(
        "user-1", "project-1", "chapter-1", "b-1", reuse_unchanged=True
    )

    assert result.cached is False
    synthesis.synthesize_nodes.assert_awaited_once()


@pytest.mark.asyncio
async def test_reuse_unchanged_needs_stored_artifact(
    orchestrator, synthesis, store, generation_log, chapters
):
    block = chapters[0].content_json.find_block("b-1")
    generation_log.get_block_snapshot.return_value = block.model_dump(mode="json")
    store.artifact_exists.return_value = False

    result = await orchestrator.generate_block(
        "user-1", "project-1", "chapter-1", "b-1", reuse_unchanged=True
    )

    assert result.cached is False
    synthesis.synthesize_nodes.assert_awaited_once()


@pytest.mark.asyncio
async def test_unknown_chapter_or_block(orchestrator):
    with pytest.raises(NotFoundError, match="Chapter"):
        await orchestrator.generate_block("user-1", "project-1", "chapter-x", "b-1")
    with pytest.raises(NotFoundError, match="Block"):
        await orchestrator.generate_block("user-1", "project-1", "chapter-1", "b-x")


@pytest.mark.asyncio
async def test_chapter_generation(orchestrator, ledger, synthesis, store, generation_log):
    result = await orchestrator.generate_chapter("user-1", "project-1", "chapter-1", "snap-c")

    synthesis.render_chapter.assert_awaited_once_with("studio-1", "chapter-1", "snap-c")
    store.upload_artifact.assert_awaited_once_with(
        "studio-1/chapters/chapter-1.mp3", b"chapter-audio"
    )
    ledger.debit.assert_awaited_once_with("user-1", 1)
    generation_log.save_chapter_snapshot.assert_awaited_once()
    assert result.granularity == Granularity.CHAPTER
    assert result.artifact_id == "id-studio-1/chapters/chapter-1.mp3"


@pytest.mark.asyncio
async def test_project_generation_updates_gallery(orchestrator, repository, ledger, store):
    result = await orchestrator.generate_project("user-1", "project-1")

    store.upload_artifact.assert_awaited_once_with(
        "studio-1/complete_audiobook/studio-1.mp3", b"project-audio"
    )
    ledger.debit.assert_awaited_once_with("user-1", result.credits_charged)
    gallery_id, entry = repository.append_gallery_file.await_args.args
    assert gallery_id == "gallery-1"
    assert entry["type"] == "full_project_audio"
    assert entry["url"] == result.artifact_url
    assert entry["projectId"] == "project-1"


@pytest.mark.asyncio
async def test_project_gallery_failure_is_swallowed(orchestrator, repository):
    repository.append_gallery_file.side_effect = PersistenceError("gallery write failed")

    result = await orchestrator.generate_project("user-1", "project-1", "snap-p")

    assert result.granularity == Granularity.PROJECT


@pytest.mark.asyncio
async def test_zero_balance_blocks_hello_world_before_provider(db_session, store, generation_log):
    chapters = parse_chapters(
        [
            make_chapter(
                "c1",
                [{"block_id": "b1", "nodes": [make_node("Hello", "v1"), make_node("world", "v1")]}],
            )
        ]
    )
    repo = AsyncMock(spec=StudioRepository)
    repo.load_project.return_value = ProjectContext("p1", "s1", None, chapters)
    db_session.add(CreditAllocation(user_id="user-1", credits_available=0))
    await db_session.commit()
    provider = AsyncMock(spec=SpeechProvider)
    orchestrator = GenerationOrchestrator(
        repository=repo,
        ledger=CreditLedger(db_session),
        synthesis=SpeechSynthesisClient(provider),
        store=store,
        generation_log=generation_log,
    )

    with pytest.raises(InsufficientCreditsError) as exc_info:
        await orchestrator.generate_block("user-1", "p1", "c1", "b1")

    assert (exc_info.value.required, exc_info.value.available) == (1, 0)
    provider.synthesize.assert_not_awaited()
    store.upload_artifact.assert_not_awaited()
