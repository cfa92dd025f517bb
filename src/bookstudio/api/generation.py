"""Audio generation endpoints for blocks, chapters and projects."""

import logging

from fastapi import APIRouter, Depends, Query

from bookstudio.api.auth import get_current_principal
from bookstudio.infrastructure.tts.base import Snapshot
from bookstudio.models import (
    ConvertChapterRequest,
    ConvertProjectRequest,
    ConvertResponse,
    GenerateBlockRequest,
    GenerateChapterRequest,
    GenerateProjectRequest,
    GenerationResponse,
    SnapshotListResponse,
    SnapshotOut,
)
from bookstudio.services.generation_orchestrator import GenerationOrchestrator, GenerationResult
from bookstudio.services.speech_synthesis import SpeechSynthesisClient
from bookstudio.services.studio_repository import StudioRepository

from .utils import get_orchestrator, get_repository, get_synthesis_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/generation", tags=["Generation"])


def _to_response(result: GenerationResult) -> GenerationResponse:
    if result.cached:
        message = "Audio reused from previous generation"
    else:
        message = "Audio generated successfully"
    return GenerationResponse(
        message=message,
        granularity=result.granularity,
        artifact_id=result.artifact_id,
        artifact_url=result.artifact_url,
        credits_charged=result.credits_charged,
        character_count=result.character_count,
        cached=result.cached,
    )


def _snapshot_out(snapshot: Snapshot) -> SnapshotOut:
    return SnapshotOut(
        snapshot_id=snapshot.snapshot_id,
        created_at_unix=snapshot.created_at_unix,
        name=snapshot.name,
    )


@router.post("/blocks", response_model=GenerationResponse)
async def generate_block_audio(
    request: GenerateBlockRequest,
    principal_id: str = Depends(get_current_principal),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> GenerationResponse:
    """Synthesize one block node by node and store the stitched audio."""
    logger.info(f"Block generation requested by {principal_id}: {request.block_id}")
    result = await orchestrator.generate_block(
        principal_id,
        request.project_id,
        request.chapter_id,
        request.block_id,
        reuse_unchanged=request.reuse_unchanged,
    )
    return _to_response(result)


@router.post("/chapters", response_model=GenerationResponse)
async def generate_chapter_audio(
    request: GenerateChapterRequest,
    principal_id: str = Depends(get_current_principal),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> GenerationResponse:
    logger.info(f"Chapter generation requested by {principal_id}: {request.chapter_id}")
    result = await orchestrator.generate_chapter(
        principal_id, request.project_id, request.chapter_id, request.chapter_snapshot_id
    )
    return _to_response(result)


@router.post("/projects", response_model=GenerationResponse)
async def generate_project_audio(
    request: GenerateProjectRequest,
    principal_id: str = Depends(get_current_principal),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> GenerationResponse:
    logger.info(f"Project generation requested by {principal_id}: {request.project_id}")
    result = await orchestrator.generate_project(
        principal_id, request.project_id, request.project_snapshot_id
    )
    return _to_response(result)


@router.post("/chapters/convert", response_model=ConvertResponse)
async def convert_chapter(
    request: ConvertChapterRequest,
    principal_id: str = Depends(get_current_principal),
    repository: StudioRepository = Depends(get_repository),
    synthesis: SpeechSynthesisClient = Depends(get_synthesis_client),
) -> ConvertResponse:
    """Trigger a provider-side chapter conversion without charging credits."""
    ctx = await repository.load_project(principal_id, request.project_id)
    ctx.find_chapter(request.chapter_id)
    snapshot = await synthesis.convert_chapter(ctx.studio_id, request.chapter_id)
    return ConvertResponse(
        message="Chapter conversion started",
        snapshot=_snapshot_out(snapshot) if snapshot else None,
    )


@router.post("/projects/convert", response_model=ConvertResponse)
async def convert_project(
    request: ConvertProjectRequest,
    principal_id: str = Depends(get_current_principal),
    repository: StudioRepository = Depends(get_repository),
    synthesis: SpeechSynthesisClient = Depends(get_synthesis_client),
) -> ConvertResponse:
    project = await repository.get_project(principal_id, request.project_id)
    snapshot = await synthesis.convert_project(project.studio_id)
    return ConvertResponse(
        message="Project conversion started",
        snapshot=_snapshot_out(snapshot) if snapshot else None,
    )


@router.get("/projects/{project_id}/snapshots", response_model=SnapshotListResponse)
async def list_project_snapshots(
    project_id: str,
    principal_id: str = Depends(get_current_principal),
    repository: StudioRepository = Depends(get_repository),
    synthesis: SpeechSynthesisClient = Depends(get_synthesis_client),
) -> SnapshotListResponse:
    project = await repository.get_project(principal_id, project_id)
    snapshots = await synthesis.list_project_snapshots(project.studio_id)
    return SnapshotListResponse(snapshots=[_snapshot_out(s) for s in snapshots])


@router.get("/chapters/{chapter_id}/snapshots", response_model=SnapshotListResponse)
async def list_chapter_snapshots(
    chapter_id: str,
    project_id: str = Query(..., min_length=1),
    principal_id: str = Depends(get_current_principal),
    repository: StudioRepository = Depends(get_repository),
    synthesis: SpeechSynthesisClient = Depends(get_synthesis_client),
) -> SnapshotListResponse:
    project = await repository.get_project(principal_id, project_id)
    snapshots = await synthesis.list_chapter_snapshots(project.studio_id, chapter_id)
    return SnapshotListResponse(snapshots=[_snapshot_out(s) for s in snapshots])
