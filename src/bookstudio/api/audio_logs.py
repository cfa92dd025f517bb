"""Read and write the content snapshots generated audio was produced from."""

import logging

from fastapi import APIRouter, Depends, Query

from bookstudio.api.auth import get_current_principal
from bookstudio.errors import NotFoundError
from bookstudio.models import AudioLogResponse, SaveBlockLogRequest, SaveChapterLogRequest
from bookstudio.services.generation_log import GenerationLog
from bookstudio.services.studio_repository import StudioRepository

from .utils import get_generation_log, get_repository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/audio-logs", tags=["Audio Logs"])


async def _check_project(
    repository: StudioRepository, principal_id: str, project_id: str, studio_id: str
) -> None:
    project = await repository.get_project(principal_id, project_id)
    if project.studio_id != studio_id:
        raise NotFoundError("Studio does not belong to this project")


@router.get("/blocks", response_model=AudioLogResponse)
async def get_block_audio_log(
    project_id: str = Query(..., min_length=1),
    studio_id: str = Query(..., min_length=1),
    chapter_id: str = Query(..., min_length=1),
    block_id: str = Query(..., min_length=1),
    principal_id: str = Depends(get_current_principal),
    repository: StudioRepository = Depends(get_repository),
    generation_log: GenerationLog = Depends(get_generation_log),
) -> AudioLogResponse:
    await _check_project(repository, principal_id, project_id, studio_id)
    snapshot = await generation_log.get_block_snapshot(project_id, studio_id, chapter_id, block_id)
    if snapshot is None:
        return AudioLogResponse(message="No audio log found for this block", exists=False)
    return AudioLogResponse(message="Block audio log retrieved", exists=True, snapshot=snapshot)


@router.put("/blocks", response_model=AudioLogResponse)
async def save_block_audio_log(
    request: SaveBlockLogRequest,
    principal_id: str = Depends(get_current_principal),
    repository: StudioRepository = Depends(get_repository),
    generation_log: GenerationLog = Depends(get_generation_log),
) -> AudioLogResponse:
    await _check_project(repository, principal_id, request.project_id, request.studio_id)
    created = await generation_log.save_block_snapshot(
        request.project_id,
        request.studio_id,
        request.chapter_id,
        request.block_id,
        request.block_snapshot,
    )
    return AudioLogResponse(
        message="Block audio log created" if created else "Block audio log updated",
        exists=True,
        snapshot=request.block_snapshot,
    )


@router.get("/chapters", response_model=AudioLogResponse)
async def get_chapter_audio_log(
    project_id: str = Query(..., min_length=1),
    studio_id: str = Query(..., min_length=1),
    chapter_id: str = Query(..., min_length=1),
    principal_id: str = Depends(get_current_principal),
    repository: StudioRepository = Depends(get_repository),
    generation_log: GenerationLog = Depends(get_generation_log),
) -> AudioLogResponse:
    await _check_project(repository, principal_id, project_id, studio_id)
    snapshot = await generation_log.get_chapter_snapshot(project_id, studio_id, chapter_id)
    if snapshot is None:
        return AudioLogResponse(message="No audio log found for this chapter", exists=False)
    return AudioLogResponse(message="Chapter audio log retrieved", exists=True, snapshot=snapshot)


@router.put("/chapters", response_model=AudioLogResponse)
async def save_chapter_audio_log(
    request: SaveChapterLogRequest,
    principal_id: str = Depends(get_current_principal),
    repository: StudioRepository = Depends(get_repository),
    generation_log: GenerationLog = Depends(get_generation_log),
) -> AudioLogResponse:
    await _check_project(repository, principal_id, request.project_id, request.studio_id)
    created = await generation_log.save_chapter_snapshot(
        request.project_id, request.studio_id, request.chapter_id, request.chapter_snapshot
    )
    return AudioLogResponse(
        message="Chapter audio log created" if created else "Chapter audio log updated",
        exists=True,
        snapshot=request.chapter_snapshot,
    )
