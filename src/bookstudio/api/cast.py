"""Cast roster endpoints for a studio."""

import logging

from fastapi import APIRouter, Depends

from bookstudio.api.auth import get_current_principal
from bookstudio.models import AddCastMemberRequest, EditCastMemberRequest, RosterResponse
from bookstudio.services.cast_coordinator import CastVoiceCoordinator
from bookstudio.services.studio_repository import StudioRepository

from .utils import get_cast_coordinator, get_repository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/studios/{studio_id}/cast", tags=["Cast"])


async def studio_access(
    studio_id: str,
    principal_id: str = Depends(get_current_principal),
    repository: StudioRepository = Depends(get_repository),
) -> str:
    await repository.ensure_studio_access(principal_id, studio_id)
    return studio_id


@router.get("", response_model=RosterResponse)
async def list_cast_members(
    studio_id: str = Depends(studio_access),
    coordinator: CastVoiceCoordinator = Depends(get_cast_coordinator),
) -> RosterResponse:
    cast = await coordinator.list_cast(studio_id)
    return RosterResponse(message="Cast members retrieved", cast=cast)


@router.post("", response_model=RosterResponse)
async def add_cast_member(
    request: AddCastMemberRequest,
    studio_id: str = Depends(studio_access),
    coordinator: CastVoiceCoordinator = Depends(get_cast_coordinator),
) -> RosterResponse:
    member, cast = await coordinator.add_cast_member(studio_id, request)
    return RosterResponse(message="Cast member added", cast=cast, cast_member=member)


@router.patch("/{cast_id}", response_model=RosterResponse)
async def edit_cast_member(
    cast_id: str,
    request: EditCastMemberRequest,
    studio_id: str = Depends(studio_access),
    coordinator: CastVoiceCoordinator = Depends(get_cast_coordinator),
) -> RosterResponse:
    member, cast = await coordinator.edit_cast_member(studio_id, cast_id, request)
    return RosterResponse(message="Cast member updated", cast=cast, cast_member=member)


@router.delete("/{cast_id}", response_model=RosterResponse)
async def delete_cast_member(
    cast_id: str,
    studio_id: str = Depends(studio_access),
    coordinator: CastVoiceCoordinator = Depends(get_cast_coordinator),
) -> RosterResponse:
    """Remove a cast member and hand its lines back to the original voice."""
    cast = await coordinator.delete_cast_member(studio_id, cast_id)
    return RosterResponse(message="Cast member deleted and voices restored", cast=cast)
