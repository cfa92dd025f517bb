import logging

from fastapi import APIRouter, Depends

from bookstudio.api.auth import get_current_principal
from bookstudio.errors import NotFoundError, ValidationError
from bookstudio.models import (
    CreditBalanceResponse,
    EstimateRequest,
    EstimateResponse,
    Granularity,
)
from bookstudio.services.cost_estimator import estimate_block, estimate_chapter, estimate_project
from bookstudio.services.credit_ledger import CreditLedger
from bookstudio.services.studio_repository import StudioRepository

from .utils import get_ledger, get_repository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/credits", tags=["Credits"])


@router.get("", response_model=CreditBalanceResponse)
async def get_credit_balance(
    principal_id: str = Depends(get_current_principal),
    ledger: CreditLedger = Depends(get_ledger),
) -> CreditBalanceResponse:
    balance = await ledger.get_balance(principal_id)
    return CreditBalanceResponse(
        credits_available=balance.available,
        credits_used=balance.used,
        total_credits_used=balance.total_used,
    )


@router.post("/estimate", response_model=EstimateResponse)
async def estimate_cost(
    request: EstimateRequest,
    principal_id: str = Depends(get_current_principal),
    repository: StudioRepository = Depends(get_repository),
    ledger: CreditLedger = Depends(get_ledger),
) -> EstimateResponse:
    """Price a block, chapter or whole project without generating anything."""
    if request.block_id and not request.chapter_id:
        raise ValidationError("chapter_id is required when block_id is given")

    ctx = await repository.load_project(principal_id, request.project_id)
    if request.chapter_id:
        chapter = ctx.find_chapter(request.chapter_id)
        if request.block_id:
            block = chapter.content_json.find_block(request.block_id)
            if block is None:
                raise NotFoundError("Block not found")
            granularity, estimate = Granularity.BLOCK, estimate_block(block)
        else:
            granularity, estimate = Granularity.CHAPTER, estimate_chapter(chapter)
    else:
        granularity, estimate = Granularity.PROJECT, estimate_project(ctx.chapters)

    balance = await ledger.balance_or_zero(principal_id)
    return EstimateResponse(
        granularity=granularity,
        character_count=estimate.character_count,
        credit_cost=estimate.credit_cost,
        credits_available=balance.available,
        sufficient=balance.available >= estimate.credit_cost,
    )
