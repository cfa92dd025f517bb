"""Metered audio generation for blocks, chapters and whole projects.

Every request runs the same pipeline:

    resolve project -> estimate cost -> check credits -> synthesize
    -> (assemble) -> persist artifact -> debit -> record generation log

Credits are only debited once the artifact is stored, so a failed
synthesis or upload never charges the principal. The debit itself and the
generation log are best-effort: by then the audio exists and the request
succeeds even if either write fails.
"""

import logging
from dataclasses import dataclass

from bookstudio.errors import NotFoundError
from bookstudio.infrastructure.spaces import (
    SpacesClient,
    StoredArtifact,
    audiobook_path,
    block_path,
    chapter_path,
)
from bookstudio.models import Granularity
from bookstudio.services.audio_assembler import assemble
from bookstudio.services.cost_estimator import (
    CostEstimate,
    estimate_block,
    estimate_chapter,
    estimate_project,
    synthesizable_nodes,
)
from bookstudio.services.credit_ledger import CreditLedger
from bookstudio.services.generation_log import GenerationLog
from bookstudio.services.speech_synthesis import SpeechSynthesisClient
from bookstudio.services.studio_repository import StudioRepository, gallery_entry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationResult:
    granularity: Granularity
    artifact_id: str
    artifact_url: str
    credits_charged: int
    character_count: int
    cached: bool = False


class GenerationOrchestrator:
    def __init__(
        self,
        repository: StudioRepository,
        ledger: CreditLedger,
        synthesis: SpeechSynthesisClient,
        store: SpacesClient,
        generation_log: GenerationLog,
    ):
        self.repository = repository
        self.ledger = ledger
        self.synthesis = synthesis
        self.store = store
        self.generation_log = generation_log

    async def generate_block(
        self,
        principal_id: str,
        project_id: str,
        chapter_id: str,
        block_id: str,
        reuse_unchanged: bool = False,
    ) -> GenerationResult:
        ctx = await self.repository.load_project(principal_id, project_id)
        chapter = ctx.find_chapter(chapter_id)
        block = chapter.content_json.find_block(block_id)
        if block is None:
            raise NotFoundError("Block not found")

        estimate = estimate_block(block)
        path = block_path(ctx.studio_id, block_id)
        snapshot = block.model_dump(mode="json")

        if reuse_unchanged:
            logged = await self.generation_log.get_block_snapshot(
                ctx.project_id, ctx.studio_id, chapter_id, block_id
            )
            if logged == snapshot and await self.store.artifact_exists(path):
                logger.info(f"Block {block_id} unchanged since last generation; reusing {path}")
                return GenerationResult(
                    granularity=Granularity.BLOCK,
                    artifact_id=path,
                    artifact_url=self.store.public_url(path),
                    credits_charged=0,
                    character_count=estimate.character_count,
                    cached=True,
                )

        await self.ledger.require(principal_id, estimate.credit_cost)

        nodes = synthesizable_nodes(block)
        logger.info(
            f"Generating block {block_id}: {len(nodes)} nodes, {estimate.character_count} chars"
        )
        audio = assemble(await self.synthesis.synthesize_nodes(nodes))
        artifact = await self.store.upload_artifact(path, audio)

        await self._debit(principal_id, estimate, artifact)
        try:
            await self.generation_log.save_block_snapshot(
                ctx.project_id, ctx.studio_id, chapter_id, block_id, snapshot
            )
        except Exception as e:
            logger.error(f"Failed to record block audio log for {block_id}: {e}")

        return self._result(Granularity.BLOCK, artifact, estimate)

    async def generate_chapter(
        self,
        principal_id: str,
        project_id: str,
        chapter_id: str,
        chapter_snapshot_id: str | None = None,
    ) -> GenerationResult:
        ctx = await self.repository.load_project(principal_id, project_id)
        chapter = ctx.find_chapter(chapter_id)

        estimate = estimate_chapter(chapter)
        logger.info(
            f"Chapter {chapter_id}: {estimate.character_count} chars, "
            f"{estimate.credit_cost} credits"
        )
        await self.ledger.require(principal_id, estimate.credit_cost)

        snapshot_id, audio = await self.synthesis.render_chapter(
            ctx.studio_id, chapter_id, chapter_snapshot_id
        )
        artifact = await self.store.upload_artifact(chapter_path(ctx.studio_id, chapter_id), audio)

        await self._debit(principal_id, estimate, artifact)
        try:
            await self.generation_log.save_chapter_snapshot(
                ctx.project_id,
                ctx.studio_id,
                chapter_id,
                chapter.content_json.model_dump(mode="json"),
            )
        except Exception as e:
            logger.error(f"Failed to record chapter audio log for {chapter_id}: {e}")

        logger.info(f"Chapter {chapter_id} rendered from snapshot {snapshot_id}")
        return self._result(Granularity.CHAPTER, artifact, estimate)

    async def generate_project(
        self,
        principal_id: str,
        project_id: str,
        project_snapshot_id: str | None = None,
    ) -> GenerationResult:
        ctx = await self.repository.load_project(principal_id, project_id)

        estimate = estimate_project(ctx.chapters)
        logger.info(
            f"Project {project_id}: {len(ctx.chapters)} chapters, "
            f"{estimate.character_count} chars, {estimate.credit_cost} credits"
        )
        await self.ledger.require(principal_id, estimate.credit_cost)

        snapshot_id, audio = await self.synthesis.render_project(ctx.studio_id, project_snapshot_id)
        artifact = await self.store.upload_artifact(audiobook_path(ctx.studio_id), audio)

        await self._debit(principal_id, estimate, artifact)
        if ctx.gallery_id:
            try:
                await self.repository.append_gallery_file(
                    ctx.gallery_id, gallery_entry(ctx.project_id, artifact.url)
                )
            except Exception as e:
                logger.error(f"Failed to update gallery {ctx.gallery_id}: {e}")
        else:
            logger.warning(f"No gallery_id for project {project_id}; skipping gallery update")

        logger.info(f"Project {project_id} rendered from snapshot {snapshot_id}")
        return self._result(Granularity.PROJECT, artifact, estimate)

    async def _debit(
        self, principal_id: str, estimate: CostEstimate, artifact: StoredArtifact
    ) -> None:
        if estimate.credit_cost <= 0:
            return
        try:
            balance = await self.ledger.debit(principal_id, estimate.credit_cost)
            logger.info(
                f"Deducted {estimate.credit_cost} credits for {artifact.path}. "
                f"Remaining: {balance.available}"
            )
        except Exception as e:
            # The artifact is already stored; the charge is lost, not the audio.
            logger.critical(
                f"Failed to deduct {estimate.credit_cost} credits from {principal_id} "
                f"for {artifact.path}: {e}",
                exc_info=True,
            )

    @staticmethod
    def _result(
        granularity: Granularity, artifact: StoredArtifact, estimate: CostEstimate
    ) -> GenerationResult:
        return GenerationResult(
            granularity=granularity,
            artifact_id=artifact.artifact_id,
            artifact_url=artifact.url,
            credits_charged=estimate.credit_cost,
            character_count=estimate.character_count,
        )
