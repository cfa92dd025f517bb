"""Speech synthesis over a provider, at node and snapshot granularity.

Node synthesis issues one provider call per node, strictly in document
order. Chapters and projects are rendered by the provider itself: a convert
job is triggered, the snapshot list is polled until a snapshot created at or
after the trigger shows up, and that snapshot is streamed.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence

from bookstudio.api.settings import Settings, get_settings
from bookstudio.errors import SnapshotUnavailableError, UpstreamSynthesisError
from bookstudio.infrastructure.tts.base import ProviderError, Snapshot, SpeechProvider
from bookstudio.models import OverrideSettings, TTSNode

logger = logging.getLogger(__name__)


def latest_snapshot(
    snapshots: Sequence[Snapshot], since_unix: int | None = None
) -> Snapshot | None:
    """Return the newest snapshot, ignoring those created before *since_unix* when given."""
    candidates = [
        s for s in snapshots if since_unix is None or s.created_at_unix >= since_unix
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda s: s.created_at_unix)


class SpeechSynthesisClient:
    """Wrap a ``SpeechProvider`` with the pipeline's error and ordering rules."""

    def __init__(
        self,
        provider: SpeechProvider,
        settings: Settings | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        settings = settings or get_settings()
        self.provider = provider
        self.poll_interval = settings.snapshot_poll_interval_seconds
        self.chapter_poll_attempts = settings.snapshot_poll_attempts_chapter
        self.project_poll_attempts = settings.snapshot_poll_attempts_project
        self._sleep = sleep
        self._clock = clock

    # ------------------------------------------------------------------
    # Direct synthesis
    # ------------------------------------------------------------------

    async def synthesize_nodes(self, nodes: Sequence[TTSNode]) -> list[bytes]:
        """Synthesize each node in order; any failure aborts the whole batch."""
        segments: list[bytes] = []
        for i, node in enumerate(nodes):
            logger.info(f"Generating audio for node {i + 1}/{len(nodes)} (Voice: {node.voice_id})")
            try:
                audio = await self.provider.synthesize(text=node.text, voice_id=node.voice_id)
            except ProviderError as e:
                raise UpstreamSynthesisError(
                    f"Failed to generate audio for node {i}: {e} (status {e.status_code})",
                    provider_status=e.status_code,
                    node_index=i,
                ) from e
            if not audio:
                raise UpstreamSynthesisError(
                    f"Empty response body for node {i}", node_index=i
                )
            segments.append(audio)
        return segments

    # ------------------------------------------------------------------
    # Snapshot protocol
    # ------------------------------------------------------------------

    async def list_chapter_snapshots(self, studio_id: str, chapter_id: str) -> list[Snapshot]:
        return await self._call(
            "list chapter snapshots", self.provider.list_chapter_snapshots(studio_id, chapter_id)
        )

    async def list_project_snapshots(self, studio_id: str) -> list[Snapshot]:
        return await self._call(
            "list project snapshots", self.provider.list_project_snapshots(studio_id)
        )

    async def convert_chapter(self, studio_id: str, chapter_id: str) -> Snapshot | None:
        """Trigger conversion and return the newest snapshot, or None if none is listed yet."""
        await self._call("convert chapter", self.provider.convert_chapter(studio_id, chapter_id))
        return latest_snapshot(await self.list_chapter_snapshots(studio_id, chapter_id))

    async def convert_project(self, studio_id: str) -> Snapshot | None:
        await self._call("convert project", self.provider.convert_project(studio_id))
        return latest_snapshot(await self.list_project_snapshots(studio_id))

    async def render_chapter(
        self, studio_id: str, chapter_id: str, snapshot_id: str | None = None
    ) -> tuple[str, bytes]:
        """Return ``(snapshot_id, audio)``; converts first when no snapshot is given."""
        if snapshot_id is None:
            started_at = int(self._clock())
            await self._call(
                "convert chapter", self.provider.convert_chapter(studio_id, chapter_id)
            )
            snapshot = await self._poll_for_snapshot(
                lambda: self.provider.list_chapter_snapshots(studio_id, chapter_id),
                since_unix=started_at,
                attempts=self.chapter_poll_attempts,
                label=f"chapter {chapter_id}",
            )
            snapshot_id = snapshot.snapshot_id

        logger.info(f"Streaming chapter snapshot: {snapshot_id}")
        audio = await self._call(
            "stream chapter snapshot",
            self.provider.stream_chapter_snapshot(studio_id, chapter_id, snapshot_id),
        )
        return snapshot_id, self._require_audio(audio, f"chapter snapshot {snapshot_id}")

    async def render_project(
        self, studio_id: str, snapshot_id: str | None = None
    ) -> tuple[str, bytes]:
        if snapshot_id is None:
            started_at = int(self._clock())
            await self._call("convert project", self.provider.convert_project(studio_id))
            snapshot = await self._poll_for_snapshot(
                lambda: self.provider.list_project_snapshots(studio_id),
                since_unix=started_at,
                attempts=self.project_poll_attempts,
                label=f"project {studio_id}",
            )
            snapshot_id = snapshot.snapshot_id

        logger.info(f"Streaming project snapshot: {snapshot_id}")
        audio = await self._call(
            "stream project snapshot",
            self.provider.stream_project_snapshot(studio_id, snapshot_id),
        )
        return snapshot_id, self._require_audio(audio, f"project snapshot {snapshot_id}")

    # ------------------------------------------------------------------
    # Voice settings
    # ------------------------------------------------------------------

    async def get_voice_settings(self, voice_id: str) -> OverrideSettings:
        settings = await self._call(
            f"fetch voice settings for {voice_id}", self.provider.get_voice_settings(voice_id)
        )
        return OverrideSettings.from_voice_settings(settings)

    async def update_voice_settings(self, voice_id: str, settings: OverrideSettings) -> None:
        logger.info(f"Updating voice settings for {voice_id}")
        await self._call(
            f"update voice settings for {voice_id}",
            self.provider.update_voice_settings(voice_id, settings.to_voice_settings()),
        )

    async def _poll_for_snapshot(
        self,
        list_snapshots: Callable[[], Awaitable[list[Snapshot]]],
        *,
        since_unix: int,
        attempts: int,
        label: str,
    ) -> Snapshot:
        for attempt in range(attempts):
            try:
                snapshot = latest_snapshot(await list_snapshots(), since_unix=since_unix)
            except ProviderError as e:
                # The listing is retried like an empty result; only the budget is terminal.
                logger.warning(f"Polling snapshots for {label} failed: {e}")
                snapshot = None
            if snapshot is not None:
                logger.info(
                    f"Found new snapshot: {snapshot.snapshot_id} (created: {snapshot.created_at_unix})"
                )
                return snapshot
            logger.info(f"Waiting for snapshot of {label}... attempt {attempt + 1}/{attempts}")
            if attempt + 1 < attempts:
                await self._sleep(self.poll_interval)
        raise SnapshotUnavailableError(
            f"Timeout: Failed to obtain new snapshot for {label} after conversion."
        )

    @staticmethod
    def _require_audio(audio: bytes, label: str) -> bytes:
        if not audio:
            raise UpstreamSynthesisError(f"Empty audio stream for {label}")
        return audio

    @staticmethod
    async def _call(operation: str, call: Awaitable):
        try:
            return await call
        except ProviderError as e:
            raise UpstreamSynthesisError(
                f"Failed to {operation}: {e}", provider_status=e.status_code
            ) from e
