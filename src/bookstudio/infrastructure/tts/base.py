from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Snapshot:
    """A provider-side rendering of a chapter or project."""

    snapshot_id: str
    created_at_unix: int
    name: str | None = None


class ProviderError(Exception):
    """A provider call failed; ``status_code`` is the provider's HTTP status when known."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SpeechProvider(ABC):
    """Abstract base class for text-to-speech providers with studio projects."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the (unique) short-name for this provider (e.g. 'eleven')."""

    @abstractmethod
    async def synthesize(self, *, text: str, voice_id: str) -> bytes:
        """Synthesise *text* with *voice_id* and return the encoded audio."""

    @abstractmethod
    async def convert_chapter(self, studio_id: str, chapter_id: str) -> None:
        """Trigger an asynchronous conversion of one chapter."""

    @abstractmethod
    async def convert_project(self, studio_id: str) -> None:
        """Trigger an asynchronous conversion of the whole studio project."""

    @abstractmethod
    async def list_chapter_snapshots(self, studio_id: str, chapter_id: str) -> list[Snapshot]:
        """Return the chapter's snapshots in provider order."""

    @abstractmethod
    async def list_project_snapshots(self, studio_id: str) -> list[Snapshot]:
        """Return the project's snapshots in provider order."""

    @abstractmethod
    async def stream_chapter_snapshot(
        self, studio_id: str, chapter_id: str, snapshot_id: str
    ) -> bytes:
        """Return the rendered audio of a chapter snapshot."""

    @abstractmethod
    async def stream_project_snapshot(self, studio_id: str, snapshot_id: str) -> bytes:
        """Return the rendered audio of a project snapshot."""

    @abstractmethod
    async def get_voice_settings(self, voice_id: str) -> dict[str, Any]:
        """Return the stored settings of a voice."""

    @abstractmethod
    async def update_voice_settings(self, voice_id: str, settings: dict[str, Any]) -> None:
        """Replace the stored settings of a voice."""

    @abstractmethod
    async def update_chapter_content(
        self, studio_id: str, chapter_id: str, content: dict[str, Any]
    ) -> None:
        """Replace the provider's copy of a chapter's block content."""
