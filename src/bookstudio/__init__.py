"""
Bookstudio – metered audio generation for studio audiobook projects.

This top-level package exposes the content and roster models shared by the
API, the generation pipeline and the worker.
"""

from .models import (
    CastMember,
    ChapterRecord,
    Granularity,
    HeadingBlock,
    ParagraphBlock,
    TTSNode,
)

__all__ = [
    "CastMember",
    "ChapterRecord",
    "Granularity",
    "HeadingBlock",
    "ParagraphBlock",
    "TTSNode",
]
