"""Character counting and credit pricing for synthesis requests.

One credit buys 1000 characters of synthesized text, rounded up. Block and
chapter estimates count node text back to back; project estimates count one
trailing space per node. The two rules bill differently for the same text
and are kept apart on purpose until billing decides otherwise.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass

from bookstudio.errors import ValidationError
from bookstudio.models import ChapterRecord, HeadingBlock, ParagraphBlock, TTSNode

CHARACTERS_PER_CREDIT = 1000


@dataclass(frozen=True)
class CostEstimate:
    character_count: int
    credit_cost: int


def credits_for_characters(character_count: int) -> int:
    """Return ``ceil(character_count / 1000)``; never negative."""
    if character_count <= 0:
        return 0
    return math.ceil(character_count / CHARACTERS_PER_CREDIT)


def _estimate(character_count: int) -> CostEstimate:
    return CostEstimate(
        character_count=character_count,
        credit_cost=credits_for_characters(character_count),
    )


def _node_texts(nodes: Iterable[TTSNode]) -> list[str]:
    return [node.text for node in nodes if node.text]


def synthesizable_nodes(block: HeadingBlock | ParagraphBlock) -> list[TTSNode]:
    """Return the block's tts nodes that carry both text and a voice, in order."""
    nodes = [node for node in block.nodes if node.is_synthesizable]
    if not nodes:
        raise ValidationError("No valid tts_nodes found in the block")
    return nodes


def estimate_block(block: HeadingBlock | ParagraphBlock) -> CostEstimate:
    return _estimate(len("".join(_node_texts(synthesizable_nodes(block)))))


def estimate_chapter(chapter: ChapterRecord) -> CostEstimate:
    texts = [text for block in chapter.blocks for text in _node_texts(block.nodes)]
    return _estimate(len("".join(texts)))


def estimate_project(chapters: Iterable[ChapterRecord]) -> CostEstimate:
    texts = [
        f"{text} "
        for chapter in chapters
        for block in chapter.blocks
        for text in _node_texts(block.nodes)
    ]
    return _estimate(len("".join(texts)))
