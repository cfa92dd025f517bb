import pytest

from bookstudio.errors import ValidationError
from bookstudio.models import ParagraphBlock, TTSNode, parse_chapters
from bookstudio.services.cost_estimator import (
    credits_for_characters,
    estimate_block,
    estimate_chapter,
    estimate_project,
    synthesizable_nodes,
)

from .factories import make_chapter, make_node


@pytest.mark.parametrize(
    "characters, credits",
    [(0, 0), (1, 1), (999, 1), (1000, 1), (1001, 2), (2500, 3)],
)
def test_credits_round_up_per_thousand(characters, credits):
    assert credits_for_characters(characters) == credits


def test_block_estimate_counts_only_voiced_nodes():
    block = ParagraphBlock(
        block_id="b",
        nodes=(
            TTSNode(text="Hello ", voice_id="v1"),
            TTSNode(text="ignored", voice_id=""),
            TTSNode(type="break", text="also ignored", voice_id="v1"),
            TTSNode(text="world", voice_id="v2"),
        ),
    )

    assert [n.text for n in synthesizable_nodes(block)] == ["Hello ", "world"]
    estimate = estimate_block(block)
    assert estimate.character_count == len("Hello world")
    assert estimate.credit_cost == 1


def test_block_without_voiced_nodes_is_rejected():
    block = ParagraphBlock(block_id="b", nodes=(TTSNode(text="no voice", voice_id=""),))

    with pytest.raises(ValidationError, match="No valid tts_nodes"):
        estimate_block(block)


def test_empty_chapter_costs_nothing():
    (chapter,) = parse_chapters([make_chapter("empty", [])])

    estimate = estimate_chapter(chapter)
    assert estimate.character_count == 0
    assert estimate.credit_cost == 0


def test_project_estimate_adds_trailing_space_per_node():
    # 2 x 500 characters: exactly one credit as a chapter, just over as a project.
    (chapter,) = parse_chapters(
        [
            make_chapter(
                "c1",
                [{"block_id": "b1", "nodes": [make_node("a" * 500), make_node("b" * 500)]}],
            )
        ]
    )

    chapter_estimate = estimate_chapter(chapter)
    project_estimate = estimate_project([chapter])

    assert chapter_estimate.character_count == 1000
    assert chapter_estimate.credit_cost == 1
    assert project_estimate.character_count == 1002
    assert project_estimate.credit_cost == 2


def test_project_estimate_spans_all_chapters(chapters):
    texts = [node.text for c in chapters for b in c.blocks for node in b.nodes]

    estimate = estimate_project(chapters)
    assert estimate.character_count == sum(len(t) + 1 for t in texts)
