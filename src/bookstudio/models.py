from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError
from pydantic import model_validator

from bookstudio.errors import ValidationError

# =============================================================================
# Chapter content: Chapter -> Blocks -> Nodes
# =============================================================================

TTS_NODE = "tts_node"


class TTSNode(BaseModel):
    """Atomic synthesis unit: a run of text bound to one voice."""

    model_config = ConfigDict(frozen=True, extra="allow")

    type: str = Field(TTS_NODE, description="Node type; only tts_node is synthesized")
    text: str = Field("", description="Text to speak")
    voice_id: str = Field("", description="Provider voice id")

    @property
    def is_synthesizable(self) -> bool:
        return self.type == TTS_NODE and bool(self.text) and bool(self.voice_id)


class _BlockBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    block_id: str | None = Field(None, description="Stable block identifier")
    nodes: tuple[TTSNode, ...] = Field(default_factory=tuple)

    def with_nodes(self, nodes: list[TTSNode] | tuple[TTSNode, ...]):
        return self.model_copy(update={"nodes": tuple(nodes)})


class HeadingBlock(_BlockBase):
    sub_type: Literal["h1", "h2", "h3", "h4", "h5", "h6"] = "h2"


class ParagraphBlock(_BlockBase):
    sub_type: Literal["p"] = "p"


Block = Annotated[HeadingBlock | ParagraphBlock, Field(discriminator="sub_type")]


class ChapterContent(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    blocks: tuple[Block, ...] = Field(default_factory=tuple)

    @model_validator(mode="before")
    @classmethod
    def _default_sub_type(cls, data: Any) -> Any:
        # Blocks written without a sub_type are paragraphs.
        if isinstance(data, dict) and isinstance(data.get("blocks"), list):
            blocks = []
            for block in data["blocks"]:
                if isinstance(block, dict) and not block.get("sub_type"):
                    block = {**block, "sub_type": "p"}
                blocks.append(block)
            data = {**data, "blocks": blocks}
        return data

    def find_block(self, block_id: str):
        for block in self.blocks:
            if block.block_id == block_id:
                return block
        return None


class ChapterRecord(BaseModel):
    """One entry of a studio's ``chapters`` JSON array."""

    model_config = ConfigDict(frozen=True, extra="allow")

    id: str
    name: str = ""
    content_json: ChapterContent = Field(default_factory=ChapterContent)

    @property
    def blocks(self) -> tuple[HeadingBlock | ParagraphBlock, ...]:
        return self.content_json.blocks

    def with_blocks(self, blocks) -> ChapterRecord:
        content = self.content_json.model_copy(update={"blocks": tuple(blocks)})
        return self.model_copy(update={"content_json": content})


def parse_chapters(raw: list[dict[str, Any]] | None) -> list[ChapterRecord]:
    """Validate a studio's raw chapters JSON into chapter records."""
    try:
        return [ChapterRecord.model_validate(item) for item in raw or []]
    except PydanticValidationError as e:
        raise ValidationError(f"Malformed chapter content: {e.errors()[0]['msg']}") from e


def dump_chapters(
    chapters: list[ChapterRecord], stored: list[dict[str, Any]] | None = None
) -> list[dict[str, Any]]:
    """Serialize chapters for the studio row.

    A chapter that still matches its entry in *stored* keeps that JSON as-is;
    changed chapters are dumped with only the keys they were given.
    """
    previous = {
        item["id"]: item for item in stored or [] if isinstance(item, dict) and "id" in item
    }
    dumped = []
    for chapter in chapters:
        raw = previous.get(chapter.id)
        if raw is not None and ChapterRecord.model_validate(raw) == chapter:
            dumped.append(raw)
        else:
            dumped.append(chapter.model_dump(mode="json", exclude_unset=True))
    return dumped


# =============================================================================
# Cast roster
# =============================================================================


class OverrideSettings(BaseModel):
    """Per-cast-member voice tuning as entered in the studio UI."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    expressiveness: float | None = Field(None, ge=0.0, le=1.0)
    voice_fidelity: float | None = Field(None, ge=0.0, le=1.0, alias="voice fidelity")
    performance_intensity: float | None = Field(None, ge=0.0, le=1.0)
    enhance_voice_character: bool | None = Field(None, alias="enhance voice character")
    speaking_rate: float | None = Field(None, ge=0.5, le=2.0)

    def to_voice_settings(self) -> dict[str, Any]:
        """Map UI settings onto the provider's voice settings payload."""
        settings: dict[str, Any] = {
            "stability": self.expressiveness if self.expressiveness is not None else 0.5,
            "similarity_boost": self.voice_fidelity if self.voice_fidelity is not None else 0.75,
            "style": self.performance_intensity if self.performance_intensity is not None else 0.0,
            "use_speaker_boost": (
                self.enhance_voice_character if self.enhance_voice_character is not None else True
            ),
        }
        if self.speaking_rate is not None:
            settings["speed"] = self.speaking_rate
        return settings

    @classmethod
    def from_voice_settings(cls, settings: dict[str, Any]) -> OverrideSettings:
        """Map the provider's voice settings payload back onto UI settings."""
        return cls(
            expressiveness=settings.get("stability"),
            voice_fidelity=settings.get("similarity_boost"),
            performance_intensity=settings.get("style"),
            enhance_voice_character=settings.get("use_speaker_boost"),
            speaking_rate=settings.get("speed"),
        )


class CastMember(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    id: str
    nickname: str
    original_voice_id: str
    voice_id: str
    override_globally: bool = False
    override_settings: OverrideSettings | None = None


def parse_cast(raw: list[dict[str, Any]] | None) -> list[CastMember]:
    try:
        return [CastMember.model_validate(item) for item in raw or []]
    except PydanticValidationError as e:
        raise ValidationError(f"Malformed cast roster: {e.errors()[0]['msg']}") from e


def dump_cast(cast: list[CastMember]) -> list[dict[str, Any]]:
    return [member.model_dump(mode="json", by_alias=True) for member in cast]


# =============================================================================
# API request / response models
# =============================================================================


class Granularity(str, Enum):
    BLOCK = "block"
    CHAPTER = "chapter"
    PROJECT = "project"


class GenerateBlockRequest(BaseModel):
    project_id: str = Field(..., min_length=1)
    chapter_id: str = Field(..., min_length=1)
    block_id: str = Field(..., min_length=1)
    reuse_unchanged: bool = Field(
        False, description="Return the stored audio when the block matches its last generation"
    )


class GenerateChapterRequest(BaseModel):
    project_id: str = Field(..., min_length=1)
    chapter_id: str = Field(..., min_length=1)
    chapter_snapshot_id: str | None = Field(
        None, description="Render this snapshot; convert and poll when omitted"
    )


class GenerateProjectRequest(BaseModel):
    project_id: str = Field(..., min_length=1)
    project_snapshot_id: str | None = Field(
        None, description="Render this snapshot; convert and poll when omitted"
    )


class ConvertChapterRequest(BaseModel):
    project_id: str = Field(..., min_length=1)
    chapter_id: str = Field(..., min_length=1)


class ConvertProjectRequest(BaseModel):
    project_id: str = Field(..., min_length=1)


class GenerationResponse(BaseModel):
    status: Literal["success"] = "success"
    message: str = "Audio generated successfully"
    granularity: Granularity
    artifact_id: str
    artifact_url: str
    credits_charged: int
    character_count: int
    cached: bool = False


class SnapshotOut(BaseModel):
    snapshot_id: str
    created_at_unix: int
    name: str | None = None


class SnapshotListResponse(BaseModel):
    status: Literal["success"] = "success"
    snapshots: list[SnapshotOut]


class ConvertResponse(BaseModel):
    status: Literal["success"] = "success"
    message: str
    snapshot: SnapshotOut | None = None


class CreditBalanceResponse(BaseModel):
    status: Literal["success"] = "success"
    credits_available: int
    credits_used: int
    total_credits_used: int


class EstimateRequest(BaseModel):
    project_id: str = Field(..., min_length=1)
    chapter_id: str | None = None
    block_id: str | None = None


class EstimateResponse(BaseModel):
    status: Literal["success"] = "success"
    granularity: Granularity
    character_count: int
    credit_cost: int
    credits_available: int
    sufficient: bool


class AddCastMemberRequest(BaseModel):
    nickname: str = Field(..., min_length=1)
    voice_id: str = Field(..., min_length=1)
    override_globally: bool = False
    override_settings: OverrideSettings | None = None


class EditCastMemberRequest(BaseModel):
    nickname: str | None = None
    voice_id: str | None = None
    override_globally: bool | None = None
    override_settings: OverrideSettings | None = None


class VoiceSettingsResponse(BaseModel):
    status: Literal["success"] = "success"
    message: str
    voice_id: str
    settings: OverrideSettings


class RosterResponse(BaseModel):
    status: Literal["success"] = "success"
    message: str
    cast: list[CastMember]
    cast_member: CastMember | None = None


class SaveBlockLogRequest(BaseModel):
    project_id: str = Field(..., min_length=1)
    studio_id: str = Field(..., min_length=1)
    chapter_id: str = Field(..., min_length=1)
    block_id: str = Field(..., min_length=1)
    block_snapshot: dict[str, Any]


class SaveChapterLogRequest(BaseModel):
    project_id: str = Field(..., min_length=1)
    studio_id: str = Field(..., min_length=1)
    chapter_id: str = Field(..., min_length=1)
    chapter_snapshot: dict[str, Any]


class AudioLogResponse(BaseModel):
    status: Literal["success"] = "success"
    message: str
    exists: bool
    snapshot: dict[str, Any] | None = None