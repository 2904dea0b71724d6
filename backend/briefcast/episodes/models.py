"""
Data model for generated briefs.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

SLUG_PATTERN = re.compile(r"^[a-z0-9-]{3,50}$")


class DurationClass(str, Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"

    @property
    def target_words(self) -> int:
        return TARGET_WORDS[self]


TARGET_WORDS = {
    DurationClass.SHORT: 130,
    DurationClass.MEDIUM: 160,
    DurationClass.LONG: 190,
}


class Coverage(str, Enum):
    """How much of the spoken script the audio represents."""
    FULL = "full"
    SUBSTANTIAL = "substantial"
    EXCERPT = "excerpt"
    NONE = "none"


class PipelineStage(str, Enum):
    DRAFTING = "drafting"
    SYNTHESIZING = "synthesizing"
    MINTING = "minting"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


class GenerationRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    topic: str = Field(min_length=1)
    duration_class: DurationClass = DurationClass.MEDIUM

    @field_validator("topic", mode="before")
    @classmethod
    def strip_topic(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value


class Script(BaseModel):
    text: str
    spoken_text: str
    word_count: int
    target_word_count: int


class AudioAsset(BaseModel):
    payload: bytes
    encoding: str = "mp3"
    source_coverage: Coverage
    source_text: str


class Slug(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: str

    @field_validator("value")
    @classmethod
    def check_pattern(cls, value: str) -> str:
        if not SLUG_PATTERN.match(value):
            raise ValueError(f"Invalid slug: {value!r}")
        return value

    def __str__(self) -> str:
        return self.value


class ContentRecord(BaseModel):
    """One persisted brief. Created once, never updated."""

    topic: str
    slug: str
    url: str
    script: str
    audio_path: Optional[str] = None
    audio_url: Optional[str] = None
    coverage: Optional[Coverage] = None
    word_count: Optional[int] = None
    created_at: datetime

    def to_row(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ContentRecord":
        """Build a record from a table row; columns added later may be missing."""
        return cls(
            topic=row["topic"],
            slug=row["slug"],
            url=row["url"],
            script=row.get("script") or "",
            audio_path=row.get("audio_path"),
            audio_url=row.get("audio_url"),
            coverage=row.get("coverage"),
            word_count=row.get("word_count"),
            created_at=row["created_at"],
        )


class ContentSummary(BaseModel):
    slug: str
    topic: str
    url: str
    coverage: Optional[Coverage] = None
    audio_url: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_record(cls, record: ContentRecord) -> "ContentSummary":
        return cls(
            slug=record.slug,
            topic=record.topic,
            url=record.url,
            coverage=record.coverage,
            audio_url=record.audio_url,
            created_at=record.created_at,
        )


class GenerationResult(BaseModel):
    url: str
    slug: str
    coverage: Coverage
    word_count: int
    estimated_seconds: int
    message: str
    script: str
    audio_url: Optional[str] = None
    persisted: bool
    stages: List[PipelineStage]
    diagnostics: List[str] = Field(default_factory=list)
