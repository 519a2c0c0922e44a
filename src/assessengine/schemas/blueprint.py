"""Pydantic schema for test blueprints."""

from __future__ import annotations

from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def _new_id() -> str:
    return uuid4().hex


class SectionType(str, Enum):
    SKILLS = "skills"
    APTITUDE = "aptitude"
    WORK_STYLE = "work_style"


class ItemFormat(str, Enum):
    MCQ = "mcq"
    MULTI_SELECT = "multi_select"
    TRUE_FALSE = "true_false"
    SHORT_ANSWER = "short_answer"
    SJT_RANK = "sjt_rank"
    LIKERT = "likert"


class Difficulty(str, Enum):
    EASY = "E"
    MEDIUM = "M"
    HARD = "H"


class BlueprintStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    ARCHIVED = "archived"


class WebcamMode(str, Enum):
    OFF = "off"
    CONSENT_OPTIONAL = "consent_optional"
    REQUIRED = "required"


OPTION_FORMATS = frozenset(
    {ItemFormat.MCQ, ItemFormat.MULTI_SELECT, ItemFormat.SJT_RANK, ItemFormat.LIKERT}
)

# Formats graded against a key outside work-style sections.
KEYED_FORMATS = frozenset(
    {ItemFormat.MCQ, ItemFormat.MULTI_SELECT, ItemFormat.TRUE_FALSE, ItemFormat.SJT_RANK}
)


class _Document(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


class Item(_Document):
    """A single question."""

    id: str = Field(default_factory=_new_id)
    format: ItemFormat
    stem: str
    options: list[str] | None = None
    correct_answer: Any = None
    competencies: list[str] = Field(default_factory=list)
    difficulty: Difficulty = Difficulty.MEDIUM
    max_points: int = 1
    time_seconds: int | None = None
    order_index: int | None = None
    rubric: dict[str, Any] | None = None


class Section(_Document):
    """Ordered group of items of one section type."""

    id: str = Field(default_factory=_new_id)
    type: SectionType
    title: str
    description: str | None = None
    time_minutes: int
    weight: float
    order_index: int | None = None
    items: list[Item] = Field(default_factory=list)


class WeightSet(_Document):
    """Category weights used for the overall score, summing to 1.0."""

    skills: float = 0.5
    aptitude: float = 0.3
    work_style: float = 0.2

    def as_mapping(self) -> dict[str, float]:
        return {
            SectionType.SKILLS.value: self.skills,
            SectionType.APTITUDE.value: self.aptitude,
            SectionType.WORK_STYLE.value: self.work_style,
        }


class CutScoreSet(_Document):
    """Overall and per-section pass thresholds."""

    overall: float = 0.0
    sections: dict[SectionType, float] = Field(default_factory=dict)

    @field_validator("sections", mode="before")
    @classmethod
    def _normalize_section_keys(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        normalized: dict[str, Any] = {}
        for key, threshold in value.items():
            if threshold is None:
                continue
            name = key.value if isinstance(key, SectionType) else str(key)
            normalized["work_style" if name == "workStyle" else name] = threshold
        return normalized


class AntiCheatConfig(_Document):
    shuffle: bool = True
    fullscreen_monitor: bool = True
    webcam: WebcamMode = WebcamMode.OFF
    ip_logging: bool = True


class BlueprintMeta(_Document):
    job_title: str | None = None
    job_family: str | None = None
    industry: str | None = None
    seniority: str | None = None
    languages: list[str] = Field(default_factory=lambda: ["en-ZA"])


class CandidateNotice(_Document):
    privacy: str | None = None
    accommodations: bool = True
    purpose: str | None = None


class Blueprint(_Document):
    """Authored definition of a test."""

    id: str = Field(default_factory=_new_id)
    title: str = ""
    status: BlueprintStatus = BlueprintStatus.DRAFT
    duration_minutes: int = 45
    sections: list[Section] = Field(default_factory=list)
    weights: WeightSet = Field(default_factory=WeightSet)
    cut_scores: CutScoreSet = Field(default_factory=CutScoreSet)
    anti_cheat: AntiCheatConfig = Field(default_factory=AntiCheatConfig)
    meta: BlueprintMeta | None = None
    candidate_notice: CandidateNotice | None = None
    rationale: str | None = None

    def section_types(self) -> set[SectionType]:
        return {section.type for section in self.sections}

    def iter_items(self):
        for section in self.sections:
            for item in section.items:
                yield section, item

    def find_item(self, item_id: str) -> Item | None:
        for _, item in self.iter_items():
            if item.id == item_id:
                return item
        return None

    def category_weights(self) -> dict[str, float]:
        """Weights of the section types present, renormalized to sum to 1."""
        present = {section_type.value for section_type in self.section_types()}
        selected = {
            category: weight
            for category, weight in self.weights.as_mapping().items()
            if category in present
        }
        total = sum(selected.values())
        if total <= 0:
            return selected
        return {category: weight / total for category, weight in selected.items()}

    @property
    def item_count(self) -> int:
        return sum(len(section.items) for section in self.sections)

    @classmethod
    def from_generator_document(cls, document: dict[str, Any], **overrides: Any) -> "Blueprint":
        """Build a blueprint from a generator document (``meta.duration_min`` shape)."""

        payload = dict(document)
        meta = payload.get("meta") or {}
        duration = meta.get("duration_min") if isinstance(meta, dict) else None
        if isinstance(meta, dict):
            payload["meta"] = {k: v for k, v in meta.items() if k != "duration_min"}
        if duration is not None and "duration_minutes" not in payload:
            payload["duration_minutes"] = duration
        if not payload.get("title") and isinstance(meta, dict) and meta.get("job_title"):
            payload["title"] = f"{meta['job_title']} Assessment"
        payload.update(overrides)
        return cls.model_validate(payload)


__all__ = [
    "AntiCheatConfig",
    "Blueprint",
    "BlueprintMeta",
    "BlueprintStatus",
    "CandidateNotice",
    "CutScoreSet",
    "Difficulty",
    "Item",
    "ItemFormat",
    "KEYED_FORMATS",
    "OPTION_FORMATS",
    "Section",
    "SectionType",
    "WebcamMode",
    "WeightSet",
]
