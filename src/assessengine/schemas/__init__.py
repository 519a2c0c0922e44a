"""Pydantic schema definitions for blueprints, attempts, candidates and results."""

from __future__ import annotations

from .result import EvaluationResult, Flags, KnockoutOutcome
from .blueprint import (
    AntiCheatConfig,
    Blueprint,
    BlueprintStatus,
    CutScoreSet,
    Item,
    ItemFormat,
    Section,
    SectionType,
    WeightSet,
)
from .attempt import (
    Attempt,
    AttemptQuestions,
    AttemptStatus,
    AttemptSummary,
    DeliveryItem,
    DeliverySection,
    IntegrityEventType,
    SubmitReceipt,
)
from .candidate import (
    Achievement,
    CandidateRecord,
    Certification,
    ContactInfo,
    EducationEntry,
    ExperienceEntry,
)
from .rubric import CategoryWeights, KnockoutKind, KnockoutRule, ScreeningRubric

__all__ = [
    "Achievement",
    "AntiCheatConfig",
    "Attempt",
    "AttemptQuestions",
    "AttemptStatus",
    "AttemptSummary",
    "Blueprint",
    "BlueprintStatus",
    "CandidateRecord",
    "CategoryWeights",
    "Certification",
    "ContactInfo",
    "CutScoreSet",
    "DeliveryItem",
    "DeliverySection",
    "EducationEntry",
    "EvaluationResult",
    "ExperienceEntry",
    "Flags",
    "IntegrityEventType",
    "Item",
    "ItemFormat",
    "KnockoutKind",
    "KnockoutOutcome",
    "KnockoutRule",
    "ScreeningRubric",
    "Section",
    "SectionType",
    "SubmitReceipt",
    "WeightSet",
]
