"""Per-section evaluators for graded test attempts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ...schemas import Blueprint, SectionType
from ..grading import GradedAttempt


@dataclass
class SectionConfig:
    """Score used when a section has no auto-graded items."""

    ungraded_score: float = 0.0


class SectionEvaluator:
    """Percent of auto-graded points earned in one section type."""

    def __init__(self, section_type: SectionType | str, *, config: SectionConfig | None = None) -> None:
        self.section_type = SectionType(section_type)
        self.category = self.section_type.value
        self._config = config or SectionConfig()

    def evaluate(self, subject: GradedAttempt, rubric: Blueprint) -> dict[str, Any]:
        grade = subject.section(self.section_type)
        reasons: list[str] = []
        if grade.max_points <= 0:
            score = self._config.ungraded_score
            reasons.append("no auto-graded items")
        else:
            score = grade.percent
            reasons.append(f"{grade.points:g} of {grade.max_points:g} points")
        if grade.answered < grade.total:
            reasons.append(f"{grade.total - grade.answered} of {grade.total} items unanswered")
        if grade.pending_review:
            reasons.append(f"{grade.pending_review} answer(s) pending human review")

        satisfied: list[str] = []
        missing: list[str] = []
        cut = rubric.cut_scores.sections.get(self.section_type)
        if cut is not None:
            label = f"{self.category} cut score {cut:g}"
            (satisfied if score >= cut else missing).append(label)

        return {
            "category": self.category,
            "score": score,
            "reasons": reasons,
            "must_haves_satisfied": satisfied,
            "missing_must_haves": missing,
            "metadata": {
                "points": grade.points,
                "max_points": grade.max_points,
                "answered": grade.answered,
                "total": grade.total,
                "pending_review": grade.pending_review,
            },
        }


def section_evaluators(
    blueprint: Blueprint,
    *,
    config: SectionConfig | None = None,
) -> list[SectionEvaluator]:
    """One evaluator per section type present, in blueprint order."""
    ordered: list[SectionType] = []
    for section in blueprint.sections:
        if section.type not in ordered:
            ordered.append(section.type)
    return [SectionEvaluator(section_type, config=config) for section_type in ordered]
