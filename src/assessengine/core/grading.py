"""Item-level grading of a finalized attempt against its blueprint keys."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..schemas.attempt import Attempt
from ..schemas.blueprint import Blueprint, Item, ItemFormat, SectionType
from .codec import LikertRating, MultiChoice, Ranking, SingleChoice, decode_or_none

LIKERT_SPAN = 4


@dataclass(frozen=True, slots=True)
class ItemGrade:
    item_id: str
    section_type: SectionType
    format: ItemFormat
    max_points: int
    points: float
    answered: bool
    auto_graded: bool
    correct: bool | None = None


@dataclass(frozen=True, slots=True)
class SectionGrade:
    """Points aggregated over every section of one type."""

    section_type: SectionType
    points: float
    max_points: float
    answered: int
    total: int
    pending_review: int

    @property
    def percent(self) -> float:
        if self.max_points <= 0:
            return 0.0
        return 100.0 * self.points / self.max_points


@dataclass(frozen=True, slots=True)
class GradedAttempt:
    """Scoring subject for the test-attempt variant."""

    attempt: Attempt
    blueprint: Blueprint
    items: tuple[ItemGrade, ...]

    @property
    def subject_id(self) -> str:
        return self.attempt.id

    @property
    def submitted_at(self) -> datetime | None:
        return self.attempt.submitted_at

    @property
    def answered_count(self) -> int:
        return sum(1 for grade in self.items if grade.answered)

    @property
    def total_count(self) -> int:
        return len(self.items)

    @property
    def pending_review_count(self) -> int:
        return sum(1 for grade in self.items if grade.answered and not grade.auto_graded)

    def section(self, section_type: SectionType | str) -> SectionGrade:
        section_type = SectionType(section_type)
        grades = [grade for grade in self.items if grade.section_type is section_type]
        graded = [grade for grade in grades if grade.auto_graded]
        return SectionGrade(
            section_type=section_type,
            points=sum(grade.points for grade in graded),
            max_points=float(sum(grade.max_points for grade in graded)),
            answered=sum(1 for grade in grades if grade.answered),
            total=len(grades),
            pending_review=sum(1 for grade in grades if grade.answered and not grade.auto_graded),
        )

    def has_section(self, section_type: SectionType | str) -> bool:
        return SectionType(section_type) in self.blueprint.section_types()


def grade_attempt(attempt: Attempt, blueprint: Blueprint) -> GradedAttempt:
    grades = [
        grade_item(item, attempt.answers.get(item.id), section_type=section.type)
        for section, item in blueprint.iter_items()
    ]
    return GradedAttempt(attempt=attempt, blueprint=blueprint, items=tuple(grades))


def grade_item(item: Item, raw: Any, *, section_type: SectionType) -> ItemGrade:
    """Grade one response. Unkeyed items other than likert are advisory and excluded."""

    options = item.options if item.format is not ItemFormat.TRUE_FALSE else None
    answered = raw is not None
    keyed = item.correct_answer is not None
    auto_graded = item.format is not ItemFormat.SHORT_ANSWER and (
        keyed or item.format is ItemFormat.LIKERT
    )

    def build(points: float, correct: bool | None) -> ItemGrade:
        return ItemGrade(
            item_id=item.id,
            section_type=section_type,
            format=item.format,
            max_points=item.max_points,
            points=min(max(points, 0.0), float(item.max_points)),
            answered=answered,
            auto_graded=auto_graded,
            correct=correct,
        )

    if not answered or not auto_graded:
        return build(0.0, False if answered is False and auto_graded else None)

    response = decode_or_none(item.format, raw, options)
    if response is None:
        return build(0.0, False)

    if item.format is ItemFormat.LIKERT:
        assert isinstance(response, LikertRating)
        key = decode_or_none(ItemFormat.LIKERT, item.correct_answer) if keyed else None
        if isinstance(key, LikertRating):
            closeness = 1.0 - abs(response.rating - key.rating) / LIKERT_SPAN
            return build(item.max_points * closeness, response.rating == key.rating)
        # Unkeyed work-style preference: agreement on the 1-5 scale.
        return build(item.max_points * (response.rating - 1) / LIKERT_SPAN, None)

    key = decode_or_none(item.format, item.correct_answer, options)
    if key is None:
        return build(0.0, None)

    if isinstance(response, SingleChoice):
        correct = response == key
        return build(float(item.max_points) if correct else 0.0, correct)

    if isinstance(response, MultiChoice):
        assert isinstance(key, MultiChoice)
        return build(item.max_points * _multi_select_credit(response.choices, key.choices), response == key)

    assert isinstance(response, Ranking) and isinstance(key, Ranking)
    return build(item.max_points * _ranking_agreement(response.order, key.order), response == key)


def _multi_select_credit(selected: frozenset[str], key: frozenset[str]) -> float:
    if not key:
        return 1.0 if not selected else 0.0
    hits = len(selected & key)
    false_picks = len(selected - key)
    return max(0.0, (hits - false_picks) / len(key))


def _ranking_agreement(order: tuple[str, ...], key: tuple[str, ...]) -> float:
    """1 minus the normalized Spearman footrule distance."""
    size = len(key)
    if size <= 1:
        return 1.0 if tuple(order) == tuple(key) else 0.0
    positions = {option: index for index, option in enumerate(key)}
    if set(order) != set(positions):
        return 0.0
    distance = sum(abs(index - positions[option]) for index, option in enumerate(order))
    worst = (size * size) // 2
    return max(0.0, 1.0 - distance / worst)


__all__ = ["GradedAttempt", "ItemGrade", "SectionGrade", "grade_attempt", "grade_item"]
