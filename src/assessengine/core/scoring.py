"""Scoring engine orchestration: knockouts, category sub-scores, aggregation, ranking."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable, Protocol, Sequence, runtime_checkable

import structlog

from ..schemas.result import EvaluationResult, Flags, KnockoutOutcome, SubjectKind

SCORE_MIN = 0.0
SCORE_MAX = 100.0


@runtime_checkable
class ScoringSubject(Protocol):
    @property
    def subject_id(self) -> str: ...

    @property
    def submitted_at(self) -> datetime | None: ...


@runtime_checkable
class Rubric(Protocol):
    def category_weights(self) -> dict[str, float]: ...


@runtime_checkable
class CategoryEvaluator(Protocol):
    """Produces one category payload: ``{"category", "score", "reasons", "metadata"}``."""

    category: str

    def evaluate(self, subject: Any, rubric: Any) -> dict[str, Any]: ...


@runtime_checkable
class KnockoutCheck(Protocol):
    def check(self, subject: Any, rubric: Any) -> list[str]: ...


@runtime_checkable
class Flagger(Protocol):
    def flag(self, subject: Any, rubric: Any) -> dict[str, list[str]]: ...


Verdict = Callable[[Any, Any, float, bool], "tuple[bool | None, str | None]"]


@dataclass(slots=True)
class CategoryScore:
    """Normalized evaluator output."""

    category: str
    score: float
    reasons: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    must_haves_satisfied: list[str] = field(default_factory=list)
    missing_must_haves: list[str] = field(default_factory=list)


def clamp_score(value: Any) -> float:
    """Bound any sub-score or total to [0, 100]; NaN and junk become 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return SCORE_MIN
    if math.isnan(number):
        return SCORE_MIN
    return min(max(number, SCORE_MIN), SCORE_MAX)


class ScoringEngine:
    """Coordinates category evaluators and aggregates a weighted total."""

    def __init__(
        self,
        evaluators: Iterable[CategoryEvaluator],
        *,
        knockouts: Iterable[KnockoutCheck] = (),
        flaggers: Iterable[Flagger] = (),
        verdict: Verdict | None = None,
        subject_kind: SubjectKind = "candidate",
    ) -> None:
        self._evaluators = list(evaluators)
        self._knockouts = list(knockouts)
        self._flaggers = list(flaggers)
        self._verdict = verdict
        self._subject_kind = subject_kind
        self._logger = structlog.get_logger(__name__)

    @property
    def categories(self) -> list[str]:
        return [evaluator.category for evaluator in self._evaluators]

    def evaluate(self, subject: ScoringSubject, rubric: Rubric) -> EvaluationResult:
        knockout_reasons: list[str] = []
        for check in self._knockouts:
            knockout_reasons.extend(check.check(subject, rubric))
        is_knockout = bool(knockout_reasons)

        # Knockouts flag the subject; scoring still runs for reviewers.
        category_scores = [
            self._normalize_category_score(evaluator.category, evaluator.evaluate(subject, rubric))
            for evaluator in self._evaluators
        ]
        breakdown = {score.category: score.score for score in category_scores}
        weights = rubric.category_weights()
        score_total = self._compute_weighted_score(breakdown, weights)

        satisfied: list[str] = []
        missing: list[str] = []
        reasons: list[str] = []
        for score in category_scores:
            satisfied.extend(score.must_haves_satisfied)
            missing.extend(score.missing_must_haves)
            reasons.extend(f"{score.category}: {reason}" for reason in score.reasons)
        reasons.extend(f"knockout: {reason}" for reason in knockout_reasons)

        passed: bool | None = None
        if self._verdict is not None:
            passed, verdict_reason = self._verdict(subject, rubric, score_total, is_knockout)
            if verdict_reason:
                reasons.append(verdict_reason)

        result = EvaluationResult(
            subject_id=subject.subject_id,
            subject_kind=self._subject_kind,
            knockout=KnockoutOutcome(is_knockout=is_knockout, reasons=tuple(knockout_reasons)),
            score_breakdown=breakdown,
            score_total=score_total,
            must_haves_satisfied=tuple(_unique(satisfied)),
            missing_must_haves=tuple(_unique(missing)),
            flags=self._collect_flags(subject, rubric),
            reasons=tuple(reasons),
            passed=passed,
            submitted_at=subject.submitted_at,
        )
        self._logger.info(
            "scoring.result",
            subject_id=result.subject_id,
            subject_kind=result.subject_kind,
            score_total=result.score_total,
            is_knockout=is_knockout,
            passed=passed,
        )
        return result

    def evaluate_batch(
        self,
        subjects: Iterable[ScoringSubject],
        rubric: Rubric,
    ) -> list[EvaluationResult]:
        """Score every subject, then assign ranks across the batch."""
        return rank_results([self.evaluate(subject, rubric) for subject in subjects])

    @staticmethod
    def _normalize_category_score(category: str, payload: dict[str, Any]) -> CategoryScore:
        if not isinstance(payload, dict):
            raise ValueError(f"Evaluator for {category!r} must return a mapping.")
        reported = payload.get("category", category)
        if reported != category:
            raise ValueError(f"Evaluator for {category!r} reported category {reported!r}.")
        return CategoryScore(
            category=category,
            score=round(clamp_score(payload.get("score")), 2),
            reasons=[str(reason) for reason in payload.get("reasons") or []],
            metadata=dict(payload.get("metadata") or {}),
            must_haves_satisfied=list(payload.get("must_haves_satisfied") or []),
            missing_must_haves=list(payload.get("missing_must_haves") or []),
        )

    @staticmethod
    def _compute_weighted_score(scores: dict[str, float], weights: dict[str, float]) -> float:
        total = sum(scores.get(category, 0.0) * weight for category, weight in weights.items())
        return round(clamp_score(total), 2)

    def _collect_flags(self, subject: Any, rubric: Any) -> Flags:
        red: list[str] = []
        yellow: list[str] = []
        for flagger in self._flaggers:
            flags = flagger.flag(subject, rubric)
            red.extend(flags.get("red", []))
            yellow.extend(flags.get("yellow", []))
        return Flags(red=tuple(_unique(red)), yellow=tuple(_unique(yellow)))


def rank_results(results: Sequence[EvaluationResult]) -> list[EvaluationResult]:
    """Order by total desc, fewer missing must-haves, earliest submission; ranks start at 1."""

    def sort_key(result: EvaluationResult) -> tuple[float, int, int, float]:
        submitted = result.submitted_at
        return (
            -result.score_total,
            len(result.missing_must_haves),
            0 if submitted is not None else 1,
            submitted.timestamp() if submitted is not None else 0.0,
        )

    ordered = sorted(results, key=sort_key)
    return [result.with_rank(position) for position, result in enumerate(ordered, start=1)]


def _unique(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    unique: list[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            unique.append(value)
    return unique


__all__ = [
    "CategoryEvaluator",
    "CategoryScore",
    "Flagger",
    "KnockoutCheck",
    "Rubric",
    "ScoringEngine",
    "ScoringSubject",
    "clamp_score",
    "rank_results",
]
