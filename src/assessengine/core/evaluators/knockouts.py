"""Knockout checks run before scoring."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

import pendulum

from ...schemas import Blueprint, CandidateRecord, KnockoutKind, KnockoutRule, ScreeningRubric
from ..grading import GradedAttempt
from .experience import employment_intervals, total_years
from .location import is_authorized, location_fit
from .matching import fuzzy_contains, parse_amount
from .sections import SectionEvaluator


@dataclass
class KnockoutConfig:
    min_similarity: float = 85.0


class RubricKnockouts:
    """Apply a screening rubric's knockout rules to a candidate record."""

    def __init__(
        self,
        *,
        config: KnockoutConfig | None = None,
        now_provider: Callable[[], pendulum.DateTime] | None = None,
    ) -> None:
        self._config = config or KnockoutConfig()
        self._now_provider = now_provider or (lambda: pendulum.now("UTC"))
        self._handlers: dict[KnockoutKind, Callable[[CandidateRecord, ScreeningRubric, KnockoutRule], str | None]] = {
            KnockoutKind.MISSING_MUST_HAVE: self._missing_must_have,
            KnockoutKind.MIN_YEARS_EXPERIENCE: self._min_years,
            KnockoutKind.WORK_AUTHORIZATION: self._work_authorization,
            KnockoutKind.LOCATION: self._location,
            KnockoutKind.SALARY_ABOVE_MAX: self._salary_above_max,
            KnockoutKind.REQUIRES: self._requires,
        }

    def check(self, subject: CandidateRecord, rubric: ScreeningRubric) -> list[str]:
        reasons: list[str] = []
        for rule in rubric.knockouts:
            reason = self._handlers[rule.kind](subject, rubric, rule)
            if reason:
                reasons.append(reason)
        return reasons

    def _missing_must_have(
        self, subject: CandidateRecord, rubric: ScreeningRubric, rule: KnockoutRule
    ) -> str | None:
        skills = [str(rule.value)] if rule.value else rubric.must_have_skills
        corpus = subject.corpus()
        missing = [
            skill
            for skill in skills
            if not fuzzy_contains(corpus, skill, min_similarity=self._config.min_similarity)
        ]
        if not missing:
            return None
        return rule.label or f"missing must-have skills: {', '.join(missing)}"

    def _min_years(
        self, subject: CandidateRecord, rubric: ScreeningRubric, rule: KnockoutRule
    ) -> str | None:
        required = _as_float(rule.value)
        if required is None:
            required = rubric.required_years()
        years = total_years(employment_intervals(subject.experience, self._now_provider()))
        if years >= required:
            return None
        return rule.label or f"{years:.1f} years of experience, {required:g} required"

    def _work_authorization(
        self, subject: CandidateRecord, rubric: ScreeningRubric, rule: KnockoutRule
    ) -> str | None:
        if is_authorized(subject.work_authorization):
            return None
        return rule.label or "no confirmed work authorization"

    def _location(
        self, subject: CandidateRecord, rubric: ScreeningRubric, rule: KnockoutRule
    ) -> str | None:
        fit, reason = location_fit(subject, rubric)
        if fit > 0:
            return None
        return rule.label or f"location requirement not met ({reason})"

    def _salary_above_max(
        self, subject: CandidateRecord, rubric: ScreeningRubric, rule: KnockoutRule
    ) -> str | None:
        cap = _as_float(rule.value)
        if cap is None and rubric.salary_range is not None:
            cap = rubric.salary_range.max
        expected = parse_amount(subject.salary_expectation)
        if cap is None or expected is None or expected <= cap:
            return None
        return rule.label or f"salary expectation {expected:,.0f} above maximum {cap:,.0f}"

    def _requires(
        self, subject: CandidateRecord, rubric: ScreeningRubric, rule: KnockoutRule
    ) -> str | None:
        term = str(rule.value or rule.label or "").strip()
        if not term:
            return None
        if fuzzy_contains(subject.corpus(), term, min_similarity=self._config.min_similarity):
            return None
        return f"requirement not met: {rule.label or term}"


class CutScoreKnockouts:
    """Per-section cut scores of a blueprint applied to a graded attempt."""

    def check(self, subject: GradedAttempt, rubric: Blueprint) -> list[str]:
        reasons: list[str] = []
        for section_type, cut in rubric.cut_scores.sections.items():
            if not subject.has_section(section_type):
                continue
            payload = SectionEvaluator(section_type).evaluate(subject, rubric)
            if payload["score"] < cut:
                reasons.append(
                    f"{section_type.value} score {payload['score']:.2f} below cut score {cut:g}"
                )
        return reasons


def _as_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return parse_amount(str(value))


__all__ = ["CutScoreKnockouts", "KnockoutConfig", "RubricKnockouts"]
