"""Ready-made scoring engines for attempts and candidate records."""

from __future__ import annotations

from typing import Any, Callable, Iterable

import pendulum

from ..schemas import Attempt, Blueprint, EvaluationResult
from .evaluators import (
    AchievementsEvaluator,
    CandidateFlagger,
    CompletionFlagger,
    CutScoreKnockouts,
    EducationEvaluator,
    ExperienceEvaluator,
    IntegrityFlagConfig,
    IntegrityFlagger,
    LocationAuthEvaluator,
    RubricKnockouts,
    SalaryAvailabilityEvaluator,
    SectionConfig,
    SkillsEvaluator,
    section_evaluators,
)
from .grading import GradedAttempt, grade_attempt
from .scoring import Flagger, ScoringEngine


def cut_score_verdict(
    subject: GradedAttempt,
    rubric: Blueprint,
    total: float,
    is_knockout: bool,
) -> tuple[bool, str | None]:
    """Pass when no knockout fired and the total reaches the overall cut score."""
    overall = rubric.cut_scores.overall
    if is_knockout:
        return False, "verdict: failed a section cut score"
    if total < overall:
        return False, f"verdict: total {total:.2f} below overall cut score {overall:g}"
    return True, None


class AttemptScorer:
    """Grades an attempt and scores it with one evaluator per section type present."""

    def __init__(
        self,
        *,
        section_config: SectionConfig | None = None,
        integrity_config: IntegrityFlagConfig | None = None,
        flaggers: Iterable[Flagger] | None = None,
    ) -> None:
        self._section_config = section_config
        if flaggers is None:
            flaggers = (IntegrityFlagger(config=integrity_config), CompletionFlagger())
        self._flaggers = list(flaggers)

    def engine_for(self, blueprint: Blueprint) -> ScoringEngine:
        return ScoringEngine(
            section_evaluators(blueprint, config=self._section_config),
            knockouts=[CutScoreKnockouts()],
            flaggers=self._flaggers,
            verdict=cut_score_verdict,
            subject_kind="attempt",
        )

    def score(self, attempt: Attempt, blueprint: Blueprint) -> EvaluationResult:
        graded = grade_attempt(attempt, blueprint)
        return self.engine_for(blueprint).evaluate(graded, blueprint)


def candidate_engine(
    *,
    now_provider: Callable[[], pendulum.DateTime] | None = None,
    **overrides: Any,
) -> ScoringEngine:
    """Default CV-screening engine; keyword overrides replace single evaluators."""
    evaluators = [
        overrides.get("skills") or SkillsEvaluator(),
        overrides.get("experience") or ExperienceEvaluator(now_provider=now_provider),
        overrides.get("achievements") or AchievementsEvaluator(),
        overrides.get("education") or EducationEvaluator(),
        overrides.get("location_auth") or LocationAuthEvaluator(),
        overrides.get("salary_availability") or SalaryAvailabilityEvaluator(),
    ]
    return ScoringEngine(
        evaluators,
        knockouts=[RubricKnockouts(now_provider=now_provider)],
        flaggers=[CandidateFlagger(now_provider=now_provider)],
        subject_kind="candidate",
    )


__all__ = ["AttemptScorer", "candidate_engine", "cut_score_verdict"]
