"""Salary expectation and availability evaluation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ...schemas import CandidateRecord, ScreeningRubric
from .matching import notice_days, parse_amount


@dataclass
class SalaryConfig:
    """Configuration for salary matching."""

    tolerance_ratio: float = 0.10
    salary_weight: float = 0.7
    availability_weight: float = 0.3
    max_notice_days: int = 90


class SalaryAvailabilityEvaluator:
    """Compare the candidate's expectation with the job range, plus notice period."""

    category = "salary_availability"

    def __init__(self, *, config: SalaryConfig | None = None) -> None:
        self._config = config or SalaryConfig()

    def evaluate(self, subject: CandidateRecord, rubric: ScreeningRubric) -> dict[str, Any]:
        salary_score, salary_status, salary_meta = self._salary_fit(subject, rubric)
        availability_score, availability_reason, days = self._availability_fit(subject)

        score = 100.0 * (
            self._config.salary_weight * salary_score
            + self._config.availability_weight * availability_score
        )
        return {
            "category": self.category,
            "score": score,
            "reasons": [f"salary {salary_status.replace('_', ' ')}", availability_reason],
            "metadata": {
                **salary_meta,
                "status": salary_status,
                "notice_days": days,
            },
        }

    def _salary_fit(
        self,
        subject: CandidateRecord,
        rubric: ScreeningRubric,
    ) -> tuple[float, str, dict[str, Any]]:
        expected = parse_amount(subject.salary_expectation)
        job_range = rubric.salary_range
        tolerance = self._config.tolerance_ratio
        meta: dict[str, Any] = {"expected": expected, "tolerance_ratio": tolerance}
        if expected is None or job_range is None or (job_range.min is None and job_range.max is None):
            # Unknown salary data scores neutrally.
            return 0.5, "insufficient_data", meta

        expanded_min = job_range.min * (1 - tolerance) if job_range.min is not None else None
        expanded_max = job_range.max * (1 + tolerance) if job_range.max is not None else None
        meta["expanded_job_range"] = (expanded_min, expanded_max)
        meta["gap_amount"] = salary_gap(expected, job_range.min, job_range.max)

        if expanded_max is not None and expected > expanded_max:
            return 0.0, "out_of_range", meta
        if expanded_min is not None and expected < expanded_min:
            # Asking below the band is not disqualifying.
            return 1.0, "below_range", meta
        return 1.0, "within_tolerance", meta

    def _availability_fit(self, subject: CandidateRecord) -> tuple[float, str, int | None]:
        days = notice_days(subject.availability)
        if days is None:
            return 0.0, "availability unknown", None
        max_days = max(self._config.max_notice_days, 1)
        fit = max(0.0, 1.0 - days / max_days)
        if days == 0:
            return fit, "available immediately", days
        return fit, f"available in {days} days", days


def salary_gap(expected: float, job_min: float | None, job_max: float | None) -> float:
    """Distance outside the advertised range; 0 when inside."""
    if job_max is not None and expected > job_max:
        return expected - job_max
    if job_min is not None and expected < job_min:
        return job_min - expected
    return 0.0
