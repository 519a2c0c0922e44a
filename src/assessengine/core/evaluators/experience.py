"""Employment history evaluation: merged tenure and title relevance."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable

import pendulum
from rapidfuzz import fuzz

from ...schemas import CandidateRecord, ExperienceEntry, ScreeningRubric
from .matching import normalize, parse_month

Interval = tuple[pendulum.DateTime, pendulum.DateTime]


@dataclass
class ExperienceConfig:
    """Weights and thresholds for experience scoring."""

    years_weight: float = 0.7
    relevance_weight: float = 0.3
    title_similarity: float = 70.0


class ExperienceEvaluator:
    """Score total years of experience against the required years."""

    category = "experience"

    def __init__(
        self,
        *,
        config: ExperienceConfig | None = None,
        now_provider: Callable[[], pendulum.DateTime] | None = None,
    ) -> None:
        self._config = config or ExperienceConfig()
        self._now_provider = now_provider or (lambda: pendulum.now("UTC"))

    def evaluate(self, subject: CandidateRecord, rubric: ScreeningRubric) -> dict[str, Any]:
        as_of = self._now_provider()
        intervals = employment_intervals(subject.experience, as_of)
        years = total_years(intervals)
        required = rubric.required_years()

        if not subject.experience:
            return {
                "category": self.category,
                "score": 0.0,
                "reasons": ["no experience data on the record"],
                "metadata": {"years": 0.0, "required_years": required},
            }

        years_ratio = 1.0 if required <= 0 else min(years / required, 1.0)
        relevant = self._relevant_titles(subject.experience, rubric.job_title)
        relevance = len(relevant) / len(subject.experience)

        score = 100.0 * (
            self._config.years_weight * years_ratio
            + self._config.relevance_weight * relevance
        )
        reasons = [f"{years:.1f} years of experience against {required:g} required"]
        if relevant:
            reasons.append(f"relevant roles: {', '.join(relevant)}")
        else:
            reasons.append(f"no roles closely matching {rubric.job_title!r}")

        return {
            "category": self.category,
            "score": score,
            "reasons": reasons,
            "metadata": {
                "years": round(years, 2),
                "required_years": required,
                "years_ratio": years_ratio,
                "relevance": relevance,
                "intervals": len(intervals),
            },
        }

    def _relevant_titles(self, entries: Iterable[ExperienceEntry], job_title: str) -> list[str]:
        target = normalize(job_title)
        if not target:
            return []
        return [
            entry.title
            for entry in entries
            if entry.title
            and fuzz.token_set_ratio(target, normalize(entry.title)) >= self._config.title_similarity
        ]


def employment_intervals(
    entries: Iterable[ExperienceEntry],
    as_of: pendulum.DateTime,
) -> list[Interval]:
    """Merged, sorted employment intervals; overlapping roles count once."""
    raw: list[Interval] = []
    for entry in entries:
        start = parse_month(entry.start_date)
        if start is None:
            continue
        end = parse_month(entry.end_date, default=as_of) or as_of
        if end < start:
            continue
        raw.append((start, end))
    raw.sort(key=lambda interval: interval[0])

    merged: list[Interval] = []
    for start, end in raw:
        if merged and start <= merged[-1][1]:
            previous_start, previous_end = merged[-1]
            merged[-1] = (previous_start, max(previous_end, end))
        else:
            merged.append((start, end))
    return merged


def total_years(intervals: Iterable[Interval]) -> float:
    days = sum((end - start).total_seconds() for start, end in intervals) / 86_400
    return days / 365.25


def employment_gaps(intervals: list[Interval]) -> list[tuple[Interval, int]]:
    """Gaps between merged intervals with their length in whole months."""
    gaps: list[tuple[Interval, int]] = []
    for (_, previous_end), (next_start, _) in zip(intervals, intervals[1:]):
        months = previous_end.diff(next_start).in_months()
        if months > 0:
            gaps.append(((previous_end, next_start), months))
    return gaps


__all__ = [
    "ExperienceConfig",
    "ExperienceEvaluator",
    "employment_gaps",
    "employment_intervals",
    "total_years",
]
