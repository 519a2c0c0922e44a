"""Advisory red/yellow flags for candidates and attempts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable

import pendulum

from ...schemas import Blueprint, CandidateRecord, ExperienceEntry, ScreeningRubric
from ..grading import GradedAttempt
from ..timer import as_utc
from .experience import employment_gaps, employment_intervals
from .matching import notice_days, parse_amount, parse_month


@dataclass
class TenureConfig:
    """Thresholds for tenure and gap flags."""

    average_threshold_months: float = 18.0
    recent_short_threshold_months: float = 12.0
    recent_window: int = 3
    gap_yellow_months: int = 6
    gap_red_months: int = 12


class CandidateFlagger:
    """Flags a candidate record for reviewer attention; never affects the score."""

    def __init__(
        self,
        *,
        config: TenureConfig | None = None,
        now_provider: Callable[[], pendulum.DateTime] | None = None,
    ) -> None:
        self._config = config or TenureConfig()
        self._now_provider = now_provider or (lambda: pendulum.now("UTC"))

    def flag(self, subject: CandidateRecord, rubric: ScreeningRubric) -> dict[str, list[str]]:
        red: list[str] = []
        yellow: list[str] = []
        as_of = self._now_provider()

        per_experience = self._compute_per_experience(subject.experience, as_of)
        if self._is_job_hopper(per_experience):
            yellow.append(
                f"short average tenure ({self._average_months(per_experience):.0f} months)"
            )

        for _, months in employment_gaps(employment_intervals(subject.experience, as_of)):
            if months > self._config.gap_red_months:
                red.append(f"employment gap of {months} months")
            elif months >= self._config.gap_yellow_months:
                yellow.append(f"employment gap of {months} months")

        if not subject.contact.email:
            yellow.append("missing email address")

        expected = parse_amount(subject.salary_expectation)
        salary_range = rubric.salary_range
        if expected is not None and salary_range is not None and salary_range.max is not None:
            if expected > salary_range.max:
                yellow.append("salary expectation above the advertised range")

        if notice_days(subject.availability) is None:
            yellow.append("availability unknown")

        return {"red": red, "yellow": yellow}

    def _compute_per_experience(
        self,
        experiences: Iterable[ExperienceEntry],
        as_of: pendulum.DateTime,
    ) -> list[dict[str, Any]]:
        normalized: list[dict[str, Any]] = []
        for experience in experiences:
            start = parse_month(experience.start_date)
            if start is None:
                continue
            end = parse_month(experience.end_date, default=as_of) or as_of
            if end < start:
                continue
            normalized.append({"months": start.diff(end).in_months(), "end_date": end})
        normalized.sort(key=lambda item: item["end_date"], reverse=True)
        return normalized

    def _is_job_hopper(self, experiences: list[dict[str, Any]]) -> bool:
        if not experiences:
            return False
        window = experiences[: self._config.recent_window]
        recent_short = sum(
            1 for item in window if item["months"] < self._config.recent_short_threshold_months
        )
        return (
            self._average_months(experiences) < self._config.average_threshold_months
            and recent_short >= 2
        )

    @staticmethod
    def _average_months(experiences: list[dict[str, Any]]) -> float:
        if not experiences:
            return 0.0
        return sum(float(item["months"]) for item in experiences) / len(experiences)


@dataclass
class IntegrityFlagConfig:
    red_threshold: int = 3
    fast_completion_ratio: float = 0.25


class IntegrityFlagger:
    """Full-screen exits and tab switches: yellow above zero, red at the threshold."""

    def __init__(self, *, config: IntegrityFlagConfig | None = None) -> None:
        self._config = config or IntegrityFlagConfig()

    def flag(self, subject: GradedAttempt, rubric: Blueprint) -> dict[str, list[str]]:
        red: list[str] = []
        yellow: list[str] = []
        attempt = subject.attempt
        for label, count in (
            ("full-screen exits", attempt.fullscreen_exits),
            ("tab switches", attempt.tab_switches),
        ):
            if count >= self._config.red_threshold:
                red.append(f"{count} {label}")
            elif count > 0:
                yellow.append(f"{count} {label}")

        spent = self._time_spent(subject)
        allotted = rubric.duration_minutes * 60
        if (
            spent is not None
            and subject.answered_count == subject.total_count
            and subject.total_count > 0
            and spent < allotted * self._config.fast_completion_ratio
        ):
            yellow.append(f"completed in {spent} seconds of {allotted} allotted")
        return {"red": red, "yellow": yellow}

    @staticmethod
    def _time_spent(subject: GradedAttempt) -> int | None:
        attempt = subject.attempt
        if attempt.time_spent_seconds is not None:
            return attempt.time_spent_seconds
        if attempt.submitted_at is None:
            return None
        return int((as_utc(attempt.submitted_at) - as_utc(attempt.started_at)).total_seconds())


class CompletionFlagger:
    """Unanswered items and answers waiting for human review."""

    def flag(self, subject: GradedAttempt, rubric: Blueprint) -> dict[str, list[str]]:
        yellow: list[str] = []
        unanswered = subject.total_count - subject.answered_count
        if unanswered:
            yellow.append(f"{unanswered} of {subject.total_count} items unanswered")
        if subject.pending_review_count:
            yellow.append(f"{subject.pending_review_count} short answer(s) pending review")
        return {"red": [], "yellow": yellow}


__all__ = [
    "CandidateFlagger",
    "CompletionFlagger",
    "IntegrityFlagConfig",
    "IntegrityFlagger",
    "TenureConfig",
]
