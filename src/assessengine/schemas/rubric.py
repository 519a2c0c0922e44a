"""Screening rubric schema for the CV-screening variant."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

SENIORITY_YEARS: dict[str, float] = {
    "entry": 0.0,
    "junior": 1.0,
    "mid": 3.0,
    "senior": 5.0,
    "lead": 7.0,
    "executive": 10.0,
}


class KnockoutKind(str, Enum):
    MISSING_MUST_HAVE = "missing_must_have"
    MIN_YEARS_EXPERIENCE = "min_years_experience"
    WORK_AUTHORIZATION = "work_authorization"
    LOCATION = "location"
    SALARY_ABOVE_MAX = "salary_above_max"
    REQUIRES = "requires"


class KnockoutRule(BaseModel):
    """Disqualifying condition evaluated before scoring."""

    kind: KnockoutKind
    value: str | float | None = None
    label: str | None = None

    model_config = ConfigDict(extra="forbid")

    def describe(self) -> str:
        if self.label:
            return self.label
        if self.value is None:
            return self.kind.value
        return f"{self.kind.value}: {self.value}"


class JobLocation(BaseModel):
    city: str | None = None
    country: str | None = None
    work_type: str | None = None

    model_config = ConfigDict(extra="forbid")


class SalaryRange(BaseModel):
    min: float | None = None
    max: float | None = None
    currency: str = "ZAR"

    model_config = ConfigDict(extra="forbid")


class CategoryWeights(BaseModel):
    """Percentage weights per screening category."""

    skills: float = 30.0
    experience: float = 25.0
    achievements: float = 20.0
    education: float = 15.0
    location_auth: float = 5.0
    salary_availability: float = 5.0

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _check_sum(self) -> "CategoryWeights":
        values = self.model_dump().values()
        if any(value < 0 for value in values):
            raise ValueError("Category weights must be non-negative")
        total = sum(values)
        if abs(total - 100.0) > 0.1 and abs(total - 1.0) > 0.01:
            raise ValueError(f"Category weights must sum to 100 (got {total:g})")
        return self

    def normalized(self) -> dict[str, float]:
        raw = self.model_dump()
        total = sum(raw.values())
        scale = 100.0 if total > 1.5 else 1.0
        return {key: value / scale for key, value in raw.items()}


class ScreeningRubric(BaseModel):
    """Job requirements a candidate record is scored against."""

    job_title: str
    job_description: str = ""
    seniority: str | None = None
    employment_type: str | None = None
    location: JobLocation = Field(default_factory=JobLocation)
    must_have_skills: list[str] = Field(default_factory=list)
    nice_to_have_skills: list[str] = Field(default_factory=list)
    required_qualifications: list[str] = Field(default_factory=list)
    min_years_experience: float | None = None
    salary_range: SalaryRange | None = None
    knockouts: list[KnockoutRule] = Field(default_factory=list)
    weights: CategoryWeights = Field(default_factory=CategoryWeights)

    model_config = ConfigDict(extra="ignore")

    @field_validator("knockouts", mode="before")
    @classmethod
    def _coerce_text_knockouts(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        return [
            {"kind": KnockoutKind.REQUIRES.value, "value": item, "label": item}
            if isinstance(item, str)
            else item
            for item in value
        ]

    def category_weights(self) -> dict[str, float]:
        return self.weights.normalized()

    def required_years(self) -> float:
        if self.min_years_experience is not None:
            return max(self.min_years_experience, 0.0)
        if self.seniority:
            return SENIORITY_YEARS.get(self.seniority.strip().lower(), 0.0)
        return 0.0


__all__ = [
    "CategoryWeights",
    "JobLocation",
    "KnockoutKind",
    "KnockoutRule",
    "SalaryRange",
    "ScreeningRubric",
    "SENIORITY_YEARS",
]
