"""Pydantic configuration schema for CLI YAML input."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, ValidationError


class ScoringConfig(BaseModel):
    category_weights: dict[str, float] | None = None
    integrity_red_threshold: int | None = None
    fast_completion_ratio: float | None = None


class EvaluatorConfig(BaseModel):
    skills: dict[str, Any] | None = None
    experience: dict[str, Any] | None = None
    achievements: dict[str, Any] | None = None
    education: dict[str, Any] | None = None
    location: dict[str, Any] | None = None
    salary: dict[str, Any] | None = None
    sections: dict[str, Any] | None = None
    knockouts: dict[str, Any] | None = None
    tenure: dict[str, Any] | None = None


class DeliveryConfig(BaseModel):
    retry: dict[str, Any] | None = None
    tick_interval_seconds: float | None = None


class AppConfig(BaseModel):
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    evaluators: EvaluatorConfig = Field(default_factory=EvaluatorConfig)
    delivery: DeliveryConfig = Field(default_factory=DeliveryConfig)

    def to_settings(self) -> dict[str, Any]:
        settings: dict[str, Any] = {}
        scoring = self.scoring.model_dump(exclude_none=True)
        if scoring:
            settings["scoring"] = scoring
        evaluator_settings = self.evaluators.model_dump(exclude_none=True)
        if evaluator_settings:
            settings["evaluators"] = evaluator_settings
        delivery = self.delivery.model_dump(exclude_none=True)
        if delivery:
            settings["delivery"] = delivery
        return settings


def load_config(raw: Any) -> AppConfig:
    if not isinstance(raw, dict):
        raise ValidationError.from_exception_data(
            "AppConfig",
            [{"type": "dict_type", "loc": ("config",), "input": raw}],
        )
    return AppConfig.model_validate(raw)
