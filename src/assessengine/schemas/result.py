"""Scoring output schema."""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import uuid4

import pendulum
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SubjectKind = Literal["attempt", "candidate"]


class _Frozen(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class KnockoutOutcome(_Frozen):
    is_knockout: bool = False
    reasons: tuple[str, ...] = ()


class Flags(_Frozen):
    red: tuple[str, ...] = ()
    yellow: tuple[str, ...] = ()


class EvaluationResult(_Frozen):
    """Immutable result of one scoring pass; re-scoring creates a new one."""

    result_id: str = Field(default_factory=lambda: uuid4().hex)
    subject_id: str
    subject_kind: SubjectKind
    knockout: KnockoutOutcome = Field(default_factory=KnockoutOutcome)
    score_breakdown: dict[str, float] = Field(default_factory=dict)
    score_total: float = 0.0
    must_haves_satisfied: tuple[str, ...] = ()
    missing_must_haves: tuple[str, ...] = ()
    flags: Flags = Field(default_factory=Flags)
    reasons: tuple[str, ...] = ()
    passed: bool | None = None
    submitted_at: datetime | None = None
    created_at: datetime = Field(default_factory=lambda: pendulum.now("UTC"))
    rank: int | None = None

    def with_rank(self, rank: int) -> "EvaluationResult":
        return self.model_copy(update={"rank": rank})


__all__ = ["EvaluationResult", "Flags", "KnockoutOutcome", "SubjectKind"]
