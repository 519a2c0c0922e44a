"""Attempt documents and the delivery views exchanged with the store."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .blueprint import ItemFormat, SectionType
from .result import EvaluationResult


class AttemptStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"


class IntegrityEventType(str, Enum):
    FULLSCREEN_EXIT = "fullscreen_exit"
    TAB_SWITCH = "tab_switch"


class _Document(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class IntegrityEventRecord(_Document):
    """Persisted integrity event."""

    event_type: IntegrityEventType
    timestamp: datetime
    received_at: datetime | None = None


class Attempt(_Document):
    """One candidate's run through a blueprint."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    blueprint_id: str
    candidate_id: str
    started_at: datetime
    status: AttemptStatus = AttemptStatus.IN_PROGRESS
    answers: dict[str, Any] = Field(default_factory=dict)
    answer_sequence: dict[str, int] = Field(default_factory=dict)
    fullscreen_exits: int = 0
    tab_switches: int = 0
    integrity_events: list[IntegrityEventRecord] = Field(default_factory=list)
    submitted_at: datetime | None = None
    time_spent_seconds: int | None = None

    @property
    def is_submitted(self) -> bool:
        return self.status is AttemptStatus.SUBMITTED


class AttemptSummary(_Document):
    """Wire view returned by ``GET attempt``."""

    id: str
    status: AttemptStatus
    started_at: datetime
    blueprint_ref: str
    duration_minutes: int
    fullscreen_exits: int = 0
    tab_switches: int = 0


class DeliveryItem(_Document):
    """Item as shown to a candidate; never carries the answer key."""

    id: str
    format: ItemFormat
    stem: str
    options: list[str] | None = None
    max_points: int = 1
    time_seconds: int | None = None


class DeliverySection(_Document):
    id: str
    type: SectionType
    title: str
    description: str | None = None
    time_minutes: int
    items: list[DeliveryItem] = Field(default_factory=list)


class AttemptQuestions(_Document):
    """Wire view returned by ``GET questions``."""

    attempt_id: str
    duration_minutes: int
    sections: list[DeliverySection] = Field(default_factory=list)
    responses: dict[str, Any] = Field(default_factory=dict)


class SubmitReceipt(_Document):
    """Acknowledgement of a finalized attempt."""

    attempt_id: str
    submitted_at: datetime
    time_spent_seconds: int
    result: EvaluationResult


__all__ = [
    "Attempt",
    "AttemptQuestions",
    "AttemptStatus",
    "AttemptSummary",
    "DeliveryItem",
    "DeliverySection",
    "IntegrityEventRecord",
    "IntegrityEventType",
    "SubmitReceipt",
]
