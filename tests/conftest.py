from __future__ import annotations

import copy
from typing import Any, Callable

import pendulum
import pytest

from assessengine.store.memory import InMemoryAttemptStore, InMemoryBlueprintRepository

LIKERT_OPTIONS = ["Strongly disagree", "Disagree", "Neutral", "Agree", "Strongly agree"]

BASE_BLUEPRINT: dict[str, Any] = {
    "id": "bp-analyst",
    "title": "Data Analyst Assessment",
    "duration_minutes": 30,
    "sections": [
        {
            "id": "sec-skills",
            "type": "skills",
            "title": "SQL skills",
            "time_minutes": 15,
            "weight": 50,
            "items": [
                {
                    "id": "s1",
                    "format": "mcq",
                    "stem": "Which clause filters grouped rows?",
                    "options": ["WHERE", "HAVING", "ORDER BY", "LIMIT"],
                    "correct_answer": "HAVING",
                    "competencies": ["sql"],
                },
                {
                    "id": "s2",
                    "format": "multi_select",
                    "stem": "Which of these are aggregate functions?",
                    "options": ["SUM", "AVG", "CONCAT", "TRIM"],
                    "correct_answer": ["AVG", "SUM"],
                    "competencies": ["sql"],
                    "max_points": 2,
                },
                {
                    "id": "s3",
                    "format": "true_false",
                    "stem": "A LEFT JOIN keeps unmatched rows from the left table.",
                    "correct_answer": "True",
                    "competencies": ["sql"],
                },
                {
                    "id": "s4",
                    "format": "short_answer",
                    "stem": "Explain what a window function does.",
                    "competencies": ["sql"],
                },
            ],
        },
        {
            "id": "sec-aptitude",
            "type": "aptitude",
            "title": "Reasoning",
            "time_minutes": 10,
            "weight": 30,
            "items": [
                {
                    "id": "a1",
                    "format": "mcq",
                    "stem": "2, 4, 8, ?",
                    "options": ["10", "12", "16", "18"],
                    "correct_answer": "16",
                    "competencies": ["numerical"],
                },
                {
                    "id": "a2",
                    "format": "sjt_rank",
                    "stem": "Rank your responses to a missed deadline.",
                    "options": ["Escalate", "Renegotiate", "Ignore", "Work overtime"],
                    "correct_answer": ["Renegotiate", "Escalate", "Work overtime", "Ignore"],
                    "competencies": ["judgement"],
                },
            ],
        },
        {
            "id": "sec-work-style",
            "type": "work_style",
            "title": "Work style",
            "time_minutes": 5,
            "weight": 20,
            "items": [
                {
                    "id": "w1",
                    "format": "likert",
                    "stem": "I plan my week in advance.",
                    "options": LIKERT_OPTIONS,
                    "competencies": ["conscientiousness"],
                },
            ],
        },
    ],
    "weights": {"skills": 0.5, "aptitude": 0.3, "work_style": 0.2},
    "cut_scores": {"overall": 50, "sections": {}},
    "anti_cheat": {"shuffle": False},
}

FULL_MARKS: dict[str, Any] = {
    "s1": "HAVING",
    "s2": ["SUM", "AVG"],
    "s3": "True",
    "s4": "It computes across a frame of related rows.",
    "a1": "16",
    "a2": ["Renegotiate", "Escalate", "Work overtime", "Ignore"],
    "w1": 5,
}


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: pendulum.DateTime) -> None:
        self.now = start

    def __call__(self) -> pendulum.DateTime:
        return self.now

    def advance(self, **delta: int) -> pendulum.DateTime:
        self.now = self.now.add(**delta)
        return self.now


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def blueprint_document() -> Callable[..., dict[str, Any]]:
    def build(**overrides: Any) -> dict[str, Any]:
        document = copy.deepcopy(BASE_BLUEPRINT)
        document.update(copy.deepcopy(overrides))
        return document

    return build


@pytest.fixture
def true_false_document() -> Callable[[int], dict[str, Any]]:
    """Single-section blueprint with ``count`` true/false items ``tf1..tfN``."""

    def build(count: int = 10) -> dict[str, Any]:
        items = [
            {
                "id": f"tf{index}",
                "format": "true_false",
                "stem": f"Statement {index} holds.",
                "correct_answer": "True" if index % 2 else "False",
                "competencies": ["reasoning"],
            }
            for index in range(1, count + 1)
        ]
        return {
            "id": "bp-true-false",
            "title": "Reasoning check",
            "duration_minutes": 20,
            "sections": [
                {
                    "id": "sec-aptitude",
                    "type": "aptitude",
                    "title": "Reasoning",
                    "time_minutes": 20,
                    "weight": 100,
                    "items": items,
                }
            ],
            "weights": {"skills": 0.5, "aptitude": 0.3, "work_style": 0.2},
            "anti_cheat": {"shuffle": False},
        }

    return build


@pytest.fixture
def full_marks() -> dict[str, Any]:
    return copy.deepcopy(FULL_MARKS)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(pendulum.datetime(2025, 3, 3, 9, 0, 0, tz="UTC"))


@pytest.fixture
def no_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_store(clock: FakeClock, blueprint_document) -> Callable[..., InMemoryAttemptStore]:
    """Store with one activated blueprint; defaults to the analyst blueprint."""

    def build(document: dict[str, Any] | None = None) -> InMemoryAttemptStore:
        repository = InMemoryBlueprintRepository()
        blueprint = repository.create(document or blueprint_document())
        repository.activate(blueprint.id)
        return InMemoryAttemptStore(repository, clock=clock)

    return build
