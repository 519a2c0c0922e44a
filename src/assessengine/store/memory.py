"""In-process owning store for blueprints and attempts."""

from __future__ import annotations

import random
from datetime import datetime
from typing import Any, Callable, Mapping

import pendulum
import structlog

from ..core.codec import decode, encode
from ..core.engines import AttemptScorer
from ..core.timer import as_utc, time_spent_seconds
from ..core.validator import ensure_valid, validate_document
from ..errors import (
    AttemptNotFoundError,
    BlueprintNotFoundError,
    BlueprintStateError,
    BlueprintValidationError,
    StaleAttemptError,
)
from ..schemas import (
    Attempt,
    AttemptQuestions,
    AttemptStatus,
    AttemptSummary,
    Blueprint,
    BlueprintStatus,
    DeliveryItem,
    DeliverySection,
    EvaluationResult,
    IntegrityEventType,
    ItemFormat,
    SubmitReceipt,
)
from ..schemas.attempt import IntegrityEventRecord

Clock = Callable[[], pendulum.DateTime]

SHUFFLED_OPTION_FORMATS = frozenset({ItemFormat.MCQ, ItemFormat.MULTI_SELECT, ItemFormat.SJT_RANK})


class InMemoryBlueprintRepository:
    """Blueprint authoring store; blueprints are immutable once active."""

    def __init__(self) -> None:
        self._blueprints: dict[str, Blueprint] = {}
        self._logger = structlog.get_logger(__name__)

    def create(self, document: Mapping[str, Any]) -> Blueprint:
        blueprint = self._parse(document)
        if blueprint.id in self._blueprints:
            raise BlueprintStateError(f"Blueprint {blueprint.id!r} already exists")
        self._blueprints[blueprint.id] = blueprint
        self._logger.info("blueprint.created", blueprint_id=blueprint.id, status=blueprint.status.value)
        return blueprint

    def patch(self, blueprint_id: str, changes: Mapping[str, Any]) -> Blueprint:
        current = self.get(blueprint_id)
        if current.status is not BlueprintStatus.DRAFT:
            raise BlueprintStateError(f"Blueprint {blueprint_id!r} is {current.status.value}")
        if "status" in changes:
            raise BlueprintStateError(f"Blueprint {blueprint_id!r} status changes only through activation")
        merged = current.model_dump(by_alias=True)
        merged.update(_to_aliases(changes))
        merged["id"] = blueprint_id
        blueprint = self._parse(merged)
        self._blueprints[blueprint_id] = blueprint
        self._logger.info("blueprint.patched", blueprint_id=blueprint_id, fields=sorted(changes))
        return blueprint

    def activate(self, blueprint_id: str) -> Blueprint:
        current = self.get(blueprint_id)
        if current.status is BlueprintStatus.ACTIVE:
            return current
        if current.status is BlueprintStatus.ARCHIVED:
            raise BlueprintStateError(f"Blueprint {blueprint_id!r} is archived")
        ensure_valid(current)
        active = current.model_copy(update={"status": BlueprintStatus.ACTIVE})
        self._blueprints[blueprint_id] = active
        self._logger.info("blueprint.activated", blueprint_id=blueprint_id)
        return active

    def get(self, blueprint_id: str) -> Blueprint:
        try:
            return self._blueprints[blueprint_id]
        except KeyError:
            raise BlueprintNotFoundError(blueprint_id) from None

    @staticmethod
    def _parse(document: Mapping[str, Any]) -> Blueprint:
        blueprint, violations = validate_document(document)
        if violations:
            raise BlueprintValidationError(violations)
        assert blueprint is not None
        return blueprint


class InMemoryAttemptStore:
    """Authoritative attempt store.

    Assigns ``started_at`` from its own clock, rejects writes on submitted
    attempts, resolves same-item writes by client intent sequence and scores
    each attempt exactly once on submit.
    """

    def __init__(
        self,
        blueprints: InMemoryBlueprintRepository | None = None,
        *,
        scorer: AttemptScorer | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.blueprints = blueprints or InMemoryBlueprintRepository()
        self._scorer = scorer or AttemptScorer()
        self._clock = clock or (lambda: pendulum.now("UTC"))
        self._attempts: dict[str, Attempt] = {}
        self._results: dict[str, EvaluationResult] = {}
        self._logger = structlog.get_logger(__name__)

    def start_attempt(self, blueprint_id: str, candidate_id: str) -> Attempt:
        blueprint = self.blueprints.get(blueprint_id)
        if blueprint.status is not BlueprintStatus.ACTIVE:
            raise BlueprintStateError(f"Blueprint {blueprint_id!r} is not active")
        attempt = Attempt(
            blueprint_id=blueprint_id,
            candidate_id=candidate_id,
            started_at=as_utc(self._clock()),
        )
        self._attempts[attempt.id] = attempt
        self._logger.info(
            "attempt.started",
            attempt_id=attempt.id,
            blueprint_id=blueprint_id,
            candidate_id=candidate_id,
        )
        return attempt

    def attempt(self, attempt_id: str) -> Attempt:
        try:
            return self._attempts[attempt_id]
        except KeyError:
            raise AttemptNotFoundError(attempt_id) from None

    def result(self, attempt_id: str) -> EvaluationResult | None:
        self.attempt(attempt_id)
        return self._results.get(attempt_id)

    def results(self) -> list[EvaluationResult]:
        return list(self._results.values())

    async def get_attempt(self, attempt_id: str) -> AttemptSummary:
        attempt = self.attempt(attempt_id)
        blueprint = self.blueprints.get(attempt.blueprint_id)
        return AttemptSummary(
            id=attempt.id,
            status=attempt.status,
            started_at=attempt.started_at,
            blueprint_ref=blueprint.id,
            duration_minutes=blueprint.duration_minutes,
            fullscreen_exits=attempt.fullscreen_exits,
            tab_switches=attempt.tab_switches,
        )

    async def get_questions(self, attempt_id: str) -> AttemptQuestions:
        attempt = self.attempt(attempt_id)
        blueprint = self.blueprints.get(attempt.blueprint_id)
        rng = random.Random(attempt.id) if blueprint.anti_cheat.shuffle else None
        sections: list[DeliverySection] = []
        for section in blueprint.sections:
            items = [
                DeliveryItem(
                    id=item.id,
                    format=item.format,
                    stem=item.stem,
                    options=_delivery_options(item.format, item.options, rng),
                    max_points=item.max_points,
                    time_seconds=item.time_seconds,
                )
                for item in section.items
            ]
            if rng is not None:
                rng.shuffle(items)
            sections.append(
                DeliverySection(
                    id=section.id,
                    type=section.type,
                    title=section.title,
                    description=section.description,
                    time_minutes=section.time_minutes,
                    items=items,
                )
            )
        return AttemptQuestions(
            attempt_id=attempt.id,
            duration_minutes=blueprint.duration_minutes,
            sections=sections,
            responses=dict(attempt.answers),
        )

    async def save_response(
        self,
        attempt_id: str,
        item_id: str,
        response: Any,
        *,
        client_seq: int,
    ) -> None:
        attempt = self._writable(attempt_id)
        blueprint = self.blueprints.get(attempt.blueprint_id)
        item = blueprint.find_item(item_id)
        if item is None:
            raise KeyError(f"Unknown item: {item_id!r}")

        current_seq = attempt.answer_sequence.get(item_id)
        if current_seq is not None and client_seq <= current_seq:
            self._logger.info(
                "attempt.response_superseded",
                attempt_id=attempt_id,
                item_id=item_id,
                client_seq=client_seq,
                current_seq=current_seq,
            )
            return

        options = None if item.format is ItemFormat.TRUE_FALSE else item.options
        if response is None:
            attempt.answers.pop(item_id, None)
        else:
            attempt.answers[item_id] = encode(item.format, decode(item.format, response, options))
        attempt.answer_sequence[item_id] = client_seq

    async def record_integrity_event(
        self,
        attempt_id: str,
        event_type: IntegrityEventType,
        timestamp: datetime,
    ) -> None:
        attempt = self._writable(attempt_id)
        event_type = IntegrityEventType(event_type)
        attempt.integrity_events.append(
            IntegrityEventRecord(
                event_type=event_type,
                timestamp=as_utc(timestamp),
                received_at=as_utc(self._clock()),
            )
        )
        if event_type is IntegrityEventType.FULLSCREEN_EXIT:
            attempt.fullscreen_exits += 1
        else:
            attempt.tab_switches += 1

    async def submit(
        self,
        attempt_id: str,
        *,
        time_spent_seconds: int,
        fullscreen_exits: int,
        tab_switches: int,
    ) -> SubmitReceipt:
        attempt = self._writable(attempt_id)
        blueprint = self.blueprints.get(attempt.blueprint_id)
        now = as_utc(self._clock())

        # Committed only after scoring succeeds.
        final = attempt.model_copy(deep=True)
        final.status = AttemptStatus.SUBMITTED
        final.submitted_at = now
        # Client totals cover events whose delivery was dropped.
        final.fullscreen_exits = max(attempt.fullscreen_exits, max(fullscreen_exits, 0))
        final.tab_switches = max(attempt.tab_switches, max(tab_switches, 0))
        final.time_spent_seconds = _server_time_spent(blueprint, attempt, now)

        result = self._scorer.score(final, blueprint)
        self._attempts[attempt_id] = final
        attempt = final
        self._results[attempt_id] = result
        self._logger.info(
            "attempt.submitted",
            attempt_id=attempt_id,
            client_time_spent_seconds=time_spent_seconds,
            time_spent_seconds=attempt.time_spent_seconds,
            score_total=result.score_total,
            passed=result.passed,
        )
        return SubmitReceipt(
            attempt_id=attempt_id,
            submitted_at=now,
            time_spent_seconds=attempt.time_spent_seconds,
            result=result,
        )

    def _writable(self, attempt_id: str) -> Attempt:
        attempt = self.attempt(attempt_id)
        if attempt.is_submitted:
            raise StaleAttemptError(attempt_id)
        return attempt


def _server_time_spent(blueprint: Blueprint, attempt: Attempt, now: pendulum.DateTime) -> int:
    return time_spent_seconds(blueprint.duration_minutes, attempt.started_at, now)


def _delivery_options(
    format: ItemFormat,
    options: list[str] | None,
    rng: random.Random | None,
) -> list[str] | None:
    if options is None:
        return None
    ordered = list(options)
    if rng is not None and format in SHUFFLED_OPTION_FORMATS:
        rng.shuffle(ordered)
    return ordered


def _to_aliases(changes: Mapping[str, Any]) -> dict[str, Any]:
    aliases = {name: field.alias or name for name, field in Blueprint.model_fields.items()}
    return {aliases.get(key, key): value for key, value in changes.items()}


__all__ = ["InMemoryAttemptStore", "InMemoryBlueprintRepository"]
