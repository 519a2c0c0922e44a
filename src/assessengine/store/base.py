"""Backing-store contract for attempt delivery."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from ..schemas import AttemptQuestions, AttemptSummary, IntegrityEventType, SubmitReceipt


@runtime_checkable
class AttemptStore(Protocol):
    """Boundary calls made by a delivery session.

    Implementations raise :class:`~assessengine.errors.StaleAttemptError` for
    writes on a submitted attempt and
    :class:`~assessengine.errors.TransientNetworkError` when a call could not
    be delivered.
    """

    async def get_attempt(self, attempt_id: str) -> AttemptSummary: ...

    async def get_questions(self, attempt_id: str) -> AttemptQuestions: ...

    async def save_response(
        self,
        attempt_id: str,
        item_id: str,
        response: Any,
        *,
        client_seq: int,
    ) -> None:
        """Persist one wire response; ``None`` clears it. Higher ``client_seq`` wins."""

    async def record_integrity_event(
        self,
        attempt_id: str,
        event_type: IntegrityEventType,
        timestamp: datetime,
    ) -> None: ...

    async def submit(
        self,
        attempt_id: str,
        *,
        time_spent_seconds: int,
        fullscreen_exits: int,
        tab_switches: int,
    ) -> SubmitReceipt: ...
