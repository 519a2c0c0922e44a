"""Delivery state machine for one candidate attempt.

A :class:`DeliverySession` owns navigation, local answers, the countdown and
the integrity monitor for a single attempt. Autosaves and integrity events
go through one :class:`~assessengine.core.outbound.OutboundQueue`; the final
submit flushes that queue first and is the authoritative sync point.
"""

from __future__ import annotations

import asyncio
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Iterator

import pendulum
import structlog

from ..errors import AssessmentError, StaleAttemptError, TransientNetworkError
from ..schemas import AttemptStatus, DeliveryItem, DeliverySection, SubmitReceipt
from .codec import Response, decode, encode
from .integrity import IntegrityCounters, IntegrityEvent, IntegrityMonitor, PresentationCapability
from .outbound import EventKind, OutboundEvent, OutboundQueue, RetryPolicy
from .timer import as_utc, remaining, time_spent_seconds

if TYPE_CHECKING:
    from ..store.base import AttemptStore


class DeliveryState(str, Enum):
    LOADING = "loading"
    IN_PROGRESS = "in_progress"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"


class SessionNotReadyError(AssessmentError):
    """Raised when an operation needs a loaded session."""


@dataclass(frozen=True, slots=True)
class Cursor:
    section_index: int = 0
    question_index: int = 0


@dataclass(frozen=True, slots=True)
class SubmitConfirmation:
    """What the candidate is asked to confirm before a manual submit."""

    attempt_id: str
    answered: int
    total: int

    @property
    def unanswered(self) -> int:
        return self.total - self.answered

    @property
    def complete(self) -> bool:
        return self.answered >= self.total

    @property
    def summary(self) -> str:
        return f"{self.answered} of {self.total} answered"

    @property
    def warning(self) -> str | None:
        if self.complete:
            return None
        return f"You have answered {self.answered} out of {self.total} questions."


@dataclass(slots=True)
class _Snapshot:
    state: DeliveryState
    cursor: Cursor
    answers: dict[str, Response]


class DeliverySession:
    """Loading -> InProgress -> Submitting -> Submitted for one attempt."""

    def __init__(
        self,
        attempt_id: str,
        store: AttemptStore,
        *,
        presentation: PresentationCapability | None = None,
        retry_policy: RetryPolicy | None = None,
        clock: Callable[[], pendulum.DateTime] | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        tick_interval: float | None = None,
    ) -> None:
        self.attempt_id = attempt_id
        self.tick_interval = tick_interval or 1.0
        self._store = store
        self._presentation = presentation
        self._clock = clock or (lambda: pendulum.now("UTC"))
        self._sleep = sleep
        self._queue = OutboundQueue(self._send, policy=retry_policy, sleep=sleep)
        self._logger = structlog.get_logger(__name__).bind(attempt_id=attempt_id)

        self._state = DeliveryState.LOADING
        self._cursor = Cursor()
        self._sections: list[DeliverySection] = []
        self._items: dict[str, DeliveryItem] = {}
        self._answers: dict[str, Response] = {}
        self._started_at: pendulum.DateTime | None = None
        self._duration_minutes = 0
        self._remaining = 0
        self._monitor: IntegrityMonitor | None = None
        self._counters = IntegrityCounters()
        self._last_sequence = 0
        self._lock = asyncio.Lock()
        self._submit_task: asyncio.Future[SubmitReceipt] | None = None
        self._receipt: SubmitReceipt | None = None
        self._last_error: Exception | None = None

    # -- read-only views -------------------------------------------------

    @property
    def state(self) -> DeliveryState:
        return self._state

    @property
    def cursor(self) -> Cursor:
        return self._cursor

    @property
    def sections(self) -> tuple[DeliverySection, ...]:
        return tuple(self._sections)

    @property
    def current_section(self) -> DeliverySection | None:
        if not self._sections:
            return None
        return self._sections[self._cursor.section_index]

    @property
    def current_item(self) -> DeliveryItem | None:
        section = self.current_section
        if section is None or not section.items:
            return None
        return section.items[self._cursor.question_index]

    @property
    def answers(self) -> dict[str, Response]:
        return dict(self._answers)

    @property
    def remaining_seconds(self) -> int:
        return self._remaining

    @property
    def started_at(self) -> pendulum.DateTime | None:
        return self._started_at

    @property
    def receipt(self) -> SubmitReceipt | None:
        return self._receipt

    @property
    def last_error(self) -> Exception | None:
        return self._last_error

    @property
    def submit_in_flight(self) -> bool:
        return self._submit_task is not None and not self._submit_task.done()

    @property
    def answered_count(self) -> int:
        return len(self._answers)

    @property
    def total_count(self) -> int:
        return len(self._items)

    def counters(self) -> IntegrityCounters:
        if self._monitor is not None:
            return self._monitor.counters()
        return self._counters

    # -- loading ---------------------------------------------------------

    async def load(self) -> DeliveryState:
        """Fetch the attempt and its questions, then reconcile the timer."""
        async with self._lock:
            if self._state is not DeliveryState.LOADING:
                return self._state
            summary, questions = await asyncio.gather(
                self._store.get_attempt(self.attempt_id),
                self._store.get_questions(self.attempt_id),
            )
            self._started_at = as_utc(summary.started_at)
            self._duration_minutes = summary.duration_minutes
            self._sections = list(questions.sections)
            self._items = {item.id: item for section in self._sections for item in section.items}
            self._answers = self._decode_saved(questions.responses)
            self._counters = IntegrityCounters(summary.fullscreen_exits, summary.tab_switches)
            self._cursor = self._first_cursor()
            self._remaining = remaining(self._duration_minutes, self._started_at, self._clock())

            if summary.status is AttemptStatus.SUBMITTED:
                self._state = DeliveryState.SUBMITTED
                self._queue.close()
                self._logger.info("delivery.loaded_submitted")
                return self._state

            self._state = DeliveryState.IN_PROGRESS
            self._start_monitor()
            self._logger.info(
                "delivery.loaded",
                remaining_seconds=self._remaining,
                items=len(self._items),
                saved_responses=len(self._answers),
            )

        if self._remaining == 0:
            await self._expire()
        return self._state

    def _decode_saved(self, responses: dict[str, Any]) -> dict[str, Response]:
        decoded: dict[str, Response] = {}
        for item_id, raw in responses.items():
            item = self._items.get(item_id)
            if item is None or raw is None:
                continue
            try:
                decoded[item_id] = decode(item.format, raw, item.options)
            except AssessmentError as exc:
                self._logger.warning("delivery.saved_response_invalid", item_id=item_id, error=str(exc))
        return decoded

    def _start_monitor(self) -> None:
        if self._presentation is None:
            return
        self._monitor = IntegrityMonitor(
            self.attempt_id,
            self._presentation,
            emit=self._emit_integrity,
            clock=self._clock,
            initial=self._counters,
        )
        self._monitor.start()

    # -- navigation ------------------------------------------------------

    def next(self) -> Cursor:
        with self._transition():
            section_index, question_index = self._cursor.section_index, self._cursor.question_index
            if not self._sections:
                return self._cursor
            if question_index + 1 < len(self._sections[section_index].items):
                self._cursor = Cursor(section_index, question_index + 1)
                return self._cursor
            for index in range(section_index + 1, len(self._sections)):
                if self._sections[index].items:
                    self._cursor = Cursor(index, 0)
                    break
        return self._cursor

    def previous(self) -> Cursor:
        with self._transition():
            section_index, question_index = self._cursor.section_index, self._cursor.question_index
            if not self._sections:
                return self._cursor
            if question_index > 0:
                self._cursor = Cursor(section_index, question_index - 1)
                return self._cursor
            for index in range(section_index - 1, -1, -1):
                items = self._sections[index].items
                if items:
                    self._cursor = Cursor(index, len(items) - 1)
                    break
        return self._cursor

    def go_to(self, section_index: int, question_index: int = 0) -> Cursor:
        if not 0 <= section_index < len(self._sections):
            raise IndexError(f"section {section_index} out of range")
        if not 0 <= question_index < len(self._sections[section_index].items):
            raise IndexError(f"question {question_index} out of range")
        self._cursor = Cursor(section_index, question_index)
        return self._cursor

    def _first_cursor(self) -> Cursor:
        for index, section in enumerate(self._sections):
            if section.items:
                return Cursor(index, 0)
        return Cursor()

    # -- answers ---------------------------------------------------------

    def answer(self, raw: Any) -> Response:
        item = self.current_item
        if item is None:
            raise SessionNotReadyError("no current question")
        return self.answer_item(item.id, raw)

    def answer_item(self, item_id: str, raw: Any) -> Response:
        """Decode ``raw``, update the local answer and queue an autosave."""
        self._ensure_writable()
        item = self._item(item_id)
        response = decode(item.format, raw, item.options)
        with self._transition():
            self._answers[item_id] = response
            self._autosave(item_id, encode(item.format, response))
        return response

    def clear_answer(self, item_id: str | None = None) -> None:
        self._ensure_writable()
        if item_id is None:
            current = self.current_item
            if current is None:
                raise SessionNotReadyError("no current question")
            item_id = current.id
        self._item(item_id)
        with self._transition():
            if self._answers.pop(item_id, None) is not None:
                self._autosave(item_id, None)

    def _ensure_writable(self) -> None:
        if self._state is DeliveryState.LOADING:
            raise SessionNotReadyError("session is not loaded")
        if self._state is DeliveryState.IN_PROGRESS and self._check_expired():
            self._schedule_expiry()
        if self._state is not DeliveryState.IN_PROGRESS:
            raise StaleAttemptError(self.attempt_id, f"attempt is {self._state.value}")

    def _item(self, item_id: str) -> DeliveryItem:
        try:
            return self._items[item_id]
        except KeyError:
            raise KeyError(f"Unknown item: {item_id!r}") from None

    def _autosave(self, item_id: str, wire: Any) -> None:
        event = OutboundEvent(
            kind=EventKind.RESPONSE,
            key=item_id,
            payload={"response": wire},
            sequence=self._next_sequence(),
        )
        self._queue.enqueue(event)

    def _next_sequence(self) -> int:
        # Wall-clock milliseconds keep intents ordered across page reloads.
        stamp = int(as_utc(self._clock()).timestamp() * 1000)
        self._last_sequence = max(self._last_sequence + 1, stamp)
        return self._last_sequence

    # -- integrity -------------------------------------------------------

    def _emit_integrity(self, event: IntegrityEvent) -> None:
        self._queue.enqueue(
            OutboundEvent(
                kind=EventKind.INTEGRITY,
                key=f"integrity-{event.sequence}",
                payload={"event_type": event.event_type, "timestamp": event.timestamp},
                sequence=event.sequence,
            )
        )

    # -- submission ------------------------------------------------------

    def request_submit(self) -> SubmitConfirmation:
        if self._state is DeliveryState.LOADING:
            raise SessionNotReadyError("session is not loaded")
        return SubmitConfirmation(self.attempt_id, self.answered_count, self.total_count)

    async def confirm_submit(self, confirmation: SubmitConfirmation) -> SubmitReceipt:
        if confirmation.attempt_id != self.attempt_id:
            raise ValueError("confirmation belongs to another attempt")
        return await self.submit()

    async def submit(self) -> SubmitReceipt:
        """Submit once; concurrent callers share the in-flight call."""
        if self._state is DeliveryState.LOADING:
            raise SessionNotReadyError("session is not loaded")
        if self._state is DeliveryState.SUBMITTED:
            raise StaleAttemptError(self.attempt_id)
        if self._submit_task is None or self._submit_task.done():
            self._state = DeliveryState.SUBMITTING
            self._submit_task = asyncio.ensure_future(self._submit())
        return await asyncio.shield(self._submit_task)

    async def _submit(self) -> SubmitReceipt:
        async with self._lock:
            self._last_error = None
            try:
                await self._queue.flush()
                counters = self.counters()
                receipt = await self._store.submit(
                    self.attempt_id,
                    time_spent_seconds=time_spent_seconds(
                        self._duration_minutes, self._started_at, self._clock()
                    ),
                    fullscreen_exits=counters.fullscreen_exits,
                    tab_switches=counters.tab_switches,
                )
            except StaleAttemptError:
                self._logger.info("delivery.already_submitted")
                self._finish(None)
                raise
            except Exception as exc:
                # Submitting is sticky: a failed submit never reopens the attempt.
                self._last_error = exc
                self._logger.warning(
                    "delivery.submit_failed",
                    error=str(exc),
                    retryable=isinstance(exc, TransientNetworkError),
                )
                raise
            self._finish(receipt)
            self._logger.info(
                "delivery.submitted",
                time_spent_seconds=receipt.time_spent_seconds,
                score_total=receipt.result.score_total,
            )
            return receipt

    def _finish(self, receipt: SubmitReceipt | None) -> None:
        self._state = DeliveryState.SUBMITTED
        self._receipt = receipt
        if self._monitor is not None:
            self._counters = self._monitor.counters()
            self._monitor.stop()
        self._queue.close()

    # -- timer -----------------------------------------------------------

    async def tick(self, now: pendulum.DateTime | None = None) -> int:
        """Recompute remaining time; at zero, force submission."""
        if self._state in (DeliveryState.LOADING, DeliveryState.SUBMITTED):
            return self._remaining
        self._remaining = remaining(
            self._duration_minutes, self._started_at, now or self._clock()
        )
        if self._remaining > 0:
            return self._remaining
        await self._expire()
        return self._remaining

    async def run(self, interval: float | None = None) -> None:
        """Tick every ``interval`` seconds until the attempt is submitted."""
        interval = interval or self.tick_interval
        while self._state is not DeliveryState.SUBMITTED:
            await self.tick()
            if self._state is DeliveryState.SUBMITTED:
                break
            await self._sleep(interval)

    def _check_expired(self) -> bool:
        self._remaining = remaining(self._duration_minutes, self._started_at, self._clock())
        return self._remaining == 0

    def _schedule_expiry(self) -> None:
        self._state = DeliveryState.SUBMITTING
        self._logger.info("delivery.expired")
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return
        if not self.submit_in_flight:
            self._submit_task = asyncio.ensure_future(self._submit())
            self._submit_task.add_done_callback(self._consume_expiry_result)

    async def _expire(self) -> None:
        if self._state is DeliveryState.IN_PROGRESS:
            self._state = DeliveryState.SUBMITTING
            self._logger.info("delivery.expired")
        if self._state is not DeliveryState.SUBMITTING or self.submit_in_flight:
            return
        try:
            await self.submit()
        except AssessmentError as exc:
            # The next tick retries while the session stays Submitting.
            self._logger.info("delivery.expiry_submit_pending", error=str(exc), state=self._state.value)

    def _consume_expiry_result(self, task: asyncio.Future[SubmitReceipt]) -> None:
        if not task.cancelled():
            task.exception()

    # -- plumbing --------------------------------------------------------

    @contextmanager
    def _transition(self) -> Iterator[None]:
        snapshot = _Snapshot(self._state, self._cursor, dict(self._answers))
        try:
            yield
        except Exception:
            self._state = snapshot.state
            self._cursor = snapshot.cursor
            self._answers = snapshot.answers
            self._logger.warning("delivery.transition_rolled_back", state=snapshot.state.value)
            raise

    async def _send(self, event: OutboundEvent) -> None:
        if event.kind is EventKind.RESPONSE:
            await self._store.save_response(
                self.attempt_id,
                event.key,
                event.payload["response"],
                client_seq=event.sequence,
            )
        else:
            await self._store.record_integrity_event(
                self.attempt_id,
                event.payload["event_type"],
                event.payload["timestamp"],
            )

    async def close(self) -> None:
        """Stop monitoring and wait for any in-flight submit."""
        if self._monitor is not None:
            self._monitor.stop()
        if self.submit_in_flight:
            await asyncio.gather(self._submit_task, return_exceptions=True)


__all__ = [
    "Cursor",
    "DeliverySession",
    "DeliveryState",
    "SessionNotReadyError",
    "SubmitConfirmation",
]
