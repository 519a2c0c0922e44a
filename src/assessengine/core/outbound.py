"""Single outbound-event queue with bounded retry for autosaves and integrity events."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable

import structlog

from ..errors import StaleAttemptError, TransientNetworkError


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Exponential backoff bounded by ``max_attempts`` deliveries per event."""

    max_attempts: int = 3
    base_delay: float = 0.25
    factor: float = 2.0
    max_delay: float = 4.0

    def delay_for(self, attempt: int) -> float:
        return min(self.max_delay, self.base_delay * self.factor ** max(attempt - 1, 0))


class EventKind(str, Enum):
    RESPONSE = "response"
    INTEGRITY = "integrity"


class _Outcome(Enum):
    DELIVERED = "delivered"
    DEFERRED = "deferred"
    REJECTED = "rejected"


@dataclass(frozen=True, slots=True)
class OutboundEvent:
    """One fire-and-forget call to the backing store.

    ``key`` addresses the target: the item id for responses, so a newer
    answer to the same item replaces an older pending one.
    """

    kind: EventKind
    key: str
    payload: dict[str, Any]
    sequence: int


Sender = Callable[[OutboundEvent], Awaitable[None]]


class OutboundQueue:
    """Background delivery with per-item coalescing.

    Responses that exhaust their retry budget on transient failures are
    kept and retried opportunistically on the next enqueue or on
    :meth:`flush`. Integrity events are dropped after the budget. Events
    the store rejects outright are logged and dropped.
    """

    def __init__(
        self,
        sender: Sender,
        *,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._sender = sender
        self._policy = policy or RetryPolicy()
        self._sleep = sleep
        self._pending: dict[str, OutboundEvent] = {}
        self._undelivered: dict[str, OutboundEvent] = {}
        self._worker: asyncio.Task[None] | None = None
        self._closed = False
        self._stale: StaleAttemptError | None = None
        self._dropped = 0
        self._logger = structlog.get_logger(__name__)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def undelivered_keys(self) -> tuple[str, ...]:
        return tuple(self._undelivered)

    @property
    def dropped_count(self) -> int:
        return self._dropped

    def enqueue(self, event: OutboundEvent) -> bool:
        """Queue ``event`` for delivery; returns ``False`` once the queue is closed."""
        if self._closed:
            self._logger.info("outbound.rejected_closed", kind=event.kind.value, key=event.key)
            return False

        current = self._pending.get(event.key) or self._undelivered.get(event.key)
        if current is not None and current.sequence > event.sequence:
            return True
        self._undelivered.pop(event.key, None)
        self._pending.pop(event.key, None)
        self._pending[event.key] = event

        for key in list(self._undelivered):
            if key not in self._pending:
                self._pending[key] = self._undelivered.pop(key)

        self._ensure_worker()
        return True

    async def flush(self) -> None:
        """Deliver everything queued now.

        Raises :class:`TransientNetworkError` if any response is still
        undelivered after transient failures, or the
        :class:`StaleAttemptError` that closed the queue.
        """
        if self._worker is not None and not self._worker.done():
            await self._worker
        for key in list(self._undelivered):
            self._pending.setdefault(key, self._undelivered.pop(key))
        await self._drain()
        if self._stale is not None:
            raise self._stale
        if self._undelivered:
            raise TransientNetworkError(
                f"{len(self._undelivered)} response(s) could not be saved"
            )

    def close(self) -> None:
        self._closed = True
        self._pending.clear()
        self._undelivered.clear()

    def _ensure_worker(self) -> None:
        if self._worker is not None and not self._worker.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Without a running loop events wait for the next flush.
            return
        self._worker = loop.create_task(self._drain())

    async def _drain(self) -> None:
        while self._pending and not self._closed:
            key = next(iter(self._pending))
            event = self._pending.pop(key)
            outcome = await self._deliver(event)
            if outcome is _Outcome.DELIVERED or self._closed:
                continue
            if outcome is _Outcome.DEFERRED and event.kind is EventKind.RESPONSE:
                if key not in self._pending:
                    self._undelivered[key] = event
            else:
                self._dropped += 1

    async def _deliver(self, event: OutboundEvent) -> _Outcome:
        for attempt in range(1, self._policy.max_attempts + 1):
            try:
                await self._sender(event)
                return _Outcome.DELIVERED
            except StaleAttemptError as exc:
                self._logger.warning("outbound.stale_attempt", key=event.key, error=str(exc))
                self._stale = exc
                self.close()
                return _Outcome.REJECTED
            except TransientNetworkError as exc:
                self._logger.warning(
                    "outbound.retry",
                    kind=event.kind.value,
                    key=event.key,
                    attempt=attempt,
                    error=str(exc),
                )
                if attempt < self._policy.max_attempts:
                    await self._sleep(self._policy.delay_for(attempt))
            except Exception as exc:  # noqa: BLE001
                self._logger.error(
                    "outbound.rejected",
                    kind=event.kind.value,
                    key=event.key,
                    error=str(exc),
                    exc_info=True,
                )
                return _Outcome.REJECTED
        self._logger.warning(
            "outbound.deferred" if event.kind is EventKind.RESPONSE else "outbound.dropped",
            kind=event.kind.value,
            key=event.key,
        )
        return _Outcome.DEFERRED


__all__ = ["EventKind", "OutboundEvent", "OutboundQueue", "RetryPolicy"]
