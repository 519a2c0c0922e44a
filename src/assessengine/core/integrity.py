"""Proctoring sidecar counting full-screen exits and tab switches."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Protocol, runtime_checkable

import pendulum
import structlog

from ..schemas.attempt import IntegrityEventType
from .timer import as_utc

Callback = Callable[[], None]
Unsubscribe = Callable[[], None]


@runtime_checkable
class PresentationCapability(Protocol):
    """Host presentation-state capability.

    Implementations call the registered callbacks when the page loses
    exclusive full-screen presentation or visibility.
    """

    def on_exclusive_presentation_lost(self, callback: Callback) -> Unsubscribe:
        """Register ``callback`` for loss of full-screen mode."""

    def on_visibility_lost(self, callback: Callback) -> Unsubscribe:
        """Register ``callback`` for the page becoming hidden."""


class PresentationStateAdapter:
    """Platform adapter turning raw host state updates into loss callbacks.

    Only true-to-false transitions fire; repeated ``False`` updates are ignored.
    """

    def __init__(self, *, fullscreen: bool = False, visible: bool = True) -> None:
        self._fullscreen = fullscreen
        self._visible = visible
        self._fullscreen_listeners: list[Callback] = []
        self._visibility_listeners: list[Callback] = []

    @property
    def fullscreen(self) -> bool:
        return self._fullscreen

    @property
    def visible(self) -> bool:
        return self._visible

    def on_exclusive_presentation_lost(self, callback: Callback) -> Unsubscribe:
        self._fullscreen_listeners.append(callback)
        return lambda: _discard(self._fullscreen_listeners, callback)

    def on_visibility_lost(self, callback: Callback) -> Unsubscribe:
        self._visibility_listeners.append(callback)
        return lambda: _discard(self._visibility_listeners, callback)

    def update_fullscreen(self, active: bool) -> None:
        was_active, self._fullscreen = self._fullscreen, active
        if was_active and not active:
            for callback in list(self._fullscreen_listeners):
                callback()

    def update_visibility(self, visible: bool) -> None:
        was_visible, self._visible = self._visible, visible
        if was_visible and not visible:
            for callback in list(self._visibility_listeners):
                callback()


@dataclass(frozen=True, slots=True)
class IntegrityEvent:
    """Immutable, timestamped proctoring event."""

    attempt_id: str
    event_type: IntegrityEventType
    timestamp: pendulum.DateTime
    sequence: int

    def to_payload(self) -> dict[str, Any]:
        return {
            "eventType": self.event_type.value,
            "timestamp": self.timestamp.to_iso8601_string(),
        }


@dataclass(frozen=True, slots=True)
class IntegrityCounters:
    fullscreen_exits: int = 0
    tab_switches: int = 0


class IntegrityMonitor:
    """Advisory monitor; it never blocks input or navigation."""

    def __init__(
        self,
        attempt_id: str,
        capability: PresentationCapability,
        *,
        emit: Callable[[IntegrityEvent], None] | None = None,
        clock: Callable[[], pendulum.DateTime] | None = None,
        initial: IntegrityCounters | None = None,
    ) -> None:
        self._attempt_id = attempt_id
        self._capability = capability
        self._emit = emit
        self._clock = clock or (lambda: pendulum.now("UTC"))
        start = initial or IntegrityCounters()
        self._fullscreen_exits = start.fullscreen_exits
        self._tab_switches = start.tab_switches
        self._events: list[IntegrityEvent] = []
        self._unsubscribers: list[Unsubscribe] = []
        self._logger = structlog.get_logger(__name__)

    @property
    def fullscreen_exits(self) -> int:
        return self._fullscreen_exits

    @property
    def tab_switches(self) -> int:
        return self._tab_switches

    @property
    def events(self) -> tuple[IntegrityEvent, ...]:
        return tuple(self._events)

    @property
    def active(self) -> bool:
        return bool(self._unsubscribers)

    def counters(self) -> IntegrityCounters:
        return IntegrityCounters(self._fullscreen_exits, self._tab_switches)

    def start(self) -> None:
        if self._unsubscribers:
            return
        self._unsubscribers = [
            self._capability.on_exclusive_presentation_lost(self._handle_fullscreen_lost),
            self._capability.on_visibility_lost(self._handle_visibility_lost),
        ]

    def stop(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def _handle_fullscreen_lost(self) -> None:
        self._fullscreen_exits += 1
        self._record(IntegrityEventType.FULLSCREEN_EXIT)

    def _handle_visibility_lost(self) -> None:
        self._tab_switches += 1
        self._record(IntegrityEventType.TAB_SWITCH)

    def _record(self, event_type: IntegrityEventType) -> None:
        event = IntegrityEvent(
            attempt_id=self._attempt_id,
            event_type=event_type,
            timestamp=as_utc(self._clock()),
            sequence=len(self._events) + 1,
        )
        self._events.append(event)
        self._logger.info(
            "integrity.event",
            attempt_id=self._attempt_id,
            event_type=event_type.value,
            fullscreen_exits=self._fullscreen_exits,
            tab_switches=self._tab_switches,
        )
        if self._emit is None:
            return
        try:
            self._emit(event)
        except Exception as exc:  # noqa: BLE001
            self._logger.warning(
                "integrity.emit_failed",
                attempt_id=self._attempt_id,
                event_type=event_type.value,
                error=str(exc),
            )


def _discard(listeners: list[Callback], callback: Callback) -> None:
    if callback in listeners:
        listeners.remove(callback)


__all__ = [
    "IntegrityCounters",
    "IntegrityEvent",
    "IntegrityMonitor",
    "PresentationCapability",
    "PresentationStateAdapter",
]
