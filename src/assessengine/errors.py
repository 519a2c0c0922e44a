"""Error taxonomy shared by the validator, codec, delivery and stores."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable


class AssessmentError(Exception):
    """Base class for assessment engine errors."""


@dataclass(frozen=True, slots=True)
class Violation:
    """One violated blueprint invariant."""

    kind: str
    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "field": self.field, "message": self.message}


class BlueprintValidationError(AssessmentError):
    """Raised when a blueprint breaks one or more invariants."""

    def __init__(self, violations: Iterable[Violation]):
        self.violations = list(violations)
        super().__init__(f"Blueprint has {len(self.violations)} violation(s)")

    def __str__(self) -> str:
        details = "; ".join(f"{v.field}: {v.message}" for v in self.violations)
        return f"Blueprint validation failed: {details}"


class InvalidFormatError(AssessmentError, ValueError):
    """Raised when a response does not fit its item format."""

    def __init__(self, format: str, message: str, raw: Any = None):
        super().__init__(f"{format}: {message}")
        self.format = format
        self.raw = raw


class StaleAttemptError(AssessmentError):
    """Raised when a write targets an attempt that is already submitted."""

    def __init__(self, attempt_id: str, message: str = "attempt already submitted"):
        super().__init__(f"{attempt_id}: {message}")
        self.attempt_id = attempt_id


class TransientNetworkError(AssessmentError):
    """Raised when a call to the backing store could not be delivered."""


class AttemptNotFoundError(AssessmentError, KeyError):
    """Raised when an attempt id is unknown to the store."""

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"Unknown attempt: {self.args[0]!r}"


class BlueprintNotFoundError(AssessmentError, KeyError):
    """Raised when a blueprint id is unknown to the repository."""

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"Unknown blueprint: {self.args[0]!r}"


class BlueprintStateError(AssessmentError):
    """Raised when a blueprint cannot change in its current status."""


__all__ = [
    "AssessmentError",
    "AttemptNotFoundError",
    "BlueprintNotFoundError",
    "BlueprintStateError",
    "BlueprintValidationError",
    "InvalidFormatError",
    "StaleAttemptError",
    "TransientNetworkError",
    "Violation",
]
