"""Candidate document adapters."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .native import NativeRecordAdapter
from .parsed_cv import ParsedCVAdapter


@runtime_checkable
class ResumeAdapter(Protocol):
    """Source-specific candidate adapter contract.

    Implementations transform a source document into a dictionary that
    validates as :class:`~assessengine.schemas.CandidateRecord`.
    """

    provider: str

    def can_handle(self, blob: bytes | str, metadata: dict) -> bool:
        """Return True when the adapter can parse the given payload."""

    def parse_candidate(self, section: str) -> dict:
        """Parse one candidate payload into a candidate record dictionary."""


__all__ = ["NativeRecordAdapter", "ParsedCVAdapter", "ResumeAdapter"]
