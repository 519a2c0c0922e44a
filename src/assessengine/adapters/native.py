"""Adapter for documents already in the candidate record shape."""

from __future__ import annotations

from typing import Any

from ..schemas import CandidateRecord
from ._json import load_payload


class NativeRecordAdapter:
    provider = "native"

    def can_handle(self, blob: bytes | str, metadata: dict[str, Any]) -> bool:
        provider = metadata.get("provider")
        if provider:
            return str(provider).lower() == self.provider
        try:
            data = load_payload(blob, source="native")
        except ValueError:
            return False
        return "candidate_id" in data.get("payload", data)

    def parse_candidate(self, section: str) -> dict[str, Any]:
        data = load_payload(section, source="native")
        payload = data.get("payload", data)
        return CandidateRecord.model_validate(payload).model_dump(mode="python")
