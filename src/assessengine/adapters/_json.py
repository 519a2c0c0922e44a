from __future__ import annotations

import json
from typing import Any


def load_payload(blob: bytes | str | dict[str, Any], *, source: str) -> dict[str, Any]:
    if isinstance(blob, dict):
        return blob
    if isinstance(blob, bytes):
        blob = blob.decode("utf-8")
    try:
        data = json.loads(blob)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid {source} payload") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Invalid {source} payload: expected an object")
    return data
