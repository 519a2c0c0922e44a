"""Remote attempt store speaking to the assessment HTTP API."""

from __future__ import annotations

from datetime import datetime
from typing import Any

import httpx
import structlog

from ..core.timer import as_utc
from ..errors import (
    AttemptNotFoundError,
    InvalidFormatError,
    StaleAttemptError,
    TransientNetworkError,
)
from ..schemas import AttemptQuestions, AttemptSummary, IntegrityEventType, SubmitReceipt


class HTTPAttemptStore:
    """:class:`~assessengine.store.base.AttemptStore` over ``httpx.AsyncClient``.

    Status mapping: 404 unknown attempt, 409 stale attempt, 422 invalid
    response; transport failures and 5xx are transient.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client
        self._logger = structlog.get_logger(__name__)

    @classmethod
    def from_url(cls, base_url: str, *, timeout: float = 10.0) -> "HTTPAttemptStore":
        return cls(httpx.AsyncClient(base_url=base_url, timeout=timeout))

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_attempt(self, attempt_id: str) -> AttemptSummary:
        response = await self._request("GET", f"/attempts/{attempt_id}", attempt_id)
        return AttemptSummary.model_validate(response.json())

    async def get_questions(self, attempt_id: str) -> AttemptQuestions:
        response = await self._request("GET", f"/attempts/{attempt_id}/questions", attempt_id)
        return AttemptQuestions.model_validate(response.json())

    async def save_response(
        self,
        attempt_id: str,
        item_id: str,
        response: Any,
        *,
        client_seq: int,
    ) -> None:
        await self._request(
            "POST",
            f"/attempts/{attempt_id}/responses",
            attempt_id,
            json={"itemId": item_id, "response": response, "clientSeq": client_seq},
        )

    async def record_integrity_event(
        self,
        attempt_id: str,
        event_type: IntegrityEventType,
        timestamp: datetime,
    ) -> None:
        await self._request(
            "POST",
            f"/attempts/{attempt_id}/integrity-events",
            attempt_id,
            json={
                "eventType": IntegrityEventType(event_type).value,
                "timestamp": as_utc(timestamp).to_iso8601_string(),
            },
        )

    async def submit(
        self,
        attempt_id: str,
        *,
        time_spent_seconds: int,
        fullscreen_exits: int,
        tab_switches: int,
    ) -> SubmitReceipt:
        response = await self._request(
            "POST",
            f"/attempts/{attempt_id}/submit",
            attempt_id,
            json={
                "timeSpentSeconds": time_spent_seconds,
                "fullscreenExits": fullscreen_exits,
                "tabSwitches": tab_switches,
            },
        )
        return SubmitReceipt.model_validate(response.json())

    async def _request(
        self,
        method: str,
        url: str,
        attempt_id: str,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            self._logger.warning("http_store.transport_error", method=method, url=url, error=str(exc))
            raise TransientNetworkError(f"{method} {url} failed: {exc}") from exc

        if response.status_code == 404:
            raise AttemptNotFoundError(attempt_id)
        if response.status_code == 409:
            raise StaleAttemptError(attempt_id, _detail(response) or "attempt already submitted")
        if response.status_code == 422:
            detail = _detail(response) or "invalid response"
            raise InvalidFormatError("response", detail, kwargs.get("json"))
        if response.status_code >= 500:
            self._logger.warning("http_store.server_error", method=method, url=url, status=response.status_code)
            raise TransientNetworkError(f"{method} {url} returned {response.status_code}")
        response.raise_for_status()
        return response


def _detail(response: httpx.Response) -> str | None:
    try:
        payload = response.json()
    except ValueError:
        return response.text or None
    if isinstance(payload, dict):
        detail = payload.get("detail")
        if isinstance(detail, str):
            return detail
        if isinstance(detail, dict):
            return detail.get("message")
    return None


__all__ = ["HTTPAttemptStore"]
