from __future__ import annotations

import httpx
import pytest

from assessengine.api import create_app
from assessengine.core.delivery import DeliverySession, DeliveryState
from assessengine.errors import (
    AttemptNotFoundError,
    InvalidFormatError,
    StaleAttemptError,
    TransientNetworkError,
)
from assessengine.schemas import IntegrityEventType
from assessengine.store import AttemptStore, HTTPAttemptStore


def build_client(app) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://assess.test")


def build_mock_store(handler) -> HTTPAttemptStore:
    return HTTPAttemptStore(httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://assess.test"))


@pytest.mark.asyncio
async def test_delivery_session_runs_against_the_http_api(make_store, clock, no_sleep):
    backend = make_store()
    attempt = backend.start_attempt("bp-analyst", "cand-7")
    clock.advance(minutes=5)

    async with build_client(create_app(store=backend)) as client:
        store = HTTPAttemptStore(client)
        assert isinstance(store, AttemptStore)
        session = DeliverySession(attempt.id, store, clock=clock, sleep=no_sleep)
        await session.load()

        assert session.remaining_seconds == 1500
        session.answer_item("s1", "HAVING")
        session.answer_item("s2", ["SUM", "AVG"])
        receipt = await session.submit()

        with pytest.raises(StaleAttemptError):
            await store.submit(attempt.id, time_spent_seconds=0, fullscreen_exits=0, tab_switches=0)

    assert session.state is DeliveryState.SUBMITTED
    assert backend.attempt(attempt.id).answers == {"s1": "HAVING", "s2": ["AVG", "SUM"]}
    assert receipt.time_spent_seconds == 300
    assert receipt.result.score_breakdown["skills"] == 75.0
    assert len(backend.results()) == 1


@pytest.mark.asyncio
async def test_integrity_events_post_over_http(make_store, clock):
    backend = make_store()
    attempt = backend.start_attempt("bp-analyst", "cand-7")

    async with build_client(create_app(store=backend)) as client:
        store = HTTPAttemptStore(client)
        await store.record_integrity_event(attempt.id, IntegrityEventType.TAB_SWITCH, clock())
        summary = await store.get_attempt(attempt.id)

    assert summary.tab_switches == 1
    assert summary.blueprint_ref == "bp-analyst"


@pytest.mark.asyncio
async def test_unknown_attempt_maps_to_not_found(make_store):
    async with build_client(create_app(store=make_store())) as client:
        with pytest.raises(AttemptNotFoundError):
            await HTTPAttemptStore(client).get_attempt("missing")


@pytest.mark.asyncio
async def test_rejected_response_maps_to_invalid_format(make_store):
    backend = make_store()
    attempt = backend.start_attempt("bp-analyst", "cand-7")

    async with build_client(create_app(store=backend)) as client:
        with pytest.raises(InvalidFormatError):
            await HTTPAttemptStore(client).save_response(attempt.id, "a1", "17", client_seq=1)


@pytest.mark.asyncio
async def test_server_errors_are_transient():
    store = build_mock_store(lambda request: httpx.Response(503, json={"detail": "maintenance"}))

    with pytest.raises(TransientNetworkError):
        await store.save_response("att-1", "s1", "HAVING", client_seq=1)


@pytest.mark.asyncio
async def test_transport_failures_are_transient():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    store = build_mock_store(handler)

    with pytest.raises(TransientNetworkError):
        await store.submit("att-1", time_spent_seconds=10, fullscreen_exits=0, tab_switches=0)


@pytest.mark.asyncio
async def test_conflict_maps_to_stale_attempt():
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append({"path": request.url.path, "body": request.content})
        return httpx.Response(409, json={"detail": "att-1: attempt already submitted"})

    store = build_mock_store(handler)

    with pytest.raises(StaleAttemptError):
        await store.save_response("att-1", "s1", "HAVING", client_seq=4)
    assert seen[0]["path"] == "/attempts/att-1/responses"
    assert b'"clientSeq":4' in seen[0]["body"].replace(b" ", b"")
