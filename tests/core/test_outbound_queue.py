from __future__ import annotations

import pytest

from assessengine.core.outbound import EventKind, OutboundEvent, OutboundQueue, RetryPolicy
from assessengine.errors import InvalidFormatError, StaleAttemptError, TransientNetworkError


class ScriptedSender:
    """Fails with the queued errors first, then records deliveries."""

    def __init__(self, *failures: Exception) -> None:
        self.failures = list(failures)
        self.calls = 0
        self.delivered: list[OutboundEvent] = []

    async def __call__(self, event: OutboundEvent) -> None:
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        self.delivered.append(event)


def response(key: str, sequence: int, value=None) -> OutboundEvent:
    return OutboundEvent(EventKind.RESPONSE, key, {"response": value}, sequence)


def integrity(sequence: int) -> OutboundEvent:
    return OutboundEvent(EventKind.INTEGRITY, f"integrity-{sequence}", {"event_type": "tab_switch"}, sequence)


def test_retry_policy_backs_off_exponentially_up_to_the_cap():
    policy = RetryPolicy()

    assert [policy.delay_for(attempt) for attempt in (1, 2, 3)] == [0.25, 0.5, 1.0]
    assert policy.delay_for(10) == 4.0


@pytest.mark.asyncio
async def test_newest_pending_autosave_for_an_item_wins(no_sleep):
    sender = ScriptedSender()
    queue = OutboundQueue(sender, sleep=no_sleep)

    queue.enqueue(response("s2", 1, ["SUM"]))
    queue.enqueue(response("s2", 2, ["AVG", "SUM"]))
    queue.enqueue(response("s2", 1, ["CONCAT"]))
    await queue.flush()

    assert [(event.key, event.sequence) for event in sender.delivered] == [("s2", 2)]


@pytest.mark.asyncio
async def test_transient_failures_are_retried_with_backoff(no_sleep):
    sender = ScriptedSender(TransientNetworkError("timeout"), TransientNetworkError("timeout"))
    queue = OutboundQueue(sender, sleep=no_sleep)

    queue.enqueue(response("s1", 1, "HAVING"))
    await queue.flush()

    assert sender.calls == 3
    assert len(sender.delivered) == 1
    assert no_sleep.delays == [0.25, 0.5]


@pytest.mark.asyncio
async def test_exhausted_autosaves_are_kept_and_block_the_flush(no_sleep):
    sender = ScriptedSender(*[TransientNetworkError("offline")] * 6)
    queue = OutboundQueue(sender, policy=RetryPolicy(max_attempts=3), sleep=no_sleep)

    queue.enqueue(response("s1", 1, "HAVING"))
    with pytest.raises(TransientNetworkError):
        await queue.flush()

    assert queue.undelivered_keys == ("s1",)

    await queue.flush()
    assert queue.undelivered_keys == ()
    assert sender.delivered[0].key == "s1"


@pytest.mark.asyncio
async def test_rejected_autosaves_are_dropped_without_blocking_the_flush(no_sleep):
    sender = ScriptedSender(InvalidFormatError("mcq", "unknown option", "ZZZ"))
    queue = OutboundQueue(sender, sleep=no_sleep)

    queue.enqueue(response("s1", 1, "ZZZ"))
    queue.enqueue(response("s2", 2, ["SUM"]))
    await queue.flush()
    await queue.flush()

    assert queue.undelivered_keys == ()
    assert queue.dropped_count == 1
    assert [event.key for event in sender.delivered] == ["s2"]
    assert sender.calls == 2
    assert no_sleep.delays == []


@pytest.mark.asyncio
async def test_integrity_events_are_dropped_after_the_budget(no_sleep):
    sender = ScriptedSender(*[TransientNetworkError("offline")] * 3)
    queue = OutboundQueue(sender, sleep=no_sleep)

    queue.enqueue(integrity(1))
    await queue.flush()

    assert queue.dropped_count == 1
    assert sender.delivered == []


@pytest.mark.asyncio
async def test_stale_attempt_closes_the_queue(no_sleep):
    sender = ScriptedSender(StaleAttemptError("att-1"))
    queue = OutboundQueue(sender, sleep=no_sleep)

    queue.enqueue(response("s1", 1, "HAVING"))
    with pytest.raises(StaleAttemptError):
        await queue.flush()

    assert queue.closed
    assert queue.enqueue(response("s1", 2, "WHERE")) is False
    assert sender.calls == 1


def test_enqueue_without_a_running_loop_waits_for_flush():
    sender = ScriptedSender()
    queue = OutboundQueue(sender)

    assert queue.enqueue(response("s1", 1, "HAVING")) is True
    assert queue.pending_count == 1
    assert sender.calls == 0
