from __future__ import annotations

import asyncio
from typing import List

import pytest

from sentinel_compass.notifications import (
    GENERIC_FAILURE_MESSAGE,
    ActionKind,
    ChannelKind,
    InvalidTransition,
    NotificationDispatcher,
    NotificationRecord,
    NotificationStatus,
    ScenarioContext,
    default_directory,
)
from sentinel_compass.session import NotificationHistory


@pytest.mark.asyncio
async def test_all_clear_sends_nine_in_directory_order(small_directory, recording_sender) -> None:
    dispatcher = NotificationDispatcher(small_directory, recording_sender)
    outcome = await dispatcher.dispatch(ActionKind.ALL_CLEAR, ScenarioContext(region="Zone A"))

    assert outcome.succeeded
    assert outcome.record.status is NotificationStatus.SUCCESS
    assert len(recording_sender.calls) == 9
    channels = [call[0] for call in recording_sender.calls]
    assert channels == ["sms", "email"] * 3 + ["sms", "sms", "push"]
    targets = [call[1] for call in recording_sender.calls]
    assert targets[:2] == ["+1-000-clear-0", "clear-lead@example.org"]
    assert targets[-3:] == ["+1-555-111-2222", "+1-555-333-4444", "laptop-id-12345"]

    body = (
        "ALL CLEAR: The emergency situation in Zone A has been resolved. "
        "You may return to normal operations."
    )
    assert all(call[3] == body for call in recording_sender.calls)
    assert recording_sender.calls[1][2] == "ALL CLEAR: Zone A"
    assert recording_sender.calls[-1][2] == "ALL CLEAR"
    assert len(outcome.deliveries) == 9
    assert outcome.failures == []


@pytest.mark.asyncio
async def test_all_clear_fails_when_any_send_fails(small_directory, sender_factory) -> None:
    sender = sender_factory(fail_targets={"laptop-id-12345"})
    dispatcher = NotificationDispatcher(small_directory, sender)
    outcome = await dispatcher.dispatch(ActionKind.ALL_CLEAR, ScenarioContext(region="Zone A"))

    assert not outcome.succeeded
    assert outcome.record.status is NotificationStatus.ERROR
    assert outcome.record.error == GENERIC_FAILURE_MESSAGE
    # 失败不会中断批次，明细完整
    assert len(sender.calls) == 9
    assert len(outcome.failures) == 1
    failure = outcome.failures[0]
    assert failure.channel is ChannelKind.PUSH
    assert failure.target == "laptop-id-12345"
    assert "rejected" in (failure.error or "")


@pytest.mark.asyncio
async def test_alert_dispatch_completeness_with_default_directory(recording_sender) -> None:
    directory = default_directory()
    dispatcher = NotificationDispatcher(directory, recording_sender)
    context = ScenarioContext(region="Houston, TX", alert_message="Flash flood warning")
    outcome = await dispatcher.dispatch("alert", context)

    group = directory.group_for(ActionKind.ALERT)
    expected = 2 * (1 + len(group.members)) + len(directory.region_devices())
    assert len(recording_sender.calls) == expected == 9
    pushes = [call for call in recording_sender.calls if call[0] == "push"]
    assert [call[1] for call in pushes] == ["laptop-id-12345"]
    assert pushes[0][2] == "EMERGENCY ALERT"
    assert recording_sender.calls[0][3] == (
        "ALERT: Flash flood warning in Houston, TX. Take appropriate action immediately."
    )
    assert recording_sender.calls[1][2] == "REGION ALERT: Houston, TX"
    assert [item.to_dict() for item in outcome.record.recipients] == [
        {"type": "Team Lead", "count": 1},
        {"type": "Team Members", "count": 2},
        {"type": "Region Devices", "count": 3},
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize("action", [ActionKind.EVACUATION, ActionKind.RESOURCE_REQUEST])
async def test_operational_actions_never_contact_region_devices(small_directory, recording_sender, action) -> None:
    dispatcher = NotificationDispatcher(small_directory, recording_sender)
    context = ScenarioContext(region="Zone B", resources_needed=("water", "generators"))
    outcome = await dispatcher.dispatch(action, context)

    assert outcome.succeeded
    assert len(recording_sender.calls) == 6
    devices = set(small_directory.region_devices())
    assert not any(call[1] in devices for call in recording_sender.calls)
    assert all(call[0] in {"sms", "email"} for call in recording_sender.calls)
    assert [item.type for item in outcome.record.recipients] == ["Team Lead", "Team Members"]


@pytest.mark.asyncio
async def test_evacuation_and_resource_messages(small_directory, recording_sender) -> None:
    dispatcher = NotificationDispatcher(small_directory, recording_sender)
    await dispatcher.dispatch(ActionKind.EVACUATION, ScenarioContext(region="Zone C"))
    assert recording_sender.calls[0][3] == (
        "URGENT: Evacuation required in Zone C. Implement evacuation protocol immediately."
    )
    assert recording_sender.calls[1][2] == "URGENT EVACUATION: Zone C"
    assert recording_sender.calls[0][1] == "+1-000-evac-0"

    recording_sender.calls.clear()
    await dispatcher.dispatch(
        ActionKind.RESOURCE_REQUEST,
        ScenarioContext(region="Zone C", resources_needed=("water", "medical kits")),
    )
    assert recording_sender.calls[0][3] == (
        "RESOURCE REQUEST: The following resources are needed in Zone C: water, medical kits"
    )
    assert recording_sender.calls[1][2] == "RESOURCE REQUEST: Zone C"
    assert recording_sender.calls[0][1] == "+1-000-res-0"


@pytest.mark.asyncio
async def test_sender_exception_resolves_to_error(small_directory, sender_factory) -> None:
    sender = sender_factory(raise_targets={"evac-m1@example.org"})
    dispatcher = NotificationDispatcher(small_directory, sender)
    outcome = await dispatcher.dispatch(ActionKind.EVACUATION, ScenarioContext(region="Zone A"))

    assert outcome.record.status is NotificationStatus.ERROR
    assert len(sender.calls) == 6
    assert len(outcome.failures) == 1
    assert "gateway unreachable" in (outcome.failures[0].error or "")


@pytest.mark.asyncio
async def test_send_timeout_is_reported_as_failure(small_directory, sender_factory) -> None:
    sender = sender_factory(delays={"+1-000-evac-2": 0.5})
    dispatcher = NotificationDispatcher(small_directory, sender, send_timeout=0.05)
    outcome = await dispatcher.dispatch(ActionKind.EVACUATION, ScenarioContext(region="Zone A"))

    assert outcome.record.status is NotificationStatus.ERROR
    assert len(outcome.failures) == 1
    assert outcome.failures[0].target == "+1-000-evac-2"
    assert "timed out" in (outcome.failures[0].error or "")
    assert len(outcome.deliveries) == 6


@pytest.mark.asyncio
async def test_record_pending_then_terminal_exactly_once(small_directory, recording_sender) -> None:
    history = NotificationHistory(limit=10)
    observed: List[NotificationStatus] = []
    history.subscribe(lambda record: observed.append(record.status))
    dispatcher = NotificationDispatcher(small_directory, recording_sender, history=history)

    batch = dispatcher.prepare(ActionKind.ALERT, ScenarioContext(region="Zone A"))
    assert batch.record.status is NotificationStatus.PENDING
    assert history.list()[0].status is NotificationStatus.PENDING
    assert recording_sender.calls == []

    outcome = await dispatcher.execute(batch)
    assert observed == [NotificationStatus.PENDING, NotificationStatus.SUCCESS]
    assert history.get(outcome.record.id).status is NotificationStatus.SUCCESS
    assert outcome.record.completed_at is not None

    with pytest.raises(InvalidTransition):
        await dispatcher.execute(batch)
    assert observed == [NotificationStatus.PENDING, NotificationStatus.SUCCESS]


def test_record_resolve_guards() -> None:
    record = NotificationRecord(id="1-0001", action=ActionKind.ALERT, region="Zone A", recipients=())
    with pytest.raises(InvalidTransition):
        record.resolve(NotificationStatus.PENDING)
    record.resolve(NotificationStatus.ERROR, error="boom")
    with pytest.raises(InvalidTransition):
        record.resolve(NotificationStatus.SUCCESS)
    assert record.status is NotificationStatus.ERROR


@pytest.mark.asyncio
async def test_record_ids_are_unique_and_history_most_recent_first(small_directory, recording_sender) -> None:
    history = NotificationHistory(limit=10)
    dispatcher = NotificationDispatcher(small_directory, recording_sender, history=history)
    first = await dispatcher.dispatch(ActionKind.EVACUATION, ScenarioContext(region="Zone A"))
    second = await dispatcher.dispatch(ActionKind.ALL_CLEAR, ScenarioContext(region="Zone A"))

    assert first.record.id != second.record.id
    assert [item.id for item in history.list()] == [second.record.id, first.record.id]


def test_invalid_context_and_timeout_rejected(small_directory, recording_sender) -> None:
    with pytest.raises(ValueError):
        ScenarioContext(region="   ")
    with pytest.raises(ValueError):
        NotificationDispatcher(small_directory, recording_sender, send_timeout=0)
    dispatcher = NotificationDispatcher(small_directory, recording_sender)
    with pytest.raises(ValueError):
        dispatcher.prepare("unknown_action", ScenarioContext(region="Zone A"))


@pytest.mark.asyncio
async def test_cancelled_batch_still_reaches_terminal_state(small_directory, sender_factory) -> None:
    sender = sender_factory(delays={"+1-000-evac-0": 0.5})
    history = NotificationHistory(limit=10)
    observed: List[NotificationStatus] = []
    history.subscribe(lambda record: observed.append(record.status))
    dispatcher = NotificationDispatcher(small_directory, sender, history=history)

    task = asyncio.create_task(dispatcher.dispatch(ActionKind.EVACUATION, ScenarioContext(region="Zone A")))
    await asyncio.sleep(0.05)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    record = history.list()[0]
    assert record.status is NotificationStatus.ERROR
    assert record.error == GENERIC_FAILURE_MESSAGE
    assert record.completed_at is not None
    assert observed == [NotificationStatus.PENDING, NotificationStatus.ERROR]
