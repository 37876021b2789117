import logging
from unittest.mock import AsyncMock

import pytest

from models.enums import AgentType
from models.events import TRADE_APPROVED, TRADE_PROPOSED, RetailEvent
from utils.event_bus import EventBus


def _event(event_type: str = TRADE_PROPOSED) -> RetailEvent:
    return RetailEvent(event_type=event_type, payload={"trade_id": "t-1"}, source=AgentType.TRADE_MANAGER)


def test_event_bus_initialization():
    bus = EventBus()
    assert bus.subscribers == {}
    assert bus.recent() == []


def test_subscribe_and_duplicate(caplog):
    bus = EventBus()
    callback = AsyncMock(name="cb")
    bus.subscribe(TRADE_PROPOSED, callback)
    with caplog.at_level(logging.WARNING):
        bus.subscribe(TRADE_PROPOSED, callback)
    assert bus.subscribers[TRADE_PROPOSED] == [callback]
    assert "already subscribed" in caplog.text


def test_subscribe_non_callable():
    with pytest.raises(TypeError):
        EventBus().subscribe(TRADE_PROPOSED, "not callable")  # type: ignore[arg-type]


def test_unsubscribe_removes_empty_event_type(caplog):
    bus = EventBus()
    callback = AsyncMock()
    bus.subscribe(TRADE_PROPOSED, callback)
    bus.unsubscribe(TRADE_PROPOSED, callback)
    assert TRADE_PROPOSED not in bus.subscribers

    bus.subscribe(TRADE_PROPOSED, AsyncMock())
    with caplog.at_level(logging.WARNING):
        bus.unsubscribe(TRADE_PROPOSED, callback)
    assert "not found" in caplog.text
    bus.unsubscribe("never.subscribed", callback)


@pytest.mark.asyncio
async def test_publish_reaches_matching_and_wildcard_subscribers():
    bus = EventBus()
    proposed, approved, everything = AsyncMock(), AsyncMock(), AsyncMock()
    bus.subscribe(TRADE_PROPOSED, proposed)
    bus.subscribe(TRADE_APPROVED, approved)
    bus.subscribe("*", everything)

    event = _event()
    await bus.publish(event)

    proposed.assert_awaited_once_with(event)
    approved.assert_not_awaited()
    everything.assert_awaited_once_with(event)


@pytest.mark.asyncio
async def test_subscriber_error_is_logged_not_raised(caplog):
    bus = EventBus()
    failing = AsyncMock(side_effect=ValueError("subscriber broke"))
    healthy = AsyncMock()
    bus.subscribe(TRADE_PROPOSED, failing)
    bus.subscribe(TRADE_PROPOSED, healthy)

    with caplog.at_level(logging.ERROR):
        await bus.publish(_event())

    healthy.assert_awaited_once()
    assert "subscriber broke" in caplog.text


@pytest.mark.asyncio
async def test_publish_rejects_non_events(caplog):
    bus = EventBus()
    with caplog.at_level(logging.ERROR):
        await bus.publish({"event_type": TRADE_PROPOSED})  # type: ignore[arg-type]
    assert bus.recent() == []
    assert "invalid event type" in caplog.text


@pytest.mark.asyncio
async def test_emit_and_history_are_bounded():
    bus = EventBus(history_size=3)
    for i in range(5):
        await bus.emit(TRADE_PROPOSED if i % 2 else TRADE_APPROVED, {"n": i}, AgentType.SYSTEM)

    assert [e.payload["n"] for e in bus.recent()] == [2, 3, 4]
    assert [e.payload["n"] for e in bus.recent(TRADE_PROPOSED)] == [3]
