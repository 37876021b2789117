import asyncio
from unittest.mock import AsyncMock

import pytest

from agents.dispatcher import ActionDispatcher, order_by_priority
from agents.trade_manager import TradeLifecycleManager
from connectors.trade_store import InMemoryTradeStore
from models.actions import AgentAction
from models.decision import AgentDecision
from models.enums import ActionStatus, DecisionType, TradeStatus
from models.events import AGENT_ALERT
from tests.mocks import make_agent
from utils.event_bus import EventBus


def _transfer(quantity: int = 100, priority: int = 0) -> AgentAction:
    return AgentAction.create(
        "propose_transfer",
        {
            "source_store_id": "S1",
            "target_store_id": "S2",
            "quantity": quantity,
            "estimated_profit": 40.0,
            "profit_margin": 4.0,
        },
        priority=priority,
    )


def _decision(actions: list[AgentAction]) -> AgentDecision:
    return AgentDecision(
        agent_id="SKU-1",
        type=DecisionType.INVENTORY_REBALANCING,
        strategy="conservative_rebalancing",
        confidence=0.7,
        reasoning="test",
        actions=actions,
    )


@pytest.fixture
def trade_manager():
    return TradeLifecycleManager(InMemoryTradeStore())


def test_order_by_priority_is_stable():
    a, b, c = _transfer(priority=0), _transfer(priority=5), _transfer(priority=0)
    assert order_by_priority([a, b, c]) == [b, a, c]


@pytest.mark.asyncio
async def test_transfer_action_creates_proposed_trade(trade_manager):
    agent = make_agent()
    decision = _decision([_transfer()])
    dispatcher = ActionDispatcher(trade_manager)

    report = await dispatcher.dispatch(agent, decision)

    assert report.completed == [decision.actions[0].id]
    assert report.all_succeeded
    trade = report.trades[0]
    assert trade.status == TradeStatus.PROPOSED
    assert trade.decision_id == decision.id
    assert decision.actions[0].status == ActionStatus.COMPLETED
    assert agent.active_actions == []


@pytest.mark.asyncio
async def test_one_failure_does_not_abort_the_batch(trade_manager, caplog):
    agent = make_agent()
    bad = AgentAction.create("launch_rocket", {"target": "moon"}, priority=10)
    good = _transfer()
    decision = _decision([bad, good])

    with caplog.at_level("ERROR"):
        report = await ActionDispatcher(trade_manager).dispatch(agent, decision)

    assert bad.status == ActionStatus.FAILED
    assert "Unknown action type: launch_rocket" in bad.error
    assert good.status == ActionStatus.COMPLETED
    assert report.failed == {bad.id: bad.error}
    assert len(report.trades) == 1


@pytest.mark.asyncio
async def test_collaborator_error_fails_only_that_action():
    manager = AsyncMock()
    manager.propose_transfer.side_effect = [RuntimeError("trade service down"), None]
    first, second = _transfer(), _transfer()
    decision = _decision([first, second])

    report = await ActionDispatcher(manager).dispatch(make_agent(), decision)

    assert first.status == ActionStatus.FAILED
    assert first.error == "trade service down"
    assert second.status == ActionStatus.COMPLETED
    assert report.completed == [second.id]


@pytest.mark.asyncio
async def test_slow_collaborator_times_out():
    async def slow(*args, **kwargs):
        await asyncio.sleep(1)

    manager = AsyncMock()
    manager.propose_transfer.side_effect = slow
    action = _transfer()

    report = await ActionDispatcher(manager, timeout=0.01).dispatch(make_agent(), _decision([action]))

    assert action.status == ActionStatus.FAILED
    assert "Timed out" in action.error
    assert action.id in report.failed


@pytest.mark.asyncio
async def test_actions_beyond_concurrency_limit_are_deferred(trade_manager):
    agent = make_agent(max_concurrent_actions=1)
    in_flight = _transfer()
    in_flight.start()
    agent.active_actions.append(in_flight)
    waiting = _transfer()

    report = await ActionDispatcher(trade_manager).dispatch(agent, _decision([waiting]))

    assert report.deferred == [waiting.id]
    assert waiting.status == ActionStatus.PENDING
    assert not report.all_succeeded


@pytest.mark.asyncio
async def test_concurrency_limit_counts_actions_started_in_the_batch(trade_manager):
    agent = make_agent(max_concurrent_actions=2)
    low, high, mid = _transfer(priority=1), _transfer(priority=9), _transfer(priority=5)

    report = await ActionDispatcher(trade_manager).dispatch(agent, _decision([low, high, mid]))

    assert report.completed == [high.id, mid.id]
    assert report.deferred == [low.id]
    assert low.status == ActionStatus.PENDING
    assert len(await trade_manager.trades_by_status(TradeStatus.PROPOSED)) == 2
    assert agent.active_actions == []


@pytest.mark.asyncio
async def test_alert_action_is_published(trade_manager):
    bus = EventBus()
    received = []

    async def on_alert(event):
        received.append(event)

    bus.subscribe(AGENT_ALERT, on_alert)
    action = AgentAction.create("send_alert", {"message": "Stockout risk at S2", "severity": "high"})

    await ActionDispatcher(trade_manager, event_bus=bus).dispatch(make_agent(), _decision([action]))

    assert action.status == ActionStatus.COMPLETED
    assert received[0].payload["message"] == "Stockout risk at S2"
    assert received[0].payload["severity"] == "high"


@pytest.mark.asyncio
async def test_non_pending_actions_are_skipped(trade_manager):
    done = _transfer()
    done.start()
    done.complete()
    report = await ActionDispatcher(trade_manager).dispatch(make_agent(), _decision([done]))
    assert report.completed == []
    assert report.trades == []
