from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError

from models.enums import TradeStatus
from models.trade import TRADE_TRANSITIONS, can_transition
from tests.mocks import make_trade

NOW = datetime(2026, 3, 1, 12, 0)


def test_unprofitable_trade():
    trade = make_trade(now=NOW, estimated_profit=80.0, transport_cost=100.0)
    assert trade.is_profitable() is False


def test_profitable_trade():
    assert make_trade(now=NOW, estimated_profit=100.0, transport_cost=25.0).is_profitable()
    # equal is not profitable
    assert not make_trade(now=NOW, estimated_profit=25.0, transport_cost=25.0).is_profitable()


def test_is_expired_uses_deadline_only():
    trade = make_trade(now=NOW)
    assert not trade.is_expired(NOW + timedelta(days=6))
    assert not trade.is_expired(NOW + timedelta(days=7))
    assert trade.is_expired(NOW + timedelta(days=7, seconds=1))
    completed = make_trade(now=NOW, status=TradeStatus.COMPLETED)
    assert completed.is_expired(NOW + timedelta(days=30))


def test_profit_margin():
    trade = make_trade(now=NOW, estimated_profit=75.0, transport_cost=25.0)
    assert trade.profit_margin == pytest.approx(75.0)
    assert make_trade(now=NOW, transport_cost=0.0).profit_margin == 0.0


def test_terminal_states_have_no_exits():
    for status in (TradeStatus.COMPLETED, TradeStatus.FAILED, TradeStatus.REJECTED):
        assert TRADE_TRANSITIONS[status] == frozenset()
        assert make_trade(now=NOW, status=status).is_terminal


def test_transition_table():
    assert can_transition(TradeStatus.PROPOSED, TradeStatus.APPROVED)
    assert can_transition(TradeStatus.PROPOSED, TradeStatus.REJECTED)
    assert can_transition(TradeStatus.APPROVED, TradeStatus.EXECUTING)
    assert can_transition(TradeStatus.APPROVED, TradeStatus.FAILED)
    assert can_transition(TradeStatus.EXECUTING, TradeStatus.COMPLETED)
    assert not can_transition(TradeStatus.PROPOSED, TradeStatus.EXECUTING)
    assert not can_transition(TradeStatus.PROPOSED, TradeStatus.FAILED)
    assert not can_transition(TradeStatus.REJECTED, TradeStatus.APPROVED)


@pytest.mark.parametrize(
    "field,value",
    [("quantity", 0), ("estimated_profit", -1.0), ("transport_cost", -5.0), ("urgency_score", 101)],
)
def test_field_bounds(field, value):
    with pytest.raises(ValidationError):
        make_trade(now=NOW, **{field: value})
