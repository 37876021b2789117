"""
Module: connectors.trade_store

In-memory trade persistence with compare-and-set status updates.
"""

import asyncio

from models.enums import TradeStatus
from models.exceptions import InvalidTransitionError, PersistenceError, TradeNotFoundError
from models.trade import Trade


class InMemoryTradeStore:
    """
    Append-only trade history: trades are created and updated, never deleted.
    """

    def __init__(self):
        self._trades: dict[str, Trade] = {}
        self._lock = asyncio.Lock()

    async def create(self, trade: Trade) -> Trade:
        async with self._lock:
            if trade.trade_id in self._trades:
                raise PersistenceError(f"Trade {trade.trade_id} already exists")
            self._trades[trade.trade_id] = trade.model_copy(deep=True)
        return trade

    async def get(self, trade_id: str) -> Trade:
        try:
            return self._trades[trade_id].model_copy(deep=True)
        except KeyError:
            raise TradeNotFoundError(f"Trade {trade_id} not found") from None

    async def update(self, trade: Trade, expected_status: TradeStatus) -> Trade:
        async with self._lock:
            stored = self._trades.get(trade.trade_id)
            if stored is None:
                raise TradeNotFoundError(f"Trade {trade.trade_id} not found")
            if stored.status != expected_status:
                raise InvalidTransitionError(trade.trade_id, stored.status.value, trade.status.value)
            self._trades[trade.trade_id] = trade.model_copy(deep=True)
        return trade

    async def list_by_status(self, status: TradeStatus) -> list[Trade]:
        return [t.model_copy(deep=True) for t in self._trades.values() if t.status == status]

    async def list_by_store(self, store_id: str) -> list[Trade]:
        trades = [
            t.model_copy(deep=True)
            for t in self._trades.values()
            if store_id in (t.from_store_id, t.to_store_id)
        ]
        return sorted(trades, key=lambda t: t.proposed_at, reverse=True)

    async def list_all(self) -> list[Trade]:
        return [t.model_copy(deep=True) for t in self._trades.values()]
