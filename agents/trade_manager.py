"""
Trade lifecycle management: creation with constraint checks, validated status
transitions, and reporting queries over the trade history.

State machine (initial ``proposed``; ``completed``, ``failed``, ``rejected`` terminal):

    proposed -> approved -> executing -> completed
    proposed -> rejected
    approved | executing -> failed
"""

import logging
import math
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

import pandas as pd
from pydantic import ValidationError

from config.config import TradeDefaults
from models.actions import TransferParameters
from models.agent import ProductAgent
from models.enums import AgentType, TradeStatus
from models.events import (
    TRADE_APPROVED,
    TRADE_COMPLETED,
    TRADE_EXECUTING,
    TRADE_FAILED,
    TRADE_PROPOSED,
    TRADE_REJECTED,
)
from models.exceptions import InvalidTransitionError, TradeValidationError
from models.learning import TradeOutcome
from models.trade import Trade, TradeConstraints, can_transition
from utils.event_bus import EventBus

from .interfaces import TradeRepository

logger = logging.getLogger(__name__)

_STATUS_EVENTS = {
    TradeStatus.PROPOSED: TRADE_PROPOSED,
    TradeStatus.APPROVED: TRADE_APPROVED,
    TradeStatus.REJECTED: TRADE_REJECTED,
    TradeStatus.EXECUTING: TRADE_EXECUTING,
    TradeStatus.COMPLETED: TRADE_COMPLETED,
    TradeStatus.FAILED: TRADE_FAILED,
}


class TradeLifecycleManager:
    """Owns every Trade record and validates each requested status change against the transition table."""

    def __init__(
        self,
        store: TradeRepository,
        event_bus: EventBus | None = None,
        defaults: TradeDefaults | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.event_bus = event_bus
        self.defaults = defaults or TradeDefaults()
        self.clock = clock

    # --- Creation --- #

    async def create_trade(self, trade: Trade) -> Trade:
        """Validate the creation rules and persist a new ``proposed`` trade."""
        now = self.clock()
        if trade.status != TradeStatus.PROPOSED:
            raise TradeValidationError(f"New trade {trade.trade_id} must start as proposed, got {trade.status.value}")
        constraints = trade.constraints
        if constraints.min_quantity > constraints.max_quantity:
            raise TradeValidationError(
                f"min_quantity ({constraints.min_quantity}) exceeds max_quantity ({constraints.max_quantity})"
            )
        if constraints.delivery_deadline <= now:
            raise TradeValidationError(f"Delivery deadline {constraints.delivery_deadline} is not in the future")
        if trade.estimated_profit < 0 or trade.transport_cost < 0:
            raise TradeValidationError("estimated_profit and transport_cost must be non-negative")

        await self.store.create(trade)
        logger.info(
            f"Trade {trade.trade_id} proposed: {trade.quantity} x {trade.product_id} "
            f"{trade.from_store_id} -> {trade.to_store_id} (est. profit {trade.estimated_profit:.2f})"
        )
        await self._publish(TRADE_PROPOSED, trade)
        return trade

    def build_trade(self, **fields: Any) -> Trade:
        """Construct a Trade, turning model validation failures into TradeValidationError."""
        try:
            return Trade(**fields)
        except ValidationError as e:
            raise TradeValidationError(f"Invalid trade: {e}") from e

    async def propose_transfer(
        self,
        agent: ProductAgent,
        params: TransferParameters,
        decision_id: str | None = None,
    ) -> Trade:
        """Create the trade an agent's ``propose_transfer`` action asks for, using the configured defaults."""
        d = self.defaults
        try:
            constraints = TradeConstraints(
                min_quantity=max(1, math.floor(params.quantity * d.min_quantity_ratio)),
                max_quantity=params.quantity,
                delivery_deadline=self.clock() + timedelta(days=d.delivery_window_days),
                min_profit_margin=agent.config.thresholds.min_profit_margin,
                max_transport_cost=d.max_transport_cost,
            )
        except ValidationError as e:
            raise TradeValidationError(f"Invalid trade constraints: {e}") from e
        trade = self.build_trade(
            from_store_id=params.source_store_id,
            to_store_id=params.target_store_id,
            product_id=agent.product_id,
            sku=f"{agent.product_id}-{params.source_store_id}",
            quantity=params.quantity,
            estimated_profit=params.estimated_profit,
            transport_cost=d.transport_cost,
            urgency_score=d.urgency_score,
            proposed_by=agent.agent_id,
            reasoning=(
                f"AI agent optimizing inventory distribution with {params.profit_margin:.1f}% profit margin"
            ),
            constraints=constraints,
            decision_id=decision_id,
            proposed_at=self.clock(),
        )
        return await self.create_trade(trade)

    # --- Transitions --- #

    async def approve(self, trade_id: str, approved_by: str) -> Trade:
        def apply(trade: Trade, now: datetime) -> None:
            if trade.is_expired(now):
                raise TradeValidationError(f"Trade {trade.trade_id} expired at {trade.constraints.delivery_deadline}")
            trade.approved_by = approved_by
            trade.approved_at = now

        return await self._transition(trade_id, TradeStatus.APPROVED, apply)

    async def reject(self, trade_id: str, rejected_by: str, reason: str = "") -> Trade:
        def apply(trade: Trade, now: datetime) -> None:
            trade.rejected_by = rejected_by
            trade.rejection_reason = reason or None
            trade.rejected_at = now

        return await self._transition(trade_id, TradeStatus.REJECTED, apply)

    async def start_execution(
        self, trade_id: str, tracking_id: str | None = None, scheduled_at: datetime | None = None
    ) -> Trade:
        def apply(trade: Trade, now: datetime) -> None:
            trade.executed_at = now
            trade.scheduled_at = scheduled_at or now
            if tracking_id:
                trade.execution.tracking_id = tracking_id

        return await self._transition(trade_id, TradeStatus.EXECUTING, apply)

    async def complete(
        self,
        trade_id: str,
        actual_profit: float,
        actual_transport_cost: float | None = None,
        actual_quantity: int | None = None,
        notes: str | None = None,
    ) -> Trade:
        def apply(trade: Trade, now: datetime) -> None:
            trade.completed_at = now
            trade.execution.actual_profit = actual_profit
            trade.execution.actual_transport_cost = (
                trade.transport_cost if actual_transport_cost is None else actual_transport_cost
            )
            trade.execution.actual_quantity = trade.quantity if actual_quantity is None else actual_quantity
            if notes:
                trade.execution.notes = notes

        return await self._transition(trade_id, TradeStatus.COMPLETED, apply)

    async def fail(self, trade_id: str, notes: str) -> Trade:
        def apply(trade: Trade, now: datetime) -> None:
            trade.failed_at = now
            trade.execution.notes = notes

        return await self._transition(trade_id, TradeStatus.FAILED, apply)

    async def _transition(
        self,
        trade_id: str,
        target: TradeStatus,
        apply: Callable[[Trade, datetime], None],
    ) -> Trade:
        current = await self.store.get(trade_id)
        if not can_transition(current.status, target):
            logger.warning(f"Rejected illegal transition for trade {trade_id}: {current.status.value} -> {target.value}")
            raise InvalidTransitionError(trade_id, current.status.value, target.value)

        now = self.clock()
        updated = current.model_copy(deep=True)
        apply(updated, now)
        updated.status = target
        updated.updated_at = now
        await self.store.update(updated, expected_status=current.status)
        logger.info(f"Trade {trade_id}: {current.status.value} -> {target.value}")
        await self._publish(_STATUS_EVENTS[target], updated)
        return updated

    async def _publish(self, event_type: str, trade: Trade) -> None:
        if self.event_bus is None:
            return
        await self.event_bus.emit(
            event_type,
            {
                "trade_id": trade.trade_id,
                "status": trade.status.value,
                "product_id": trade.product_id,
                "from_store_id": trade.from_store_id,
                "to_store_id": trade.to_store_id,
                "quantity": trade.quantity,
                "decision_id": trade.decision_id,
            },
            AgentType.TRADE_MANAGER,
        )

    # --- Queries --- #

    async def get(self, trade_id: str) -> Trade:
        return await self.store.get(trade_id)

    async def trades_by_status(self, status: TradeStatus) -> list[Trade]:
        return await self.store.list_by_status(status)

    async def trades_for_store(self, store_id: str) -> list[Trade]:
        return await self.store.list_by_store(store_id)

    async def pending_trades(self) -> list[Trade]:
        """Proposed, unexpired trades; most urgent first, then oldest first."""
        now = self.clock()
        proposed = await self.store.list_by_status(TradeStatus.PROPOSED)
        eligible = [t for t in proposed if not t.is_expired(now)]
        return sorted(eligible, key=lambda t: (-t.urgency_score, t.proposed_at))

    async def trade_stats(self) -> pd.DataFrame:
        """Per-status count, total/average estimated profit and total transport cost."""
        columns = ["status", "count", "total_profit", "average_profit", "total_transport_cost"]
        trades = await self.store.list_all()
        if not trades:
            return pd.DataFrame(columns=columns)
        df = pd.DataFrame(
            [
                {
                    "status": t.status.value,
                    "estimated_profit": t.estimated_profit,
                    "transport_cost": t.transport_cost,
                }
                for t in trades
            ]
        )
        stats = (
            df.groupby("status")
            .agg(
                count=("estimated_profit", "size"),
                total_profit=("estimated_profit", "sum"),
                average_profit=("estimated_profit", "mean"),
                total_transport_cost=("transport_cost", "sum"),
            )
            .reset_index()
        )
        return stats[columns]

    def outcome_for(self, trade: Trade) -> TradeOutcome:
        """Learning outcome for a settled trade (completed or failed)."""
        if trade.decision_id is None:
            raise TradeValidationError(f"Trade {trade.trade_id} is not linked to a decision")
        if trade.status not in (TradeStatus.COMPLETED, TradeStatus.FAILED):
            raise TradeValidationError(f"Trade {trade.trade_id} has not settled ({trade.status.value})")
        completed = trade.status == TradeStatus.COMPLETED
        settled_at = trade.completed_at if completed else trade.failed_at
        hours = (settled_at - trade.proposed_at).total_seconds() / 3600 if settled_at else 24.0
        profit = trade.execution.actual_profit or 0.0
        return TradeOutcome(
            decision_id=trade.decision_id,
            actual_profit=profit if completed else 0.0,
            transfer_completed=completed,
            completion_time_hours=hours,
            unexpected_events=[trade.execution.notes] if not completed and trade.execution.notes else [],
            route=f"{trade.from_store_id}_to_{trade.to_store_id}",
        )
