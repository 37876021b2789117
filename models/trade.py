"""
Data models for proposed inter-store transfers (trades).
"""

import uuid
from datetime import datetime, timedelta

from pydantic import BaseModel, Field, model_validator

from .enums import TradeStatus

# Allowed status moves; completed, failed and rejected are terminal.
TRADE_TRANSITIONS: dict[TradeStatus, frozenset[TradeStatus]] = {
    TradeStatus.PROPOSED: frozenset({TradeStatus.APPROVED, TradeStatus.REJECTED}),
    TradeStatus.APPROVED: frozenset({TradeStatus.EXECUTING, TradeStatus.FAILED}),
    TradeStatus.EXECUTING: frozenset({TradeStatus.COMPLETED, TradeStatus.FAILED}),
    TradeStatus.REJECTED: frozenset(),
    TradeStatus.COMPLETED: frozenset(),
    TradeStatus.FAILED: frozenset(),
}


def can_transition(current: TradeStatus, target: TradeStatus) -> bool:
    return target in TRADE_TRANSITIONS[current]


class TradeConstraints(BaseModel):
    max_transport_cost: float = Field(ge=0)
    min_profit_margin: float = Field(ge=0)
    delivery_deadline: datetime
    min_quantity: int = Field(ge=1)
    max_quantity: int = Field(ge=1)

    @model_validator(mode="after")
    def _check_quantity_bounds(self) -> "TradeConstraints":
        if self.min_quantity > self.max_quantity:
            raise ValueError(
                f"min_quantity ({self.min_quantity}) exceeds max_quantity ({self.max_quantity})"
            )
        return self


class TradeExecution(BaseModel):
    actual_profit: float | None = None
    actual_transport_cost: float | None = Field(default=None, ge=0)
    actual_quantity: int | None = Field(default=None, ge=0)
    tracking_id: str | None = None
    notes: str | None = None


class Trade(BaseModel):
    """Durable record of a proposed transfer. Status changes go through TradeLifecycleManager."""

    trade_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    status: TradeStatus = TradeStatus.PROPOSED
    from_store_id: str
    to_store_id: str
    product_id: str
    sku: str
    quantity: int = Field(ge=1)
    estimated_profit: float = Field(ge=0)
    transport_cost: float = Field(ge=0)
    urgency_score: float = Field(default=0.0, ge=0, le=100)
    proposed_by: str
    approved_by: str | None = None
    rejected_by: str | None = None
    rejection_reason: str | None = None
    proposed_at: datetime = Field(default_factory=datetime.now)
    approved_at: datetime | None = None
    rejected_at: datetime | None = None
    scheduled_at: datetime | None = None
    executed_at: datetime | None = None
    completed_at: datetime | None = None
    failed_at: datetime | None = None
    reasoning: str
    constraints: TradeConstraints
    execution: TradeExecution = Field(default_factory=TradeExecution)
    decision_id: str | None = None
    updated_at: datetime = Field(default_factory=datetime.now)

    def is_expired(self, now: datetime | None = None) -> bool:
        """True once the delivery deadline has passed, whatever the status."""
        return (now or datetime.now()) > self.constraints.delivery_deadline

    def is_profitable(self) -> bool:
        return self.estimated_profit > self.transport_cost

    @property
    def profit_margin(self) -> float:
        """Estimated profit as a percentage of profit plus transport cost."""
        if self.transport_cost == 0:
            return 0.0
        return self.estimated_profit / (self.estimated_profit + self.transport_cost) * 100

    @property
    def duration(self) -> timedelta | None:
        if self.completed_at is None:
            return None
        return self.completed_at - self.proposed_at

    @property
    def is_terminal(self) -> bool:
        return not TRADE_TRANSITIONS[self.status]
