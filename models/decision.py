"""
Decision models: the strategic output consumed from the decision brain and the
concrete, timestamped decision an agent records.
"""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from .actions import AgentAction, ExpectedOutcome
from .enums import DecisionType


class MarketPredictions(BaseModel):
    demand_forecast: list[float] = Field(default_factory=list)
    price_optimization: float = 0.0
    inventory_need: float = 0.0


class ProposedAction(BaseModel):
    """An action as suggested by a strategy, before it is assigned an id and status."""

    type: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    priority: int | None = None
    expected_outcome: ExpectedOutcome | None = None


class StrategicDecision(BaseModel):
    """Output contract of the decision brain (or the detector fallback)."""

    strategy: str
    confidence: float = Field(ge=0, le=1)
    reasoning: str = ""
    actions: list[ProposedAction] = Field(default_factory=list)
    market_predictions: MarketPredictions | None = None


class AgentDecision(BaseModel):
    """One completed decision cycle. Never holds zero actions."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    agent_id: str
    type: DecisionType
    strategy: str
    confidence: float = Field(ge=0, le=1)
    reasoning: str
    actions: list[AgentAction]
    timestamp: datetime = Field(default_factory=datetime.now)
    market_predictions: MarketPredictions | None = None

    @field_validator("actions")
    @classmethod
    def _require_actions(cls, value: list[AgentAction]) -> list[AgentAction]:
        if not value:
            raise ValueError("A decision must carry at least one action")
        return value

    def summary(self) -> "DecisionSummary":
        return DecisionSummary(
            id=self.id,
            type=self.type,
            confidence=self.confidence,
            reasoning=self.reasoning,
            timestamp=self.timestamp,
            actions_count=len(self.actions),
        )


class DecisionSummary(BaseModel):
    """Compact entry kept in an agent's rolling decision history."""

    id: str
    type: DecisionType
    confidence: float
    reasoning: str
    timestamp: datetime
    actions_count: int
    outcome: dict[str, Any] | None = None
