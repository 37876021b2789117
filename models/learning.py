"""
Models for realized trade outcomes and the learning feedback sent to the decision brain.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class TradeOutcome(BaseModel):
    """Outcome reported for a prior decision once the transfer has settled."""

    decision_id: str
    actual_profit: float = 0.0
    transfer_completed: bool = False
    completion_time_hours: float = 24.0
    unexpected_events: list[str] = Field(default_factory=list)
    successful_patterns: list[str] = Field(default_factory=list)
    insights: list[str] = Field(default_factory=list)
    strategy_adjustments: dict[str, float] = Field(default_factory=dict)
    route: str | None = None  # "{source}_to_{target}" when known
    reported_at: datetime = Field(default_factory=datetime.now)


class ActualOutcome(BaseModel):
    profit_generated: float
    transfer_success: bool
    time_to_complete: float
    unexpected_events: list[str] = Field(default_factory=list)


class Lessons(BaseModel):
    pattern_reinforced: list[str] = Field(default_factory=list)
    new_insights: list[str] = Field(default_factory=list)
    adjustments: dict[str, Any] = Field(default_factory=dict)


class LearningUpdate(BaseModel):
    agent_id: str
    decision_id: str
    actual_outcome: ActualOutcome
    lessons: Lessons = Field(default_factory=Lessons)

    @classmethod
    def from_outcome(cls, agent_id: str, outcome: TradeOutcome) -> "LearningUpdate":
        return cls(
            agent_id=agent_id,
            decision_id=outcome.decision_id,
            actual_outcome=ActualOutcome(
                profit_generated=outcome.actual_profit,
                transfer_success=outcome.transfer_completed,
                time_to_complete=outcome.completion_time_hours,
                unexpected_events=list(outcome.unexpected_events),
            ),
            lessons=Lessons(
                pattern_reinforced=list(outcome.successful_patterns),
                new_insights=list(outcome.insights),
                adjustments=dict(outcome.strategy_adjustments),
            ),
        )
