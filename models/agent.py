"""
Data model for a per-product autonomous agent.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from config.config import AgentConfig

from .actions import AgentAction
from .decision import AgentDecision, DecisionSummary
from .enums import ActionStatus, AgentStatus
from .inventory import ProductProfile

HISTORY_LIMIT = 10


def _append_capped(items: list, item, limit: int = HISTORY_LIMIT) -> None:
    """Append and evict from the front so at most ``limit`` newest items remain."""
    items.append(item)
    overflow = len(items) - limit
    if overflow > 0:
        del items[:overflow]


class PerformanceMetrics(BaseModel):
    successful_transfers: int = 0
    total_profit_generated: float = 0.0
    average_decision_confidence: float = 0.5
    transfer_success_rate: float = 0.0


class LearningData(BaseModel):
    """Bounded learning history, oldest entries first."""

    decision_history: list[str] = Field(default_factory=list)
    outcome_history: list[bool] = Field(default_factory=list)
    route_profits: dict[str, float] = Field(default_factory=dict)
    seasonal_adjustments: dict[str, float] = Field(default_factory=dict)

    def record_decision_id(self, decision_id: str) -> None:
        _append_capped(self.decision_history, decision_id)

    def record_outcome(self, success: bool) -> None:
        _append_capped(self.outcome_history, success)


class ProductAgent(BaseModel):
    """
    The decision-loop entity for one product. Owned by the runtime and mutated only
    through decision cycles, outcome reports or explicit start/stop calls.
    """

    product_id: str
    product: ProductProfile
    status: AgentStatus = AgentStatus.INITIALIZING
    current_strategy: str = "balanced_optimization"
    started_at: datetime | None = None
    last_decision_at: datetime | None = None
    config: AgentConfig = Field(default_factory=AgentConfig)
    performance: PerformanceMetrics = Field(default_factory=PerformanceMetrics)
    learning: LearningData = Field(default_factory=LearningData)
    current_decision: AgentDecision | None = None
    active_actions: list[AgentAction] = Field(default_factory=list)
    recent_decisions: list[DecisionSummary] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=datetime.now)

    @property
    def agent_id(self) -> str:
        return f"agent_{self.product_id}"

    @property
    def is_active(self) -> bool:
        return self.status == AgentStatus.ACTIVE

    def record_decision(self, decision: AgentDecision) -> None:
        """Make ``decision`` current and push it onto the rolling history (last 10 kept)."""
        self.current_decision = decision
        self.last_decision_at = decision.timestamp
        self.current_strategy = decision.strategy
        _append_capped(self.recent_decisions, decision.summary())
        self.learning.record_decision_id(decision.id)
        confidences = [d.confidence for d in self.recent_decisions]
        self.performance.average_decision_confidence = sum(confidences) / len(confidences)

    def find_recent_decision(self, decision_id: str) -> DecisionSummary | None:
        for summary in self.recent_decisions:
            if summary.id == decision_id:
                return summary
        return None

    def executing_actions(self) -> list[AgentAction]:
        return [a for a in self.active_actions if a.status == ActionStatus.EXECUTING]

    def fail_executing_actions(self, reason: str) -> int:
        """Mark every in-flight action failed. Returns how many were changed."""
        count = 0
        for action in self.active_actions:
            if action.status == ActionStatus.EXECUTING:
                action.fail(reason)
                count += 1
        if self.current_decision is not None:
            for action in self.current_decision.actions:
                if action.status == ActionStatus.EXECUTING:
                    action.fail(reason)
        return count
