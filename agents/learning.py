"""
Performance and learning tracker.

Local metrics are updated first and are authoritative; forwarding the learning
update to the decision brain is best-effort.
"""

import asyncio
import logging

import numpy as np

from models.agent import ProductAgent
from models.learning import LearningUpdate, TradeOutcome
from utils.monitoring import AgentMonitor

from .interfaces import DecisionBrain

logger = logging.getLogger(__name__)


class PerformanceTracker:
    def __init__(
        self,
        brain: DecisionBrain | None = None,
        timeout: float = 10.0,
        monitors: dict[str, AgentMonitor] | None = None,
    ):
        """
        Args:
            brain: Receives learning updates; None disables forwarding.
            timeout: Upper bound in seconds for the forwarding call.
            monitors: Optional per-product metric monitors.
        """
        self.brain = brain
        self.timeout = timeout
        self.monitors = monitors if monitors is not None else {}

    def apply_outcome(self, agent: ProductAgent, outcome: TradeOutcome) -> ProductAgent:
        """Return a copy of ``agent`` with the outcome folded into its metrics."""
        updated = agent.model_copy(deep=True)
        metrics = updated.performance
        if outcome.actual_profit > 0:
            metrics.successful_transfers += 1
            metrics.total_profit_generated += outcome.actual_profit

        updated.learning.record_outcome(outcome.transfer_completed)
        metrics.transfer_success_rate = float(np.mean(updated.learning.outcome_history))

        if outcome.route:
            routes = updated.learning.route_profits
            routes[outcome.route] = routes.get(outcome.route, 0.0) + outcome.actual_profit
        for key, value in outcome.strategy_adjustments.items():
            updated.learning.seasonal_adjustments[key] = value

        summary = updated.find_recent_decision(outcome.decision_id)
        if summary is not None:
            summary.outcome = {
                "actual_profit": outcome.actual_profit,
                "transfer_completed": outcome.transfer_completed,
                "completion_time_hours": outcome.completion_time_hours,
            }
        return updated

    async def record_outcome(self, agent: ProductAgent, outcome: TradeOutcome) -> ProductAgent:
        updated = self.apply_outcome(agent, outcome)
        monitor = self.monitors.get(agent.product_id)
        if monitor is not None:
            monitor.record_metrics(
                {
                    "transfer_success_rate": updated.performance.transfer_success_rate,
                    "total_profit": updated.performance.total_profit_generated,
                }
            )
        await self.forward(LearningUpdate.from_outcome(agent.agent_id, outcome))
        logger.debug(
            f"Agent {agent.product_id} learned from outcome of decision {outcome.decision_id}: "
            f"profit={outcome.actual_profit:.2f}, success={outcome.transfer_completed}"
        )
        return updated

    async def forward(self, update: LearningUpdate) -> bool:
        """Send the update to the brain. Returns False (and logs) on any failure."""
        if self.brain is None:
            return False
        try:
            await asyncio.wait_for(self.brain.learn_from_outcome(update), timeout=self.timeout)
            return True
        except Exception as e:
            logger.error(f"Learning forward failed for decision {update.decision_id}: {e!r}")
            return False
