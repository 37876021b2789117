"""
Decision synthesis: turns a strategic signal into a concrete, timestamped AgentDecision.

Also provides the detector-based fallback strategy used when no decision brain
is available.
"""

import logging
from collections.abc import Sequence

from pydantic import ValidationError

from config.config import AgentThresholds
from models.actions import AgentAction, ExpectedOutcome
from models.context import StoreInventorySnapshot
from models.decision import AgentDecision, ProposedAction, StrategicDecision
from models.enums import ActionType, DecisionType
from models.inventory import InventoryRecord, Opportunity

logger = logging.getLogger(__name__)

STRATEGY_DECISION_TYPES: dict[str, DecisionType] = {
    "aggressive_arbitrage": DecisionType.AGGRESSIVE_TRANSFER,
    "conservative_rebalancing": DecisionType.INVENTORY_REBALANCING,
    "hold_position": DecisionType.MAINTAIN_POSITION,
    "emergency_liquidation": DecisionType.EMERGENCY_ACTION,
}
FALLBACK_STRATEGY = "conservative_rebalancing"
BASE_CONFIDENCE = 0.7


def map_strategy_to_decision_type(strategy: str) -> DecisionType:
    return STRATEGY_DECISION_TYPES.get(strategy, DecisionType.INVENTORY_OPTIMIZATION)


def fallback_confidence(opportunity_count: int) -> float:
    return min(BASE_CONFIDENCE + min(opportunity_count * 0.1, 0.3), 1.0)


def fallback_reasoning(
    positions: Sequence[InventoryRecord | StoreInventorySnapshot],
    opportunities: Sequence[Opportunity],
    thresholds: AgentThresholds,
) -> str:
    low = sum(1 for p in positions if p.quantity <= thresholds.low_stock_threshold)
    high = sum(1 for p in positions if p.quantity >= thresholds.high_stock_threshold)
    parts = []
    if low:
        parts.append(f"{low} store(s) with low stock")
    if high:
        parts.append(f"{high} store(s) with overstock")
    if opportunities:
        best = max(o.profit_margin for o in opportunities)
        parts.append(f"Best opportunity: {best:.1f}% profit margin")
    return "; ".join(parts) or "Routine inventory analysis"


def opportunity_to_action(opportunity: Opportunity) -> ProposedAction:
    return ProposedAction(
        type=ActionType.PROPOSE_TRANSFER.value,
        parameters={
            "source_store_id": opportunity.source_store_id,
            "target_store_id": opportunity.target_store_id,
            "quantity": opportunity.quantity,
            "estimated_profit": opportunity.estimated_profit,
            "profit_margin": opportunity.profit_margin,
        },
        expected_outcome=ExpectedOutcome(
            profit_potential=opportunity.estimated_profit, risk_level=0.3, time_horizon="short_term"
        ),
    )


def fallback_strategy(
    positions: Sequence[InventoryRecord | StoreInventorySnapshot],
    opportunities: Sequence[Opportunity],
    thresholds: AgentThresholds,
    max_actions: int = 3,
) -> StrategicDecision:
    """Strategy built from detector output; only the top ``max_actions`` opportunities become actions."""
    return StrategicDecision(
        strategy=FALLBACK_STRATEGY,
        confidence=fallback_confidence(len(opportunities)),
        reasoning=fallback_reasoning(positions, opportunities, thresholds),
        actions=[opportunity_to_action(o) for o in opportunities[:max_actions]],
    )


class DecisionSynthesizer:
    """Converts a StrategicDecision into an AgentDecision, or None when it carries no usable action."""

    def synthesize(self, agent_id: str, strategic: StrategicDecision | None) -> AgentDecision | None:
        if strategic is None or not strategic.actions:
            logger.debug(f"No strategic actions for {agent_id}; no decision produced")
            return None

        actions: list[AgentAction] = []
        for proposed in strategic.actions:
            try:
                actions.append(
                    AgentAction.create(
                        proposed.type,
                        proposed.parameters,
                        priority=proposed.priority,
                        expected_outcome=proposed.expected_outcome,
                    )
                )
            except ValidationError as e:
                logger.warning(f"Dropping malformed {proposed.type} action for {agent_id}: {e}")
        if not actions:
            return None

        return AgentDecision(
            agent_id=agent_id,
            type=map_strategy_to_decision_type(strategic.strategy),
            strategy=strategic.strategy,
            confidence=strategic.confidence,
            reasoning=strategic.reasoning,
            actions=actions,
            market_predictions=strategic.market_predictions,
        )
