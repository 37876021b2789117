"""
Stateless per-product decision engine.

``decide`` takes an explicit ProductAgent value and returns the updated value
together with the side-effecting commands (persist, dispatch) the runtime must
execute, in order.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field

from models.agent import ProductAgent
from models.context import MarketContext
from models.decision import AgentDecision, StrategicDecision

from .arbitrage import ArbitrageDetector
from .context_builder import MarketContextBuilder
from .decision import DecisionSynthesizer, fallback_strategy
from .interfaces import DecisionBrain

logger = logging.getLogger(__name__)


@dataclass
class PersistAgent:
    agent: ProductAgent


@dataclass
class DispatchDecision:
    agent: ProductAgent
    decision: AgentDecision


Command = PersistAgent | DispatchDecision


@dataclass
class CycleOutcome:
    agent: ProductAgent
    decision: AgentDecision | None = None
    context: MarketContext | None = None
    commands: list[Command] = field(default_factory=list)


class ProductDecisionEngine:
    def __init__(
        self,
        context_builder: MarketContextBuilder,
        brain: DecisionBrain | None = None,
        synthesizer: DecisionSynthesizer | None = None,
        rng: random.Random | None = None,
    ):
        self.context_builder = context_builder
        self.brain = brain
        self.synthesizer = synthesizer or DecisionSynthesizer()
        self.rng = rng or random.Random()

    async def decide(self, agent: ProductAgent) -> CycleOutcome:
        """Run context -> strategy -> synthesis for one agent. Inactive agents yield an empty outcome."""
        if not agent.is_active:
            logger.debug(f"Agent {agent.product_id} is {agent.status.value}; skipping decision")
            return CycleOutcome(agent=agent)

        context = await self.context_builder.build(agent)
        strategic = await self.strategize(agent, context)
        decision = self.synthesizer.synthesize(agent.product_id, strategic)
        if decision is None:
            return CycleOutcome(agent=agent, context=context)

        updated = agent.model_copy(deep=True)
        updated.record_decision(decision)
        return CycleOutcome(
            agent=updated,
            decision=decision,
            context=context,
            commands=[
                PersistAgent(updated),
                DispatchDecision(updated, decision),
                PersistAgent(updated),
            ],
        )

    async def strategize(self, agent: ProductAgent, context: MarketContext) -> StrategicDecision | None:
        """Ask the brain; on failure or timeout fall back to the arbitrage detector if enabled."""
        config = agent.config
        if self.brain is not None:
            try:
                return await asyncio.wait_for(
                    self.brain.make_strategic_decision(context), timeout=config.remote_call_timeout
                )
            except Exception as e:
                logger.warning(f"Decision brain unavailable for {agent.product_id}: {e!r}")
                if not config.use_detector_fallback:
                    return None

        detector = ArbitrageDetector(config.thresholds, rng=self.rng)
        opportunities = detector.find_opportunities(context.current_inventory)
        return fallback_strategy(
            context.current_inventory,
            opportunities,
            config.thresholds,
            max_actions=config.max_actions_per_decision,
        )
