"""
Action dispatch: executes each action of a decision against its collaborator,
isolating failures so one bad action never aborts the batch.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from models.actions import AgentAction, AlertParameters, PricingParameters, TransferParameters
from models.agent import ProductAgent
from models.decision import AgentDecision
from models.enums import ActionStatus, ActionType, AgentType
from models.events import AGENT_ALERT, AGENT_PRICING
from models.exceptions import UnknownActionError
from models.trade import Trade
from utils.event_bus import EventBus

from .trade_manager import TradeLifecycleManager

logger = logging.getLogger(__name__)

ActionHandler = Callable[[ProductAgent, AgentDecision, AgentAction], Awaitable[Trade | None]]


@dataclass
class DispatchReport:
    decision_id: str
    completed: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    deferred: list[str] = field(default_factory=list)
    trades: list[Trade] = field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed and not self.deferred


def order_by_priority(actions: list[AgentAction]) -> list[AgentAction]:
    """Highest priority first; equal priorities keep their list order."""
    return sorted(actions, key=lambda a: -a.priority)


class ActionDispatcher:
    def __init__(
        self,
        trade_manager: TradeLifecycleManager,
        event_bus: EventBus | None = None,
        timeout: float = 10.0,
    ):
        self.trade_manager = trade_manager
        self.event_bus = event_bus
        self.timeout = timeout
        self.handlers: dict[str, ActionHandler] = {
            ActionType.PROPOSE_TRANSFER.value: self._propose_transfer,
            ActionType.ADJUST_PRICING.value: self._adjust_pricing,
            ActionType.SEND_ALERT.value: self._send_alert,
        }

    async def dispatch(self, agent: ProductAgent, decision: AgentDecision) -> DispatchReport:
        """
        Execute the pending actions of ``decision`` in priority order, mutating their
        status in place and tracking in-flight ones in ``agent.active_actions``.

        At most ``max_concurrent_actions`` are started per batch, counting actions
        still executing from earlier batches. The rest stay pending on the decision
        and are reported as deferred; they are not retried, the next cycle decides afresh.
        """
        report = DispatchReport(decision_id=decision.id)
        limit = agent.config.max_concurrent_actions
        started = 0
        for action in order_by_priority(decision.actions):
            if action.status != ActionStatus.PENDING:
                continue
            if started + len(agent.executing_actions()) >= limit:
                logger.warning(
                    f"Agent {agent.product_id} at {limit} concurrent actions; deferring action {action.id}"
                )
                report.deferred.append(action.id)
                continue
            started += 1
            await self._run(agent, decision, action, report)
        return report

    async def _run(
        self,
        agent: ProductAgent,
        decision: AgentDecision,
        action: AgentAction,
        report: DispatchReport,
    ) -> None:
        action.start()
        agent.active_actions.append(action)
        try:
            handler = self.handlers.get(action.type)
            if handler is None:
                raise UnknownActionError(f"Unknown action type: {action.type}")
            trade = await asyncio.wait_for(handler(agent, decision, action), timeout=self.timeout)
        except asyncio.TimeoutError:
            action.fail(f"Timed out after {self.timeout}s")
            report.failed[action.id] = action.error
            logger.error(f"Agent {agent.product_id} action {action.id} ({action.type}) timed out")
        except Exception as e:
            action.fail(str(e) or type(e).__name__)
            report.failed[action.id] = action.error
            logger.error(f"Agent {agent.product_id} action {action.id} ({action.type}) failed: {e}")
        else:
            action.complete()
            report.completed.append(action.id)
            if trade is not None:
                report.trades.append(trade)
            logger.debug(f"Agent {agent.product_id} completed action {action.id}")
        finally:
            agent.active_actions = [a for a in agent.active_actions if a.id != action.id]

    async def _propose_transfer(self, agent: ProductAgent, decision: AgentDecision, action: AgentAction) -> Trade:
        params = action.parameters
        if not isinstance(params, TransferParameters):
            raise TypeError(f"propose_transfer action {action.id} carries {params.kind} parameters")
        return await self.trade_manager.propose_transfer(agent, params, decision_id=decision.id)

    async def _adjust_pricing(self, agent: ProductAgent, decision: AgentDecision, action: AgentAction) -> None:
        params = action.parameters
        if not isinstance(params, PricingParameters):
            raise TypeError(f"adjust_pricing action {action.id} carries {params.kind} parameters")
        logger.info(
            f"Agent {agent.product_id} adjusting pricing: store={params.store_id} "
            f"new_price={params.new_price} change={params.change_pct:+.2f}% reason={params.reason!r}"
        )
        await self._notify(AGENT_PRICING, agent, action, params.model_dump(mode="json"))

    async def _send_alert(self, agent: ProductAgent, decision: AgentDecision, action: AgentAction) -> None:
        params = action.parameters
        if not isinstance(params, AlertParameters):
            raise TypeError(f"send_alert action {action.id} carries {params.kind} parameters")
        logger.warning(f"Agent {agent.product_id} alert [{params.severity.value}]: {params.message}")
        await self._notify(AGENT_ALERT, agent, action, params.model_dump(mode="json"))

    async def _notify(self, event_type: str, agent: ProductAgent, action: AgentAction, payload: dict) -> None:
        if self.event_bus is None:
            return
        await self.event_bus.emit(
            event_type,
            {"product_id": agent.product_id, "action_id": action.id, **payload},
            AgentType.PRODUCT_AGENT,
        )
