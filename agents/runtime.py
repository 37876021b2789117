"""
Agent runtime: one cancellable periodic task per product agent.

A cycle for a given agent never overlaps another cycle for the same agent: the
loop only sleeps again after the previous cycle has finished, and ``run_cycle``
refuses to start while that agent's lock is held. Agents never share a lock.
"""

import asyncio
import logging
from collections import defaultdict
from datetime import datetime

from models.agent import ProductAgent
from models.decision import AgentDecision
from models.enums import AgentStatus, AgentType
from models.events import AGENT_DECISION, AGENT_ERROR, AGENT_STARTED, AGENT_STOPPED
from models.exceptions import AgentNotFoundError
from models.learning import TradeOutcome
from utils.event_bus import EventBus

from .dispatcher import ActionDispatcher
from .engine import DispatchDecision, PersistAgent, ProductDecisionEngine
from .interfaces import AgentRepository, InventoryReader
from .learning import PerformanceTracker
from .market import MarketParticipant
from .trade_manager import TradeLifecycleManager

logger = logging.getLogger(__name__)


class AgentRuntime:
    """Drives decision cycles for many product agents and exposes start/stop control."""

    def __init__(
        self,
        agent_store: AgentRepository,
        engine: ProductDecisionEngine,
        dispatcher: ActionDispatcher,
        trade_manager: TradeLifecycleManager,
        tracker: PerformanceTracker | None = None,
        market: MarketParticipant | None = None,
        inventory: InventoryReader | None = None,
        event_bus: EventBus | None = None,
    ):
        self.agent_store = agent_store
        self.engine = engine
        self.dispatcher = dispatcher
        self.trade_manager = trade_manager
        self.tracker = tracker or PerformanceTracker()
        self.market = market
        self.inventory = inventory
        self.event_bus = event_bus
        self._agents: dict[str, ProductAgent] = {}
        self._tasks: dict[str, asyncio.Task] = {}
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._in_flight: dict[str, asyncio.Task | None] = {}
        # bumped by stop/pause; a cycle begun under an older epoch does not dispatch
        self._epochs: dict[str, int] = defaultdict(int)
        self._retired: list[asyncio.Task] = []

    # --- Registry --- #

    async def register(self, agent: ProductAgent) -> ProductAgent:
        await self.agent_store.save(agent)
        self._agents[agent.product_id] = agent
        logger.info(f"Registered agent for product {agent.product_id} ({agent.product.name})")
        return agent

    async def get_agent(self, product_id: str) -> ProductAgent:
        agent = self._agents.get(product_id)
        if agent is None:
            agent = await self.agent_store.get(product_id)
            self._agents[product_id] = agent
        return agent

    def agents(self) -> list[ProductAgent]:
        return list(self._agents.values())

    def is_scheduled(self, product_id: str) -> bool:
        task = self._tasks.get(product_id)
        return task is not None and not task.done()

    def is_in_flight(self, product_id: str) -> bool:
        return product_id in self._in_flight

    # --- Lifecycle --- #

    async def start(self, product_id: str) -> ProductAgent:
        """Activate an agent and arm its cycle. Persistence failures leave it in ``error`` and re-raise."""
        agent = await self.get_agent(product_id)
        if agent.is_active and self.is_scheduled(product_id):
            logger.info(f"Agent {product_id} already active")
            return agent

        updated = agent.model_copy(deep=True)
        now = datetime.now()
        updated.status = AgentStatus.ACTIVE
        updated.started_at = now
        updated.updated_at = now
        try:
            await self.agent_store.save(updated)
        except Exception as e:
            logger.error(f"Failed to start agent {product_id}: {e}")
            await self._mark_error(agent, f"start failed: {e}")
            raise

        self._agents[product_id] = updated
        self._schedule(product_id)
        logger.info(f"Agent {product_id} started ({updated.product.name})")
        await self._publish(AGENT_STARTED, updated)
        return updated

    async def stop(self, product_id: str) -> ProductAgent:
        """Shut an agent down: fail in-flight actions and cancel the pending timer.

        A cycle already running is not interrupted. It finishes without dispatching its
        decision, its loop exits, and no further cycle fires until the agent is started again.
        """
        agent = await self.get_agent(product_id)
        self._epochs[product_id] += 1
        self._cancel_timer(product_id)

        updated = agent.model_copy(deep=True)
        updated.status = AgentStatus.SHUTDOWN
        updated.updated_at = datetime.now()
        failed = updated.fail_executing_actions("Agent stopped")
        self._agents[product_id] = updated
        await self.agent_store.save(updated)
        logger.info(f"Agent {product_id} stopped ({failed} in-flight action(s) failed)")
        await self._publish(AGENT_STOPPED, updated, failed_actions=failed)
        return updated

    async def pause(self, product_id: str) -> ProductAgent:
        agent = await self.get_agent(product_id)
        self._epochs[product_id] += 1
        self._cancel_timer(product_id)
        updated = agent.model_copy(deep=True)
        updated.status = AgentStatus.PAUSED
        updated.updated_at = datetime.now()
        self._agents[product_id] = updated
        await self.agent_store.save(updated)
        logger.info(f"Agent {product_id} paused")
        return updated

    async def restore(self) -> int:
        """Reload persisted agents and re-arm cycles for those stored as active. Returns how many were re-armed."""
        rearmed = 0
        for agent in await self.agent_store.list():
            if agent.fail_executing_actions("Interrupted by restart"):
                await self.agent_store.save(agent)
            self._agents[agent.product_id] = agent
            if agent.is_active and not self.is_scheduled(agent.product_id):
                self._schedule(agent.product_id)
                rearmed += 1
        logger.info(f"Restored {len(self._agents)} agent(s), {rearmed} re-armed")
        return rearmed

    async def shutdown(self) -> None:
        """Stop every active agent and wait for their tasks to finish."""
        for product_id, agent in list(self._agents.items()):
            if agent.status in (AgentStatus.ACTIVE, AgentStatus.PAUSED):
                await self.stop(product_id)
        tasks = [t for t in [*self._tasks.values(), *self._retired] if not t.done()]
        self._retired.clear()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # --- Cycles --- #

    async def run_cycle(self, product_id: str) -> AgentDecision | None:
        """Run one decision cycle now. Returns None when inactive, busy, or nothing to do."""
        lock = self._locks[product_id]
        if lock.locked():
            logger.warning(f"Cycle for {product_id} skipped: previous cycle still running")
            return None
        async with lock:
            self._in_flight[product_id] = asyncio.current_task()
            try:
                return await self._cycle(product_id)
            finally:
                self._in_flight.pop(product_id, None)

    async def _cycle(self, product_id: str) -> AgentDecision | None:
        agent = await self.get_agent(product_id)
        if not agent.is_active:
            return None
        epoch = self._epochs[product_id]

        outcome = await self.engine.decide(agent)
        if outcome.decision is None:
            logger.debug(f"No decision generated for agent {product_id}")
            return None

        try:
            for command in outcome.commands:
                if isinstance(command, PersistAgent):
                    await self._commit(command.agent)
                elif isinstance(command, DispatchDecision):
                    if not command.agent.is_active or self._epochs[product_id] != epoch:
                        logger.info(
                            f"Agent {product_id} was stopped or paused during the cycle; "
                            f"decision {command.decision.id} not dispatched"
                        )
                        continue
                    report = await self.dispatcher.dispatch(command.agent, command.decision)
                    logger.info(
                        f"Agent {product_id} dispatched decision {command.decision.id}: "
                        f"{len(report.completed)} completed, {len(report.failed)} failed, "
                        f"{len(report.deferred)} deferred"
                    )
        except Exception as e:
            logger.error(f"Decision cycle state update failed for {product_id}: {e}", exc_info=True)
            await self._mark_error(outcome.agent, f"cycle failed: {e}")
            return None

        decision = outcome.decision
        logger.info(
            f"Agent {product_id} made decision {decision.id} "
            f"(strategy={decision.strategy}, confidence={decision.confidence:.2f}, actions={len(decision.actions)})"
        )
        await self._publish(AGENT_DECISION, outcome.agent, decision_id=decision.id, strategy=decision.strategy)
        if self._epochs[product_id] == epoch:
            await self._participate(outcome.agent)
        return decision

    async def _participate(self, agent: ProductAgent) -> None:
        if not agent.is_active or not agent.config.participate_in_market or self.market is None or self.inventory is None:
            return
        try:
            records = await self.inventory.get_inventory_for_product(agent.product_id)
            await self.market.participate(agent, records)
        except Exception as e:
            logger.error(f"Marketplace participation failed for {agent.product_id}: {e!r}")

    async def _commit(self, agent: ProductAgent) -> None:
        """Persist cycle results. Status is owned by start/stop, so the latest status wins."""
        current = self._agents.get(agent.product_id)
        if current is not None and current.status != agent.status:
            agent.status = current.status
            if agent.status != AgentStatus.ACTIVE:
                agent.fail_executing_actions(f"Agent {agent.status.value}")
        agent.updated_at = datetime.now()
        await self.agent_store.save(agent)
        self._agents[agent.product_id] = agent

    async def _mark_error(self, agent: ProductAgent, reason: str) -> None:
        errored = agent.model_copy(deep=True)
        errored.status = AgentStatus.ERROR
        errored.updated_at = datetime.now()
        self._agents[agent.product_id] = errored
        self._cancel_timer(agent.product_id)
        try:
            await self.agent_store.save(errored)
        except Exception as e:
            logger.error(f"Could not persist error status for agent {agent.product_id}: {e}")
        await self._publish(AGENT_ERROR, errored, reason=reason)

    # --- Scheduling --- #

    def _schedule(self, product_id: str) -> None:
        self._tasks[product_id] = asyncio.create_task(self._loop(product_id), name=f"agent-cycle-{product_id}")

    def _cancel_timer(self, product_id: str) -> None:
        """Detach the agent's loop. A sleeping loop is cancelled; one running a cycle finishes it and then exits."""
        task = self._tasks.pop(product_id, None)
        self._retired = [t for t in self._retired if not t.done()]
        if task is None or task.done() or task is asyncio.current_task():
            return
        if self._in_flight.get(product_id) is not task:
            task.cancel()
        self._retired.append(task)

    def _owns_schedule(self, product_id: str, task: asyncio.Task | None) -> bool:
        return self._tasks.get(product_id) is task and self._current_status(product_id) == AgentStatus.ACTIVE

    def _current_status(self, product_id: str) -> AgentStatus | None:
        agent = self._agents.get(product_id)
        return agent.status if agent else None

    async def _loop(self, product_id: str) -> None:
        task = asyncio.current_task()
        try:
            # a detached loop may still be finishing its cycle; arm the timer only once it is done
            async with self._locks[product_id]:
                pass
            while self._owns_schedule(product_id, task):
                await asyncio.sleep(self._agents[product_id].config.decision_interval)
                if not self._owns_schedule(product_id, task):
                    break
                try:
                    await self.run_cycle(product_id)
                except Exception as e:
                    logger.error(f"Decision cycle error for agent {product_id}: {e}", exc_info=True)
        finally:
            if self._tasks.get(product_id) is task:
                del self._tasks[product_id]

    # --- Learning loop --- #

    async def report_outcome(self, product_id: str, outcome: TradeOutcome) -> ProductAgent:
        """Fold a realized outcome into the agent's metrics and forward it to the brain."""
        async with self._locks[product_id]:
            agent = await self.get_agent(product_id)
            updated = await self.tracker.record_outcome(agent, outcome)
            await self._commit(updated)
            return updated

    async def settle_trade(self, trade_id: str) -> ProductAgent:
        """Report the outcome of a completed or failed trade to the agent that proposed it."""
        trade = await self.trade_manager.get(trade_id)
        if trade.product_id not in self._agents:
            try:
                await self.get_agent(trade.product_id)
            except AgentNotFoundError:
                logger.error(f"Trade {trade_id} refers to unknown agent {trade.product_id}")
                raise
        return await self.report_outcome(trade.product_id, self.trade_manager.outcome_for(trade))

    async def _publish(self, event_type: str, agent: ProductAgent, **extra) -> None:
        if self.event_bus is None:
            return
        await self.event_bus.emit(
            event_type,
            {"product_id": agent.product_id, "status": agent.status.value, **extra},
            AgentType.RUNTIME,
        )
