"""
Demonstrates autonomous per-product inventory rebalancing.

Three products across five stores are handled by one agent each. The demo runs a
decision cycle per agent, approves and executes the proposed trades against the
in-memory inventory, reports the outcomes back, and prints the before/after state.
Set OPENAI_API_KEY to let the LLM brain choose strategies; otherwise the
arbitrage detector decides.
"""

import asyncio
import random

import pandas as pd

from agents.context_builder import MarketContextBuilder
from agents.dispatcher import ActionDispatcher
from agents.engine import ProductDecisionEngine
from agents.learning import PerformanceTracker
from agents.llm_brain import LLMDecisionBrain
from agents.market import MarketParticipant
from agents.runtime import AgentRuntime
from agents.trade_manager import TradeLifecycleManager
from config.config import load_agent_config
from connectors.agent_store import InMemoryAgentStore
from connectors.dummy_inventory_system import InMemoryInventorySystem
from connectors.dummy_marketplace import InMemoryMarketplace
from connectors.trade_store import InMemoryTradeStore
from models.agent import ProductAgent
from models.enums import TradeStatus
from models.inventory import InventoryRecord, ProductProfile
from utils.event_bus import EventBus
from utils.logger import get_logger
from utils.monitoring import AgentMonitor

logger = get_logger("demos.inventory_rebalancing")

STORES = ["STORE-N", "STORE-S", "STORE-E", "STORE-W", "STORE-C"]
PRODUCTS = {
    "SKU-COAT": ProductProfile("Winter Coat", "winter apparel", 120.0, 55.0, target_margin=35.0),
    "SKU-FAN": ProductProfile("Desk Fan", "summer appliances", 40.0, 18.0),
    "SKU-MOUSE": ProductProfile("Wireless Mouse", "electronics", 25.0, 10.0, target_margin=15.0),
}


def seed_inventory(rng: random.Random) -> InMemoryInventorySystem:
    records = []
    for product_id, profile in PRODUCTS.items():
        for store_id in STORES:
            # skew stock so some stores are over and some under the thresholds
            quantity = rng.choice([rng.randint(5, 45), rng.randint(120, 400), rng.randint(520, 900)])
            records.append(
                InventoryRecord(
                    store_id=store_id,
                    product_id=product_id,
                    quantity=quantity,
                    cost=profile.base_cost,
                    retail_price=profile.standard_retail,
                    average_daily_sales=rng.uniform(4, 25),
                    max_capacity=1000,
                )
            )
    return InMemoryInventorySystem(records)


async def print_inventory(inventory: InMemoryInventorySystem):
    rows = []
    for product_id in PRODUCTS:
        for record in await inventory.get_inventory_for_product(product_id):
            rows.append({"product": product_id, "store": record.store_id, "quantity": record.quantity})
    df = pd.DataFrame(rows).pivot(index="store", columns="product", values="quantity")
    print(df.to_string())


async def demo_inventory_rebalancing(seed: int = 7):
    rng = random.Random(seed)
    inventory = seed_inventory(rng)
    bus = EventBus()
    config = load_agent_config()

    brain = LLMDecisionBrain()
    brain = brain if brain.available else None
    trade_manager = TradeLifecycleManager(InMemoryTradeStore(), event_bus=bus)
    monitors = {pid: AgentMonitor(pid, {"transfer_success_rate": (0.5, 1.0)}) for pid in PRODUCTS}
    runtime = AgentRuntime(
        InMemoryAgentStore(),
        ProductDecisionEngine(MarketContextBuilder(inventory, rng=rng), brain=brain, rng=rng),
        ActionDispatcher(trade_manager, event_bus=bus),
        trade_manager,
        tracker=PerformanceTracker(brain=brain, monitors=monitors),
        market=MarketParticipant(InMemoryMarketplace()),
        inventory=inventory,
        event_bus=bus,
    )

    print("\n=== Initial inventory ===")
    await print_inventory(inventory)

    for product_id, profile in PRODUCTS.items():
        await runtime.register(ProductAgent(product_id=product_id, product=profile, config=config))
        await runtime.start(product_id)

    for product_id in PRODUCTS:
        decision = await runtime.run_cycle(product_id)
        if decision is None:
            logger.info(f"{product_id}: no action needed")
        else:
            logger.info(f"{product_id}: {decision.strategy} ({decision.confidence:.2f}) - {decision.reasoning}")

    for trade in await trade_manager.pending_trades():
        if not trade.is_profitable():
            await trade_manager.reject(trade.trade_id, "demo-manager", "transport cost exceeds profit")
            continue
        await trade_manager.approve(trade.trade_id, "demo-manager")
        await trade_manager.start_execution(trade.trade_id, tracking_id=f"TRK-{trade.trade_id[:8]}")
        moved = await inventory.apply_transfer(trade.product_id, trade.from_store_id, trade.to_store_id, trade.quantity)
        if moved:
            await trade_manager.complete(trade.trade_id, actual_profit=trade.estimated_profit - trade.transport_cost)
        else:
            await trade_manager.fail(trade.trade_id, notes="source stock changed before pickup")
        await runtime.settle_trade(trade.trade_id)

    print("\n=== Inventory after rebalancing ===")
    await print_inventory(inventory)

    print("\n=== Trade statistics ===")
    print((await trade_manager.trade_stats()).to_string(index=False))

    print("\n=== Agent performance ===")
    summary = pd.DataFrame(
        [
            {
                "product": a.product_id,
                "strategy": a.current_strategy,
                "transfers": a.performance.successful_transfers,
                "profit": round(a.performance.total_profit_generated, 2),
                "success_rate": a.performance.transfer_success_rate,
                "avg_confidence": round(a.performance.average_decision_confidence, 2),
            }
            for a in runtime.agents()
        ]
    )
    print(summary.to_string(index=False))
    completed = len(await trade_manager.trades_by_status(TradeStatus.COMPLETED))
    print(f"\nEvents published: {len(bus.recent())}, completed trades: {completed}")

    await runtime.shutdown()


if __name__ == "__main__":
    asyncio.run(demo_inventory_rebalancing())
