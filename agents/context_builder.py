"""
Market context builder: assembles the point-in-time snapshot an agent decides on.

External signals (competitor quotes, weather, economy, local events, supply chain)
are simulated from an injectable ``random.Random`` so tests can fix the seed.
"""

import logging
import random
from datetime import datetime

from models.agent import PerformanceMetrics, ProductAgent
from models.context import (
    ExternalFactors,
    HistoricalPerformance,
    MarketContext,
    MarketTrends,
    StoreInventorySnapshot,
)
from models.inventory import InventoryRecord, ProductProfile

from .interfaces import InventoryReader

logger = logging.getLogger(__name__)

MARKET_AVERAGE_MARGIN = 20.0
LOCAL_EVENTS = ["Local Festival", "Sports Game", "Concert", "Holiday Sale"]

# (keywords, active months [0-11], in-season multiplier, off-season multiplier)
SEASONAL_RULES: list[tuple[tuple[str, ...], frozenset[int], float, float]] = [
    (("winter", "coat", "heater"), frozenset({10, 11, 0, 1, 2}), 1.5, 0.7),
    (("summer", "swim", "fan"), frozenset({4, 5, 6, 7, 8}), 1.4, 0.8),
    (("holiday", "gift"), frozenset({10, 11}), 2.0, 0.6),
]


def local_demand_score(days_of_stock: float) -> float:
    """Fewer days of stock means more demand relative to supply."""
    if days_of_stock < 3:
        return 0.9
    if days_of_stock < 7:
        return 0.7
    if days_of_stock < 14:
        return 0.5
    if days_of_stock < 30:
        return 0.3
    return 0.1


def seasonal_index(category: str, month: int) -> float:
    """Seasonal multiplier for a category; ``month`` is zero-based (January = 0)."""
    category = category.lower()
    for keywords, months, in_season, off_season in SEASONAL_RULES:
        if any(k in category for k in keywords):
            return in_season if month in months else off_season
    return 1.0


def demand_growth_rate(metrics: PerformanceMetrics, decisions_recorded: int) -> float:
    if decisions_recorded < 2:
        return 0.05
    success = metrics.transfer_success_rate
    profit = metrics.total_profit_generated
    if success >= 0.8 and profit > 1000:
        return 0.15
    if success >= 0.6 and profit > 500:
        return 0.10
    if success >= 0.4:
        return 0.05
    return -0.02


def competitive_index(product: ProductProfile) -> float:
    return min(1.0, product.target_margin / MARKET_AVERAGE_MARGIN)


def optimal_transfer_size(metrics: PerformanceMetrics) -> int:
    base = 150 if metrics.successful_transfers > 0 else 100
    return round(base * (0.5 + metrics.transfer_success_rate))


def best_performing_routes(agent: ProductAgent, limit: int = 3) -> list[str]:
    routes = sorted(agent.learning.route_profits.items(), key=lambda kv: kv[1], reverse=True)
    return [route for route, profit in routes[:limit] if profit > 0]


class MarketContextBuilder:
    """Builds a MarketContext per cycle. Never raises: failures yield a minimal context."""

    def __init__(
        self,
        inventory: InventoryReader,
        rng: random.Random | None = None,
        clock=datetime.now,
    ):
        self.inventory = inventory
        self.rng = rng or random.Random()
        self.clock = clock

    async def build(self, agent: ProductAgent) -> MarketContext:
        try:
            records = await self.inventory.get_inventory_for_product(agent.product_id)
            return self._assemble(agent, records)
        except Exception as e:
            logger.warning(
                f"Error building market context for {agent.product_id}, using minimal context: {e}",
                exc_info=True,
            )
            return MarketContext.minimal(agent.product_id)

    def _assemble(self, agent: ProductAgent, records: list[InventoryRecord]) -> MarketContext:
        product = agent.product
        metrics = agent.performance
        snapshots = [
            StoreInventorySnapshot(
                store_id=r.store_id,
                quantity=r.quantity,
                reserved_quantity=r.reserved_quantity,
                cost=r.cost,
                avg_sales_per_day=r.daily_sales,
                days_of_stock=r.days_of_stock(),
                local_demand_score=local_demand_score(r.days_of_stock()),
                competitor_pricing=self._competitor_pricing(product),
            )
            for r in records
        ]
        return MarketContext(
            product_id=agent.product_id,
            current_inventory=snapshots,
            market_trends=MarketTrends(
                seasonal_index=seasonal_index(product.category, self.clock().month - 1),
                demand_growth_rate=demand_growth_rate(metrics, len(agent.recent_decisions)),
                price_elasticity=product.target_margin / 100,
                competitive_index=competitive_index(product),
            ),
            historical_performance=HistoricalPerformance(
                avg_profit_per_transfer=metrics.total_profit_generated / max(1, metrics.successful_transfers),
                success_rate=metrics.transfer_success_rate,
                optimal_transfer_size=optimal_transfer_size(metrics),
                best_performing_routes=best_performing_routes(agent),
            ),
            external_factors=self._external_factors(product),
            built_at=self.clock(),
        )

    def _competitor_pricing(self, product: ProductProfile) -> list[float]:
        base = product.standard_retail
        return [
            base * (0.95 + self.rng.random() * 0.1),
            base * (0.9 + self.rng.random() * 0.2),
            base * (0.92 + self.rng.random() * 0.16),
        ]

    def _external_factors(self, product: ProductProfile) -> ExternalFactors:
        category = product.category.lower()
        weather = 0.0
        if "outdoor" in category or "garden" in category:
            weather = self.rng.random() * 0.2 - 0.1
        events = []
        if self.rng.random() > 0.7:
            events.append(self.rng.choice(LOCAL_EVENTS))
        return ExternalFactors(
            weather_impact=weather,
            economic_indicator=0.7 + self.rng.random() * 0.3,
            local_events=events,
            supply_chain_disruption=self.rng.random() < 0.1,
        )
