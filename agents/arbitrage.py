"""
Arbitrage opportunity detection across the stores carrying one product.
"""

import logging
import random
from collections.abc import Sequence

from config.config import AgentThresholds
from models.context import StoreInventorySnapshot
from models.inventory import InventoryRecord, Opportunity

StockPosition = InventoryRecord | StoreInventorySnapshot

logger = logging.getLogger(__name__)

MIN_PRICE_DIFF = 0.03
MAX_PRICE_DIFF = 0.08
MIN_SURFACED_MARGIN = 2.0  # percent
MAX_REALISTIC_MARGIN = 10.0  # percent


class ArbitrageDetector:
    """
    Pairwise scan for transfers from overstocked to understocked stores.

    The market price difference for each candidate is drawn from
    [MIN_PRICE_DIFF, MAX_PRICE_DIFF] using ``rng``; pass a seeded
    ``random.Random`` (or any object with ``uniform``) for reproducible runs.
    """

    def __init__(self, thresholds: AgentThresholds, rng: random.Random | None = None):
        self.thresholds = thresholds
        self.rng = rng or random.Random()

    def transfer_quantity(self, source: StockPosition, target: StockPosition) -> int:
        low = self.thresholds.low_stock_threshold
        high = self.thresholds.high_stock_threshold
        return min(source.quantity - low, high - target.quantity)

    def is_candidate_pair(self, source: StockPosition, target: StockPosition) -> bool:
        return (
            source.store_id != target.store_id
            and source.quantity > self.thresholds.high_stock_threshold
            and target.quantity < self.thresholds.low_stock_threshold
        )

    def _price_diff(self) -> float:
        diff = self.rng.uniform(MIN_PRICE_DIFF, MAX_PRICE_DIFF)
        return min(MAX_PRICE_DIFF, max(MIN_PRICE_DIFF, diff))

    def find_opportunities(self, records: Sequence[StockPosition]) -> list[Opportunity]:
        """Return surfaced opportunities ranked by estimated profit, highest first."""
        opportunities: list[Opportunity] = []
        for source in records:
            for target in records:
                if not self.is_candidate_pair(source, target):
                    continue
                quantity = self.transfer_quantity(source, target)
                if quantity <= 0:
                    continue
                price_diff = self._price_diff()
                profit = source.cost * price_diff * quantity
                margin = price_diff * 100
                if profit <= 0 or margin > MAX_REALISTIC_MARGIN or margin < MIN_SURFACED_MARGIN:
                    continue
                opportunities.append(
                    Opportunity(
                        source_store_id=source.store_id,
                        target_store_id=target.store_id,
                        quantity=quantity,
                        estimated_profit=profit,
                        profit_margin=margin,
                    )
                )
        opportunities.sort(key=lambda o: o.estimated_profit, reverse=True)
        logger.debug(f"Found {len(opportunities)} arbitrage opportunities across {len(records)} stores")
        return opportunities
