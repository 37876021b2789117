"""
Inventory-related data models for the rebalancing agents.
Includes InventoryRecord, ProductProfile and the Opportunity value computed by the detector.
"""

from dataclasses import dataclass, field
from datetime import datetime

DEFAULT_DAILY_SALES = 10.0


@dataclass
class InventoryRecord:
    """
    Current stock of one product at one store, as returned by the inventory read interface.
    """

    store_id: str
    product_id: str
    quantity: int
    cost: float
    reserved_quantity: int = 0
    retail_price: float = 0.0
    average_daily_sales: float | None = None
    reorder_point: int = 0
    max_capacity: int = 0
    last_updated: datetime = field(default_factory=datetime.now)

    @property
    def available_quantity(self) -> int:
        return self.quantity - self.reserved_quantity

    @property
    def daily_sales(self) -> float:
        """Average daily sales, defaulting to 10 when the store does not report it."""
        if not self.average_daily_sales:
            return DEFAULT_DAILY_SALES
        return self.average_daily_sales

    def days_of_stock(self) -> float:
        return self.quantity / max(1.0, self.daily_sales)

    def needs_reorder(self) -> bool:
        return self.available_quantity <= self.reorder_point

    def is_overstocked(self) -> bool:
        return self.quantity > self.max_capacity * 0.9


@dataclass
class ProductProfile:
    """
    Descriptive and pricing data for the product an agent is responsible for.
    """

    name: str
    category: str
    standard_retail: float
    base_cost: float
    target_margin: float = 20.0  # percent
    seasonality: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Opportunity:
    """A profitable transfer candidate between two stores."""

    source_store_id: str
    target_store_id: str
    quantity: int
    estimated_profit: float
    profit_margin: float  # percent
