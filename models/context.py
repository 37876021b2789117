"""
Market context models: the point-in-time snapshot an agent decides on.
Rebuilt every cycle and never persisted as authoritative state.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class StoreInventorySnapshot(BaseModel):
    store_id: str
    quantity: int
    reserved_quantity: int = 0
    cost: float = 0.0
    avg_sales_per_day: float
    days_of_stock: float
    local_demand_score: float
    competitor_pricing: list[float] = Field(default_factory=list)


class MarketTrends(BaseModel):
    seasonal_index: float = 1.0
    demand_growth_rate: float = 0.05
    price_elasticity: float = 0.5
    competitive_index: float = 0.5


class HistoricalPerformance(BaseModel):
    avg_profit_per_transfer: float = 50.0
    success_rate: float = 0.7
    optimal_transfer_size: int = 100
    best_performing_routes: list[str] = Field(default_factory=list)


class ExternalFactors(BaseModel):
    weather_impact: float = 0.0
    economic_indicator: float | None = None
    local_events: list[str] = Field(default_factory=list)
    supply_chain_disruption: bool = False


class MarketContext(BaseModel):
    product_id: str
    current_inventory: list[StoreInventorySnapshot] = Field(default_factory=list)
    market_trends: MarketTrends = Field(default_factory=MarketTrends)
    historical_performance: HistoricalPerformance = Field(default_factory=HistoricalPerformance)
    external_factors: ExternalFactors = Field(default_factory=ExternalFactors)
    built_at: datetime = Field(default_factory=datetime.now)
    is_minimal: bool = False

    @classmethod
    def minimal(cls, product_id: str) -> "MarketContext":
        """Safe context used when the full snapshot cannot be built."""
        return cls(product_id=product_id, is_minimal=True)
