"""
Capability interfaces the rebalancing core consumes or owns.

Concrete implementations live in ``connectors`` (in-memory) and
``agents.llm_brain`` (OpenAI-backed brain); tests substitute fakes.
"""

from typing import Protocol, runtime_checkable

from models.agent import ProductAgent
from models.context import MarketContext
from models.decision import StrategicDecision
from models.enums import TradeStatus
from models.inventory import InventoryRecord
from models.learning import LearningUpdate
from models.marketplace import Bid, CounterOffer, NegotiationRequest
from models.trade import Trade


@runtime_checkable
class DecisionBrain(Protocol):
    async def make_strategic_decision(self, context: MarketContext) -> StrategicDecision:
        """Raise BrainUnavailableError when the context is malformed or the brain is unreachable."""
        ...

    async def learn_from_outcome(self, update: LearningUpdate) -> None: ...


@runtime_checkable
class Marketplace(Protocol):
    async def submit_bid(self, bid: Bid) -> None: ...

    async def start_negotiation(self, request: NegotiationRequest) -> str: ...

    async def submit_counter_offer(self, negotiation_id: str, agent_id: str, offer: CounterOffer) -> bool: ...


class InventoryReader(Protocol):
    async def get_inventory_for_product(self, product_id: str) -> list[InventoryRecord]: ...


class AgentRepository(Protocol):
    async def save(self, agent: ProductAgent) -> None: ...

    async def get(self, product_id: str) -> ProductAgent: ...

    async def list(self) -> list[ProductAgent]: ...


class TradeRepository(Protocol):
    async def create(self, trade: Trade) -> Trade: ...

    async def get(self, trade_id: str) -> Trade: ...

    async def update(self, trade: Trade, expected_status: TradeStatus) -> Trade:
        """Replace the stored trade only if its stored status is still ``expected_status``."""
        ...

    async def list_by_status(self, status: TradeStatus) -> list[Trade]: ...

    async def list_by_store(self, store_id: str) -> list[Trade]: ...

    async def list_all(self) -> list[Trade]: ...
