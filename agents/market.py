"""
Marketplace participation: bids for over/under-stocked stores and transfer negotiations.

Every marketplace call is bounded by ``timeout``; failures are logged and never
propagate to the decision cycle.
"""

import asyncio
import logging
import math
from collections.abc import Sequence
from datetime import datetime, timedelta

from models.agent import ProductAgent
from models.enums import BidType, Urgency
from models.inventory import InventoryRecord
from models.marketplace import Bid, BidConditions, CounterOffer, NegotiationRequest

from .context_builder import local_demand_score, seasonal_index
from .interfaces import Marketplace

logger = logging.getLogger(__name__)

SELL_DISCOUNT = 0.95
BUY_PREMIUM = 1.02


class MarketParticipant:
    def __init__(self, marketplace: Marketplace, timeout: float = 10.0, clock=datetime.now):
        self.marketplace = marketplace
        self.timeout = timeout
        self.clock = clock

    def build_bids(self, agent: ProductAgent, records: Sequence[InventoryRecord]) -> list[Bid]:
        """Sell bids for overstocked stores, buy bids for understocked ones."""
        thresholds = agent.config.thresholds
        retail = agent.product.standard_retail
        now = self.clock()
        bids: list[Bid] = []
        for record in records:
            if record.quantity > thresholds.high_stock_threshold:
                quantity = math.floor((record.quantity - thresholds.high_stock_threshold) * 0.5)
                price = retail * SELL_DISCOUNT
                if quantity > 0:
                    bids.append(
                        Bid(
                            agent_id=agent.agent_id,
                            product_id=agent.product_id,
                            type=BidType.SELL,
                            quantity=quantity,
                            price_per_unit=price,
                            from_store_id=record.store_id,
                            urgency=Urgency.MEDIUM,
                            valid_until=now + timedelta(hours=4),
                            conditions=BidConditions(
                                min_quantity=math.floor(quantity * 0.1),
                                max_transport_cost=price * quantity * 0.05,
                                preferred_timeframe="24-48 hours",
                            ),
                            metadata={
                                "profit_potential": quantity * price * 0.1,
                                "risk_assessment": 0.2,
                                "confidence_level": 0.8,
                                "seasonal_index": seasonal_index(agent.product.category, now.month - 1),
                            },
                        )
                    )
            if record.quantity < thresholds.low_stock_threshold:
                quantity = thresholds.low_stock_threshold - record.quantity
                price = retail * BUY_PREMIUM
                urgent = record.quantity < thresholds.low_stock_threshold * 0.5
                bids.append(
                    Bid(
                        agent_id=agent.agent_id,
                        product_id=agent.product_id,
                        type=BidType.BUY,
                        quantity=quantity,
                        price_per_unit=price,
                        to_store_id=record.store_id,
                        urgency=Urgency.HIGH if urgent else Urgency.MEDIUM,
                        valid_until=now + timedelta(hours=2),
                        conditions=BidConditions(
                            min_quantity=math.floor(quantity * 0.3),
                            max_transport_cost=price * quantity * 0.03,
                            preferred_timeframe="immediate",
                        ),
                        metadata={
                            "profit_potential": quantity * (agent.product.target_margin / 100) * price,
                            "risk_assessment": 0.4,
                            "confidence_level": 0.9,
                            "demand_urgency": local_demand_score(record.days_of_stock()),
                        },
                    )
                )
        return bids

    async def participate(self, agent: ProductAgent, records: Sequence[InventoryRecord]) -> int:
        """Submit bids; returns how many were accepted by the marketplace without error."""
        submitted = 0
        for bid in self.build_bids(agent, records):
            try:
                await asyncio.wait_for(self.marketplace.submit_bid(bid), timeout=self.timeout)
                submitted += 1
            except Exception as e:
                logger.error(f"Marketplace bid failed for {agent.product_id} ({bid.type.value}): {e!r}")
        logger.debug(f"Agent {agent.product_id} submitted {submitted} marketplace bids")
        return submitted

    async def negotiate_transfer(
        self,
        agent: ProductAgent,
        target_agent_id: str,
        quantity: int,
        from_store: str,
        to_store: str,
        initial_price: float,
    ) -> str | None:
        try:
            request = NegotiationRequest(
                initiator_id=agent.agent_id,
                target_id=target_agent_id,
                product_id=agent.product_id,
                quantity=quantity,
                from_store=from_store,
                to_store=to_store,
                initial_offer=initial_price,
            )
            negotiation_id = await asyncio.wait_for(
                self.marketplace.start_negotiation(request), timeout=self.timeout
            )
        except Exception as e:
            logger.error(f"Negotiation failed for {agent.product_id}: {e!r}")
            return None
        logger.info(
            f"Agent {agent.product_id} started negotiation {negotiation_id} with {target_agent_id} "
            f"for {quantity} units at {initial_price:.2f}"
        )
        return negotiation_id

    async def respond_to_negotiation(
        self,
        agent: ProductAgent,
        negotiation_id: str,
        response: str,
        counter_offer: CounterOffer | None = None,
    ) -> bool:
        """``response`` is one of accept, counter or reject. A counter without an offer is a rejection."""
        if response == "accept":
            offer = counter_offer or CounterOffer(conditions={"accept": True})
        elif response == "counter" and counter_offer is not None:
            offer = counter_offer
        else:
            logger.info(f"Agent {agent.product_id} rejected negotiation {negotiation_id}")
            return False
        try:
            return await asyncio.wait_for(
                self.marketplace.submit_counter_offer(negotiation_id, agent.agent_id, offer),
                timeout=self.timeout,
            )
        except Exception as e:
            logger.error(f"Negotiation response failed for {agent.product_id}: {e!r}")
            return False
