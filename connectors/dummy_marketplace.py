"""
Module: connectors.dummy_marketplace

Provides an in-memory internal marketplace for testing agent bidding and negotiation.
"""

import uuid
from typing import Any

from models.marketplace import Bid, CounterOffer, NegotiationRequest


class InMemoryMarketplace:
    """
    Records bids and negotiations. A counter offer is accepted when it carries
    ``{"accept": True}`` in its conditions or its price is at least
    ``acceptance_ratio`` of the negotiation's initial offer.
    """

    def __init__(self, acceptance_ratio: float = 0.9):
        self.acceptance_ratio = acceptance_ratio
        self.bids: list[Bid] = []
        self.negotiations: dict[str, dict[str, Any]] = {}

    async def submit_bid(self, bid: Bid) -> None:
        self.bids.append(bid)

    async def start_negotiation(self, request: NegotiationRequest) -> str:
        negotiation_id = str(uuid.uuid4())
        self.negotiations[negotiation_id] = {"request": request, "offers": [], "accepted": False}
        return negotiation_id

    async def submit_counter_offer(self, negotiation_id: str, agent_id: str, offer: CounterOffer) -> bool:
        negotiation = self.negotiations.get(negotiation_id)
        if negotiation is None:
            raise KeyError(f"Unknown negotiation {negotiation_id}")
        negotiation["offers"].append((agent_id, offer))
        request: NegotiationRequest = negotiation["request"]
        accepted = bool(offer.conditions.get("accept")) or (
            offer.price_offer >= request.initial_offer * self.acceptance_ratio
        )
        negotiation["accepted"] = negotiation["accepted"] or accepted
        return accepted
