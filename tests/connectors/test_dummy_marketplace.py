from datetime import datetime, timedelta

import pytest

from connectors.dummy_marketplace import InMemoryMarketplace
from models.enums import BidType
from models.marketplace import Bid, CounterOffer, NegotiationRequest


def _request(offer: float = 20.0) -> NegotiationRequest:
    return NegotiationRequest(
        initiator_id="agent_SKU-1",
        target_id="agent_SKU-2",
        product_id="SKU-1",
        quantity=10,
        from_store="S1",
        to_store="S2",
        initial_offer=offer,
    )


@pytest.mark.asyncio
async def test_bids_are_recorded():
    marketplace = InMemoryMarketplace()
    bid = Bid(
        agent_id="agent_SKU-1",
        product_id="SKU-1",
        type=BidType.SELL,
        quantity=10,
        price_per_unit=9.5,
        valid_until=datetime.now() + timedelta(hours=1),
    )
    await marketplace.submit_bid(bid)
    assert marketplace.bids == [bid]


@pytest.mark.asyncio
async def test_counter_offer_acceptance_threshold():
    marketplace = InMemoryMarketplace(acceptance_ratio=0.9)
    negotiation_id = await marketplace.start_negotiation(_request(20.0))

    assert not await marketplace.submit_counter_offer(negotiation_id, "agent_SKU-2", CounterOffer(price_offer=17.0))
    assert await marketplace.submit_counter_offer(negotiation_id, "agent_SKU-2", CounterOffer(price_offer=18.0))
    assert marketplace.negotiations[negotiation_id]["accepted"]
    assert len(marketplace.negotiations[negotiation_id]["offers"]) == 2


@pytest.mark.asyncio
async def test_explicit_accept_condition():
    marketplace = InMemoryMarketplace()
    negotiation_id = await marketplace.start_negotiation(_request())
    assert await marketplace.submit_counter_offer(negotiation_id, "a", CounterOffer(conditions={"accept": True}))


@pytest.mark.asyncio
async def test_unknown_negotiation():
    with pytest.raises(KeyError):
        await InMemoryMarketplace().submit_counter_offer("missing", "a", CounterOffer())
