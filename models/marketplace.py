"""
Data models exchanged with the internal marketplace (bids and negotiations).
"""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import BidType, Urgency


class BidConditions(BaseModel):
    min_quantity: int = Field(default=0, ge=0)
    max_transport_cost: float = Field(default=0.0, ge=0)
    preferred_timeframe: str = ""


class Bid(BaseModel):
    bid_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    agent_id: str
    product_id: str
    type: BidType
    quantity: int = Field(gt=0)
    price_per_unit: float = Field(ge=0)
    from_store_id: str | None = None
    to_store_id: str | None = None
    urgency: Urgency = Urgency.MEDIUM
    valid_until: datetime
    conditions: BidConditions = Field(default_factory=BidConditions)
    metadata: dict[str, Any] = Field(default_factory=dict)


class NegotiationRequest(BaseModel):
    initiator_id: str
    target_id: str
    product_id: str
    quantity: int = Field(gt=0)
    from_store: str
    to_store: str
    initial_offer: float = Field(ge=0)


class CounterOffer(BaseModel):
    price_offer: float = Field(default=0.0, ge=0)
    conditions: dict[str, Any] = Field(default_factory=dict)
