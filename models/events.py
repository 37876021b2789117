"""
Data models for events published by the rebalancing agents.
"""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import AgentType

# Event type names
TRADE_PROPOSED = "trade.proposed"
TRADE_APPROVED = "trade.approved"
TRADE_REJECTED = "trade.rejected"
TRADE_EXECUTING = "trade.executing"
TRADE_COMPLETED = "trade.completed"
TRADE_FAILED = "trade.failed"
AGENT_STARTED = "agent.started"
AGENT_STOPPED = "agent.stopped"
AGENT_ERROR = "agent.error"
AGENT_DECISION = "agent.decision"
AGENT_ALERT = "agent.alert"
AGENT_PRICING = "agent.pricing"


class RetailEvent(BaseModel):
    """Base event for retail system interactions."""

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    event_type: str
    payload: dict[str, Any]
    source: AgentType
    timestamp: datetime = Field(default_factory=datetime.now)
