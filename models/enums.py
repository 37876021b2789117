"""
Centralized Enum definitions for the project.
"""

from enum import Enum


class AgentType(str, Enum):
    """Sources of events in the rebalancing system"""

    PRODUCT_AGENT = "product_agent"
    TRADE_MANAGER = "trade_manager"
    RUNTIME = "runtime"
    MARKETPLACE = "marketplace"
    SYSTEM = "system"
    TEST_AGENT = "test_agent"


class AgentStatus(str, Enum):
    """Lifecycle states of a product agent"""

    INITIALIZING = "initializing"
    ACTIVE = "active"
    PAUSED = "paused"
    ERROR = "error"
    SHUTDOWN = "shutdown"


class ActionType(str, Enum):
    """Known action types an agent decision can carry"""

    PROPOSE_TRANSFER = "propose_transfer"
    ADJUST_PRICING = "adjust_pricing"
    SEND_ALERT = "send_alert"


class ActionStatus(str, Enum):
    """Execution state of a single action"""

    PENDING = "pending"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


class TradeStatus(str, Enum):
    """Possible states of an inter-store transfer"""

    PROPOSED = "proposed"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


class DecisionType(str, Enum):
    """Decision categories derived from the strategy label"""

    AGGRESSIVE_TRANSFER = "aggressive_transfer"
    INVENTORY_REBALANCING = "inventory_rebalancing"
    MAINTAIN_POSITION = "maintain_position"
    EMERGENCY_ACTION = "emergency_action"
    INVENTORY_OPTIMIZATION = "inventory_optimization"


class BidType(str, Enum):
    """Direction of a marketplace bid"""

    BUY = "buy"
    SELL = "sell"


class Urgency(str, Enum):
    """Urgency levels used for bids and alerts"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"
