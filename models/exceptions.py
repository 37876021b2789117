"""Exceptions raised by the rebalancing core.

All exceptions inherit from ``RebalancingError`` so callers can catch the
whole family at once. Most also derive from the builtin they specialise
(``ValueError``, ``KeyError``, ``RuntimeError``) so plain ``except ValueError``
handlers keep working.
"""

from typing import Any


class RebalancingError(Exception):
    """Base exception for all rebalancing errors."""

    def __init__(self, message: str = "", details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = details or {}


class InvalidTransitionError(RebalancingError, ValueError):
    """Raised when a trade or action is asked to move to a state its current state does not allow.

    The record is left unchanged.
    """

    def __init__(self, entity_id: str, current: str, requested: str) -> None:
        super().__init__(
            f"Illegal transition for {entity_id}: {current} -> {requested}",
            {"entity_id": entity_id, "current": current, "requested": requested},
        )
        self.entity_id = entity_id
        self.current = current
        self.requested = requested


class TradeValidationError(RebalancingError, ValueError):
    """Raised when a trade violates its creation or approval constraints."""


class TradeNotFoundError(RebalancingError, KeyError):
    """Raised when a trade id is not known to the trade store."""

    def __str__(self) -> str:
        return self.args[0] if self.args else ""


class AgentNotFoundError(RebalancingError, KeyError):
    """Raised when no agent is registered for a product id."""

    def __str__(self) -> str:
        return self.args[0] if self.args else ""


class UnknownActionError(RebalancingError, ValueError):
    """Raised by the dispatcher for an action type it has no handler for."""


class BrainUnavailableError(RebalancingError, RuntimeError):
    """Raised when the decision brain is unreachable or returns malformed output."""


class PersistenceError(RebalancingError, RuntimeError):
    """Raised when an agent or trade record cannot be written."""
