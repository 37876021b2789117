"""
Action models produced by agent decisions.

Parameters are a tagged union keyed by action type; ``UnknownParameters``
keeps the raw payload of types this version does not know about.
"""

import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from .enums import ActionStatus, ActionType, Urgency
from .exceptions import InvalidTransitionError


class TransferParameters(BaseModel):
    kind: Literal["propose_transfer"] = "propose_transfer"
    source_store_id: str
    target_store_id: str
    quantity: int = Field(gt=0)
    estimated_profit: float = Field(ge=0)
    profit_margin: float = Field(ge=0)


class PricingParameters(BaseModel):
    kind: Literal["adjust_pricing"] = "adjust_pricing"
    store_id: str | None = None
    new_price: float | None = Field(default=None, ge=0)
    change_pct: float = 0.0
    reason: str = ""


class AlertParameters(BaseModel):
    kind: Literal["send_alert"] = "send_alert"
    message: str
    severity: Urgency = Urgency.MEDIUM
    details: dict[str, Any] = Field(default_factory=dict)


class UnknownParameters(BaseModel):
    kind: Literal["unknown"] = "unknown"
    payload: dict[str, Any] = Field(default_factory=dict)


ActionParameters = TransferParameters | PricingParameters | AlertParameters | UnknownParameters

_PARAMETER_MODELS: dict[str, type[BaseModel]] = {
    ActionType.PROPOSE_TRANSFER.value: TransferParameters,
    ActionType.ADJUST_PRICING.value: PricingParameters,
    ActionType.SEND_ALERT.value: AlertParameters,
}


def parse_parameters(action_type: str, raw: dict[str, Any] | BaseModel | None) -> ActionParameters:
    """Convert a loosely typed parameter bag into the record for ``action_type``.

    Unknown action types are wrapped in ``UnknownParameters`` rather than rejected.
    Raises pydantic ``ValidationError`` when a known type carries invalid parameters.
    """
    if isinstance(raw, BaseModel):
        raw = raw.model_dump()
    raw = dict(raw or {})
    raw.pop("kind", None)
    model = _PARAMETER_MODELS.get(action_type)
    if model is None:
        return UnknownParameters(payload=raw)
    return model.model_validate(raw)


class ExpectedOutcome(BaseModel):
    profit_potential: float = 0.0
    risk_level: float = Field(default=0.3, ge=0, le=1)
    time_horizon: str = "short_term"


class AgentAction(BaseModel):
    """A unit of work produced by a decision. Status only moves pending -> executing -> completed|failed."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    type: str
    parameters: ActionParameters = Field(discriminator="kind")
    priority: int = 0
    status: ActionStatus = ActionStatus.PENDING
    timestamp: datetime = Field(default_factory=datetime.now)
    started_at: datetime | None = None
    finished_at: datetime | None = None
    expected_outcome: ExpectedOutcome | None = None
    error: str | None = None

    @classmethod
    def create(
        cls,
        action_type: str,
        parameters: dict[str, Any] | BaseModel | None = None,
        priority: int | None = None,
        expected_outcome: ExpectedOutcome | dict[str, Any] | None = None,
    ) -> "AgentAction":
        if isinstance(expected_outcome, dict):
            expected_outcome = ExpectedOutcome.model_validate(expected_outcome)
        type_name = action_type.value if isinstance(action_type, ActionType) else str(action_type)
        return cls(
            type=type_name,
            parameters=parse_parameters(type_name, parameters),
            priority=priority or 0,
            expected_outcome=expected_outcome,
        )

    def _move(self, allowed_from: ActionStatus, target: ActionStatus) -> None:
        if self.status != allowed_from:
            raise InvalidTransitionError(self.id, self.status.value, target.value)
        self.status = target

    def start(self) -> None:
        self._move(ActionStatus.PENDING, ActionStatus.EXECUTING)
        self.started_at = datetime.now()

    def complete(self) -> None:
        self._move(ActionStatus.EXECUTING, ActionStatus.COMPLETED)
        self.finished_at = datetime.now()

    def fail(self, error: str) -> None:
        self._move(ActionStatus.EXECUTING, ActionStatus.FAILED)
        self.error = error
        self.finished_at = datetime.now()
