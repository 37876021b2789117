"""
Module: agents.llm_brain

OpenAI-backed decision brain. Turns a MarketContext into a StrategicDecision by
asking a chat model for a JSON strategy, and keeps a short log of realized
outcomes that is fed back into later prompts.
"""

import json
import logging
import os
from collections import deque

from openai import AsyncOpenAI
from pydantic import ValidationError

from models.context import MarketContext
from models.decision import StrategicDecision
from models.exceptions import BrainUnavailableError
from models.learning import LearningUpdate
from utils.openai_utils import completion_text, safe_chat_completion

SYSTEM_PROMPT = """You are an inventory rebalancing strategist for a multi-store retailer.
Given a product's per-store inventory snapshot, market trends and historical performance,
choose a strategy and a short list of concrete actions.

Respond with a single JSON object:
{
  "strategy": one of "aggressive_arbitrage", "conservative_rebalancing", "demand_forecasting",
              "market_making", "balanced_optimization",
  "confidence": number between 0 and 1,
  "reasoning": short explanation,
  "actions": [
    {"type": "propose_transfer",
     "parameters": {"from_store_id": str, "to_store_id": str, "quantity": int,
                    "estimated_profit": number, "profit_margin": number},
     "priority": int,
     "expected_outcome": {"profit_potential": number, "risk_level": number, "time_horizon": str}},
    {"type": "adjust_pricing", "parameters": {"store_id": str, "new_price": number, "change_pct": number, "reason": str}},
    {"type": "send_alert", "parameters": {"message": str, "severity": "low"|"medium"|"high"|"critical"}}
  ]
}
Only propose transfers from stores above the high stock threshold to stores below the low one."""


class LLMDecisionBrain:
    """
    DecisionBrain implementation over the OpenAI chat completions API.

    Any failure (missing client, API error, malformed JSON, schema mismatch)
    surfaces as BrainUnavailableError so the engine can fall back.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o-mini",
        client: AsyncOpenAI | None = None,
        temperature: float = 0.2,
        max_lessons: int = 20,
        retry_attempts: int = 2,
        retry_backoff: float = 1.0,
    ):
        self.logger = logging.getLogger(__name__)
        self.model = model
        self.temperature = temperature
        self.retry_attempts = retry_attempts
        self.retry_backoff = retry_backoff
        self.lessons: deque[LearningUpdate] = deque(maxlen=max_lessons)

        if client is not None:
            self.client = client
            return
        resolved_key = api_key or os.getenv("OPENAI_API_KEY")
        if resolved_key and resolved_key != "YOUR_API_KEY_HERE":
            try:
                self.client = AsyncOpenAI(api_key=resolved_key)
                self.logger.info("AsyncOpenAI client initialized for decision brain.")
            except Exception as e:
                self.client = None
                self.logger.error(f"Failed to initialize OpenAI client: {e}")
        else:
            self.client = None
            self.logger.warning("OpenAI API key missing or placeholder. Decision brain disabled.")

    @property
    def available(self) -> bool:
        return self.client is not None

    def build_messages(self, context: MarketContext) -> list[dict[str, str]]:
        messages = [{"role": "system", "content": SYSTEM_PROMPT}]
        if self.lessons:
            recent = [
                {
                    "decision_id": lesson.decision_id,
                    "profit": lesson.actual_outcome.profit_generated,
                    "success": lesson.actual_outcome.transfer_success,
                    "insights": lesson.lessons.new_insights,
                }
                for lesson in self.lessons
            ]
            messages.append(
                {"role": "system", "content": "Recent outcomes of your decisions:\n" + json.dumps(recent)}
            )
        messages.append({"role": "user", "content": context.model_dump_json()})
        return messages

    def parse_decision(self, text: str) -> StrategicDecision:
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise BrainUnavailableError(f"Brain returned invalid JSON: {e}") from e
        if not isinstance(payload, dict):
            raise BrainUnavailableError("Brain returned a non-object JSON payload")
        try:
            return StrategicDecision.model_validate(payload)
        except ValidationError as e:
            raise BrainUnavailableError(f"Brain returned a malformed decision: {e.error_count()} error(s)") from e

    async def make_strategic_decision(self, context: MarketContext) -> StrategicDecision:
        if self.client is None:
            raise BrainUnavailableError("OpenAI client not initialized")
        if context.is_minimal or not context.current_inventory:
            raise BrainUnavailableError(f"Insufficient context for product {context.product_id}")

        try:
            completion = await safe_chat_completion(
                self.client,
                model=self.model,
                messages=self.build_messages(context),
                logger=self.logger,
                retry_attempts=self.retry_attempts,
                retry_backoff=self.retry_backoff,
                temperature=self.temperature,
                response_format={"type": "json_object"},
            )
        except Exception as e:
            raise BrainUnavailableError(f"Decision request failed: {e}") from e

        decision = self.parse_decision(completion_text(completion))
        self.logger.info(
            f"Brain chose '{decision.strategy}' for {context.product_id} "
            f"(confidence={decision.confidence:.2f}, actions={len(decision.actions)})"
        )
        return decision

    async def learn_from_outcome(self, update: LearningUpdate) -> None:
        self.lessons.append(update)
        self.logger.debug(f"Recorded outcome of decision {update.decision_id} ({len(self.lessons)} kept)")
