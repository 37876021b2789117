import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from openai import AsyncOpenAI
from openai.types.chat import ChatCompletion
from openai.types.chat.chat_completion import ChatCompletionMessage, Choice

from agents.interfaces import DecisionBrain
from agents.llm_brain import LLMDecisionBrain
from models.context import MarketContext, StoreInventorySnapshot
from models.exceptions import BrainUnavailableError
from models.learning import ActualOutcome, LearningUpdate, Lessons


def create_mock_completion(content: str) -> ChatCompletion:
    return ChatCompletion(
        id="chatcmpl-mock",
        choices=[
            Choice(finish_reason="stop", index=0, message=ChatCompletionMessage(content=content, role="assistant"))
        ],
        created=1677652288,
        model="gpt-mock",
        object="chat.completion",
    )


def mock_client(*responses) -> MagicMock:
    client = MagicMock(spec=AsyncOpenAI)
    client.chat = MagicMock()
    client.chat.completions = MagicMock()
    client.chat.completions.create = AsyncMock(side_effect=list(responses))
    return client


@pytest.fixture
def context():
    return MarketContext(
        product_id="SKU-1",
        current_inventory=[
            StoreInventorySnapshot(
                store_id="S1", quantity=600, cost=10, avg_sales_per_day=10, days_of_stock=60, local_demand_score=0.1
            ),
            StoreInventorySnapshot(
                store_id="S2", quantity=20, cost=10, avg_sales_per_day=10, days_of_stock=2, local_demand_score=0.9
            ),
        ],
    )


VALID_REPLY = json.dumps(
    {
        "strategy": "aggressive_arbitrage",
        "confidence": 0.82,
        "reasoning": "S1 overstocked, S2 near stockout",
        "actions": [
            {
                "type": "propose_transfer",
                "parameters": {
                    "source_store_id": "S1",
                    "target_store_id": "S2",
                    "quantity": 100,
                    "estimated_profit": 60,
                    "profit_margin": 6,
                },
                "priority": 1,
            }
        ],
    }
)


def test_brain_satisfies_protocol():
    assert isinstance(LLMDecisionBrain(client=mock_client()), DecisionBrain)


@pytest.mark.asyncio
async def test_valid_reply_is_parsed(context):
    client = mock_client(create_mock_completion(VALID_REPLY))
    brain = LLMDecisionBrain(client=client)

    decision = await brain.make_strategic_decision(context)

    assert decision.strategy == "aggressive_arbitrage"
    assert decision.confidence == pytest.approx(0.82)
    assert decision.actions[0].parameters["quantity"] == 100
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["response_format"] == {"type": "json_object"}
    assert "SKU-1" in kwargs["messages"][-1]["content"]


@pytest.mark.asyncio
async def test_invalid_json_raises_unavailable(context):
    brain = LLMDecisionBrain(client=mock_client(create_mock_completion("not json at all")))
    with pytest.raises(BrainUnavailableError, match="invalid JSON"):
        await brain.make_strategic_decision(context)


@pytest.mark.asyncio
async def test_schema_mismatch_raises_unavailable(context):
    reply = json.dumps({"strategy": "x", "confidence": 7})
    brain = LLMDecisionBrain(client=mock_client(create_mock_completion(reply)))
    with pytest.raises(BrainUnavailableError, match="malformed decision"):
        await brain.make_strategic_decision(context)


@pytest.mark.asyncio
async def test_api_failure_raises_unavailable(context):
    brain = LLMDecisionBrain(client=mock_client(ConnectionError("boom")), retry_attempts=1)
    with pytest.raises(BrainUnavailableError, match="Decision request failed"):
        await brain.make_strategic_decision(context)


@pytest.mark.asyncio
async def test_minimal_context_is_refused():
    client = mock_client()
    brain = LLMDecisionBrain(client=client)
    with pytest.raises(BrainUnavailableError):
        await brain.make_strategic_decision(MarketContext.minimal("SKU-1"))
    client.chat.completions.create.assert_not_called()


@pytest.mark.asyncio
async def test_missing_api_key_disables_brain(monkeypatch, context):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    brain = LLMDecisionBrain()
    assert not brain.available
    with pytest.raises(BrainUnavailableError):
        await brain.make_strategic_decision(context)


@pytest.mark.asyncio
async def test_lessons_are_bounded_and_prompted(context):
    brain = LLMDecisionBrain(client=mock_client(), max_lessons=2)
    for i in range(3):
        await brain.learn_from_outcome(
            LearningUpdate(
                agent_id="agent_SKU-1",
                decision_id=f"dec-{i}",
                actual_outcome=ActualOutcome(profit_generated=10.0 * i, transfer_success=True, time_to_complete=5),
                lessons=Lessons(new_insights=[f"insight {i}"]),
            )
        )

    assert [lesson.decision_id for lesson in brain.lessons] == ["dec-1", "dec-2"]
    messages = brain.build_messages(context)
    assert "dec-2" in messages[1]["content"]
    assert "dec-0" not in messages[1]["content"]
