from unittest.mock import patch

import pytest

from connectors.agent_store import InMemoryAgentStore, JsonFileAgentStore
from models.enums import AgentStatus
from models.exceptions import AgentNotFoundError, PersistenceError
from tests.mocks import make_agent


@pytest.mark.asyncio
async def test_in_memory_store_isolates_copies():
    store = InMemoryAgentStore()
    agent = make_agent()
    await store.save(agent)

    agent.status = AgentStatus.ERROR
    loaded = await store.get("SKU-1")

    assert loaded.status == AgentStatus.ACTIVE
    assert store.save_count == 1


@pytest.mark.asyncio
async def test_in_memory_store_missing_agent():
    with pytest.raises(AgentNotFoundError, match="SKU-404"):
        await InMemoryAgentStore().get("SKU-404")


@pytest.mark.asyncio
async def test_json_store_round_trip(tmp_path):
    store = JsonFileAgentStore(tmp_path / "agents")
    await store.save(make_agent("SKU-1", decision_interval=5.0))
    await store.save(make_agent("SKU-2", status=AgentStatus.SHUTDOWN))

    loaded = await store.get("SKU-1")
    listed = await store.list()

    assert loaded.config.decision_interval == 5.0
    assert [a.product_id for a in listed] == ["SKU-1", "SKU-2"]
    assert not list((tmp_path / "agents").glob("*.tmp"))


@pytest.mark.asyncio
async def test_json_store_skips_corrupt_files(tmp_path, caplog):
    store = JsonFileAgentStore(tmp_path)
    await store.save(make_agent("SKU-1"))
    (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")

    with caplog.at_level("ERROR"):
        listed = await store.list()

    assert [a.product_id for a in listed] == ["SKU-1"]
    assert "broken.json" in caplog.text


@pytest.mark.asyncio
async def test_json_store_missing_agent(tmp_path):
    with pytest.raises(AgentNotFoundError):
        await JsonFileAgentStore(tmp_path).get("SKU-1")


@pytest.mark.asyncio
async def test_json_store_wraps_os_errors(tmp_path):
    store = JsonFileAgentStore(tmp_path)
    with patch("pathlib.Path.write_text", side_effect=OSError("read-only filesystem")):
        with pytest.raises(PersistenceError, match="read-only filesystem"):
            await store.save(make_agent())
