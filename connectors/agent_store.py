"""
Module: connectors.agent_store

Agent persistence: an in-memory store for tests and demos, and a JSON file store
so agents survive process restarts.
"""

import asyncio
import logging
from pathlib import Path

from models.agent import ProductAgent
from models.exceptions import AgentNotFoundError, PersistenceError

logger = logging.getLogger(__name__)


class InMemoryAgentStore:
    """Keeps deep copies of agents so stored state only changes through save()."""

    def __init__(self):
        self._agents: dict[str, ProductAgent] = {}
        self.save_count = 0

    async def save(self, agent: ProductAgent) -> None:
        self._agents[agent.product_id] = agent.model_copy(deep=True)
        self.save_count += 1

    async def get(self, product_id: str) -> ProductAgent:
        try:
            return self._agents[product_id].model_copy(deep=True)
        except KeyError:
            raise AgentNotFoundError(f"No agent for product {product_id}") from None

    async def list(self) -> list[ProductAgent]:
        return [a.model_copy(deep=True) for _, a in sorted(self._agents.items())]


class JsonFileAgentStore:
    """One ``<product_id>.json`` document per agent under ``directory``."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, product_id: str) -> Path:
        return self.directory / f"{product_id}.json"

    def _write(self, agent: ProductAgent) -> None:
        path = self._path(agent.product_id)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(agent.model_dump_json(indent=2), encoding="utf-8")
        tmp_path.replace(path)

    async def save(self, agent: ProductAgent) -> None:
        try:
            await asyncio.to_thread(self._write, agent)
        except OSError as exc:
            raise PersistenceError(f"Could not persist agent {agent.product_id}: {exc}") from exc

    async def get(self, product_id: str) -> ProductAgent:
        path = self._path(product_id)
        if not path.exists():
            raise AgentNotFoundError(f"No agent for product {product_id}")
        raw = await asyncio.to_thread(path.read_text, encoding="utf-8")
        return ProductAgent.model_validate_json(raw)

    async def list(self) -> list[ProductAgent]:
        agents = []
        for path in sorted(self.directory.glob("*.json")):
            raw = await asyncio.to_thread(path.read_text, encoding="utf-8")
            try:
                agents.append(ProductAgent.model_validate_json(raw))
            except ValueError as exc:
                logger.error(f"Skipping unreadable agent file {path.name}: {exc}")
        return agents
