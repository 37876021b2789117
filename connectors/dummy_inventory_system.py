"""
Module: connectors.dummy_inventory_system

Provides an in-memory inventory read interface for the rebalancing agents.
"""

import asyncio
import copy
import logging

from models.inventory import InventoryRecord

logger = logging.getLogger(__name__)


class InMemoryInventorySystem:
    """
    In-memory inventory keyed by (store_id, product_id).
    Reads return copies so callers cannot mutate the shared state.
    """

    def __init__(self, records: list[InventoryRecord] | None = None, latency: float = 0.0):
        self._records: dict[tuple[str, str], InventoryRecord] = {}
        self.latency = latency
        for record in records or []:
            self.upsert(record)

    def upsert(self, record: InventoryRecord) -> None:
        self._records[(record.store_id, record.product_id)] = record

    def set_quantity(self, store_id: str, product_id: str, quantity: int) -> None:
        record = self._records.get((store_id, product_id))
        if record is None:
            raise KeyError(f"No inventory for product {product_id} at store {store_id}")
        record.quantity = quantity

    async def get_inventory_for_product(self, product_id: str) -> list[InventoryRecord]:
        if self.latency:
            await asyncio.sleep(self.latency)
        rows = [copy.copy(r) for (_, pid), r in sorted(self._records.items()) if pid == product_id]
        logger.debug(f"Read {len(rows)} inventory rows for product {product_id}")
        return rows

    async def apply_transfer(self, product_id: str, from_store_id: str, to_store_id: str, quantity: int) -> bool:
        """Move stock between stores. Returns False when the source cannot cover the quantity."""
        source = self._records.get((from_store_id, product_id))
        target = self._records.get((to_store_id, product_id))
        if source is None or target is None or source.available_quantity < quantity:
            return False
        source.quantity -= quantity
        target.quantity += quantity
        return True
