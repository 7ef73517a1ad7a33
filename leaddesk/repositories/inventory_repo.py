"""
Inventory repository.
"""
from typing import Optional, List

from sqlmodel import select, or_, col
from sqlmodel.ext.asyncio.session import AsyncSession

from leaddesk.models.inventory import InventoryItem
from leaddesk.repositories.base import BaseRepository


class InventoryRepository(BaseRepository[InventoryItem]):
    """Repository for InventoryItem operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(InventoryItem, session)

    async def search(self, search: Optional[str] = None) -> List[InventoryItem]:
        """Items grouped by heading, in insertion order within a heading."""
        query = select(InventoryItem)
        if search:
            term = f"%{search}%"
            query = query.where(
                or_(
                    col(InventoryItem.product).ilike(term),
                    col(InventoryItem.product_heading).ilike(term)
                )
            )
        query = query.order_by(col(InventoryItem.product_heading), col(InventoryItem.created_at))
        result = await self.session.exec(query)
        return result.all()

    async def bulk_create(self, items_data: List[dict]) -> List[InventoryItem]:
        items = [InventoryItem(**data) for data in items_data]
        self.session.add_all(items)
        await self.session.commit()
        for item in items:
            await self.session.refresh(item)
        return items
