"""
Inventory service - stock lines and spreadsheet import.
"""
import uuid
import logging
from typing import Optional, List

from sqlmodel.ext.asyncio.session import AsyncSession

from leaddesk.core.exceptions import raise_not_found
from leaddesk.core.spreadsheet import read_rows, pick
from leaddesk.repositories.inventory_repo import InventoryRepository
from leaddesk.models.inventory import InventoryItem
from leaddesk.schemas.inventory import InventoryCreate, InventoryUpdate, InventoryImportResponse

logger = logging.getLogger(__name__)

PRODUCT_COLUMNS = ("PRODUCT", "Product", "Item")
HEADING_COLUMNS = ("Product Heading", "Heading", "Category")
BOXES_COLUMNS = ("Boxes", "Box")
SQ_FT_PER_BOX_COLUMNS = ("Sq Ft/box", "Sq Ft per box", "SqFt/Box")
TOTAL_SQ_FT_COLUMNS = ("Tot Sq Ft", "Total Sq Ft", "Total")
NOTES_COLUMNS = ("Notes", "Note")


class InventoryService:
    """Service for inventory operations."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.inventory_repo = InventoryRepository(session)

    async def list(self, search: Optional[str] = None) -> List[InventoryItem]:
        return await self.inventory_repo.search(search)

    async def create(self, item_data: InventoryCreate) -> InventoryItem:
        return await self.inventory_repo.create(item_data.model_dump())

    async def update(self, item_id: uuid.UUID, item_data: InventoryUpdate) -> InventoryItem:
        item = await self.inventory_repo.update(item_id, item_data.model_dump(exclude_unset=True))
        if not item:
            raise_not_found("Inventory item", str(item_id))
        return item

    async def delete(self, item_id: uuid.UUID) -> bool:
        if not await self.inventory_repo.delete(item_id):
            raise_not_found("Inventory item", str(item_id))
        return True

    async def bulk_delete(self, item_ids: List[uuid.UUID]) -> int:
        return await self.inventory_repo.delete_many(item_ids)

    async def import_file(self, filename: str, content: bytes) -> InventoryImportResponse:
        """
        Import stock lines from an .xlsx or .csv upload.

        A row with a product label but no quantities and no heading column
        value is a section heading: it is not stored and becomes the heading
        of the rows below it.
        """
        rows = read_rows(filename, content)

        items = []
        headings = 0
        failed = 0
        errors = []
        current_heading = None

        for row_num, row in rows:
            product = pick(row, *PRODUCT_COLUMNS)
            heading = pick(row, *HEADING_COLUMNS)
            boxes = pick(row, *BOXES_COLUMNS)
            sq_ft_per_box = pick(row, *SQ_FT_PER_BOX_COLUMNS)
            total_sq_ft = pick(row, *TOTAL_SQ_FT_COLUMNS)
            notes = pick(row, *NOTES_COLUMNS)

            if not product:
                failed += 1
                errors.append({"row": row_num, "error": "PRODUCT is required"})
                continue

            if not heading and not (boxes or sq_ft_per_box or total_sq_ft):
                current_heading = product
                headings += 1
                continue

            items.append({
                "product_heading": heading or current_heading,
                "product": product,
                "boxes": boxes or None,
                "sq_ft_per_box": sq_ft_per_box or None,
                "total_sq_ft": total_sq_ft or None,
                "notes": notes or None
            })

        if items:
            await self.inventory_repo.bulk_create(items)
        logger.info(f"Imported {len(items)} inventory items from {filename}")

        return InventoryImportResponse(
            total_rows=len(rows),
            imported=len(items),
            headings=headings,
            failed=failed,
            errors=errors[:50]
        )
