"""
Inventory API routes.
"""
import uuid
from typing import Optional, List
from fastapi import APIRouter, Depends, UploadFile, File
from sqlmodel.ext.asyncio.session import AsyncSession

from leaddesk.database import get_session
from leaddesk.services.inventory_service import InventoryService
from leaddesk.schemas.inventory import (
    InventoryCreate, InventoryUpdate, InventoryResponse,
    InventoryImportResponse, InventoryBulkDeleteRequest
)
from leaddesk.api.deps import require_inventory_access
from leaddesk.models.user import User

router = APIRouter(prefix="/api/inventory", tags=["inventory"])


@router.get("/", response_model=List[InventoryResponse])
async def list_inventory(
    search: Optional[str] = None,
    current_user: User = Depends(require_inventory_access),
    session: AsyncSession = Depends(get_session)
):
    """List stock lines, grouped by heading."""
    inventory_service = InventoryService(session)
    return await inventory_service.list(search)


@router.post("/", response_model=InventoryResponse, status_code=201)
async def create_item(
    item_data: InventoryCreate,
    current_user: User = Depends(require_inventory_access),
    session: AsyncSession = Depends(get_session)
):
    inventory_service = InventoryService(session)
    return await inventory_service.create(item_data)


@router.post("/import", response_model=InventoryImportResponse)
async def import_inventory(
    file: UploadFile = File(...),
    current_user: User = Depends(require_inventory_access),
    session: AsyncSession = Depends(get_session)
):
    """Import stock lines from an .xlsx or .csv file."""
    content = await file.read()

    inventory_service = InventoryService(session)
    return await inventory_service.import_file(file.filename, content)


@router.post("/bulk-delete")
async def bulk_delete_items(
    request: InventoryBulkDeleteRequest,
    current_user: User = Depends(require_inventory_access),
    session: AsyncSession = Depends(get_session)
):
    inventory_service = InventoryService(session)
    deleted = await inventory_service.bulk_delete(request.item_ids)
    return {"deleted": deleted}


@router.patch("/{item_id}", response_model=InventoryResponse)
async def update_item(
    item_id: uuid.UUID,
    item_data: InventoryUpdate,
    current_user: User = Depends(require_inventory_access),
    session: AsyncSession = Depends(get_session)
):
    inventory_service = InventoryService(session)
    return await inventory_service.update(item_id, item_data)


@router.delete("/{item_id}", status_code=204)
async def delete_item(
    item_id: uuid.UUID,
    current_user: User = Depends(require_inventory_access),
    session: AsyncSession = Depends(get_session)
):
    inventory_service = InventoryService(session)
    await inventory_service.delete(item_id)
