"""Inventory router - admin supply tracking"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...cache import fetch_with_fallback
from ...database import get_db
from .schemas import (
    InventoryItemCreate,
    InventoryItemResponse,
    InventoryItemUpdate,
    QuantityAdjustment,
)
from .service import InventoryService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin/inventory", tags=["Inventory"], dependencies=[Depends(get_current_admin)]
)


def get_inventory_service(db: Session = Depends(get_db)) -> InventoryService:
    """Dependency injection for InventoryService"""
    return InventoryService(db)


@router.get("", response_model=list[InventoryItemResponse])
async def list_items(
    response: Response,
    search: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    service: InventoryService = Depends(get_inventory_service),
):
    """Items ordered by status then name"""
    return fetch_with_fallback(
        f"inventory:{category or 'all'}:{search or ''}",
        lambda: service.list_items(search, category),
        db=service.db,
        response=response,
    )


@router.get("/low-stock", response_model=list[InventoryItemResponse])
async def list_low_stock(service: InventoryService = Depends(get_inventory_service)):
    return service.list_low_stock()


@router.get("/export")
async def export_inventory(
    search: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    service: InventoryService = Depends(get_inventory_service),
):
    return service.export_csv(search, category)


@router.get("/{item_id}", response_model=InventoryItemResponse)
async def get_item(item_id: int, service: InventoryService = Depends(get_inventory_service)):
    return service.get_item(item_id)


@router.post("", response_model=InventoryItemResponse, status_code=201)
async def create_item(
    data: InventoryItemCreate, service: InventoryService = Depends(get_inventory_service)
):
    return service.create_item(data)


@router.patch("/{item_id}", response_model=InventoryItemResponse)
async def update_item(
    item_id: int, data: InventoryItemUpdate, service: InventoryService = Depends(get_inventory_service)
):
    return service.update_item(item_id, data)


@router.patch("/{item_id}/quantity", response_model=InventoryItemResponse)
async def adjust_quantity(
    item_id: int, data: QuantityAdjustment, service: InventoryService = Depends(get_inventory_service)
):
    return service.adjust_quantity(item_id, data.delta)


@router.delete("/{item_id}")
async def delete_item(item_id: int, service: InventoryService = Depends(get_inventory_service)):
    return service.delete_item(item_id)
