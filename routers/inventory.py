from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from dependencies import get_current_user, get_inventory, require_roles
from errors import RecordNotFound
from routers.common import apply_update, get_or_404, item_response, list_response, page_response
from schemas import InventoryItemCreate, InventoryItemUpdate, StockAdjustment
from stores import InventoryStore

router = APIRouter(
    prefix="/api/inventory",
    tags=["Inventory"],
    dependencies=[Depends(get_current_user)],
)

Inventory = Annotated[InventoryStore, Depends(get_inventory)]


@router.get("")
def list_inventory(inventory: Inventory, page: int = Query(1, ge=1), limit: int = Query(10, ge=1, le=100)):
    return page_response("Inventory items retrieved", inventory.find_all(page, limit))


@router.get("/category")
def inventory_by_category(inventory: Inventory, category: str = Query(..., min_length=1)):
    return list_response("Inventory items retrieved by category", inventory.find_by_category(category))


@router.get("/search")
def search_inventory(inventory: Inventory, name: str = Query(..., min_length=2)):
    return list_response("Inventory search completed", inventory.search_by_name(name), search_term=name)


@router.get("/{item_id}")
def get_inventory_item(item_id: int, inventory: Inventory):
    return item_response("Inventory item retrieved", get_or_404(inventory, item_id))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_inventory_item(payload: InventoryItemCreate, inventory: Inventory):
    return item_response("Inventory item created", inventory.create(payload.model_dump()))


@router.put("/{item_id}")
def update_inventory_item(item_id: int, payload: InventoryItemUpdate, inventory: Inventory):
    updated = apply_update(inventory, item_id, payload.model_dump(exclude_unset=True))
    return item_response("Inventory item updated", updated)


@router.patch("/{item_id}/stock")
def adjust_stock(item_id: int, payload: StockAdjustment, inventory: Inventory):
    item = inventory.adjust_stock(item_id, payload.quantity, payload.reason)
    return item_response("Stock adjusted", item)


# doctors may not remove items
@router.delete("/{item_id}", dependencies=[Depends(require_roles("admin", "assistant"))])
def delete_inventory_item(item_id: int, inventory: Inventory):
    if inventory.delete(item_id).deleted_count == 0:
        raise RecordNotFound(inventory.entity, item_id)
    return {"message": "Inventory item deleted", "deleted_id": item_id}
