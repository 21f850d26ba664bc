"""Per-medicine stock: read from the snapshot, manual adjustments against the sheet."""
from fastapi import APIRouter, Depends

from medstock.api.deps import get_current_user, get_inventory
from medstock.schemas.dashboard import MedicineStock
from medstock.schemas.inventory import StockDeduction, StockUpdate
from medstock.schemas.user import User
from medstock.services.inventory_sync import InventoryService

router = APIRouter()


@router.get("/{medicine_id}", response_model=MedicineStock)
def get_medicine_stock(
    medicine_id: str,
    inventory: InventoryService = Depends(get_inventory),
    current_user: User = Depends(get_current_user),
):
    return inventory.get_medicine_stock(medicine_id)


@router.put("/{medicine_id}")
def update_stock(
    medicine_id: str,
    data: StockUpdate,
    inventory: InventoryService = Depends(get_inventory),
    current_user: User = Depends(get_current_user),
):
    """Set the absolute quantity at one location (stock count, receipt, dispensing)."""
    return inventory.update_stock_quantity(
        medicine_id, data.location, data.quantity, data.reason, current_user.id
    )


@router.post("/{medicine_id}/deduct")
def deduct_stock(
    medicine_id: str,
    data: StockDeduction,
    inventory: InventoryService = Depends(get_inventory),
    current_user: User = Depends(get_current_user),
):
    """Take units out of one location; 400 if it holds fewer than requested."""
    return inventory.deduct_stock(
        medicine_id, data.location, data.quantity, current_user.id, data.reason
    )
