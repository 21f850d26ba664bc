"""Pull the five tables from the spreadsheet into a fresh snapshot."""
from fastapi import APIRouter, Depends

from medstock.api.deps import get_current_user, get_inventory
from medstock.schemas.user import User
from medstock.services.inventory_sync import InventoryService, InventorySnapshot

router = APIRouter()


def _summary(snapshot: InventorySnapshot, error=None) -> dict:
    return {
        "version": snapshot.version,
        "synced_at": snapshot.synced_at,
        "error": error,
        "counts": {
            "medicines": len(snapshot.medicines),
            "main_stock": len(snapshot.main_stock),
            "sub_stock": len(snapshot.sub_stock),
            "transactions": len(snapshot.transactions),
            "stores": len(snapshot.stores),
        },
    }


@router.post("/refresh")
def refresh(
    inventory: InventoryService = Depends(get_inventory),
    current_user: User = Depends(get_current_user),
):
    """On failure the previous snapshot is kept and the error is returned as 502/503."""
    return _summary(inventory.refresh_all_data())


@router.get("/status")
def sync_status(
    inventory: InventoryService = Depends(get_inventory),
    current_user: User = Depends(get_current_user),
):
    return _summary(inventory.snapshot, inventory.error)
