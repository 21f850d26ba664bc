"""Medicine catalogue: list from the synced snapshot, writes go straight to the sheet."""
from typing import List

from fastapi import APIRouter, Depends, status

from medstock.api.deps import get_current_user, get_inventory
from medstock.schemas.inventory import Medicine, MedicineCreate, MedicineUpdate
from medstock.schemas.user import User
from medstock.services.inventory_sync import InventoryService

router = APIRouter()


@router.get("", response_model=List[Medicine])
def list_medicines(
    include_inactive: bool = False,
    inventory: InventoryService = Depends(get_inventory),
    current_user: User = Depends(get_current_user),
):
    """Medicines from the last sync. Discontinued ones only on request."""
    medicines = inventory.snapshot.medicines
    if include_inactive:
        return list(medicines)
    return [m for m in medicines if m.is_active]


@router.post("", response_model=Medicine, status_code=status.HTTP_201_CREATED)
def add_medicine(
    data: MedicineCreate,
    inventory: InventoryService = Depends(get_inventory),
    current_user: User = Depends(get_current_user),
):
    return inventory.medicine_service.add_medicine(data, current_user.id)


@router.patch("/{medicine_id}", response_model=Medicine)
def edit_medicine(
    medicine_id: str,
    data: MedicineUpdate,
    inventory: InventoryService = Depends(get_inventory),
    current_user: User = Depends(get_current_user),
):
    return inventory.medicine_service.edit_medicine(medicine_id, data, current_user.id)


@router.delete("/{medicine_id}", response_model=Medicine)
def delete_medicine(
    medicine_id: str,
    inventory: InventoryService = Depends(get_inventory),
    current_user: User = Depends(get_current_user),
):
    """Soft delete. The row is kept with status ``discontinued``."""
    return inventory.medicine_service.delete_medicine(medicine_id, current_user.id)
