"""Stock transfers between the main store and sub-stores."""
from typing import List

from fastapi import APIRouter, Depends, status

from medstock.api.deps import get_current_user, get_inventory
from medstock.schemas.transaction import StockTransfer, TransferRequest
from medstock.schemas.user import User
from medstock.services.inventory_sync import InventoryService

router = APIRouter()


@router.get("", response_model=List[StockTransfer])
def list_transfers(
    inventory: InventoryService = Depends(get_inventory),
    current_user: User = Depends(get_current_user),
):
    return inventory.get_transfers()


@router.post("", response_model=StockTransfer, status_code=status.HTTP_201_CREATED)
def create_transfer(
    data: TransferRequest,
    inventory: InventoryService = Depends(get_inventory),
    current_user: User = Depends(get_current_user),
):
    """
    Move quantity from one location to another.

    400 when the source holds too little; the ledger is left untouched.
    """
    return inventory.create_transfer(data, current_user.id)
