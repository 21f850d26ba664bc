"""Audit trail, newest first."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from medstock.api.deps import get_current_user, get_inventory
from medstock.schemas.transaction import Transaction, TransactionCreate
from medstock.schemas.user import User
from medstock.services.inventory_sync import InventoryService

router = APIRouter()


@router.get("", response_model=List[Transaction])
def list_transactions(
    limit: Optional[int] = Query(default=None, ge=1),
    medicine_id: Optional[str] = None,
    inventory: InventoryService = Depends(get_inventory),
    current_user: User = Depends(get_current_user),
):
    transactions = list(inventory.snapshot.transactions)
    if medicine_id:
        transactions = [t for t in transactions if t.medicine_id == medicine_id]
    return transactions[:limit] if limit else transactions


@router.post("", response_model=Transaction, status_code=status.HTTP_201_CREATED)
def log_transaction(
    data: TransactionCreate,
    inventory: InventoryService = Depends(get_inventory),
    current_user: User = Depends(get_current_user),
):
    return inventory.log_transaction(data, current_user.id)
