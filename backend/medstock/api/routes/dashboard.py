"""Dashboard rollups over the last synced snapshot."""
from typing import List

from fastapi import APIRouter, Depends

from medstock.api.deps import get_current_user, get_inventory
from medstock.schemas.dashboard import DashboardStats, StockAlert
from medstock.schemas.user import User
from medstock.services.inventory_sync import InventoryService

router = APIRouter()


@router.get("/stats", response_model=DashboardStats)
def dashboard_stats(
    inventory: InventoryService = Depends(get_inventory),
    current_user: User = Depends(get_current_user),
):
    return inventory.get_dashboard_stats()


@router.get("/alerts", response_model=List[StockAlert])
def dashboard_alerts(
    inventory: InventoryService = Depends(get_inventory),
    current_user: User = Depends(get_current_user),
):
    """Expired, expiring within 30 days, or critically low."""
    return inventory.get_alerts()
