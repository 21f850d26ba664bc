from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel


class DashboardStats(BaseModel):
    total_medicines: int
    low_stock_count: int
    expired_count: int
    expiring_count: int  # expiring within the 60-day window
    total_transactions: int
    last_sync: Optional[datetime] = None


class MedicineStock(BaseModel):
    main: int = 0
    subs: Dict[str, int] = {}


class StockAlert(BaseModel):
    medicine_id: str
    medicine_name: str
    current_stock: int
    safety_level: int
    status: str  # critical | low | normal
    days_to_expiry: Optional[int] = None
    expiry_status: str  # expired | expiring | warning | normal
