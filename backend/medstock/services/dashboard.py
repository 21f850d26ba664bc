"""
Dashboard rollups. Pure functions of (medicines, stock, transactions, now).

Expiry bands per medicine:
    expired   days < 0
    expiring  0 <= days < 30
    warning   30 <= days < 60
    normal    days >= 60, or no expiry date

``expiring_count`` on the dashboard covers the whole 60-day window
(expiring + warning, including day 60 itself).
"""
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional

from medstock.core.config import settings
from medstock.schemas.dashboard import DashboardStats, MedicineStock, StockAlert
from medstock.schemas.inventory import MainStoreStock, Medicine, SubStoreStock
from medstock.schemas.transaction import Transaction

EXPIRED = "expired"
EXPIRING = "expiring"
WARNING = "warning"
NORMAL = "normal"

CRITICAL = "critical"
LOW = "low"


def _as_date(now: datetime | date) -> date:
    return now.date() if isinstance(now, datetime) else now


def days_until_expiry(expiry: Optional[date], now: datetime | date) -> Optional[int]:
    if expiry is None:
        return None
    return (expiry - _as_date(now)).days


def expiry_status(expiry: Optional[date], now: datetime | date) -> str:
    days = days_until_expiry(expiry, now)
    if days is None:
        return NORMAL
    if days < 0:
        return EXPIRED
    if days < settings.EXPIRING_DAYS:
        return EXPIRING
    if days < settings.EXPIRY_WINDOW_DAYS:
        return WARNING
    return NORMAL


def stock_status(current: int, safety_level: int) -> str:
    if current == 0 or current < safety_level * 0.5:
        return CRITICAL
    if current < safety_level:
        return LOW
    return NORMAL


def main_quantities(main_stock: Iterable[MainStoreStock]) -> Dict[str, int]:
    quantities: Dict[str, int] = {}
    for row in main_stock:
        # First row wins, same as the ledger's lookup
        quantities.setdefault(row.medicine_id, row.quantity)
    return quantities


def medicine_stock(
    medicine_id: str,
    main_stock: Iterable[MainStoreStock],
    sub_stock: Iterable[SubStoreStock],
) -> MedicineStock:
    subs: Dict[str, int] = {}
    for row in sub_stock:
        if row.medicine_id == medicine_id:
            subs.setdefault(row.store_id, row.quantity)
    return MedicineStock(main=main_quantities(main_stock).get(medicine_id, 0), subs=subs)


def compute_dashboard_stats(
    medicines: List[Medicine],
    main_stock: List[MainStoreStock],
    sub_stock: List[SubStoreStock],
    transactions: List[Transaction],
    now: datetime,
    last_sync: Optional[datetime] = None,
) -> DashboardStats:
    today = _as_date(now)
    window_end = today + timedelta(days=settings.EXPIRY_WINDOW_DAYS)
    on_hand = main_quantities(main_stock)
    active = [m for m in medicines if m.is_active]

    low_stock_count = sum(1 for m in active if on_hand.get(m.id, 0) < m.safety_stock_level)
    expired_count = sum(1 for m in active if m.expiry_date is not None and m.expiry_date < today)
    expiring_count = sum(
        1 for m in active
        if m.expiry_date is not None and today <= m.expiry_date <= window_end
    )

    return DashboardStats(
        total_medicines=len(active),
        low_stock_count=low_stock_count,
        expired_count=expired_count,
        expiring_count=expiring_count,
        total_transactions=len(transactions),
        last_sync=last_sync,
    )


def critical_alerts(
    medicines: List[Medicine],
    main_stock: List[MainStoreStock],
    now: datetime,
) -> List[StockAlert]:
    """Active medicines that are expired, expiring within 30 days, or critically low."""
    on_hand = main_quantities(main_stock)
    alerts = []
    for m in medicines:
        if not m.is_active:
            continue
        current = on_hand.get(m.id, 0)
        stock = stock_status(current, m.safety_stock_level)
        expiry = expiry_status(m.expiry_date, now)
        if expiry in (EXPIRED, EXPIRING) or stock == CRITICAL:
            alerts.append(StockAlert(
                medicine_id=m.id,
                medicine_name=m.name,
                current_stock=current,
                safety_level=m.safety_stock_level,
                status=stock,
                days_to_expiry=days_until_expiry(m.expiry_date, now),
                expiry_status=expiry,
            ))
    return alerts
