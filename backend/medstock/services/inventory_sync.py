"""
Inventory facade used by the API: snapshot refresh plus every operation the
UI can trigger.

The five entity lists are fetched in parallel and swapped in together as one
immutable, version-stamped InventorySnapshot. If any fetch fails the previous
snapshot stays in place, ``error`` is set and the exception is re-raised, so
readers never see a mix of old and new lists.
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from medstock.core.audit import AuditLog
from medstock.core.exceptions import MedStockError
from medstock.core.ids import utcnow
from medstock.schemas.dashboard import DashboardStats, MedicineStock, StockAlert
from medstock.schemas.inventory import MainStoreStock, Medicine, Store, SubStoreStock
from medstock.schemas.transaction import (
    StockTransfer,
    Transaction,
    TransactionCreate,
    TransferRequest,
)
from medstock.services import dashboard
from medstock.services.medicine_service import MedicineService
from medstock.services.repository import (
    MainStockRepository,
    MedicineRepository,
    StoreRepository,
    SubStockRepository,
    TransactionRepository,
)
from medstock.services.stock_ledger import StockLedger, StockRow
from medstock.services.stock_service import StockService
from medstock.services.transfer_service import TransferService, transfers_from_transactions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InventorySnapshot:
    version: int = 0
    medicines: Tuple[Medicine, ...] = ()
    main_stock: Tuple[MainStoreStock, ...] = ()
    sub_stock: Tuple[SubStoreStock, ...] = ()
    transactions: Tuple[Transaction, ...] = ()  # newest first
    stores: Tuple[Store, ...] = ()
    synced_at: Optional[datetime] = field(default=None)


class InventoryService:
    def __init__(self, row_store, clock: Callable[[], datetime] = utcnow):
        self.clock = clock
        self.row_store = row_store

        self.medicines = MedicineRepository(row_store)
        self.stores = StoreRepository(row_store)
        self.main_stock = MainStockRepository(row_store)
        self.sub_stock = SubStockRepository(row_store)
        self.transactions = TransactionRepository(row_store)

        self.audit = AuditLog(self.transactions)
        self.ledger = StockLedger(self.main_stock, self.sub_stock)
        self.medicine_service = MedicineService(self.medicines, self.audit)
        self.stock_service = StockService(self.ledger, self.audit, self.medicines, self.stores)
        self.transfer_service = TransferService(self.ledger, self.audit, self.medicines, self.stores)

        self._snapshot = InventorySnapshot()
        self._swap_lock = threading.Lock()
        self.error: Optional[str] = None

    @property
    def snapshot(self) -> InventorySnapshot:
        return self._snapshot

    def refresh_all_data(self) -> InventorySnapshot:
        """Re-read all five tables; all lists update together or none do."""
        try:
            with ThreadPoolExecutor(max_workers=5, thread_name_prefix="sheets-sync") as executor:
                medicines = executor.submit(self.medicines.list)
                main_stock = executor.submit(self.main_stock.list)
                sub_stock = executor.submit(self.sub_stock.list)
                transactions = executor.submit(self.transactions.list)
                stores = executor.submit(self.stores.list)
                results = (
                    medicines.result(),
                    main_stock.result(),
                    sub_stock.result(),
                    transactions.result(),
                    stores.result(),
                )
        except MedStockError as e:
            self.error = str(e) or type(e).__name__
            logger.error(f"Sheets sync failed, keeping snapshot v{self._snapshot.version}: {e}")
            raise

        med, main, sub, trans, store_list = results
        trans = sorted(trans, key=lambda t: t.created_at, reverse=True)

        with self._swap_lock:
            self._snapshot = InventorySnapshot(
                version=self._snapshot.version + 1,
                medicines=tuple(med),
                main_stock=tuple(main),
                sub_stock=tuple(sub),
                transactions=tuple(trans),
                stores=tuple(store_list),
                synced_at=self.clock(),
            )
            self.error = None

        logger.info(
            f"Synced snapshot v{self._snapshot.version}: {len(med)} medicines, "
            f"{len(main)} main rows, {len(sub)} sub rows, {len(trans)} transactions, {len(store_list)} stores"
        )
        return self._snapshot

    # ---- read side (snapshot only, no I/O) ----

    def get_dashboard_stats(self, now: Optional[datetime] = None) -> DashboardStats:
        snap = self._snapshot
        return dashboard.compute_dashboard_stats(
            list(snap.medicines),
            list(snap.main_stock),
            list(snap.sub_stock),
            list(snap.transactions),
            now or self.clock(),
            last_sync=snap.synced_at,
        )

    def get_alerts(self, now: Optional[datetime] = None) -> List[StockAlert]:
        snap = self._snapshot
        return dashboard.critical_alerts(list(snap.medicines), list(snap.main_stock), now or self.clock())

    def get_medicine_stock(self, medicine_id: str) -> MedicineStock:
        snap = self._snapshot
        return dashboard.medicine_stock(medicine_id, snap.main_stock, snap.sub_stock)

    def get_transfers(self) -> List[StockTransfer]:
        return transfers_from_transactions(list(self._snapshot.transactions))

    # ---- write side (always against the sheet) ----

    def create_transfer(self, request: TransferRequest, user_id: str) -> StockTransfer:
        return self.transfer_service.create_transfer(request, user_id)

    def update_stock_quantity(
        self, medicine_id: str, location: str, new_quantity: int, reason: str, user_id: str
    ) -> StockRow:
        return self.stock_service.update_stock_quantity(medicine_id, location, new_quantity, reason, user_id)

    def deduct_stock(
        self, medicine_id: str, location: str, quantity: int, user_id: str, reason: str = "dispensed"
    ) -> StockRow:
        return self.stock_service.deduct_stock(medicine_id, location, quantity, user_id, reason)

    def log_transaction(self, data: TransactionCreate, user_id: str) -> Transaction:
        return self.audit.record(
            data.type,
            user_id=user_id,
            description=data.description,
            medicine_id=data.medicine_id,
            entity=data.entity,
            old_values=data.old_values,
            new_values=data.new_values,
            store_id=data.store_id,
        )
