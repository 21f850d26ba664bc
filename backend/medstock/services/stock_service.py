"""Manual stock changes for a single location (counts, receipts, dispensing)."""
import logging
from typing import Optional

from medstock.core.audit import AuditLog
from medstock.core.config import settings
from medstock.core.exceptions import InsufficientStockError, InvalidInputError, StaleRowError
from medstock.schemas.transaction import TransactionType
from medstock.services.repository import MedicineRepository, StoreRepository
from medstock.services.stock_ledger import LEDGER_WRITE_LOCK, StockLedger, StockRow, is_main

logger = logging.getLogger(__name__)


class StockService:
    def __init__(
        self,
        ledger: StockLedger,
        audit: AuditLog,
        medicines: MedicineRepository,
        stores: StoreRepository,
        max_retries: Optional[int] = None,
        lock=LEDGER_WRITE_LOCK,
    ):
        self.ledger = ledger
        self.audit = audit
        self.medicines = medicines
        self.stores = stores
        self.max_retries = settings.MAX_WRITE_RETRIES if max_retries is None else max_retries
        self.lock = lock

    def update_stock_quantity(
        self,
        medicine_id: str,
        location: str,
        new_quantity: int,
        reason: str,
        user_id: str,
    ) -> StockRow:
        """
        Set the quantity at one location and audit the change.

        A decrease is recorded as ``stock_deduction``; anything else as
        ``stock_transfer`` with the reason in the description.
        """
        if new_quantity < 0:
            raise InvalidInputError("Quantity cannot be negative")

        with self.lock:
            medicine = self.medicines.get(medicine_id)
            if not is_main(location):
                self.stores.get(location)

            attempt = 0
            while True:
                previous = self.ledger.get_quantity(medicine_id, location)
                try:
                    row = self.ledger.set_quantity(
                        medicine_id, location, new_quantity, expected_quantity=previous
                    )
                    break
                except StaleRowError:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise
                    logger.warning(f"Stock row changed during update, retry {attempt}/{self.max_retries}")

        kind = TransactionType.STOCK_DEDUCTION if new_quantity < previous else TransactionType.STOCK_TRANSFER
        self.audit.record_after(
            kind,
            row,
            user_id=user_id,
            medicine_id=medicine_id,
            entity={"location": location, "reason": reason},
            old_values={"quantity": previous},
            new_values={"quantity": new_quantity},
            store_id=None if is_main(location) else location,
            description=f"{reason}: Updated stock for {medicine.name} in {location} ({previous} -> {new_quantity})",
        )
        return row

    def deduct_stock(
        self,
        medicine_id: str,
        location: str,
        quantity: int,
        user_id: str,
        reason: str = "dispensed",
    ) -> StockRow:
        """Take ``quantity`` units out of one location, refusing to go below zero."""
        if quantity <= 0:
            raise InvalidInputError("Quantity must be greater than zero")
        with self.lock:
            self.medicines.get(medicine_id)
            available = self.ledger.get_quantity(medicine_id, location)
            if available < quantity:
                raise InsufficientStockError(medicine_id, location, available, quantity)
            return self.update_stock_quantity(
                medicine_id, location, available - quantity, reason, user_id
            )
