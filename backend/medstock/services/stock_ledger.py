"""
Stock ledger: quantity per (medicine, location).

``location`` is either the sentinel "main" (the central store, one row per
medicine in MainStore_Stock) or a sub-store id (one row per medicine and
store in SubStores_Stock). Rows are created lazily on the first write.

The ledger never audits and never checks availability: the public
operation that calls it does both.
"""
import logging
import threading
from typing import List, Optional, Tuple, Union

from medstock.core.exceptions import StaleRowError
from medstock.core.ids import generate_id, utcnow
from medstock.schemas.inventory import MAIN_LOCATION, MainStoreStock, SubStoreStock
from medstock.services.repository import MainStockRepository, SubStockRepository, sheet_row

logger = logging.getLogger(__name__)

StockRow = Union[MainStoreStock, SubStoreStock]

# Single writer for every ledger mutation in this process
LEDGER_WRITE_LOCK = threading.RLock()


def is_main(location: str) -> bool:
    return location == MAIN_LOCATION


class StockLedger:
    def __init__(self, main_stock: MainStockRepository, sub_stock: SubStockRepository):
        self.main_stock = main_stock
        self.sub_stock = sub_stock

    def _locate(
        self, medicine_id: str, location: str
    ) -> Tuple[Optional[int], Optional[StockRow], Optional[List[str]]]:
        if is_main(location):
            return self.main_stock.find_row(lambda s: s.medicine_id == medicine_id)
        # Index into the full SubStores table, never into a per-store view
        return self.sub_stock.find_row(
            lambda s: s.medicine_id == medicine_id and s.store_id == location
        )

    def get_quantity(self, medicine_id: str, location: str) -> int:
        _, row, _ = self._locate(medicine_id, location)
        return row.quantity if row else 0

    def set_quantity(
        self,
        medicine_id: str,
        location: str,
        new_quantity: int,
        expected_quantity: Optional[int] = None,
    ) -> StockRow:
        """
        Store ``new_quantity`` for the medicine at ``location``.

        ``expected_quantity`` is the value the caller based its computation
        on. If the ledger now holds something else, StaleRowError is raised
        and nothing is written.
        """
        if new_quantity < 0:
            raise ValueError(f"Stock quantity cannot be negative (got {new_quantity})")

        index, row, cells = self._locate(medicine_id, location)
        repository = self.main_stock if is_main(location) else self.sub_stock

        if expected_quantity is not None:
            current = row.quantity if row else 0
            if current != expected_quantity:
                logger.info(
                    f"Stock for {medicine_id} at {location} moved from {expected_quantity} to {current}"
                )
                row_number = sheet_row(index) if index is not None else repository.next_row_number()
                raise StaleRowError(repository.table, row_number)

        now = utcnow()
        if row is not None:
            updated = row.model_copy(update={"quantity": new_quantity, "last_updated": now})
            repository.replace_at(index, updated, expected=cells)
        elif is_main(location):
            updated = MainStoreStock(
                id=generate_id(), medicine_id=medicine_id, quantity=new_quantity, last_updated=now
            )
            repository.append(updated)
        else:
            updated = SubStoreStock(
                id=generate_id(),
                medicine_id=medicine_id,
                store_id=location,
                quantity=new_quantity,
                last_updated=now,
            )
            repository.append(updated)

        logger.info(f"Stock {medicine_id}@{location}: {row.quantity if row else 0} -> {new_quantity}")
        return updated

    def snapshot(self) -> Tuple[List[MainStoreStock], List[SubStoreStock]]:
        return self.main_stock.list(), self.sub_stock.list()
