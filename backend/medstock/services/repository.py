"""
Entity repositories on top of the row store.

Row 1 of every table is a header. The entity at data index ``i`` lives on
sheet row ``i + 2``. Filtering is a client-side linear scan: the store has
no query support, so every lookup re-reads the table.

Nothing here is atomic. ``append`` counts rows then writes the next one, so
two concurrent appends can land on the same row. ``replace_at`` accepts the
raw cells it expects to overwrite and refuses with StaleRowError when the
sheet no longer holds them; callers retry the whole read-modify-write.
Cells are compared, not decoded entities: a hand-typed row with a blank id
or timestamp decodes to fresh defaults on every read.
"""
import logging
from typing import Any, Callable, Generic, List, Optional, Sequence, Tuple, TypeVar

from pydantic import BaseModel

from medstock.core.exceptions import NotFoundError, StaleRowError
from medstock.schemas.inventory import MainStoreStock, Medicine, Store, SubStoreStock
from medstock.schemas.transaction import Transaction
from medstock.schemas.user import User
from medstock.services.row_codec import (
    MAIN_STOCK_CODEC,
    MEDICINE_CODEC,
    STORE_CODEC,
    SUB_STOCK_CODEC,
    TRANSACTION_CODEC,
    USER_CODEC,
    RowCodec,
)
from medstock.services.sheets_client import column_span, row_range

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

HEADER_ROWS = 1


class Tables:
    MEDICINES = "Medicines"
    MAIN_STORE_STOCK = "MainStore_Stock"
    SUB_STORES_STOCK = "SubStores_Stock"
    TRANSACTIONS = "Transactions"
    USERS = "Users"
    STORES = "Stores"


def _is_blank(row: Sequence[Any]) -> bool:
    return all(cell is None or str(cell).strip() == "" for cell in row)


def normalise_cells(row: Sequence[Any]) -> List[str]:
    """Cells as the values API reports them: strings, trailing empties dropped."""
    cells = ["" if cell is None else str(cell) for cell in row]
    while cells and cells[-1] == "":
        cells.pop()
    return cells


def sheet_row(index: int) -> int:
    """Data index -> 1-based sheet row number."""
    return index + HEADER_ROWS + 1


class SheetRepository(Generic[T]):
    """List / find / append / replace for one table."""

    def __init__(self, store, table: str, codec: RowCodec[T]):
        self.store = store
        self.table = table
        self.codec = codec

    @property
    def span(self) -> str:
        return column_span(self.codec.width)

    def _read_data_rows(self) -> List[List[Any]]:
        values = self.store.read_range(self.table, self.span)
        return values[HEADER_ROWS:] if values else []

    def entries(self) -> List[Tuple[int, T]]:
        """(data index, entity) for every non-blank row, in sheet order."""
        return [
            (index, self.codec.decode(row))
            for index, row in enumerate(self._read_data_rows())
            if not _is_blank(row)
        ]

    def list(self) -> List[T]:
        return [entity for _, entity in self.entries()]

    def find_by(self, predicate: Callable[[T], bool]) -> Optional[T]:
        _, entity = self.find_index(predicate)
        return entity

    def filter_by(self, predicate: Callable[[T], bool]) -> List[T]:
        return [entity for entity in self.list() if predicate(entity)]

    def find_index(self, predicate: Callable[[T], bool]) -> Tuple[Optional[int], Optional[T]]:
        index, entity, _ = self.find_row(predicate)
        return index, entity

    def find_row(
        self, predicate: Callable[[T], bool]
    ) -> Tuple[Optional[int], Optional[T], Optional[List[str]]]:
        """Like find_index, plus the raw cells to pass to ``replace_at(expected=...)``."""
        for index, row in enumerate(self._read_data_rows()):
            if _is_blank(row):
                continue
            entity = self.codec.decode(row)
            if predicate(entity):
                return index, entity, normalise_cells(row)
        return None, None, None

    def next_row_number(self) -> int:
        """Sheet row the next ``append`` will write to."""
        values = self.store.read_range(self.table, self.span)
        # Never write into the header row, even on a sheet that has none yet
        return max(len(values), HEADER_ROWS) + 1

    def append(self, entity: T) -> int:
        """Write ``entity`` on the first row after the current data. Returns its data index."""
        next_row = self.next_row_number()
        self.store.write_range(
            self.table,
            row_range(self.codec.width, next_row),
            [self.codec.encode(entity)],
        )
        logger.debug(f"Appended {type(entity).__name__} {getattr(entity, 'id', '?')} to {self.table} row {next_row}")
        return next_row - HEADER_ROWS - 1

    def replace_at(self, index: int, entity: T, expected: Optional[Sequence[Any]] = None) -> None:
        """
        Overwrite the row at data ``index``.

        ``expected`` is the row's cells as last read (see ``find_row``). The
        row is re-read first and the write is refused unless it still holds
        exactly those cells. This narrows, but does not close, the window
        for lost updates.
        """
        row_number = sheet_row(index)
        cell_range = row_range(self.codec.width, row_number)

        if expected is not None:
            current = self.store.read_range(self.table, cell_range)
            current_row = normalise_cells(current[0] if current else [])
            if not current_row or current_row != normalise_cells(expected):
                logger.info(f"Stale write refused on {self.table} row {row_number}")
                raise StaleRowError(self.table, row_number)

        self.store.write_range(self.table, cell_range, [self.codec.encode(entity)])


class MedicineRepository(SheetRepository[Medicine]):
    def __init__(self, store):
        super().__init__(store, Tables.MEDICINES, MEDICINE_CODEC)

    def get(self, medicine_id: str) -> Medicine:
        medicine = self.find_by(lambda m: m.id == medicine_id)
        if medicine is None:
            raise NotFoundError("Medicine", medicine_id)
        return medicine


class StoreRepository(SheetRepository[Store]):
    def __init__(self, store):
        super().__init__(store, Tables.STORES, STORE_CODEC)

    def get(self, store_id: str) -> Store:
        found = self.find_by(lambda s: s.id == store_id)
        if found is None:
            raise NotFoundError("Store", store_id)
        return found


class MainStockRepository(SheetRepository[MainStoreStock]):
    def __init__(self, store):
        super().__init__(store, Tables.MAIN_STORE_STOCK, MAIN_STOCK_CODEC)


class SubStockRepository(SheetRepository[SubStoreStock]):
    def __init__(self, store):
        super().__init__(store, Tables.SUB_STORES_STOCK, SUB_STOCK_CODEC)

    def for_store(self, store_id: str) -> List[SubStoreStock]:
        return self.filter_by(lambda s: s.store_id == store_id)


class TransactionRepository(SheetRepository[Transaction]):
    def __init__(self, store):
        super().__init__(store, Tables.TRANSACTIONS, TRANSACTION_CODEC)

    def replace_at(self, index: int, entity: Transaction, expected: Optional[Sequence[Any]] = None) -> None:
        raise NotImplementedError("Transactions are append-only")


class UserRepository(SheetRepository[User]):
    def __init__(self, store):
        super().__init__(store, Tables.USERS, USER_CODEC)

    def get_by_email(self, email: str) -> Optional[User]:
        wanted = email.strip().lower()
        return self.find_by(lambda u: u.email.strip().lower() == wanted)

    def get_by_id(self, user_id: str) -> Optional[User]:
        return self.find_by(lambda u: u.id == user_id)
