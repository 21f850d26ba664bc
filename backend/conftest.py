"""Shared fixtures: an in-memory spreadsheet, wired services and a throwaway session DB."""
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

import pytest
from sqlalchemy.orm import sessionmaker

from medstock.core.ids import generate_id
from medstock.db.init_db import init_db
from medstock.db.session import make_engine
from medstock.schemas.inventory import MainStoreStock, Medicine, MedicineStatus, Store, StoreType
from medstock.schemas.user import User, UserRole
from medstock.services.auth_service import AuthService
from medstock.services.inventory_sync import InventoryService
from medstock.services.repository import Tables, UserRepository
from medstock.services.row_codec import (
    MAIN_STOCK_CODEC,
    MEDICINE_CODEC,
    STORE_CODEC,
    SUB_STOCK_CODEC,
    TRANSACTION_CODEC,
    USER_CODEC,
)
from medstock.services.session_store import SessionStore
from medstock.services.sheets_client import parse_a1_range

NOW = datetime(2024, 6, 1, 9, 30, tzinfo=timezone.utc)

TABLE_CODECS = {
    Tables.MEDICINES: MEDICINE_CODEC,
    Tables.STORES: STORE_CODEC,
    Tables.MAIN_STORE_STOCK: MAIN_STOCK_CODEC,
    Tables.SUB_STORES_STOCK: SUB_STOCK_CODEC,
    Tables.TRANSACTIONS: TRANSACTION_CODEC,
    Tables.USERS: USER_CODEC,
}


def _cell(value: Any) -> str:
    return "" if value is None else str(value)


def _trim(cells: List[str]) -> List[str]:
    cells = list(cells)
    while cells and cells[-1] == "":
        cells.pop()
    return cells


class FakeRowStore:
    """
    Stand-in for SheetsClient.

    Behaves like the values API: cells come back as strings, trailing empty
    cells and rows are dropped, A1 ranges are honoured. ``on_read`` and
    ``before_write`` hooks let tests inject concurrent edits and failures.
    """

    def __init__(self):
        self.tables: Dict[str, List[List[str]]] = {}
        self.calls: List[tuple] = []
        self.on_read: Optional[Callable[[str, Optional[str]], None]] = None
        self.before_write: Optional[Callable[[str, str, Sequence[Sequence[Any]]], None]] = None

    @classmethod
    def with_headers(cls) -> "FakeRowStore":
        store = cls()
        for table, codec in TABLE_CODECS.items():
            store.tables[table] = [list(codec.headers)]
        return store

    def read_range(self, table: str, cell_range: Optional[str] = None) -> List[List[str]]:
        self.calls.append(("GET", table, cell_range))
        if self.on_read:
            self.on_read(table, cell_range)

        grid = self.tables.get(table, [])
        if cell_range is None:
            first_col, first_row, last_col, last_row = 1, None, max((len(r) for r in grid), default=0), None
        else:
            first_col, first_row, last_col, last_row = parse_a1_range(cell_range)

        start = (first_row or 1) - 1
        stop = last_row if last_row is not None else len(grid)
        values = [_trim(row[first_col - 1:last_col]) for row in grid[start:stop]]
        while values and not values[-1]:
            values.pop()
        return values

    def write_range(self, table: str, cell_range: str, rows: Sequence[Sequence[Any]]) -> dict:
        self.calls.append(("PUT", table, cell_range))
        if self.before_write:
            self.before_write(table, cell_range, rows)

        first_col, first_row, _, _ = parse_a1_range(cell_range)
        grid = self.tables.setdefault(table, [])
        for offset, row in enumerate(rows):
            row_index = (first_row or 1) - 1 + offset
            while len(grid) <= row_index:
                grid.append([])
            target = grid[row_index]
            for col_offset, value in enumerate(row):
                col = first_col - 1 + col_offset
                while len(target) <= col:
                    target.append("")
                target[col] = _cell(value)
        return {"updatedRange": f"{table}!{cell_range}", "updatedRows": len(rows)}

    def data_rows(self, table: str) -> List[List[str]]:
        return self.tables.get(table, [])[1:]

    def writes(self, table: Optional[str] = None) -> List[tuple]:
        return [c for c in self.calls if c[0] == "PUT" and (table is None or c[1] == table)]


@pytest.fixture
def store() -> FakeRowStore:
    return FakeRowStore.with_headers()


@pytest.fixture
def inventory(store) -> InventoryService:
    return InventoryService(store, clock=lambda: NOW)


@pytest.fixture
def make_medicine(inventory):
    """Append a medicine row and return it."""
    def make(
        name: str = "Paracetamol",
        safety_stock_level: int = 20,
        expiry_date=None,
        status: MedicineStatus = MedicineStatus.ACTIVE,
        **fields,
    ) -> Medicine:
        medicine = Medicine(
            id=generate_id(),
            name=name,
            safety_stock_level=safety_stock_level,
            expiry_date=expiry_date,
            status=status,
            created_at=NOW,
            updated_at=NOW,
            **fields,
        )
        inventory.medicines.append(medicine)
        return medicine
    return make


@pytest.fixture
def set_main_stock(inventory):
    def put(medicine_id: str, quantity: int) -> MainStoreStock:
        return inventory.ledger.set_quantity(medicine_id, "main", quantity)
    return put


@pytest.fixture
def sub_store(inventory) -> Store:
    ward = Store(id="ward-a", name="Ward A", type=StoreType.SUB, location="First floor", created_at=NOW)
    inventory.stores.append(ward)
    return ward


@pytest.fixture
def session_store() -> SessionStore:
    engine = make_engine("sqlite://")
    init_db(engine)
    return SessionStore(sessionmaker(autocommit=False, autoflush=False, bind=engine))


@pytest.fixture
def users(store) -> UserRepository:
    return UserRepository(store)


@pytest.fixture
def admin(users) -> User:
    user = User(
        id="user-1",
        email="admin@clinic.test",
        name="Asha",
        role=UserRole.ADMIN,
        created_at=NOW,
    )
    users.append(user)
    return user


@pytest.fixture
def auth(inventory, users, session_store) -> AuthService:
    return AuthService(users, inventory.audit, session_store)
