"""Prepare an empty spreadsheet: header rows plus demo stores, medicines, stock and an admin user.

Usage (credentials from backend/.env or the session store):
    python seed_sheets.py [admin-email]

Header rows are always rewritten. Demo rows are only added to tables that
have no data yet, so running it twice does not duplicate anything.
"""
import sys
from datetime import date, timedelta

from medstock.core.ids import generate_id, utcnow
from medstock.core.logging_config import setup_logging
from medstock.db.init_db import init_db
from medstock.schemas.inventory import MainStoreStock, Medicine, Store, StoreType, SubStoreStock
from medstock.schemas.user import User, UserRole
from medstock.services.repository import (
    MainStockRepository,
    MedicineRepository,
    StoreRepository,
    SubStockRepository,
    TransactionRepository,
    UserRepository,
)
from medstock.services.session_store import SessionStore
from medstock.services.sheets_client import SheetsClient, row_range

DEMO_MEDICINES = [
    # name, category, strength, safety level, main qty, days to expiry
    ("Paracetamol", "Analgesic", "500mg", 100, 400, 400),
    ("Amoxicillin", "Antibiotic", "250mg", 60, 45, 20),
    ("Cetirizine", "Antihistamine", "10mg", 40, 120, 50),
    ("Metformin", "Antidiabetic", "500mg", 80, 30, 300),
    ("ORS Sachet", "Rehydration", "21g", 50, 0, 180),
]


def write_headers(client: SheetsClient, repos) -> None:
    for repo in repos:
        client.write_range(repo.table, row_range(repo.codec.width, 1), [repo.codec.headers])
        print(f"[OK] Header row written: {repo.table}")


def seed(client: SheetsClient, admin_email: str) -> None:
    medicines = MedicineRepository(client)
    stores = StoreRepository(client)
    main_stock = MainStockRepository(client)
    sub_stock = SubStockRepository(client)
    users = UserRepository(client)
    transactions = TransactionRepository(client)

    write_headers(client, [medicines, stores, main_stock, sub_stock, transactions, users])

    now = utcnow()
    today = date.today()

    if stores.list():
        print("[SKIP] Stores already present")
    else:
        stores.append(Store(id="main", name="Main Store", type=StoreType.MAIN, location="Central", created_at=now))
        for name in ("Ward A", "Ward B"):
            stores.append(Store(id=generate_id(), name=name, type=StoreType.SUB, location=name, created_at=now))
        print("[OK] Stores seeded")
    sub_store_ids = [s.id for s in stores.list() if s.type == StoreType.SUB]

    if medicines.list():
        print("[SKIP] Medicines already present")
    else:
        for name, category, strength, safety, qty, days in DEMO_MEDICINES:
            medicine = Medicine(
                id=generate_id(),
                name=name,
                category=category,
                strength=strength,
                batch_no=f"B-{today:%y%m}",
                expiry_date=today + timedelta(days=days),
                safety_stock_level=safety,
                created_at=now,
                updated_at=now,
            )
            medicines.append(medicine)
            main_stock.append(MainStoreStock(id=generate_id(), medicine_id=medicine.id, quantity=qty, last_updated=now))
            for store_id in sub_store_ids[:1]:
                sub_stock.append(SubStoreStock(
                    id=generate_id(), medicine_id=medicine.id, store_id=store_id,
                    quantity=qty // 10, last_updated=now,
                ))
        print(f"[OK] {len(DEMO_MEDICINES)} medicines seeded with stock")

    if users.get_by_email(admin_email):
        print(f"[SKIP] User {admin_email} already present")
    else:
        users.append(User(id=generate_id(), email=admin_email, name="Admin", role=UserRole.ADMIN, created_at=now))
        print(f"[OK] Admin user {admin_email} created")


if __name__ == "__main__":
    setup_logging()
    init_db()
    email = sys.argv[1] if len(sys.argv) > 1 else "admin@medstock.local"
    seed(SheetsClient(credentials=SessionStore().sheets_credentials), email)
