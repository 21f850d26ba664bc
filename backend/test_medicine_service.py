"""Medicine catalogue and manual stock adjustments."""
from datetime import date

import pytest

from medstock.core.exceptions import InsufficientStockError, InvalidInputError, NotFoundError
from medstock.schemas.inventory import MedicineCreate, MedicineStatus, MedicineUpdate
from medstock.schemas.transaction import TransactionType
from medstock.services.repository import Tables


def test_add_medicine_persists_and_audits(inventory):
    medicine = inventory.medicine_service.add_medicine(
        MedicineCreate(name="  Paracetamol ", strength="500mg", expiry_date=date(2025, 5, 1), safety_stock_level=100),
        "user-1",
    )

    assert medicine.name == "Paracetamol"
    assert inventory.medicines.get(medicine.id) == medicine
    entry = inventory.audit.list_recent()[0]
    assert entry.type == TransactionType.MEDICINE_ADDED
    assert entry.entity["name"] == "Paracetamol"


def test_add_medicine_requires_name(inventory):
    with pytest.raises(InvalidInputError):
        inventory.medicine_service.add_medicine(MedicineCreate(name="   "), "user-1")
    assert inventory.medicines.list() == []


def test_edit_changes_only_given_fields(inventory, make_medicine):
    medicine = make_medicine("Cetirizine", safety_stock_level=10, category="Antihistamine")

    updated = inventory.medicine_service.edit_medicine(
        medicine.id, MedicineUpdate(safety_stock_level=25), "user-1"
    )

    assert updated.safety_stock_level == 25
    assert updated.category == "Antihistamine"
    assert inventory.medicines.get(medicine.id).safety_stock_level == 25
    entry = inventory.audit.list_recent()[0]
    assert entry.type == TransactionType.MEDICINE_EDITED
    assert entry.old_values["safety_stock_level"] == 10
    assert entry.new_values["safety_stock_level"] == 25


def test_edit_rejects_blank_name(inventory, make_medicine):
    medicine = make_medicine()
    with pytest.raises(InvalidInputError):
        inventory.medicine_service.edit_medicine(medicine.id, MedicineUpdate(name=""), "user-1")


def test_edit_unknown_medicine(inventory):
    with pytest.raises(NotFoundError):
        inventory.medicine_service.edit_medicine("missing", MedicineUpdate(name="X"), "user-1")


def test_delete_is_soft(inventory, make_medicine):
    medicine = make_medicine("ORS Sachet")

    deleted = inventory.medicine_service.delete_medicine(medicine.id, "user-1")

    assert deleted.status == MedicineStatus.DISCONTINUED
    assert [m.id for m in inventory.medicines.list()] == [medicine.id]
    entries = inventory.audit.list_recent()
    assert [e.type for e in entries] == [TransactionType.MEDICINE_DELETED]
    assert entries[0].new_values == {"status": "discontinued"}


def test_stock_decrease_is_a_deduction(inventory, make_medicine, set_main_stock):
    medicine = make_medicine()
    set_main_stock(medicine.id, 50)

    inventory.update_stock_quantity(medicine.id, "main", 42, "dispensed", "user-1")

    entry = inventory.audit.list_recent()[0]
    assert entry.type == TransactionType.STOCK_DEDUCTION
    assert entry.old_values == {"quantity": 50}
    assert entry.new_values == {"quantity": 42}
    assert entry.entity == {"location": "main", "reason": "dispensed"}


def test_stock_increase_at_sub_store(inventory, make_medicine, sub_store):
    medicine = make_medicine()

    row = inventory.update_stock_quantity(medicine.id, sub_store.id, 12, "received", "user-1")

    assert row.quantity == 12
    assert inventory.ledger.get_quantity(medicine.id, sub_store.id) == 12
    entry = inventory.audit.list_recent()[0]
    assert entry.type == TransactionType.STOCK_TRANSFER
    assert entry.store_id == sub_store.id


def test_stock_update_rejects_negative_and_unknown(inventory, make_medicine):
    medicine = make_medicine()
    with pytest.raises(InvalidInputError):
        inventory.update_stock_quantity(medicine.id, "main", -3, "count", "user-1")
    with pytest.raises(NotFoundError):
        inventory.update_stock_quantity("missing", "main", 3, "count", "user-1")
    with pytest.raises(NotFoundError):
        inventory.update_stock_quantity(medicine.id, "ward-z", 3, "count", "user-1")


def test_deduct_stock_refuses_to_go_negative(inventory, make_medicine, set_main_stock):
    medicine = make_medicine()
    set_main_stock(medicine.id, 4)

    with pytest.raises(InsufficientStockError):
        inventory.deduct_stock(medicine.id, "main", 5, "user-1")
    inventory.deduct_stock(medicine.id, "main", 4, "user-1")
    assert inventory.ledger.get_quantity(medicine.id, "main") == 0
    assert inventory.audit.list_recent()[0].type == TransactionType.STOCK_DEDUCTION


def test_edit_and_delete_hand_typed_medicine_without_timestamps(inventory, store):
    store.tables[Tables.MEDICINES].append(
        ["m-hand", "Ibuprofen", "", "400mg", "", "", "", "", "", "", "10"]
    )

    edited = inventory.medicine_service.edit_medicine("m-hand", MedicineUpdate(brand="Brufen"), "user-1")
    assert edited.brand == "Brufen"
    assert inventory.medicines.get("m-hand").strength == "400mg"

    deleted = inventory.medicine_service.delete_medicine("m-hand", "user-1")
    assert deleted.status == MedicineStatus.DISCONTINUED
