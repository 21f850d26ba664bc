"""Dashboard rollups: low stock, expiry bands and alerts."""
from datetime import timedelta

import pytest

from conftest import NOW
from medstock.schemas.inventory import MainStoreStock, Medicine, MedicineStatus, SubStoreStock
from medstock.schemas.transaction import TransferRequest
from medstock.services import dashboard

TODAY = NOW.date()


def _medicine(mid, safety=20, expiry=None, status=MedicineStatus.ACTIVE):
    return Medicine(
        id=mid, name=mid.title(), safety_stock_level=safety, expiry_date=expiry,
        status=status, created_at=NOW, updated_at=NOW,
    )


def _main(mid, qty):
    return MainStoreStock(id=f"s-{mid}", medicine_id=mid, quantity=qty, last_updated=NOW)


@pytest.mark.parametrize("days, band", [
    (-1, dashboard.EXPIRED),
    (0, dashboard.EXPIRING),
    (10, dashboard.EXPIRING),
    (29, dashboard.EXPIRING),
    (30, dashboard.WARNING),
    (45, dashboard.WARNING),
    (59, dashboard.WARNING),
    (60, dashboard.NORMAL),
    (365, dashboard.NORMAL),
])
def test_expiry_bands(days, band):
    assert dashboard.expiry_status(TODAY + timedelta(days=days), NOW) == band


def test_no_expiry_date_is_normal():
    assert dashboard.expiry_status(None, NOW) == dashboard.NORMAL
    assert dashboard.days_until_expiry(None, NOW) is None


@pytest.mark.parametrize("current, safety, status", [
    (0, 0, dashboard.CRITICAL),
    (9, 20, dashboard.CRITICAL),
    (10, 20, dashboard.LOW),
    (19, 20, dashboard.LOW),
    (20, 20, dashboard.NORMAL),
])
def test_stock_status(current, safety, status):
    assert dashboard.stock_status(current, safety) == status


def test_expiry_bands_never_overlap():
    statuses = [dashboard.expiry_status(TODAY + timedelta(days=d), NOW) for d in range(-30, 120)]
    counts = {band: statuses.count(band) for band in set(statuses)}
    assert sum(counts.values()) == len(statuses)
    assert counts[dashboard.EXPIRED] == 30
    assert counts[dashboard.EXPIRING] == 30
    assert counts[dashboard.WARNING] == 30


def test_expiring_window_counts_10_and_45_days():
    medicines = [
        _medicine("soon", expiry=TODAY + timedelta(days=10)),
        _medicine("later", expiry=TODAY + timedelta(days=45)),
        _medicine("edge", expiry=TODAY + timedelta(days=60)),
        _medicine("far", expiry=TODAY + timedelta(days=61)),
        _medicine("gone", expiry=TODAY - timedelta(days=1)),
        _medicine("none"),
    ]
    stats = dashboard.compute_dashboard_stats(medicines, [], [], [], NOW)

    assert stats.expiring_count == 3  # soon, later, edge
    assert stats.expired_count == 1
    assert dashboard.expiry_status(medicines[0].expiry_date, NOW) == dashboard.EXPIRING
    assert dashboard.expiry_status(medicines[1].expiry_date, NOW) == dashboard.WARNING


def test_discontinued_medicines_are_not_counted():
    medicines = [
        _medicine("active", safety=50),
        _medicine("old", safety=50, expiry=TODAY - timedelta(days=3), status=MedicineStatus.DISCONTINUED),
        _medicine("draft", status=MedicineStatus.DRAFT),
    ]
    stats = dashboard.compute_dashboard_stats(medicines, [], [], [], NOW)

    assert stats.total_medicines == 1
    assert stats.low_stock_count == 1
    assert stats.expired_count == 0


def test_low_stock_uses_main_store_only():
    medicines = [_medicine("a", safety=20), _medicine("b", safety=20)]
    main = [_main("a", 25), _main("b", 5)]
    subs = [SubStoreStock(id="x", medicine_id="b", store_id="ward-a", quantity=100, last_updated=NOW)]

    stats = dashboard.compute_dashboard_stats(medicines, main, subs, [], NOW, last_sync=NOW)

    assert stats.low_stock_count == 1
    assert stats.last_sync == NOW


def test_medicine_stock_splits_main_and_subs():
    main = [_main("a", 70), _main("b", 3)]
    subs = [
        SubStoreStock(id="1", medicine_id="a", store_id="ward-a", quantity=30, last_updated=NOW),
        SubStoreStock(id="2", medicine_id="a", store_id="ward-b", quantity=4, last_updated=NOW),
        SubStoreStock(id="3", medicine_id="b", store_id="ward-a", quantity=9, last_updated=NOW),
    ]
    stock = dashboard.medicine_stock("a", main, subs)
    assert stock.main == 70
    assert stock.subs == {"ward-a": 30, "ward-b": 4}
    assert dashboard.medicine_stock("zzz", main, subs).main == 0


def test_critical_alerts():
    medicines = [
        _medicine("fine", safety=20, expiry=TODAY + timedelta(days=200)),
        _medicine("empty", safety=20),
        _medicine("expiring", safety=0, expiry=TODAY + timedelta(days=5)),
        _medicine("warning-only", safety=0, expiry=TODAY + timedelta(days=40)),
    ]
    main = [_main("fine", 40), _main("expiring", 10), _main("warning-only", 10)]

    alerts = {a.medicine_id: a for a in dashboard.critical_alerts(medicines, main, NOW)}

    assert set(alerts) == {"empty", "expiring"}
    assert alerts["empty"].status == dashboard.CRITICAL
    assert alerts["expiring"].days_to_expiry == 5


def test_transfer_out_of_main_drops_below_safety(inventory, make_medicine, set_main_stock, sub_store):
    """Main 100 / safety 20 is fine; after moving 90 out, it is low."""
    medicine = make_medicine("Amoxicillin", safety_stock_level=20)
    set_main_stock(medicine.id, 100)

    inventory.refresh_all_data()
    assert inventory.get_dashboard_stats().low_stock_count == 0

    inventory.create_transfer(
        TransferRequest(medicine_id=medicine.id, from_store="main", to_store=sub_store.id, quantity=90),
        "user-1",
    )
    inventory.refresh_all_data()

    stats = inventory.get_dashboard_stats()
    assert stats.low_stock_count == 1
    assert stats.total_transactions == 1
    assert inventory.get_medicine_stock(medicine.id).main == 10
