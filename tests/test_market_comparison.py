"""
Tests for the market-rate comparison and savings backfill.
"""

from unittest.mock import Mock

from src.core.errors import InvoiceStoreError
from src.models.invoice import EquipmentItem
from src.services.market_comparison import (
    apply_market_comparison,
    backfill_market_savings,
    compare_equipment,
)
from src.services.storage import InMemoryInvoiceStore


def _store_with_rates(overpaid=100.0):
    store = Mock()
    store.classify_equipment.return_value = {
        "equipment_class": "Boom Lift",
        "equipment_size": "60ft Articulating",
        "confidence": 0.95,
    }
    store.calculate_savings.return_value = {
        "market_rate_low": 85.0,
        "market_rate_high": 130.0,
        "market_rate_avg": 105.0,
        "overpaid_per_day": 20.0,
        "total_overpaid": overpaid,
        "data_source": "market_rates_2025",
    }
    return store


def test_compare_equipment_accumulates_savings():
    store = _store_with_rates(overpaid=100.0)
    equipment = [
        EquipmentItem(description="60' articulating boom", amount=625.0, rental_days=5),
        EquipmentItem(description="60' articulating boom #2", day_rate=125.0, rental_days=5),
    ]

    comparison = compare_equipment(equipment, store, "Cleveland")

    assert comparison.market_savings == 200.0
    assert len(comparison.equipment_with_rates) == 2
    rate = comparison.equipment_with_rates[1]
    assert rate.calculated_amount == 625.0
    assert rate.equipment_class == "Boom Lift"
    assert rate.market_rate_avg == 105.0
    assert rate.data_source == "market_rates_2025"

    store.calculate_savings.assert_called_with(
        equipment_class="Boom Lift",
        equipment_size="60ft Articulating",
        actual_amount=625.0,
        rental_days=5,
        region="Cleveland",
    )


def test_compare_equipment_skips_items_without_description_or_amount():
    store = _store_with_rates()
    equipment = [
        EquipmentItem(description=None, amount=500.0),
        EquipmentItem(description="Skid steer"),
    ]

    comparison = compare_equipment(equipment, store, "Cleveland")

    assert comparison.market_savings == 0.0
    assert comparison.equipment_with_rates == []
    assert comparison.skipped == ["(no description)", "Skid steer"]
    store.classify_equipment.assert_not_called()


def test_compare_equipment_skips_unclassified_and_unpriced_items():
    store = _store_with_rates()
    store.classify_equipment.side_effect = [None, {"equipment_class": "Widget", "equipment_size": None}]
    store.calculate_savings.return_value = None

    comparison = compare_equipment(
        [EquipmentItem(description="Mystery item", amount=10.0), EquipmentItem(description="Widget", amount=10.0)],
        store,
        "Cleveland",
    )

    assert comparison.market_savings == 0.0
    assert comparison.skipped == ["Mystery item", "Widget"]


def test_compare_equipment_continues_after_store_error():
    store = _store_with_rates(overpaid=50.0)
    store.classify_equipment.side_effect = [
        InvoiceStoreError("classify_equipment failed: timeout"),
        {"equipment_class": "Boom Lift", "equipment_size": "60ft Articulating", "confidence": 0.9},
    ]

    comparison = compare_equipment(
        [EquipmentItem(description="First", amount=100.0), EquipmentItem(description="Second", amount=100.0)],
        store,
        "Cleveland",
    )

    assert comparison.market_savings == 50.0
    assert [r.description for r in comparison.equipment_with_rates] == ["Second"]
    assert comparison.skipped == ["First"]


def test_compare_equipment_uses_invoice_days_when_item_has_none():
    store = _store_with_rates()
    compare_equipment([EquipmentItem(description="Boom", day_rate=100.0)], store, "Akron", default_days=3)

    kwargs = store.calculate_savings.call_args.kwargs
    assert kwargs["actual_amount"] == 300.0
    assert kwargs["rental_days"] == 3
    assert kwargs["region"] == "Akron"


def test_apply_market_comparison_with_in_memory_store():
    store = InMemoryInvoiceStore()
    row = store.insert_invoice({
        "vendor_name": "Sunbelt Rentals",
        "rental_start": "2025-09-01",
        "rental_end": "2025-09-11",
        "equipment": [
            {"description": "Electric scissor lift", "amount": 330.0},
            {"description": "Pressure washer", "amount": 150.0},
        ],
        "market_savings": None,
    })

    updated = apply_market_comparison(row, store, "Cleveland")

    # 330 / 10 days = 33/day against a 23/day market average
    assert updated["market_savings"] == 100.0
    assert len(updated["equipment_with_rates"]) == 1
    assert updated["equipment_with_rates"][0]["equipment_class"] == "Scissor Lift"
    assert store.get_invoice(row["id"])["market_savings"] == 100.0


def test_apply_market_comparison_without_equipment_sets_zero():
    store = InMemoryInvoiceStore()
    row = store.insert_invoice({"vendor_name": "Admar", "equipment": [], "market_savings": None})

    updated = apply_market_comparison(row, store, "Cleveland")

    assert updated["market_savings"] == 0.0
    assert updated["equipment_with_rates"] == []


def test_backfill_only_processes_missing_savings():
    store = InMemoryInvoiceStore()
    store.insert_invoice({"vendor_name": "Done", "equipment": [], "market_savings": 12.0})
    pending = store.insert_invoice({
        "vendor_name": "Herc Rentals",
        "invoice_number": "H-1",
        "equipment": [{"description": "Skid steer", "amount": 400.0, "rental_days": 4}],
        "market_savings": None,
    })

    summary = backfill_market_savings(store, "Cleveland")

    assert summary["found"] == 1
    assert summary["processed"][0]["id"] == pending["id"]
    # 400 / 4 = 100/day against a 70/day average
    assert summary["total_market_savings"] == 120.0
    assert store.list_missing_savings() == []


def test_backfill_reports_failed_updates():
    store = Mock()
    store.list_missing_savings.return_value = [{"id": 7, "equipment": []}]
    store.update_invoice.side_effect = InvoiceStoreError("update invoice failed")

    summary = backfill_market_savings(store, "Cleveland")

    assert summary["processed"] == []
    assert summary["failed"] == [{"id": 7, "error": "update invoice failed"}]
