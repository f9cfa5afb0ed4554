"""
Tests for the invoice stores.

The Supabase store is exercised against a mocked client so the PostgREST
query chain (table/insert/eq/rpc/execute) can be asserted without a database.
"""

from unittest.mock import MagicMock

import httpx
import pytest
from postgrest.exceptions import APIError

from src.core.config import settings
from src.core.errors import InvoiceStoreError
from src.services.storage import InMemoryInvoiceStore, get_invoice_store, invoice_store
from src.services.storage.invoice_store_supabase import SupabaseInvoiceStore


class TestInMemoryInvoiceStore:
    def test_insert_assigns_id_and_created_at(self):
        store = InMemoryInvoiceStore()
        row = store.insert_invoice({"vendor_name": "Herc Rentals"})

        assert row["id"] == 1
        assert row["created_at"] is not None
        assert store.get_invoice(1)["vendor_name"] == "Herc Rentals"

    def test_returned_rows_are_copies(self):
        store = InMemoryInvoiceStore()
        row = store.insert_invoice({"vendor_name": "Herc Rentals", "fees": {"environmental": 10}})
        row["fees"]["environmental"] = 999

        assert store.get_invoice(row["id"])["fees"]["environmental"] == 10

    def test_update_missing_invoice_returns_none(self):
        assert InMemoryInvoiceStore().update_invoice(42, {"market_savings": 0}) is None

    def test_list_invoices_newest_first_with_vendor_filter(self):
        store = InMemoryInvoiceStore()
        store.insert_invoice({"vendor_name": "Sunbelt Rentals"})
        store.insert_invoice({"vendor_name": "Herc Rentals"})
        store.insert_invoice({"vendor_name": "sunbelt rentals #2"})

        assert [r["id"] for r in store.list_invoices()] == [3, 2, 1]
        assert [r["id"] for r in store.list_invoices(vendor="SUNBELT")] == [3, 1]
        assert len(store.list_invoices(limit=1)) == 1
        assert [r["id"] for r in store.list_invoices(limit=2, offset=2)] == [1]

    def test_classify_and_calculate_savings(self):
        store = InMemoryInvoiceStore()
        classified = store.classify_equipment("JLG 600AJ Boom Lift")
        assert classified["equipment_class"] == "Boom Lift"
        assert store.classify_equipment("coffee maker") is None

        savings = store.calculate_savings("Boom Lift", "60ft Articulating", 1250.0, 10, "Cleveland")
        assert savings["market_rate_avg"] == 105.0
        assert savings["overpaid_per_day"] == 20.0
        assert savings["total_overpaid"] == 200.0

    def test_no_overpayment_below_market(self):
        savings = InMemoryInvoiceStore().calculate_savings("Skid Steer", "Standard", 60.0, 1, "Cleveland")
        assert savings["total_overpaid"] == 0.0


@pytest.fixture
def supabase_client():
    return MagicMock()


@pytest.fixture
def supabase_store(supabase_client):
    return SupabaseInvoiceStore(supabase_client, table="parsed_invoices")


class TestSupabaseInvoiceStore:
    def test_insert_invoice(self, supabase_store, supabase_client):
        supabase_client.table.return_value.insert.return_value.execute.return_value.data = [
            {"id": 11, "vendor_name": "Admar"}
        ]

        row = supabase_store.insert_invoice({"vendor_name": "Admar"})

        assert row == {"id": 11, "vendor_name": "Admar"}
        supabase_client.table.assert_called_with("parsed_invoices")
        supabase_client.table.return_value.insert.assert_called_with({"vendor_name": "Admar"})

    def test_insert_without_returned_row_raises(self, supabase_store, supabase_client):
        supabase_client.table.return_value.insert.return_value.execute.return_value.data = []

        with pytest.raises(InvoiceStoreError):
            supabase_store.insert_invoice({"vendor_name": "Admar"})

    def test_update_invoice(self, supabase_store, supabase_client):
        update = supabase_client.table.return_value.update
        update.return_value.eq.return_value.execute.return_value.data = [{"id": 3, "market_savings": 10.0}]

        row = supabase_store.update_invoice(3, {"market_savings": 10.0})

        assert row["market_savings"] == 10.0
        update.assert_called_with({"market_savings": 10.0})
        update.return_value.eq.assert_called_with("id", 3)

    def test_list_missing_savings_filters_null(self, supabase_store, supabase_client):
        select = supabase_client.table.return_value.select
        select.return_value.is_.return_value.order.return_value.execute.return_value.data = [{"id": 1}]

        rows = supabase_store.list_missing_savings()

        assert rows == [{"id": 1}]
        select.return_value.is_.assert_called_with("market_savings", "null")

    def test_list_invoices_pages_with_range(self, supabase_store, supabase_client):
        select = supabase_client.table.return_value.select
        select.return_value.order.return_value.range.return_value.execute.return_value.data = [{"id": 7}]

        rows = supabase_store.list_invoices(limit=500, offset=500)

        assert rows == [{"id": 7}]
        select.return_value.order.assert_called_with("created_at", desc=True)
        select.return_value.order.return_value.range.assert_called_with(500, 999)

    def test_classify_equipment_rpc(self, supabase_store, supabase_client):
        supabase_client.rpc.return_value.execute.return_value.data = [
            {"equipment_class": "Telehandler", "equipment_size": "10,000 lb", "confidence": 0.8}
        ]

        classified = supabase_store.classify_equipment("SkyTrak 10054")

        assert classified["equipment_class"] == "Telehandler"
        supabase_client.rpc.assert_called_with("classify_equipment", {"p_description": "SkyTrak 10054"})

    def test_classify_equipment_no_match(self, supabase_store, supabase_client):
        supabase_client.rpc.return_value.execute.return_value.data = []
        assert supabase_store.classify_equipment("unknown") is None

    def test_calculate_savings_rpc_parameters(self, supabase_store, supabase_client):
        supabase_client.rpc.return_value.execute.return_value.data = [{"total_overpaid": 42.0}]

        savings = supabase_store.calculate_savings("Telehandler", "10,000 lb", 900.0, 5, "Cleveland")

        assert savings == {"total_overpaid": 42.0}
        supabase_client.rpc.assert_called_with(
            "calculate_savings",
            {
                "p_equipment_class": "Telehandler",
                "p_equipment_size": "10,000 lb",
                "p_actual_amount": 900.0,
                "p_rental_days": 5,
                "p_region": "Cleveland",
            },
        )

    def test_api_error_becomes_store_error(self, supabase_store, supabase_client):
        supabase_client.rpc.return_value.execute.side_effect = APIError(
            {"message": "function calculate_savings does not exist", "code": "42883"}
        )

        with pytest.raises(InvoiceStoreError):
            supabase_store.calculate_savings("Telehandler", None, 1.0, 1, "Cleveland")

    def test_network_error_becomes_store_error(self, supabase_store, supabase_client):
        supabase_client.table.return_value.select.return_value.eq.return_value.limit.return_value.execute.side_effect = (
            httpx.ConnectError("connection refused")
        )

        with pytest.raises(InvoiceStoreError):
            supabase_store.get_invoice(1)


def test_get_invoice_store_defaults_to_in_memory():
    assert get_invoice_store() is invoice_store


def test_get_invoice_store_uses_supabase_when_configured(monkeypatch):
    created = []

    def fake_create_client(url, key):
        created.append((url, key))
        return MagicMock()

    monkeypatch.setattr("src.services.storage.invoice_store_supabase.create_client", fake_create_client)
    settings.supabase_url = "https://project.supabase.co"
    settings.supabase_service_key = "service-key"

    store = get_invoice_store()

    assert isinstance(store, SupabaseInvoiceStore)
    assert get_invoice_store() is store
    assert created == [("https://project.supabase.co", "service-key")]
