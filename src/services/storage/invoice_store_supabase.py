"""
Supabase-backed invoice store.

Rows live in the parsed_invoices table (name configurable). Equipment
classification and market-rate comparison are delegated to two stored
procedures in the same database, called over PostgREST RPC:

    classify_equipment(p_description)
    calculate_savings(p_equipment_class, p_equipment_size,
                      p_actual_amount, p_rental_days, p_region)
"""

from typing import Optional

import httpx
from loguru import logger
from postgrest.exceptions import APIError
from supabase import Client, create_client

from .invoice_store_base import InvoiceStoreBase
from ...core.errors import InvoiceStoreError


class SupabaseInvoiceStore(InvoiceStoreBase):
    def __init__(self, client: Client, table: str = "parsed_invoices"):
        """
        Args:
            client: Supabase client created with the service key (bypasses RLS)
            table: Name of the parsed invoices table
        """
        self.client = client
        self.table = table

    @classmethod
    def from_settings(cls, url: str, service_key: str, table: str = "parsed_invoices") -> "SupabaseInvoiceStore":
        return cls(create_client(url, service_key), table=table)

    def _execute(self, query, operation: str):
        try:
            return query.execute()
        except (APIError, httpx.HTTPError) as e:
            logger.error(f"Supabase {operation} failed: {e}")
            raise InvoiceStoreError(f"{operation} failed: {e}") from e

    def insert_invoice(self, row: dict) -> dict:
        response = self._execute(self.client.table(self.table).insert(row), "insert invoice")
        if not response.data:
            raise InvoiceStoreError("insert invoice returned no row")
        return response.data[0]

    def update_invoice(self, invoice_id, fields: dict) -> Optional[dict]:
        response = self._execute(
            self.client.table(self.table).update(fields).eq("id", invoice_id),
            "update invoice",
        )
        return response.data[0] if response.data else None

    def get_invoice(self, invoice_id) -> Optional[dict]:
        response = self._execute(
            self.client.table(self.table).select("*").eq("id", invoice_id).limit(1),
            "get invoice",
        )
        return response.data[0] if response.data else None

    def list_invoices(self, limit: int = 20, vendor: Optional[str] = None, offset: int = 0) -> list:
        query = self.client.table(self.table).select("*")
        if vendor:
            query = query.ilike("vendor_name", f"%{vendor}%")
        query = query.order("created_at", desc=True).range(offset, offset + limit - 1)
        response = self._execute(query, "list invoices")
        return response.data or []

    def list_missing_savings(self, limit: Optional[int] = None) -> list:
        query = self.client.table(self.table).select("*").is_("market_savings", "null").order("id")
        if limit is not None:
            query = query.limit(limit)
        response = self._execute(query, "list invoices missing savings")
        return response.data or []

    def classify_equipment(self, description: str) -> Optional[dict]:
        response = self._execute(
            self.client.rpc("classify_equipment", {"p_description": description}),
            "classify_equipment",
        )
        return response.data[0] if response.data else None

    def calculate_savings(
        self,
        equipment_class: str,
        equipment_size: Optional[str],
        actual_amount: float,
        rental_days: int,
        region: str,
    ) -> Optional[dict]:
        response = self._execute(
            self.client.rpc(
                "calculate_savings",
                {
                    "p_equipment_class": equipment_class,
                    "p_equipment_size": equipment_size,
                    "p_actual_amount": actual_amount,
                    "p_rental_days": rental_days,
                    "p_region": region,
                },
            ),
            "calculate_savings",
        )
        return response.data[0] if response.data else None
