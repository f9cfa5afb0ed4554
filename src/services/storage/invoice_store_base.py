"""
Abstract base class for invoice store implementations.

Defines the interface the parse pipeline, market comparison and chat tools
use, so the hosted Supabase store and the in-memory store are interchangeable.
"""

from abc import ABC, abstractmethod
from typing import Optional


class InvoiceStoreBase(ABC):
    """
    Abstract base class for parsed invoice storage.

    Implementations:
    - In-memory (local development, tests)
    - Supabase (production: parsed_invoices table plus the
      classify_equipment / calculate_savings stored procedures)
    """

    @abstractmethod
    def insert_invoice(self, row: dict) -> dict:
        """
        Insert a parsed invoice row.

        Args:
            row: Column values for parsed_invoices

        Returns:
            The stored row, including its generated id and created_at
        """
        pass

    @abstractmethod
    def update_invoice(self, invoice_id, fields: dict) -> Optional[dict]:
        """
        Update columns on a stored invoice.

        Returns:
            The updated row, or None if the invoice does not exist
        """
        pass

    @abstractmethod
    def get_invoice(self, invoice_id) -> Optional[dict]:
        """Get a stored invoice by id, or None if not found."""
        pass

    @abstractmethod
    def list_invoices(self, limit: int = 20, vendor: Optional[str] = None, offset: int = 0) -> list:
        """
        List stored invoices, newest first.

        Args:
            limit: Maximum rows to return
            vendor: Optional case-insensitive substring filter on vendor_name
            offset: Rows to skip, for paging
        """
        pass

    @abstractmethod
    def list_missing_savings(self, limit: Optional[int] = None) -> list:
        """List invoices whose market_savings has never been computed (is null)."""
        pass

    @abstractmethod
    def classify_equipment(self, description: str) -> Optional[dict]:
        """
        Classify an equipment description.

        Returns:
            Dict with equipment_class, equipment_size and confidence,
            or None when nothing matches
        """
        pass

    @abstractmethod
    def calculate_savings(
        self,
        equipment_class: str,
        equipment_size: Optional[str],
        actual_amount: float,
        rental_days: int,
        region: str,
    ) -> Optional[dict]:
        """
        Compare an actual rental charge with market rates.

        Returns:
            Dict with market_rate_low, market_rate_high, market_rate_avg
            (per day), overpaid_per_day, total_overpaid and data_source,
            or None when no market data exists for the class
        """
        pass
