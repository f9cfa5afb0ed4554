from loguru import logger

from .invoice_store_base import InvoiceStoreBase
from .invoice_store_memory import InMemoryInvoiceStore
from ...core.config import settings

# Global in-memory instance, used when Supabase is not configured
invoice_store = InMemoryInvoiceStore()

_supabase_stores: dict = {}


def get_invoice_store() -> InvoiceStoreBase:
    """
    Get the invoice store for the current settings.

    Returns the Supabase store when SUPABASE_URL and SUPABASE_SERVICE_KEY are
    set, otherwise the in-memory store.
    """
    if not settings.supabase_configured:
        return invoice_store

    key = (settings.supabase_url, settings.supabase_service_key, settings.supabase_invoices_table)
    if key not in _supabase_stores:
        from .invoice_store_supabase import SupabaseInvoiceStore

        logger.info("Connecting to Supabase invoice store", url=settings.supabase_url)
        _supabase_stores[key] = SupabaseInvoiceStore.from_settings(*key)
    return _supabase_stores[key]
