from fastapi import APIRouter, Query
from fastapi.concurrency import run_in_threadpool

from ...core.config import settings
from ...core.errors import InvoiceNotFoundError
from ...services.market_comparison import apply_market_comparison, backfill_market_savings
from ...services.storage import get_invoice_store

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.get("")
async def list_invoices(limit: int = Query(20, ge=1, le=200), vendor: str | None = None):
    """List parsed invoices, newest first"""
    store = get_invoice_store()
    rows = await run_in_threadpool(store.list_invoices, limit, vendor)
    return {"count": len(rows), "invoices": rows}


@router.get("/{invoice_id}")
async def get_invoice(invoice_id: int):
    store = get_invoice_store()
    row = await run_in_threadpool(store.get_invoice, invoice_id)
    if row is None:
        raise InvoiceNotFoundError(invoice_id)
    return row


@router.post("/{invoice_id}/market-comparison")
async def compare_invoice(invoice_id: int, region: str | None = None):
    """
    Re-run the market-rate comparison for a stored invoice.

    Writes market_savings and equipment_with_rates back to the row.
    """
    store = get_invoice_store()
    row = await run_in_threadpool(store.get_invoice, invoice_id)
    if row is None:
        raise InvoiceNotFoundError(invoice_id)

    updated = await run_in_threadpool(
        apply_market_comparison, row, store, region or settings.market_region
    )
    return {
        "success": True,
        "invoice_id": invoice_id,
        "market_savings": updated.get("market_savings"),
        "equipment_with_rates": updated.get("equipment_with_rates"),
    }


@router.post("/backfill-savings")
async def backfill_savings(limit: int | None = Query(None, ge=1), region: str | None = None):
    """Compute market savings for every invoice that has none yet"""
    store = get_invoice_store()
    summary = await run_in_threadpool(
        backfill_market_savings, store, region or settings.market_region, limit
    )
    return {"success": True, **summary}
