"""
Tools exposed to the chat assistant.

Each tool is a direct query against the invoice store. Results go back to
the model as JSON strings; failures are reported as {"error": ...} so the
model can tell the user instead of the request failing.
"""

import json
from typing import Any, Callable

from loguru import logger

from .normalization import to_number
from .storage.invoice_store_base import InvoiceStoreBase
from ..core.config import settings
from ..core.errors import InvoiceStoreError

SUMMARY_PAGE_SIZE = 500

TOOL_DEFINITIONS = [
    {
        "type": "function",
        "function": {
            "name": "search_invoices",
            "description": "List recently parsed invoices, optionally filtered by vendor name.",
            "parameters": {
                "type": "object",
                "properties": {
                    "vendor": {"type": "string", "description": "Part of the vendor name, e.g. 'Sunbelt'"},
                    "limit": {"type": "integer", "description": "Maximum invoices to return (default 10)"},
                },
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "get_invoice",
            "description": "Get one parsed invoice with its fees, equipment and market comparison.",
            "parameters": {
                "type": "object",
                "properties": {
                    "invoice_id": {"type": "integer", "description": "Invoice id from search_invoices"},
                },
                "required": ["invoice_id"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "get_savings_summary",
            "description": "Totals across all parsed invoices: market savings, fees and high-fee invoice count.",
            "parameters": {"type": "object", "properties": {}},
        },
    },
    {
        "type": "function",
        "function": {
            "name": "lookup_market_rate",
            "description": "Classify a piece of equipment and look up market rental rates for it.",
            "parameters": {
                "type": "object",
                "properties": {
                    "description": {"type": "string", "description": "Equipment description, e.g. '60ft boom lift'"},
                    "rental_days": {"type": "integer", "description": "Rental length in days (default 1)"},
                    "amount": {"type": "number", "description": "Amount actually paid, to estimate overpayment"},
                },
                "required": ["description"],
            },
        },
    },
]


def _summary(row: dict) -> dict:
    return {
        "id": row.get("id"),
        "vendor_name": row.get("vendor_name"),
        "invoice_number": row.get("invoice_number"),
        "invoice_date": row.get("invoice_date"),
        "total": row.get("total"),
        "fees_total": row.get("fees_total"),
        "fee_percentage": row.get("fee_percentage"),
        "market_savings": row.get("market_savings"),
    }


def search_invoices(store: InvoiceStoreBase, vendor: str | None = None, limit: int = 10) -> dict:
    limit = max(1, min(int(limit or 10), 50))
    rows = store.list_invoices(limit=limit, vendor=vendor)
    return {"count": len(rows), "invoices": [_summary(r) for r in rows]}


def get_invoice(store: InvoiceStoreBase, invoice_id: int) -> dict:
    row = store.get_invoice(invoice_id)
    if row is None:
        return {"error": f"Invoice {invoice_id} not found"}
    row.pop("raw_response", None)
    return row


def _all_invoices(store: InvoiceStoreBase) -> list:
    rows = []
    while True:
        page = store.list_invoices(limit=SUMMARY_PAGE_SIZE, offset=len(rows))
        rows.extend(page)
        if len(page) < SUMMARY_PAGE_SIZE:
            return rows


def get_savings_summary(store: InvoiceStoreBase) -> dict:
    rows = _all_invoices(store)
    percentages = [to_number(r.get("fee_percentage")) for r in rows]
    return {
        "invoice_count": len(rows),
        "total_market_savings": round(sum(to_number(r.get("market_savings")) for r in rows), 2),
        "total_fees": round(sum(to_number(r.get("fees_total")) for r in rows), 2),
        "total_freight": round(sum(to_number(r.get("freight")) for r in rows), 2),
        "average_fee_percentage": round(sum(percentages) / len(percentages), 2) if percentages else 0.0,
        "high_fee_invoices": sum(1 for p in percentages if p > settings.high_fee_percentage),
        "invoices_pending_comparison": sum(1 for r in rows if r.get("market_savings") is None),
    }


def lookup_market_rate(
    store: InvoiceStoreBase,
    description: str,
    rental_days: int = 1,
    amount: float = 0.0,
) -> dict:
    classified = store.classify_equipment(description)
    if not classified:
        return {"error": f"Could not classify '{description}'"}

    savings = store.calculate_savings(
        equipment_class=classified.get("equipment_class"),
        equipment_size=classified.get("equipment_size"),
        actual_amount=to_number(amount),
        rental_days=max(int(rental_days or 1), 1),
        region=settings.market_region,
    )
    if not savings:
        return {"classification": classified, "error": "No market data for this equipment"}
    return {"classification": classified, "region": settings.market_region, **savings}


TOOLS: dict[str, Callable[..., dict]] = {
    "search_invoices": search_invoices,
    "get_invoice": get_invoice,
    "get_savings_summary": get_savings_summary,
    "lookup_market_rate": lookup_market_rate,
}


def run_tool(name: str, arguments: str | None, store: InvoiceStoreBase) -> str:
    """Execute a tool call from the model and return its JSON result."""
    tool = TOOLS.get(name)
    if tool is None:
        return json.dumps({"error": f"Unknown tool: {name}"})

    try:
        kwargs: Any = json.loads(arguments) if arguments else {}
        if not isinstance(kwargs, dict):
            raise ValueError("arguments must be a JSON object")
    except (json.JSONDecodeError, ValueError) as e:
        return json.dumps({"error": f"Invalid arguments: {e}"})

    logger.info("Running assistant tool", tool=name, arguments=kwargs)
    try:
        result = tool(store, **kwargs)
    except (TypeError, ValueError) as e:
        result = {"error": f"Invalid arguments: {e}"}
    except InvoiceStoreError as e:
        result = {"error": str(e)}
    return json.dumps(result, default=str)
