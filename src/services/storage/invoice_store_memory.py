"""
In-memory invoice store (for local development and tests).

Stands in for the hosted store when SUPABASE_URL is not configured. The
equipment classification and market-rate lookups use a small sample table
and return rows shaped like the classify_equipment / calculate_savings
stored procedures.
"""
from datetime import datetime, UTC
from typing import Dict, Optional
import copy
import itertools

from .invoice_store_base import InvoiceStoreBase

# keyword -> (equipment_class, equipment_size)
SAMPLE_CLASSIFICATIONS = [
    ("scissor lift", ("Scissor Lift", "19ft Electric")),
    ("boom lift", ("Boom Lift", "60ft Articulating")),
    ("telehandler", ("Telehandler", "10,000 lb")),
    ("skid steer", ("Skid Steer", "Standard")),
    ("mini excavator", ("Excavator", "Mini")),
    ("excavator", ("Excavator", "20 Ton")),
    ("generator", ("Generator", "45 kVA")),
]

# (equipment_class, equipment_size) -> per-day market rates (low, high, avg)
SAMPLE_MARKET_RATES = {
    ("Scissor Lift", "19ft Electric"): (18.00, 30.00, 23.00),
    ("Boom Lift", "60ft Articulating"): (85.00, 130.00, 105.00),
    ("Telehandler", "10,000 lb"): (95.00, 150.00, 120.00),
    ("Skid Steer", "Standard"): (55.00, 90.00, 70.00),
    ("Excavator", "Mini"): (60.00, 100.00, 78.00),
    ("Excavator", "20 Ton"): (160.00, 240.00, 195.00),
    ("Generator", "45 kVA"): (40.00, 75.00, 55.00),
}


class InMemoryInvoiceStore(InvoiceStoreBase):
    def __init__(self):
        self._invoices: Dict[int, dict] = {}
        self._ids = itertools.count(1)

    def insert_invoice(self, row: dict) -> dict:
        """Store a copy of the row and return it with id and created_at"""
        invoice_id = next(self._ids)
        stored = copy.deepcopy(row)
        stored["id"] = invoice_id
        stored["created_at"] = datetime.now(UTC).isoformat()
        self._invoices[invoice_id] = stored
        return copy.deepcopy(stored)

    def update_invoice(self, invoice_id, fields: dict) -> Optional[dict]:
        stored = self._invoices.get(int(invoice_id))
        if stored is None:
            return None
        stored.update(copy.deepcopy(fields))
        return copy.deepcopy(stored)

    def get_invoice(self, invoice_id) -> Optional[dict]:
        stored = self._invoices.get(int(invoice_id))
        return copy.deepcopy(stored) if stored is not None else None

    def list_invoices(self, limit: int = 20, vendor: Optional[str] = None, offset: int = 0) -> list:
        rows = sorted(self._invoices.values(), key=lambda r: r["id"], reverse=True)
        if vendor:
            rows = [r for r in rows if vendor.lower() in (r.get("vendor_name") or "").lower()]
        return copy.deepcopy(rows[offset:offset + limit])

    def list_missing_savings(self, limit: Optional[int] = None) -> list:
        rows = [r for r in sorted(self._invoices.values(), key=lambda r: r["id"])
                if r.get("market_savings") is None]
        if limit is not None:
            rows = rows[:limit]
        return copy.deepcopy(rows)

    def classify_equipment(self, description: str) -> Optional[dict]:
        text = (description or "").lower()
        for keyword, (equipment_class, equipment_size) in SAMPLE_CLASSIFICATIONS:
            if keyword in text:
                return {
                    "equipment_class": equipment_class,
                    "equipment_size": equipment_size,
                    "confidence": 0.9,
                }
        return None

    def calculate_savings(
        self,
        equipment_class: str,
        equipment_size: Optional[str],
        actual_amount: float,
        rental_days: int,
        region: str,
    ) -> Optional[dict]:
        rates = SAMPLE_MARKET_RATES.get((equipment_class, equipment_size))
        if rates is None:
            return None

        low, high, avg = rates
        days = max(int(rental_days or 1), 1)
        actual_per_day = actual_amount / days
        overpaid_per_day = round(max(actual_per_day - avg, 0.0), 2)
        return {
            "market_rate_low": low,
            "market_rate_high": high,
            "market_rate_avg": avg,
            "actual_rate_per_day": round(actual_per_day, 2),
            "overpaid_per_day": overpaid_per_day,
            "total_overpaid": round(overpaid_per_day * days, 2),
            "data_source": f"sample_rates:{region}",
        }

    def clear(self) -> None:
        self._invoices.clear()
        self._ids = itertools.count(1)
