"""
Normalization of model-extracted invoice JSON.

The extraction prompt has changed over time, so replies arrive with either
snake_case or camelCase keys, numbers as strings with currency symbols, and
freight or tax charges filed under "fees". Everything here turns that into a
ParsedInvoice with numeric defaults and fees split out from freight, meter
charges and tax.
"""

import math
import re
from datetime import date
from typing import Any, Literal

from loguru import logger

from .rates import compute_actual_amount
from ..core.config import settings
from ..models.invoice import EquipmentItem, ParsedInvoice

ChargeKind = Literal["tax", "freight", "meter", "fee"]

TAX_KEYWORDS = ("tax", "gst", "hst", "vat")
FREIGHT_KEYWORDS = (
    "delivery",
    "pickup",
    "pick_up",
    "freight",
    "transport",
    "haul",
    "mobilization",
    "mobilisation",
    "trucking",
    "shipping",
)
METER_KEYWORDS = ("meter", "overtime", "excess_hours", "hour_overage", "hours_overage")

# Currency symbols and codes, thousands separators and whitespace
_CURRENCY_RE = re.compile(r"USD|CAD|EUR|GBP|AUD|[$,\s]", re.IGNORECASE)

# Alternate keys seen across prompt generations, mapped to the canonical field
_FIELD_ALIASES = {
    "vendor": ("vendor", "vendor_name", "vendorName"),
    "invoice_number": ("invoice_number", "invoiceNumber", "invoice_no"),
    "invoice_date": ("invoice_date", "invoiceDate"),
    "due_date": ("due_date", "dueDate"),
    "po_number": ("po_number", "poNumber"),
    "customer_name": ("customer_name", "customerName", "bill_to"),
    "job_site": ("job_site", "jobSite"),
    "rental_start": ("rental_start", "rentalStart", "rental_period_start"),
    "rental_end": ("rental_end", "rentalEnd", "rental_period_end"),
    "rental_subtotal": ("rental_subtotal", "rentalSubtotal", "rentalCharges", "rental_charges"),
    "freight": ("freight", "freight_total"),
    "meter_charges": ("meter_charges", "meterCharges"),
    "tax": ("tax", "sales_tax"),
    "total": ("total", "invoice_total", "total_due"),
    "confidence": ("confidence",),
}


def to_number(value: Any) -> float:
    """
    Coerce a model-supplied amount to float.

    Handles "$1,234.50", "USD 99", "(12.50)" (negative), "1.5e3" and blanks.
    Anything else, including text with extra words ("2 x 125.00") and
    non-scalar values, is 0.0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else 0.0
    if not isinstance(value, str):
        return 0.0

    text = value.strip()
    negative = text.startswith("(") and text.endswith(")")
    if negative:
        text = text[1:-1]
    text = _CURRENCY_RE.sub("", text)
    if not text:
        return 0.0

    try:
        number = float(text)
    except ValueError:
        logger.debug(f"Could not parse amount: {value!r}")
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return -abs(number) if negative else number


def _to_int(value: Any) -> int | None:
    number = to_number(value)
    if number <= 0:
        return None
    return int(round(number))


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() in ("null", "none", "n/a"):
        return None
    return text


def _charge_key(name: str) -> str:
    return re.sub(r"[\s\-]+", "_", name.strip().lower())


def classify_charge(name: str) -> ChargeKind:
    """Decide whether a charge category is tax, freight, meter usage or a fee."""
    key = _charge_key(name)
    # Tax keywords are short, so match whole tokens ("excavator" contains "vat")
    tokens = key.split("_")
    if any(token.startswith(kw) for token in tokens for kw in TAX_KEYWORDS):
        return "tax"
    if any(kw in key for kw in FREIGHT_KEYWORDS):
        return "freight"
    if any(kw in key for kw in METER_KEYWORDS):
        return "meter"
    return "fee"


def reclassify_fees(
    fees: dict | None,
    freight: float = 0.0,
    meter_charges: float = 0.0,
    tax: float = 0.0,
) -> tuple[dict[str, float], float, float, float]:
    """
    Move freight, meter and tax entries out of the fee mapping.

    Returns:
        (fees, freight, meter_charges, tax) with zero-value fees dropped
    """
    remaining: dict[str, float] = {}
    for name, raw_amount in (fees or {}).items():
        amount = to_number(raw_amount)
        if amount == 0:
            continue

        kind = classify_charge(name)
        if kind == "tax":
            tax += amount
        elif kind == "freight":
            freight += amount
        elif kind == "meter":
            meter_charges += amount
        else:
            key = _charge_key(name)
            remaining[key] = round(remaining.get(key, 0.0) + amount, 2)

    return remaining, round(freight, 2), round(meter_charges, 2), round(tax, 2)


def parse_iso_date(value: Any) -> date | None:
    text = _to_text(value)
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def rental_days_between(start: Any, end: Any) -> int | None:
    """Billable days between the rental start and end dates (at least 1)."""
    start_date = parse_iso_date(start)
    end_date = parse_iso_date(end)
    if not start_date or not end_date or end_date < start_date:
        return None
    return max((end_date - start_date).days, 1)


def normalize_equipment(items: Any, default_days: int | None = None) -> list[EquipmentItem]:
    """Coerce equipment entries (dicts or bare description strings)."""
    if not isinstance(items, list):
        return []

    normalized = []
    for entry in items:
        if isinstance(entry, str):
            entry = {"description": entry}
        if not isinstance(entry, dict):
            continue

        item = EquipmentItem(
            description=_to_text(entry.get("description")),
            serial_number=_to_text(entry.get("serial_number") or entry.get("serialNumber")),
            rental_days=_to_int(entry.get("rental_days") or entry.get("rentalDays")),
            day_rate=to_number(entry.get("day_rate") or entry.get("dayRate")),
            week_rate=to_number(entry.get("week_rate") or entry.get("weekRate")),
            four_week_rate=to_number(
                entry.get("four_week_rate") or entry.get("fourWeekRate") or entry.get("month_rate")
            ),
            amount=to_number(entry.get("amount")),
        )
        item.calculated_amount = compute_actual_amount(item, default_days)
        normalized.append(item)
    return normalized


def _first(raw: dict, field: str) -> Any:
    for key in _FIELD_ALIASES[field]:
        if raw.get(key) not in (None, ""):
            return raw[key]
    return None


def _normalize_confidence(value: Any) -> str:
    text = (_to_text(value) or "").lower()
    return text if text in ("high", "medium", "low") else "low"


def normalize_invoice(raw: dict) -> ParsedInvoice:
    """Turn the parsed model JSON into a ParsedInvoice."""
    rental_start = _to_text(_first(raw, "rental_start"))
    rental_end = _to_text(_first(raw, "rental_end"))
    default_days = rental_days_between(rental_start, rental_end)

    equipment = normalize_equipment(raw.get("equipment"), default_days)

    rental_subtotal = to_number(_first(raw, "rental_subtotal"))
    if rental_subtotal == 0 and equipment:
        rental_subtotal = round(sum(item.calculated_amount for item in equipment), 2)

    fees, freight, meter_charges, tax = reclassify_fees(
        raw.get("fees") if isinstance(raw.get("fees"), dict) else {},
        freight=to_number(_first(raw, "freight")),
        meter_charges=to_number(_first(raw, "meter_charges")),
        tax=to_number(_first(raw, "tax")),
    )
    fees_total = round(sum(fees.values()), 2)
    fee_percentage = round(fees_total / rental_subtotal * 100, 2) if rental_subtotal > 0 else 0.0

    parsed = ParsedInvoice(
        vendor=_to_text(_first(raw, "vendor")),
        invoice_number=_to_text(_first(raw, "invoice_number")),
        invoice_date=_to_text(_first(raw, "invoice_date")),
        due_date=_to_text(_first(raw, "due_date")),
        po_number=_to_text(_first(raw, "po_number")),
        customer_name=_to_text(_first(raw, "customer_name")),
        job_site=_to_text(_first(raw, "job_site")),
        rental_start=rental_start,
        rental_end=rental_end,
        rental_subtotal=round(rental_subtotal, 2),
        freight=freight,
        meter_charges=meter_charges,
        fees=fees,
        fees_total=fees_total,
        tax=tax,
        total=round(to_number(_first(raw, "total")), 2),
        equipment=equipment,
        fee_percentage=fee_percentage,
        high_fees=fee_percentage > settings.high_fee_percentage,
        confidence=_normalize_confidence(_first(raw, "confidence")),
    )

    logger.debug(
        "Normalized invoice",
        vendor=parsed.vendor,
        rental_subtotal=parsed.rental_subtotal,
        fees_total=parsed.fees_total,
        freight=parsed.freight,
        fee_percentage=parsed.fee_percentage,
    )
    return parsed


def is_rental_vendor(vendor: str | None) -> bool:
    vendor_lower = (vendor or "").lower()
    return any(kw in vendor_lower for kw in settings.rental_keywords())


def vendor_normalized(vendor: str | None) -> str:
    parts = (vendor or "").lower().split()
    return parts[0] if parts else ""


def to_invoice_row(parsed: ParsedInvoice, raw: dict) -> dict:
    """Build the parsed_invoices row for a freshly parsed invoice."""
    is_rental = is_rental_vendor(parsed.vendor)
    data = parsed.model_dump()
    return {
        "source": "parseapi",
        "invoice_type": "equipment_rental" if is_rental else "unknown",
        "is_equipment_rental": is_rental,
        "vendor_name": parsed.vendor,
        "vendor_normalized": vendor_normalized(parsed.vendor),
        "invoice_number": parsed.invoice_number,
        "invoice_date": parsed.invoice_date,
        "due_date": parsed.due_date,
        "po_number": parsed.po_number,
        "customer_name": parsed.customer_name,
        "job_site": parsed.job_site,
        "rental_start": parsed.rental_start,
        "rental_end": parsed.rental_end,
        "rental_subtotal": parsed.rental_subtotal,
        "freight": parsed.freight,
        "meter_charges": parsed.meter_charges,
        "fees_total": parsed.fees_total,
        "tax": parsed.tax,
        "total": parsed.total,
        "fees": data["fees"],
        "equipment": data["equipment"],
        "fee_percentage": parsed.fee_percentage,
        "high_fees": parsed.high_fees,
        "confidence": parsed.confidence,
        "raw_response": raw,
        "market_savings": None,
        "equipment_with_rates": None,
    }
