from loguru import logger

from .json_repair import parse_model_json
from .market_comparison import apply_market_comparison
from .normalization import normalize_invoice, to_invoice_row
from .storage import get_invoice_store
from .vision_extractor import extract_invoice
from ..core.config import settings
from ..core.errors import InvoiceStoreError


def parse_invoice_image(
    image_b64: str,
    mime_type: str | None = None,
    save: bool = True,
    compare: bool = True,
) -> dict:
    """
    Extract, repair, normalize and (optionally) store and price one invoice image.

    Args:
        image_b64: Base64-encoded image bytes
        mime_type: Image content type (defaults to image/png)
        save: Insert the parsed invoice into the store
        compare: Run the market-rate comparison after saving

    Returns:
        Dict with data (normalized invoice), raw (model JSON), raw_response
        (model text), invoice_id, market_savings and equipment_with_rates

    Raises:
        ExtractionError: the vision API call failed
        InvoiceParseError: the reply could not be parsed as JSON
        InvoiceStoreError: the invoice could not be stored (a failed savings
            update after the insert is logged, not raised)
    """
    content = extract_invoice(image_b64, mime_type)
    raw = parse_model_json(content)
    parsed = normalize_invoice(raw)

    result = {
        "data": parsed.model_dump(),
        "raw": raw,
        "raw_response": content,
        "invoice_id": None,
        "market_savings": None,
        "equipment_with_rates": None,
    }

    logger.info(
        "Parsed invoice",
        vendor=parsed.vendor,
        invoice_number=parsed.invoice_number,
        total=parsed.total,
        fee_percentage=parsed.fee_percentage,
        high_fees=parsed.high_fees,
        confidence=parsed.confidence,
    )

    if not save:
        return result

    store = get_invoice_store()
    stored = store.insert_invoice(to_invoice_row(parsed, raw))
    result["invoice_id"] = stored.get("id")
    logger.info("Saved parsed invoice", invoice_id=stored.get("id"))

    if compare:
        # On failure market_savings stays null for the backfill
        try:
            updated = apply_market_comparison(stored, store, settings.market_region)
        except InvoiceStoreError as e:
            logger.warning(f"Market comparison not saved for invoice {stored.get('id')}: {e}")
            return result
        result["market_savings"] = updated.get("market_savings")
        result["equipment_with_rates"] = updated.get("equipment_with_rates")

    return result
