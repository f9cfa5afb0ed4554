"""
Market-rate comparison for equipment line items.

Each item is classified and priced by the store's stored procedures; the
per-item overpayment is summed into the invoice's market_savings. Items that
cannot be compared are skipped, so one bad line never blocks the rest.
"""

from loguru import logger

from .rates import compute_actual_amount
from .normalization import normalize_equipment, rental_days_between, to_number
from .storage.invoice_store_base import InvoiceStoreBase
from ..core.errors import InvoiceStoreError
from ..models.invoice import EquipmentItem, EquipmentRate, MarketComparison


def compare_equipment(
    equipment: list[EquipmentItem],
    store: InvoiceStoreBase,
    region: str,
    default_days: int | None = None,
) -> MarketComparison:
    total_savings = 0.0
    rated: list[EquipmentRate] = []
    skipped: list[str] = []

    for item in equipment:
        if not item.description:
            logger.debug("Skipping equipment item without description")
            skipped.append("(no description)")
            continue

        actual_amount = compute_actual_amount(item, default_days)
        rental_days = item.rental_days or default_days or 1
        if actual_amount == 0:
            logger.info("Skipping equipment item without amount", description=item.description)
            skipped.append(item.description)
            continue

        try:
            classified = store.classify_equipment(item.description)
            if not classified:
                logger.info("Could not classify equipment", description=item.description)
                skipped.append(item.description)
                continue

            savings = store.calculate_savings(
                equipment_class=classified.get("equipment_class"),
                equipment_size=classified.get("equipment_size"),
                actual_amount=actual_amount,
                rental_days=rental_days,
                region=region,
            )
            if not savings:
                logger.info(
                    "No market data for equipment",
                    description=item.description,
                    equipment_class=classified.get("equipment_class"),
                )
                skipped.append(item.description)
                continue
        except InvoiceStoreError as e:
            logger.warning(f"Market comparison failed for '{item.description}': {e}")
            skipped.append(item.description)
            continue

        overpaid = to_number(savings.get("total_overpaid"))
        total_savings += overpaid

        logger.info(
            "Compared equipment to market",
            description=item.description,
            equipment_class=classified.get("equipment_class"),
            actual_amount=actual_amount,
            rental_days=rental_days,
            market_rate_avg=savings.get("market_rate_avg"),
            total_overpaid=overpaid,
        )

        rated.append(EquipmentRate(
            **item.model_dump(exclude={"calculated_amount", "rental_days"}),
            rental_days=rental_days,
            calculated_amount=actual_amount,
            equipment_class=classified.get("equipment_class"),
            equipment_size=classified.get("equipment_size"),
            classification_confidence=classified.get("confidence"),
            market_rate_low=savings.get("market_rate_low"),
            market_rate_high=savings.get("market_rate_high"),
            market_rate_avg=savings.get("market_rate_avg"),
            overpaid_per_day=savings.get("overpaid_per_day"),
            total_overpaid=overpaid,
            data_source=savings.get("data_source"),
        ))

    return MarketComparison(
        market_savings=round(total_savings, 2),
        equipment_with_rates=rated,
        skipped=skipped,
    )


def apply_market_comparison(invoice_row: dict, store: InvoiceStoreBase, region: str) -> dict:
    """
    Compare a stored invoice's equipment and write the savings fields back.

    Returns:
        The updated row (or the input row with savings fields set, if the
        store returned nothing from the update)
    """
    invoice_id = invoice_row.get("id")
    equipment = normalize_equipment(invoice_row.get("equipment") or [])
    default_days = rental_days_between(invoice_row.get("rental_start"), invoice_row.get("rental_end"))

    if not equipment:
        logger.info("No equipment on invoice, setting market_savings to 0", invoice_id=invoice_id)
        comparison = MarketComparison()
    else:
        comparison = compare_equipment(equipment, store, region, default_days)

    fields = {
        "market_savings": comparison.market_savings,
        "equipment_with_rates": [rate.model_dump() for rate in comparison.equipment_with_rates],
    }
    updated = store.update_invoice(invoice_id, fields)

    logger.info(
        "Updated invoice market savings",
        invoice_id=invoice_id,
        market_savings=comparison.market_savings,
        rated_items=len(comparison.equipment_with_rates),
        skipped_items=len(comparison.skipped),
    )
    return updated if updated is not None else {**invoice_row, **fields}


def backfill_market_savings(store: InvoiceStoreBase, region: str, limit: int | None = None) -> dict:
    """Run the market comparison for every stored invoice with null market_savings."""
    invoices = store.list_missing_savings(limit)
    logger.info(f"Found {len(invoices)} invoices with NULL market_savings")

    processed = []
    failed = []
    for invoice in invoices:
        try:
            updated = apply_market_comparison(invoice, store, region)
        except InvoiceStoreError as e:
            logger.error(f"Backfill failed for invoice {invoice.get('id')}: {e}")
            failed.append({"id": invoice.get("id"), "error": str(e)})
            continue
        processed.append({
            "id": updated.get("id"),
            "vendor_name": updated.get("vendor_name"),
            "invoice_number": updated.get("invoice_number"),
            "market_savings": updated.get("market_savings"),
        })

    return {
        "found": len(invoices),
        "processed": processed,
        "failed": failed,
        "total_market_savings": round(sum(p["market_savings"] or 0 for p in processed), 2),
    }
