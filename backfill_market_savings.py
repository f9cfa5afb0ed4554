#!/usr/bin/env python3
"""
Backfill market savings for stored invoices.

Finds every parsed invoice whose market_savings is still NULL, prices its
equipment through the classify_equipment / calculate_savings stored
procedures, and writes market_savings and equipment_with_rates back.

Usage:
    python backfill_market_savings.py
    python backfill_market_savings.py --region Columbus --limit 50
    python backfill_market_savings.py --dry-run
"""

import argparse

from src.core.config import settings
from src.core.errors import InvoiceStoreError
from src.core.logging import setup_logging
from src.services.market_comparison import apply_market_comparison, compare_equipment
from src.services.normalization import normalize_equipment, rental_days_between
from src.services.storage import get_invoice_store


def preview_invoice(invoice: dict, store, region: str) -> float:
    """Print what the comparison would find without writing it"""
    equipment = normalize_equipment(invoice.get("equipment") or [])
    if not equipment:
        print("   No equipment found, market_savings would be 0")
        return 0.0

    default_days = rental_days_between(invoice.get("rental_start"), invoice.get("rental_end"))
    comparison = compare_equipment(equipment, store, region, default_days)
    for rate in comparison.equipment_with_rates:
        print(f"   {rate.description}: {rate.equipment_class} ({rate.equipment_size})")
        print(f"      Amount: ${rate.calculated_amount:,.2f}, Days: {rate.rental_days}")
        print(f"      Market avg: ${rate.market_rate_avg}/day, Overpaid: ${rate.total_overpaid:,.2f}")
    for description in comparison.skipped:
        print(f"   SKIP: {description}")
    return comparison.market_savings


def main():
    parser = argparse.ArgumentParser(
        description="Compute market savings for invoices that have none yet"
    )
    parser.add_argument(
        "--region",
        default=settings.market_region,
        help=f"Market region passed to calculate_savings (default: {settings.market_region})"
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Maximum number of invoices to process (default: all)"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show the comparison without updating any invoice"
    )
    args = parser.parse_args()

    setup_logging("WARNING")
    store = get_invoice_store()

    print("=" * 70)
    print("MARKET SAVINGS BACKFILL")
    print("=" * 70)
    print(f"Store: {'supabase' if settings.supabase_configured else 'in-memory'}")
    print(f"Region: {args.region}")
    print()

    invoices = store.list_missing_savings(args.limit)
    print(f"Found {len(invoices)} invoices with NULL market_savings")

    total_savings = 0.0
    failures = 0
    for invoice in invoices:
        print()
        print(f"--- Invoice {invoice.get('id')} ---")
        print(f"Vendor: {invoice.get('vendor_name')}")
        print(f"Invoice #: {invoice.get('invoice_number')}")

        try:
            if args.dry_run:
                savings = preview_invoice(invoice, store, args.region)
            else:
                updated = apply_market_comparison(invoice, store, args.region)
                savings = updated.get("market_savings") or 0.0
        except InvoiceStoreError as e:
            print(f"   UPDATE FAILED: {e}")
            failures += 1
            continue

        total_savings += savings
        print(f"   TOTAL SAVINGS: ${savings:,.2f}")

    print()
    print("=" * 70)
    print(f"Processed: {len(invoices) - failures}, Failed: {failures}")
    print(f"Total market savings: ${total_savings:,.2f}{' (dry run, nothing written)' if args.dry_run else ''}")
    print("=" * 70)
    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
