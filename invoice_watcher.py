#!/usr/bin/env python3
"""
Invoice Folder Watcher - Automatic Parsing

Watches a folder for new invoice images (scans, phone photos) and posts each
one to the ParseAPI /parse endpoint. Parsed files move to a processed folder,
failures to a failed folder, and every result is appended to a JSON log.

Usage:
    python invoice_watcher.py --watch-folder ./invoices-incoming
"""

import argparse
import json
import mimetypes
import time
from datetime import datetime
from pathlib import Path

import requests
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

# Configuration
API_BASE_URL = "http://127.0.0.1:3001"
IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".webp", ".gif"}


class InvoiceHandler(FileSystemEventHandler):
    """Handles new invoice image events"""

    def __init__(self, watch_folder, processed_folder, failed_folder, api_url=API_BASE_URL, compare=True):
        self.watch_folder = Path(watch_folder)
        self.processed_folder = Path(processed_folder)
        self.failed_folder = Path(failed_folder)
        self.api_url = api_url.rstrip("/")
        self.compare = compare
        self.processed_files = set()

        # Create folders if they don't exist
        self.processed_folder.mkdir(parents=True, exist_ok=True)
        self.failed_folder.mkdir(parents=True, exist_ok=True)

    def on_created(self, event):
        """Called when a file is created in the watched folder"""
        if event.is_directory:
            return

        file_path = Path(event.src_path)

        # Only process image files
        if file_path.suffix.lower() not in IMAGE_SUFFIXES:
            return

        # Avoid processing the same file multiple times
        if file_path in self.processed_files:
            return

        # Small delay to ensure file is fully written
        time.sleep(1)

        # Check if file still exists (might have been moved)
        if not file_path.exists():
            return

        self.processed_files.add(file_path)
        self.process_invoice(file_path)

    def process_invoice(self, file_path: Path):
        """Post an invoice image to the API"""
        print("\n" + "=" * 70)
        print(f"NEW INVOICE DETECTED: {file_path.name}")
        print("=" * 70)
        print(f"Time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        print(f"Size: {file_path.stat().st_size:,} bytes")
        print()

        mime_type = mimetypes.guess_type(file_path.name)[0] or "image/png"

        try:
            print("Uploading to ParseAPI...")
            with open(file_path, "rb") as f:
                files = {"file": (file_path.name, f, mime_type)}
                response = requests.post(
                    f"{self.api_url}/parse",
                    files=files,
                    params={"compare": str(self.compare).lower()},
                    timeout=120,
                )

            if response.status_code == 200:
                self.handle_success(file_path, response.json())
            else:
                print(f"API Error: {response.status_code}")
                print(f"   {response.text}")
                self.handle_error(file_path, f"API returned {response.status_code}")

        except requests.exceptions.Timeout:
            print("Request timed out (vision extraction can take 30+ seconds)")
            self.handle_error(file_path, "Timeout")
        except requests.exceptions.RequestException as e:
            print(f"Error: {str(e)}")
            self.handle_error(file_path, str(e))

    def handle_success(self, file_path: Path, data: dict):
        """Handle a parsed invoice"""
        invoice = data["data"]

        print()
        print("EXTRACTION RESULTS:")
        print(f"   Vendor: {invoice.get('vendor')}")
        print(f"   Invoice #: {invoice.get('invoice_number')}")
        print(f"   Date: {invoice.get('invoice_date')}")
        print(f"   Rental: ${invoice.get('rental_subtotal', 0):,.2f}")
        print(f"   Fees: ${invoice.get('fees_total', 0):,.2f} ({invoice.get('fee_percentage', 0):.1f}%)")
        print(f"   Freight: ${invoice.get('freight', 0):,.2f}")
        print(f"   Total: ${invoice.get('total', 0):,.2f}")
        print(f"   Confidence: {invoice.get('confidence')}")
        if invoice.get("high_fees"):
            print("   WARNING: fees are unusually high for the rental amount")
        if data.get("market_savings") is not None:
            print(f"   Estimated overpayment vs market: ${data['market_savings']:,.2f}")

        dest_path = self.processed_folder / file_path.name
        file_path.rename(dest_path)
        print(f"\nMoved to: {dest_path}")

        self.log_processing(file_path.name, "parsed", data, dest_path)
        print("=" * 70)

    def handle_error(self, file_path: Path, error_msg: str):
        """Handle processing error"""
        print(f"\nProcessing failed: {error_msg}")

        # Move to failed folder for manual review
        dest_path = self.failed_folder / file_path.name
        file_path.rename(dest_path)
        print(f"Moved to: {dest_path}")

        self.log_processing(file_path.name, "failed", {"error": error_msg}, dest_path)
        print("=" * 70)

    def log_processing(self, filename: str, status: str, data: dict, dest_path: Path):
        """Append a processing result to the JSON log"""
        log_file = self.watch_folder.parent / "processing_log.json"

        # Load existing log
        if log_file.exists():
            with open(log_file, "r") as f:
                log_data = json.load(f)
        else:
            log_data = []

        log_data.append({
            "timestamp": datetime.now().isoformat(),
            "filename": filename,
            "status": status,
            "invoice_id": data.get("invoice_id"),
            "invoice_data": data.get("data"),
            "market_savings": data.get("market_savings"),
            "error": data.get("error"),
            "destination": str(dest_path),
        })

        with open(log_file, "w") as f:
            json.dump(log_data, f, indent=2)


def main():
    parser = argparse.ArgumentParser(
        description="Watch a folder for invoice images and parse them automatically"
    )
    parser.add_argument(
        "--watch-folder",
        default="./invoices-incoming",
        help="Folder to watch for new invoices (default: ./invoices-incoming)"
    )
    parser.add_argument(
        "--processed-folder",
        default="./invoices-processed",
        help="Folder for parsed invoices (default: ./invoices-processed)"
    )
    parser.add_argument(
        "--failed-folder",
        default="./invoices-failed",
        help="Folder for invoices that failed to parse (default: ./invoices-failed)"
    )
    parser.add_argument(
        "--no-compare",
        action="store_true",
        help="Skip the market-rate comparison"
    )
    parser.add_argument(
        "--api-url",
        default=API_BASE_URL,
        help=f"API base URL (default: {API_BASE_URL})"
    )

    args = parser.parse_args()

    # Create watch folder
    watch_folder = Path(args.watch_folder)
    watch_folder.mkdir(parents=True, exist_ok=True)

    # Set up file watcher
    event_handler = InvoiceHandler(
        args.watch_folder,
        args.processed_folder,
        args.failed_folder,
        api_url=args.api_url,
        compare=not args.no_compare,
    )
    observer = Observer()
    observer.schedule(event_handler, str(watch_folder), recursive=False)
    observer.start()

    print("=" * 70)
    print("INVOICE WATCHER - AUTOMATIC PARSING")
    print("=" * 70)
    print(f"Watching: {watch_folder.absolute()}")
    print(f"Parsed -> {Path(args.processed_folder).absolute()}")
    print(f"Failed -> {Path(args.failed_folder).absolute()}")
    print(f"API: {args.api_url}")
    print()
    print("Drop invoice images (png, jpg, webp, gif) into the watch folder")
    print("Press Ctrl+C to stop")
    print("=" * 70)
    print()

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        print("\n\nStopping watcher...")
        observer.stop()

    observer.join()
    print("Watcher stopped")


if __name__ == "__main__":
    main()
