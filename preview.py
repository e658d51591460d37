#!/usr/bin/env python3
"""
Receipt Preview Tool - Test receipt layout without a physical printer.

Usage:
    python3 preview.py order.json
    python3 preview.py order.json --progress 12
    python3 preview.py order.json --file cash.bin   # also write the ESC/POS bytes
    python3 preview.py --logo assets/logo.png        # rasterize an image and report its size
"""

import argparse
import json
import sys

from stampa_printer import config
from stampa_printer.dispatcher import order_lines
from stampa_printer.encoder import encode_payload
from stampa_printer.layout import build_cash_receipt, build_kitchen_receipt, render_text
from stampa_printer.models import ReceiptContext
from stampa_printer.raster import rasterize


def preview_order(order, progress=1, payload_file=None):
    """Print every receipt of an order to the console."""
    context = ReceiptContext.from_order(order)
    kitchen, cash_lines = order_lines(order)

    for printer_id, lines in kitchen.items():
        print(f"\n=== Kitchen printer {printer_id} ===")
        print(render_text(build_kitchen_receipt(context, lines, progress)))

    segments = build_cash_receipt(context, cash_lines)
    print("\n=== Cash receipt ===")
    print(render_text(segments))

    if payload_file:
        payload = encode_payload(segments)
        with open(payload_file, "wb") as f:
            f.write(payload)
        print(f"💾 Wrote {len(payload)} bytes to {payload_file}")


def preview_logo(path, inline_text=None):
    block = rasterize(path, inline_text=inline_text)
    if not block:
        print(f"❌ Could not rasterize {path}")
        return 1
    width_bytes = block[4] + 256 * block[5]
    height = block[6] + 256 * block[7]
    print(f"🖼  {path}: {width_bytes * 8}x{height} dots, {len(block)} bytes")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Preview receipts on the console")
    parser.add_argument("order", nargs="?", help="order JSON file ('-' for stdin)")
    parser.add_argument("--progress", type=int, default=1, help="progress number for kitchen receipts")
    parser.add_argument("--file", "-f", help="write the encoded cash receipt to this file")
    parser.add_argument("--logo", help="rasterize an image instead of previewing an order")
    parser.add_argument("--text", help="inline text next to the --logo image")
    args = parser.parse_args()

    if args.logo:
        sys.exit(preview_logo(args.logo, args.text))

    if not args.order:
        parser.error("an order file is required")

    if args.order == "-":
        order = json.load(sys.stdin)
    else:
        with open(args.order, encoding="utf-8") as f:
            order = json.load(f)

    print(f"Paper: {config.PAPER_WIDTH_MM}mm, {config.RECEIPT_WIDTH} columns")
    preview_order(order, progress=args.progress, payload_file=args.file)


if __name__ == "__main__":
    main()
