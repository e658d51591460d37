"""Order dispatch: from an order payload to receipts on the right printers.

Items are grouped by the kitchen printer of their food; each group gets a
kitchen receipt with the printer's running progress number. The whole order
also gets a cash receipt on the cash register printer. A receipt whose
printer cannot be resolved is echoed to the console instead of being lost.
"""

import json
import logging
import threading

from . import config
from .errors import InvalidAddress
from .helpers import trim_str
from .layout import build_cash_receipt, build_kitchen_receipt, render_text
from .models import PricedReceiptLine, PrinterTarget, ReceiptContext, ReceiptLine
from .print_queue import PrintQueue
from .raster import load_asset_image


class PrinterDirectory:
    """In-memory printer lookup, loaded once at startup.

    Args:
        printers (list[PrinterTarget]): Known printers
        cash_registers (dict): cash register id -> printer id
    """

    def __init__(self, printers=None, cash_registers=None):
        self._printers = {p.id: p for p in printers or []}
        self.cash_registers = {trim_str(k): trim_str(v) for k, v in (cash_registers or {}).items()}

    @classmethod
    def load(cls, path):
        """Load printers from a JSON file ({"printers": [...], "cashRegisters": {...}})."""
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        printers = [PrinterTarget.from_json(p) for p in data.get("printers", [])]
        return cls(printers, data.get("cashRegisters"))

    def __len__(self):
        return len(self._printers)

    def resolve(self, printer_id):
        return self._printers.get(trim_str(printer_id))

    def cash_printer_id(self, cash_register_id):
        return self.cash_registers.get(trim_str(cash_register_id), "")


class PrinterState:
    """Process-wide printing state: progress counters and the retry queue."""

    def __init__(self, queue=None):
        self.queue = queue if queue is not None else PrintQueue()
        self._progress = {}
        self._lock = threading.Lock()

    def next_progress(self, printer_id):
        """Return the progress number for a new kitchen receipt (starts at 1)."""
        with self._lock:
            value = self._progress.get(printer_id, 1)
            self._progress[printer_id] = value + 1
        return value


def echo_receipt(kind, printer_id, segments):
    """Console sink for receipts that cannot reach a printer."""
    logging.warning("NO PRINTER for %s printerId=%s", kind, printer_id or "-")
    print(render_text(segments))


def order_lines(order):
    """Split order items into kitchen groups and cash receipt lines.

    Returns:
        tuple: (dict printer_id -> list[ReceiptLine], list[PricedReceiptLine])
    """
    kitchen = {}
    cash = []
    for item in order["orderItems"]:
        if not isinstance(item, dict):
            logging.warning("Skipping malformed order item: %r", item)
            continue
        food = item.get("food")
        if not isinstance(food, dict):
            food = {}
        name = food.get("name") or item.get("foodName") or f"FOOD({item.get('id')})"
        quantity = item.get("quantity")
        notes = item.get("notes")

        printer_id = trim_str(food.get("printerId"))
        if printer_id:
            kitchen.setdefault(printer_id, []).append(ReceiptLine(name, quantity, notes))

        surcharge = item.get("unitSurcharge", item.get("surcharge"))
        cash.append(PricedReceiptLine(name, quantity, notes, item.get("unitPrice"), surcharge))
    return kitchen, cash


def deliver(state, directory, kind, printer_id, segments):
    """Send a receipt to a printer through the queue, or echo it.

    Returns:
        bool: True if printed immediately
    """
    target = directory.resolve(printer_id)
    if target is None:
        echo_receipt(kind, printer_id, segments)
        return False
    try:
        return state.queue.safe_print(printer_id, target.ip, target.port, segments)
    except InvalidAddress as e:
        logging.error("Printer %s rejected: %s", printer_id, e)
        echo_receipt(kind, printer_id, segments)
        return False


def _asset(name, **options):
    return load_asset_image(name, **options) if name else b""


def dispatch_order(order, state, directory, logo=None, footer=None):
    """Print kitchen and cash receipts for an order.

    Args:
        order (dict): Order payload with an ``orderItems`` list
        state (PrinterState): Progress counters and retry queue
        directory (PrinterDirectory): Printer lookup
        logo (bytes): Raster logo; loaded from the assets when None
        footer (bytes): Raster footer; loaded from the assets when None

    Returns:
        dict: {"ok", "kitchenPrinters", "cashPrinterId"}

    Raises:
        ValueError: Payload is not an order
    """
    if not isinstance(order, dict) or not isinstance(order.get("orderItems"), list):
        raise ValueError("Invalid payload: missing orderItems[]")

    context = ReceiptContext.from_order(order)
    kitchen, cash_lines = order_lines(order)

    for printer_id, lines in kitchen.items():
        progress = state.next_progress(printer_id)
        receipt = build_kitchen_receipt(context, lines, progress)
        deliver(state, directory, "kitchen", printer_id, receipt)

    if logo is None:
        logo = _asset(config.LOGO_FILE, exact_width=config.LOGO_WIDTH_PX)
    if footer is None:
        footer = _asset(config.FOOTER_FILE)
    receipt = build_cash_receipt(context, cash_lines, logo=logo, footer=footer)

    cash_printer_id = trim_str(order.get("cashPrinterId")) or directory.cash_printer_id(order.get("cashRegisterId"))
    if cash_printer_id:
        deliver(state, directory, "cash", cash_printer_id, receipt)
    else:
        logging.warning("NO cashRegister printerId found")
        echo_receipt("cash", "", receipt)

    return {
        "ok": True,
        "kitchenPrinters": list(kitchen),
        "cashPrinterId": cash_printer_id,
    }
