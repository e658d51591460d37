#!/usr/bin/env python3
"""Receipt printing service for restaurant orders.

Usage:
    python3 app.py                          # listen to the ntfy order topic
    python3 app.py --status 192.168.1.50:9100
    python3 app.py --example                # print an example order to the console
"""

import argparse
import json
import logging
import signal
import sys

from stampa_printer import config
from stampa_printer.dispatcher import PrinterDirectory, PrinterState, dispatch_order
from stampa_printer.errors import PrinterError
from stampa_printer.listener import listen
from stampa_printer.transport import query_status

config.setup()
STATE = None

EXAMPLE_ORDER = {
    "id": 1,
    "displayCode": "A12",
    "table": "7",
    "customer": "Rossi",
    "confirmedAt": "2026-05-01T20:15:00",
    "ticketNumber": 42,
    "paymentMethod": "CASH",
    "discount": "2,00",
    "orderItems": [
        {"id": "1", "quantity": 2, "notes": "senza cipolla", "unitPrice": "8,50",
         "food": {"name": "Pizza Margherita", "printerId": "pizzeria"}},
        {"id": "2", "quantity": 1, "unitPrice": 4.5, "unitSurcharge": "1.00",
         "food": {"name": "Tiramisù della casa", "printerId": "bar"}},
        {"id": "3", "quantity": 3, "unitPrice": "2,00", "food": {"name": "Acqua naturale"}},
    ],
}


def setup_logging():
    handlers = [logging.StreamHandler()]
    if config.LOG_FILE:
        try:
            handlers.append(logging.FileHandler(config.LOG_FILE))
        except OSError as e:
            print(f"Cannot open log file {config.LOG_FILE}: {e}", file=sys.stderr)
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
        handlers=handlers,
    )


def shutdown(signum, frame):
    logging.info("Shutting down (signal %s)", signum)
    config.STOP_EVENT.set()
    if STATE is not None:
        pending = len(STATE.queue)
        if pending:
            logging.warning("%d queued job(s) will be lost", pending)
        STATE.queue.stop()
        STATE.queue.join(timeout=2.0)
    sys.exit(0)


def load_directory(path):
    try:
        return PrinterDirectory.load(path)
    except FileNotFoundError:
        logging.warning("Printers file %s not found - receipts will be echoed to the console", path)
    except (OSError, json.JSONDecodeError) as e:
        logging.error("Cannot read printers file %s: %s", path, e)
    return PrinterDirectory()


def check_status(address):
    ip, _, port = address.rpartition(":")
    try:
        status = query_status(ip, port)
    except PrinterError as e:
        print(f"❌ {address}: {e}")
        return 1
    print(f"🟢 {address}: {status}")
    return 0


def main():
    global STATE
    parser = argparse.ArgumentParser(description="Restaurant receipt printer listening to an ntfy order topic")
    parser.add_argument("--host", default=config.DEFAULT_NTFY_HOST, help="ntfy host (including scheme)")
    parser.add_argument("--topic", default=config.DEFAULT_NTFY_TOPIC, help="ntfy topic name")
    parser.add_argument("--printers", default=config.PRINTERS_FILE, help="printers JSON file")
    parser.add_argument("--status", metavar="IP:PORT", help="query a printer's paper status and exit")
    parser.add_argument("--example", "-e", action="store_true", help="dispatch an example order with no printers")
    parser.add_argument("--server", action="store_true", help="running as a service (no console banner)")
    args = parser.parse_args()

    setup_logging()

    if args.status:
        sys.exit(check_status(args.status))

    if args.example:
        STATE = PrinterState()
        print(json.dumps(dispatch_order(EXAMPLE_ORDER, STATE, PrinterDirectory()), indent=2))
        sys.exit(0)

    if not args.host or not args.topic:
        logging.error("NTFY host/topic not provided. Set NTFY_HOST and NTFY_TOPIC in environment or pass --host/--topic.")
        sys.exit(2)

    ntfy_url = f"{args.host.rstrip('/')}/{args.topic}/json"
    directory = load_directory(args.printers)

    STATE = PrinterState()
    STATE.queue.start()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    listen(ntfy_url, STATE, directory, error_notifier=config.ERROR_NTFY_URL, server_mode=args.server)


if __name__ == "__main__":
    main()
