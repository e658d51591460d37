"""ntfy stream listener feeding incoming orders to the dispatcher."""

import json
import logging
import time

import requests

from . import config
from .dispatcher import dispatch_order
from .notify import send_error_notification


def handle_message(message, state, directory):
    """Decode one ntfy message body as an order and dispatch it.

    Returns:
        dict: Dispatch summary, or None if the message is not an order
    """
    try:
        order = json.loads(message)
    except json.JSONDecodeError:
        logging.warning("Received non-json order: %s", message[:200])
        return None
    try:
        summary = dispatch_order(order, state, directory)
    except ValueError as e:
        logging.warning("Ignoring message: %s", e)
        return None
    logging.info("Order %s dispatched: %s", order.get("id", "?"), summary)
    return summary


def listen(ntfy_url, state, directory, error_notifier=None, server_mode=False):
    """Connect to ntfy stream and print incoming orders.

    Args:
        ntfy_url (str): Full ntfy JSON stream URL (e.g., https://ntfy.sh/orders/json)
        state (PrinterState): Progress counters and retry queue
        directory (PrinterDirectory): Printer lookup
        error_notifier (str): ntfy URL for error notifications (optional)
        server_mode (bool): If True, running as systemd service
    """
    if not server_mode:
        print(f"👀 Listening for orders on {ntfy_url}")
        print("   Press Ctrl+C to stop\n")

    logging.info("Listening to %s (%d printers known)", ntfy_url, len(directory))
    if error_notifier:
        logging.info("Error notifications enabled to: %s", error_notifier)

    while not config.STOP_EVENT.is_set():
        try:
            with requests.get(ntfy_url, stream=True, timeout=None) as r:
                r.raise_for_status()
                for line in r.iter_lines(decode_unicode=True):
                    if config.STOP_EVENT.is_set():
                        break
                    if not line:
                        continue
                    try:
                        payload = json.loads(line)
                    except json.JSONDecodeError:
                        logging.warning("Received non-json line: %s", line)
                        continue
                    if not isinstance(payload, dict) or payload.get("event", "message") != "message":
                        continue
                    msg = payload.get("message", "")
                    if msg:
                        try:
                            handle_message(msg, state, directory)
                        except Exception as e:
                            logging.error("Error dispatching order: %s", e, exc_info=True)
                            send_error_notification(error_notifier, "Dispatch Error", f"Failed to dispatch order: {e}")
        except requests.RequestException as e:
            if config.STOP_EVENT.is_set():
                break
            logging.exception("Connection to ntfy failed - retrying in 5s")
            send_error_notification(error_notifier, "Connection Error", f"Failed to connect to ntfy: {e}")
            time.sleep(5)
