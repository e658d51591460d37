"""Operator notifications posted to an ntfy topic."""

import logging
import socket
import threading

import requests

from . import config


def send_error_notification(ntfy_url, title, message):
    """Send error notification to ntfy topic using native format."""
    if not ntfy_url:
        return
    try:
        hostname = socket.gethostname()
        headers = {
            "Title": f"{title} on {hostname}",
            "Tags": "printer,warning",
            "Priority": "high",
        }
        requests.post(ntfy_url, data=message.encode("utf-8"), headers=headers, timeout=5)
    except requests.RequestException as e:
        logging.error("Failed to send error notification: %s", e)


def notify_in_background(title, message, ntfy_url=None):
    """Fire-and-forget notification; returns immediately."""
    ntfy_url = ntfy_url or config.ERROR_NTFY_URL
    if not ntfy_url:
        return None
    thread = threading.Thread(
        target=send_error_notification,
        args=(ntfy_url, title, message),
        daemon=True,
        name="ErrorNotifier",
    )
    thread.start()
    return thread
