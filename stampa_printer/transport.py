"""Raw TCP delivery to network printers.

Each call opens its own connection (port 9100 style raw printing); nothing
is pooled or kept open between calls.
"""

import logging
import socket

from . import config
from .encoder import STATUS_QUERY_PAPER, encode_payload
from .errors import InvalidAddress, StatusTimeout, TransportError
from .helpers import parse_port, trim_str

# Status strings reported by query_status
STATUS_OK = "OK"
STATUS_PAPER_LOW = "CARTA_QUASI_FINITA"
STATUS_PAPER_OUT = "CARTA_FINITA"

# Bits of the DLE EOT 4 (paper roll sensor) response byte
PAPER_OUT_MASK = 0b01100000  # bits 5-6
PAPER_LOW_MASK = 0b00001100  # bits 2-3

READY_STATUSES = (STATUS_OK, STATUS_PAPER_LOW)


def validate_address(ip, port):
    """Normalize a printer address.

    Returns:
        tuple: (ip, port) with ip trimmed and port as int

    Raises:
        InvalidAddress: ip is blank or port is not in 1-65535
    """
    ip_clean = trim_str(ip)
    port_clean = parse_port(port)
    if not ip_clean or not 0 < port_clean <= 65535:
        raise InvalidAddress(ip, port)
    return ip_clean, port_clean


def classify_status(status_byte):
    """Map a paper sensor status byte to a status string."""
    if status_byte & PAPER_OUT_MASK == PAPER_OUT_MASK:
        return STATUS_PAPER_OUT
    if status_byte & PAPER_LOW_MASK == PAPER_LOW_MASK:
        return STATUS_PAPER_LOW
    return STATUS_OK


def send_to_printer(ip, port, data):
    """Deliver a payload to a printer over TCP.

    Args:
        ip (str): Printer IP/hostname
        port (int): Printer port
        data: Segment list, str or bytes; encoded with encode_payload

    Raises:
        InvalidAddress: Malformed ip/port (no connection attempted)
        TransportError: Connection or write failure
    """
    ip, port = validate_address(ip, port)
    payload = encode_payload(data)

    try:
        with socket.create_connection((ip, port), timeout=config.SEND_TIMEOUT) as conn:
            conn.sendall(payload)
            conn.shutdown(socket.SHUT_WR)
    except OSError as e:
        raise TransportError(f"Send to {ip}:{port} failed: {e}") from e
    logging.debug("Sent %d bytes to %s:%s", len(payload), ip, port)


def query_status(ip, port, timeout=None):
    """Ask a printer for its paper status.

    Args:
        ip (str): Printer IP/hostname
        port (int): Printer port
        timeout (float): Seconds to wait for connection and answer
            (default STATUS_TIMEOUT)

    Returns:
        str: STATUS_OK, STATUS_PAPER_LOW or STATUS_PAPER_OUT

    Raises:
        InvalidAddress: Malformed ip/port
        StatusTimeout: No answer within the timeout
        TransportError: Connection failure or connection closed without answer
    """
    ip, port = validate_address(ip, port)
    timeout = config.STATUS_TIMEOUT if timeout is None else timeout

    try:
        with socket.create_connection((ip, port), timeout=timeout) as conn:
            conn.sendall(STATUS_QUERY_PAPER)
            response = conn.recv(16)
    except socket.timeout as e:
        raise StatusTimeout(f"Status query to {ip}:{port} timed out after {timeout}s") from e
    except OSError as e:
        raise TransportError(f"Status query to {ip}:{port} failed: {e}") from e

    if not response:
        raise TransportError(f"Printer {ip}:{port} closed the connection without a status")
    return classify_status(response[0])
