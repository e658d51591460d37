import queue
import socket
import threading

import pytest

from stampa_printer import config
from stampa_printer.encoder import STATUS_QUERY_PAPER
from stampa_printer.errors import TransportError
from stampa_printer.print_queue import PrintQueue
from stampa_printer.transport import STATUS_OK


class FakePrinter(threading.Thread):
    """Local TCP server behaving like a raw port-9100 printer.

    status_reply: bytes sent back to a status query; None holds the
    connection open without answering, b"" closes it without answering.
    """

    def __init__(self, status_reply=b"\x12"):
        super().__init__(daemon=True)
        self.status_reply = status_reply
        self.connections = queue.Queue()
        self._stop_event = threading.Event()
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.listen(5)
        self.sock.settimeout(0.1)
        self.port = self.sock.getsockname()[1]

    def run(self):
        while not self._stop_event.is_set():
            try:
                conn, _ = self.sock.accept()
            except socket.timeout:
                continue
            except OSError:
                break
            with conn:
                conn.settimeout(5)
                self.connections.put(self._serve(conn))

    def _serve(self, conn):
        data = b""
        try:
            while True:
                chunk = conn.recv(4096)
                if not chunk:
                    break
                data += chunk
                if data == STATUS_QUERY_PAPER:
                    if self.status_reply is None:
                        conn.recv(1)
                    elif self.status_reply:
                        conn.sendall(self.status_reply)
                    break
        except OSError:
            pass
        return data

    def stop(self):
        self._stop_event.set()
        self.sock.close()
        self.join(timeout=2)


@pytest.fixture
def fake_printer():
    printers = []

    def start(status_reply=b"\x12"):
        printer = FakePrinter(status_reply)
        printer.start()
        printers.append(printer)
        return printer

    yield start
    for printer in printers:
        printer.stop()


@pytest.fixture
def closed_port():
    """A local port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class FakeDevice:
    """Stands in for the transport: scripted status, recorded sends."""

    def __init__(self, status=STATUS_OK, fail_send=False):
        self.status = status
        self.fail_send = fail_send
        self.sent = []
        self.status_calls = []

    def query_status(self, ip, port):
        self.status_calls.append((ip, port))
        if isinstance(self.status, Exception):
            raise self.status
        return self.status

    def send(self, ip, port, payload):
        if self.fail_send:
            raise TransportError("connection reset")
        self.sent.append((ip, port, payload))


@pytest.fixture
def device():
    return FakeDevice()


@pytest.fixture
def notices():
    return []


@pytest.fixture
def print_queue(device, notices):
    return PrintQueue(
        interval=3600,
        send=device.send,
        query_status=device.query_status,
        notify=lambda title, message: notices.append((title, message)),
    )


@pytest.fixture(autouse=True)
def receipt_defaults(monkeypatch):
    monkeypatch.setattr(config, "RECEIPT_WIDTH", 48)
    monkeypatch.setattr(config, "RECEIPT_TIMEZONE", "")
    monkeypatch.setattr(config, "ERROR_NTFY_URL", None)
