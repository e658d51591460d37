"""Exceptions raised by the printing pipeline."""


class PrinterError(Exception):
    """Base class for every printing failure."""


class InvalidAddress(PrinterError, ValueError):
    """Printer ip/port is malformed. Rejected before any network call."""

    def __init__(self, ip, port):
        super().__init__(f'Invalid printer address ip="{ip}" port="{port}"')
        self.ip = ip
        self.port = port


class TransportError(PrinterError):
    """Connection or write to the printer failed."""


class StatusTimeout(TransportError):
    """Printer did not answer the status query in time."""


class ImageLoadError(PrinterError):
    """An image asset could not be loaded or decoded."""
