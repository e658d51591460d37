"""In-memory retry queue for print jobs that could not be delivered.

Jobs are only added by ``enqueue``/``safe_print`` and only removed by the
periodic sweep, which runs on the queue's own thread. Nothing is persisted:
pending jobs are lost when the process exits.
"""

import itertools
import logging
import threading
import time

from . import config, transport
from .errors import PrinterError
from .notify import notify_in_background
from .transport import READY_STATUSES, validate_address


class PrintJob:
    """A payload waiting to be delivered to one printer."""

    def __init__(self, id, printer_id, ip, port, payload):
        self.id = id
        self.printer_id = printer_id
        self.ip = ip
        self.port = port
        self.payload = payload
        self.enqueued_at = time.time()
        self.attempts = 0

    def __repr__(self):
        return f"<PrintJob {self.id} printer={self.printer_id} attempts={self.attempts}>"


class PrintQueue(threading.Thread):
    """Background thread re-attempting queued print jobs.

    Every ``interval`` seconds the pending jobs are grouped by printer; each
    printer's status is checked once and, if it can print, its jobs are sent.
    Delivered jobs are dropped, everything else stays queued for the next
    sweep. There is no attempt limit.

    Args:
        interval (float): Seconds between sweeps (default QUEUE_INTERVAL)
        send (callable): send(ip, port, payload), default transport.send_to_printer
        query_status (callable): query_status(ip, port), default transport.query_status
        notify (callable): notify(title, message) called when a job is queued
    """

    def __init__(self, interval=None, send=None, query_status=None, notify=None):
        super().__init__(daemon=True, name="PrintQueue")
        self.interval = interval or config.QUEUE_INTERVAL
        self._send = send or transport.send_to_printer
        self._query_status = query_status or transport.query_status
        self._notify = notify or notify_in_background
        self._jobs = []
        self._jobs_lock = threading.Lock()
        self._sweep_lock = threading.Lock()
        self._ids = itertools.count(1)
        self._stop_event = threading.Event()

    @property
    def jobs(self):
        """Snapshot of the pending jobs, oldest first."""
        with self._jobs_lock:
            return list(self._jobs)

    def __len__(self):
        with self._jobs_lock:
            return len(self._jobs)

    def run(self):
        """Sweep loop - runs until stop() is called."""
        logging.info("Print queue started (interval: %ss)", self.interval)
        while not self._stop_event.wait(self.interval):
            try:
                self.sweep()
            except Exception:
                logging.exception("Print queue sweep error")

    def stop(self):
        """Stop the sweep thread."""
        self._stop_event.set()

    def enqueue(self, printer_id, ip, port, payload):
        """Queue a payload for later delivery.

        Returns:
            PrintJob: The queued job

        Raises:
            InvalidAddress: Malformed ip/port; nothing is queued
        """
        ip, port = validate_address(ip, port)
        job = PrintJob(next(self._ids), printer_id, ip, port, payload)
        with self._jobs_lock:
            self._jobs.append(job)
            size = len(self._jobs)
        logging.info("Job %s added for printer %s (%s:%s). Queue size: %d", job.id, printer_id, ip, port, size)
        self._notify("Print job queued", f"Printer {printer_id} ({ip}:{port}) unavailable, job {job.id} queued")
        return job

    def safe_print(self, printer_id, ip, port, payload):
        """Print now if the printer is ready, otherwise queue the job.

        Transport and status failures are never raised: the job is queued
        instead.

        Returns:
            bool: True if printed immediately, False if queued

        Raises:
            InvalidAddress: Malformed ip/port
        """
        ip, port = validate_address(ip, port)
        try:
            status = self._query_status(ip, port)
        except PrinterError as e:
            logging.error("Status check failed for %s, adding to queue: %s", printer_id, e)
            self.enqueue(printer_id, ip, port, payload)
            return False

        if status not in READY_STATUSES:
            logging.warning("Printer %s status '%s', adding to queue", printer_id, status)
            self.enqueue(printer_id, ip, port, payload)
            return False

        try:
            self._send(ip, port, payload)
        except PrinterError as e:
            logging.error("Print failed for %s, adding to queue: %s", printer_id, e)
            self.enqueue(printer_id, ip, port, payload)
            return False

        logging.info("Printed successfully to %s", printer_id)
        return True

    def sweep(self):
        """Run one retry pass; a no-op while another pass is running."""
        if not self._sweep_lock.acquire(blocking=False):
            logging.debug("Print queue sweep already running, skipping")
            return
        try:
            self._sweep()
        finally:
            self._sweep_lock.release()

    def _sweep(self):
        pending = self.jobs
        if not pending:
            return
        logging.info("Processing print queue. Jobs pending: %d", len(pending))

        by_printer = {}
        for job in pending:
            by_printer.setdefault(job.printer_id, []).append(job)

        delivered = set()
        for printer_id, jobs in by_printer.items():
            # ip/port of one printer do not change while its jobs wait
            ip, port = jobs[0].ip, jobs[0].port
            try:
                status = self._query_status(ip, port)
            except PrinterError as e:
                logging.error("Error checking status for printer %s: %s", printer_id, e)
                continue
            logging.info("Printer %s status: %s", printer_id, status)

            if status not in READY_STATUSES:
                logging.info("Printer %s not ready, keeping %d job(s) in queue", printer_id, len(jobs))
                continue

            for job in jobs:
                job.attempts += 1
                try:
                    self._send(job.ip, job.port, job.payload)
                except PrinterError as e:
                    logging.error("Failed to print job %s despite %s status: %s", job.id, status, e)
                    continue
                delivered.add(job.id)
                logging.info("Job %s printed successfully", job.id)

        if delivered:
            # jobs queued while the sweep was running are kept
            with self._jobs_lock:
                self._jobs = [job for job in self._jobs if job.id not in delivered]
