import threading
import time

import pytest

from stampa_printer.errors import InvalidAddress, StatusTimeout, TransportError
from stampa_printer.print_queue import PrintQueue
from stampa_printer.transport import STATUS_OK, STATUS_PAPER_LOW, STATUS_PAPER_OUT


def test_safe_print_sends_when_ready(print_queue, device, notices):
    assert print_queue.safe_print("kitchen", "10.0.0.5", 9100, "ciao") is True
    assert device.sent == [("10.0.0.5", 9100, "ciao")]
    assert len(print_queue) == 0
    assert notices == []


def test_safe_print_sends_when_paper_low(print_queue, device):
    device.status = STATUS_PAPER_LOW
    assert print_queue.safe_print("kitchen", "10.0.0.5", "9100", "ciao") is True
    assert device.sent == [("10.0.0.5", 9100, "ciao")]


@pytest.mark.parametrize("status", [STATUS_PAPER_OUT, StatusTimeout("no answer"), TransportError("refused")])
def test_safe_print_queues_when_not_ready(print_queue, device, notices, status):
    device.status = status
    assert print_queue.safe_print("kitchen", "10.0.0.5", 9100, "ciao") is False
    assert device.sent == []

    [job] = print_queue.jobs
    assert (job.printer_id, job.ip, job.port, job.payload) == ("kitchen", "10.0.0.5", 9100, "ciao")
    assert job.attempts == 0
    assert len(notices) == 1


def test_safe_print_queues_when_send_fails(print_queue, device):
    device.fail_send = True
    assert print_queue.safe_print("kitchen", "10.0.0.5", 9100, "ciao") is False
    assert len(print_queue) == 1


def test_safe_print_rejects_invalid_address(print_queue, device):
    with pytest.raises(InvalidAddress):
        print_queue.safe_print("kitchen", "10.0.0.5", 0, "ciao")
    assert device.status_calls == []
    assert len(print_queue) == 0


def test_enqueue_rejects_invalid_address(print_queue):
    with pytest.raises(InvalidAddress):
        print_queue.enqueue("kitchen", "", 9100, "ciao")
    assert len(print_queue) == 0


def test_job_ids_increase(print_queue):
    first = print_queue.enqueue("a", "10.0.0.5", 9100, "1")
    second = print_queue.enqueue("b", "10.0.0.6", 9100, "2")
    assert second.id > first.id
    assert [job.id for job in print_queue.jobs] == [first.id, second.id]


def test_sweep_delivers_once_printer_recovers(print_queue, device):
    device.status = STATUS_PAPER_OUT
    print_queue.safe_print("cash", "10.0.0.9", 9100, "scontrino")

    print_queue.sweep()
    assert len(print_queue) == 1
    assert print_queue.jobs[0].attempts == 0

    device.status = STATUS_OK
    print_queue.sweep()
    assert len(print_queue) == 0
    assert device.sent == [("10.0.0.9", 9100, "scontrino")]


def test_sweep_checks_status_once_per_printer(print_queue, device):
    for payload in ("1", "2", "3"):
        print_queue.enqueue("kitchen", "10.0.0.5", 9100, payload)
    print_queue.enqueue("bar", "10.0.0.6", 9100, "4")

    print_queue.sweep()
    assert sorted(device.status_calls) == [("10.0.0.5", 9100), ("10.0.0.6", 9100)]
    assert [payload for _, _, payload in device.sent] == ["1", "2", "3", "4"]
    assert len(print_queue) == 0


def test_sweep_keeps_jobs_that_fail_to_send(print_queue, device):
    job = print_queue.enqueue("kitchen", "10.0.0.5", 9100, "ciao")
    device.fail_send = True
    print_queue.sweep()
    print_queue.sweep()
    assert print_queue.jobs == [job]
    assert job.attempts == 2


def test_sweep_skips_printer_whose_status_fails(print_queue, device):
    print_queue.enqueue("kitchen", "10.0.0.5", 9100, "ciao")
    device.status = StatusTimeout("no answer")
    print_queue.sweep()
    assert len(print_queue) == 1
    assert device.sent == []


class BlockingDevice:
    """Status query that waits until released."""

    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()
        self.status_calls = 0
        self.sent = []

    def query_status(self, ip, port):
        self.status_calls += 1
        self.entered.set()
        assert self.release.wait(5)
        return STATUS_OK

    def send(self, ip, port, payload):
        self.sent.append(payload)


def test_sweep_is_not_reentrant_and_keeps_new_jobs():
    device = BlockingDevice()
    queue = PrintQueue(interval=3600, send=device.send, query_status=device.query_status, notify=lambda *a: None)
    queue.enqueue("kitchen", "10.0.0.5", 9100, "old")

    worker = threading.Thread(target=queue.sweep)
    worker.start()
    assert device.entered.wait(5)

    # second pass while the first one is running does nothing
    queue.sweep()
    assert device.status_calls == 1

    late = queue.enqueue("kitchen", "10.0.0.5", 9100, "new")
    device.release.set()
    worker.join(5)

    assert device.sent == ["old"]
    assert queue.jobs == [late]


def test_run_loop_sweeps_until_stopped(device):
    queue = PrintQueue(interval=0.05, send=device.send, query_status=device.query_status, notify=lambda *a: None)
    queue.enqueue("kitchen", "10.0.0.5", 9100, "ciao")
    queue.start()
    try:
        deadline = time.time() + 5
        while len(queue) and time.time() < deadline:
            time.sleep(0.02)
        assert len(queue) == 0
        assert device.sent == [("10.0.0.5", 9100, "ciao")]
    finally:
        queue.stop()
        queue.join(2)
    assert not queue.is_alive()
