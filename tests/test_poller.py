"""
Conversion Poller Tests
=======================
Polling until a terminal state, failure handling and race-free cancellation.
"""

import asyncio
import threading

import pytest

from conftest import FakeGateway
from pdf2word.conversion import ConversionStatus, ErrorCode, TransportError
from pdf2word.conversion.poller import ConversionPoller, PollerState


class Recorder:
    def __init__(self):
        self.updates = []
        self.errors = []

    def on_update(self, job):
        self.updates.append(job.status)

    def on_error(self, error):
        self.errors.append(error)


async def settle(seconds=0.05):
    await asyncio.sleep(seconds)


class TestPolling:
    @pytest.mark.asyncio
    async def test_updates_in_order_until_completed(self):
        gateway = FakeGateway(["PENDING", "PENDING", "PROCESSING", "COMPLETED"])
        poller = ConversionPoller(gateway, interval=0)
        rec = Recorder()

        poller.start("job-1", rec.on_update, rec.on_error)
        await asyncio.wait_for(poller.wait(), 2)
        await settle()

        assert rec.updates == ["PENDING", "PENDING", "PROCESSING", "COMPLETED"]
        assert gateway.calls["get"] == 4
        assert rec.errors == []
        assert poller.state == PollerState.STOPPED

    @pytest.mark.asyncio
    async def test_failed_job_is_terminal(self):
        gateway = FakeGateway(["PROCESSING", "FAILED"])
        poller = ConversionPoller(gateway, interval=0)
        rec = Recorder()

        poller.start("job-1", rec.on_update, rec.on_error)
        await asyncio.wait_for(poller.wait(), 2)
        await settle()

        assert rec.updates == ["PROCESSING", "FAILED"]
        assert gateway.calls["get"] == 2

    @pytest.mark.asyncio
    async def test_transport_error_stops_without_retry(self):
        gateway = FakeGateway(["PENDING", TransportError("connection reset", code="connection_error"), "COMPLETED"])
        poller = ConversionPoller(gateway, interval=0)
        rec = Recorder()

        poller.start("job-1", rec.on_update, rec.on_error)
        await asyncio.wait_for(poller.wait(), 2)
        await settle()

        assert rec.updates == ["PENDING"]
        assert [e.code for e in rec.errors] == [ErrorCode.NETWORK_ERROR]
        assert gateway.calls["get"] == 2
        assert poller.state == PollerState.STOPPED

    @pytest.mark.asyncio
    async def test_delayed_start_waits_for_interval(self):
        gateway = FakeGateway(["COMPLETED"])
        poller = ConversionPoller(gateway, interval=0.2)
        rec = Recorder()

        poller.start("job-1", rec.on_update, rec.on_error, immediate=False)
        await settle()
        assert gateway.calls["get"] == 0
        await asyncio.wait_for(poller.wait(), 2)
        assert rec.updates == ["COMPLETED"]


class TestStop:
    @pytest.mark.asyncio
    async def test_stop_when_idle_is_noop(self):
        poller = ConversionPoller(FakeGateway(), interval=0)
        poller.stop()
        poller.stop()
        assert poller.state == PollerState.IDLE

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self):
        poller = ConversionPoller(FakeGateway(["PENDING"]), interval=10)
        rec = Recorder()
        poller.start("job-1", rec.on_update, rec.on_error, immediate=False)
        poller.stop()
        generation = poller.generation
        poller.stop()
        assert poller.state == PollerState.STOPPED
        assert poller.generation == generation

    @pytest.mark.asyncio
    async def test_stop_cancels_scheduled_fetch(self):
        gateway = FakeGateway(["PENDING"])
        poller = ConversionPoller(gateway, interval=0.05)
        rec = Recorder()

        poller.start("job-1", rec.on_update, rec.on_error, immediate=False)
        poller.stop()
        await settle(0.2)

        assert gateway.calls["get"] == 0
        assert rec.updates == []

    @pytest.mark.asyncio
    async def test_stop_discards_in_flight_result(self):
        entered = threading.Event()
        release = threading.Event()

        class Blocking(FakeGateway):
            def get_conversion(self, conversion_id):
                entered.set()
                release.wait(5)
                return super().get_conversion(conversion_id)

        gateway = Blocking(["PROCESSING"])
        poller = ConversionPoller(gateway, interval=0)
        rec = Recorder()

        poller.start("job-1", rec.on_update, rec.on_error)
        assert await asyncio.to_thread(entered.wait, 5)
        poller.stop()
        release.set()
        await settle(0.1)

        assert rec.updates == []
        assert rec.errors == []
        assert gateway.calls["get"] == 1

    @pytest.mark.asyncio
    async def test_stop_discards_in_flight_failure(self):
        entered = threading.Event()
        release = threading.Event()

        class Blocking(FakeGateway):
            def get_conversion(self, conversion_id):
                entered.set()
                release.wait(5)
                raise TransportError("connection reset")

        poller = ConversionPoller(Blocking(), interval=0)
        rec = Recorder()

        poller.start("job-1", rec.on_update, rec.on_error)
        assert await asyncio.to_thread(entered.wait, 5)
        poller.stop()
        release.set()
        await settle(0.1)

        assert rec.errors == []

    @pytest.mark.asyncio
    async def test_stop_from_update_callback_halts_loop(self):
        gateway = FakeGateway(["PENDING", "PROCESSING", "COMPLETED"])
        poller = ConversionPoller(gateway, interval=0)
        seen = []

        def on_update(job):
            seen.append(job.status)
            poller.stop()

        poller.start("job-1", on_update, lambda e: None)
        await asyncio.wait_for(poller.wait(), 2)
        await settle()

        assert seen == ["PENDING"]
        assert gateway.calls["get"] == 1


class TestRestart:
    @pytest.mark.asyncio
    async def test_start_while_running_is_rejected(self):
        poller = ConversionPoller(FakeGateway(["PENDING"]), interval=10)
        poller.start("job-1", lambda j: None, lambda e: None, immediate=False)
        with pytest.raises(RuntimeError):
            poller.start("job-1", lambda j: None, lambda e: None)
        poller.stop()

    @pytest.mark.asyncio
    async def test_restart_after_stop_uses_new_generation(self):
        gateway = FakeGateway([ConversionStatus.COMPLETED])
        poller = ConversionPoller(gateway, interval=0)
        rec = Recorder()

        first = poller.start("job-1", rec.on_update, rec.on_error, immediate=False)
        poller.stop()
        second = poller.start("job-1", rec.on_update, rec.on_error)
        await asyncio.wait_for(poller.wait(), 2)

        assert second > first
        assert rec.updates == ["COMPLETED"]


class TestHandlerFailure:
    @pytest.mark.asyncio
    async def test_raising_update_handler_stops_loop(self, caplog):
        gateway = FakeGateway(["PENDING", "COMPLETED"])
        poller = ConversionPoller(gateway, interval=0)

        def on_update(job):
            raise ValueError("listener broke")

        poller.start("job-1", on_update, lambda e: None)
        await asyncio.wait_for(poller.wait(), 2)
        await settle()

        assert poller.state == PollerState.STOPPED
        assert gateway.calls["get"] == 1
        assert any(r.levelname == "ERROR" and r.name == "pdf2word.conversion.poller" for r in caplog.records)

    @pytest.mark.asyncio
    async def test_raising_handler_on_terminal_job_still_finishes(self):
        poller = ConversionPoller(FakeGateway(["COMPLETED"]), interval=0)

        def on_update(job):
            raise ValueError("listener broke")

        poller.start("job-1", on_update, lambda e: None)
        await asyncio.wait_for(poller.wait(), 2)

        assert poller.state == PollerState.STOPPED
