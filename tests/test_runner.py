"""
==============================================================================
Scan Runner and Service Tests
==============================================================================

Tests for cadence-driven sessions, timeouts, outer cancellation and
camera exclusivity.

==============================================================================
"""

import asyncio

import pytest

from productscan.config import Settings
from productscan.core.exceptions import ScanAbandonedError
from productscan.scanner import ScanRunner, ScanSession, ScanState
from productscan.services import ScanService
from productscan.services import scan_service as scan_service_module


@pytest.fixture
def echo_service(monkeypatch, fast_settings: Settings, echo_locator) -> ScanService:
    """Scan service whose sessions read scripted frames."""
    monkeypatch.setattr(scan_service_module, "PyzbarLocator", lambda symbologies: echo_locator)
    return ScanService(fast_settings)


@pytest.fixture
def blocking_service(monkeypatch, fast_settings: Settings, blocking_locator) -> ScanService:
    """Scan service whose locator holds each decode until released."""
    monkeypatch.setattr(scan_service_module, "PyzbarLocator", lambda symbologies: blocking_locator)
    return ScanService(fast_settings)


class TestScanRunner:
    """Tests for ScanRunner."""

    def test_rejects_non_positive_interval(self):
        """Test the cadence must be positive."""
        with pytest.raises(ValueError):
            ScanRunner(interval=0)

    def test_run_until_success(self, make_source, echo_locator, malformed_payload, valid_payload):
        """Test the runner ticks until the session resolves."""
        source = make_source([None, malformed_payload, valid_payload])
        session = ScanSession(source, echo_locator)

        outcome = asyncio.run(ScanRunner(interval=0.01).run(session))

        assert outcome.succeeded
        assert outcome.record.code == "M16X50AKB"
        assert outcome.ticks == 3
        assert source.closed == 1

    def test_timeout_abandons(self, make_source, echo_locator):
        """Test a session without a code is abandoned at the deadline."""
        source = make_source([None])
        session = ScanSession(source, echo_locator)

        outcome = asyncio.run(ScanRunner(interval=0.01).run(session, timeout=0.1))

        assert outcome.state is ScanState.FAILED
        assert isinstance(outcome.error, ScanAbandonedError)
        assert outcome.error.details["reason"] == "timeout"
        assert source.closed == 1

    def test_open_failure_resolves(self, make_source, echo_locator):
        """Test a device that cannot be opened ends the run."""
        source = make_source([None], fail_open=True)
        session = ScanSession(source, echo_locator)

        outcome = asyncio.run(ScanRunner(interval=0.01).run(session, timeout=5))

        assert outcome.failed
        assert outcome.error.code == "DEVICE_UNAVAILABLE"

    def test_outer_cancellation_releases_device(self, make_source, echo_locator):
        """Test cancelling the awaiting task cancels the session."""
        source = make_source([None])
        session = ScanSession(source, echo_locator)

        async def scenario():
            task = asyncio.create_task(ScanRunner(interval=0.01).run(session))
            await asyncio.sleep(0.1)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(scenario())

        assert session.outcome.cancelled
        assert source.closed == 1

    def test_outer_cancellation_waits_for_tick(self, make_source, blocking_locator, valid_payload):
        """Test cancellation mid-tick propagates only after the device is closed."""
        source = make_source([valid_payload])
        session = ScanSession(source, blocking_locator)

        async def scenario():
            task = asyncio.create_task(ScanRunner(interval=0.01).run(session))
            await asyncio.to_thread(blocking_locator.entered.wait, 5)
            task.cancel()
            await asyncio.sleep(0.1)

            assert not task.done()
            assert source.closed == 0

            blocking_locator.release.set()
            with pytest.raises(asyncio.CancelledError):
                await task
            return source.closed

        closed_when_cancelled = asyncio.run(scenario())

        assert closed_when_cancelled == 1
        assert session.outcome.cancelled
        assert session.outcome.record is None

    def test_slow_tick_skips_slots(self, make_source, blocking_locator):
        """Test slots that find a tick in flight are skipped."""
        source = make_source([""])
        session = ScanSession(source, blocking_locator)
        runner = ScanRunner(interval=0.01)

        async def scenario():
            task = asyncio.create_task(runner.run(session))
            await asyncio.to_thread(blocking_locator.entered.wait, 5)
            await asyncio.sleep(0.1)
            session.cancel()
            blocking_locator.release.set()
            return await task

        outcome = asyncio.run(scenario())

        assert outcome.cancelled
        assert runner.skipped_slots > 0
        assert blocking_locator.calls == 1
        assert source.closed == 1

    def test_run_blocking(self, make_source, echo_locator, valid_payload):
        """Test the inline loop for callers without an event loop."""
        source = make_source([None, valid_payload])
        session = ScanSession(source, echo_locator)

        outcome = ScanRunner(interval=0.01).run_blocking(session)

        assert outcome.succeeded
        assert source.closed == 1

    def test_run_blocking_timeout(self, make_source, echo_locator):
        """Test the inline loop honours its deadline."""
        session = ScanSession(make_source([None]), echo_locator)

        outcome = ScanRunner(interval=0.01).run_blocking(session, timeout=0.05)

        assert outcome.failed
        assert outcome.error.code == "SCAN_ABANDONED"


class TestScanService:
    """Tests for ScanService device coordination."""

    def test_camera_scan_with_source(self, echo_service: ScanService, make_source, valid_payload):
        """Test a camera scan returns the identified record."""
        source = make_source([None, valid_payload])

        outcome = asyncio.run(echo_service.camera_scan(camera_index=0, source=source))

        assert outcome.succeeded
        assert echo_service.active_devices() == []

    def test_new_scan_force_releases_device(self, echo_service: ScanService, make_source, valid_payload):
        """Test a second scan on the same camera cancels the first."""
        events = []
        first = make_source([None], events=events)
        first.name = "first"
        second = make_source([valid_payload], events=events)
        second.name = "second"

        async def scenario():
            first_task = asyncio.create_task(echo_service.camera_scan(camera_index=1, source=first))
            await asyncio.sleep(0.1)
            assert echo_service.active_devices() == [1]

            second_outcome = await echo_service.camera_scan(camera_index=1, source=second)
            return await first_task, second_outcome

        first_outcome, second_outcome = asyncio.run(scenario())

        assert first_outcome.cancelled
        assert second_outcome.succeeded
        assert events == ["open:first", "close:first", "open:second", "close:second"]

    def test_cancelled_scan_holds_camera_until_closed(
        self, blocking_service: ScanService, blocking_locator, make_source, valid_payload
    ):
        """Test a scan cancelled mid-decode keeps the camera until its tick ends."""
        events = []
        first = make_source([valid_payload], events=events)
        first.name = "first"
        second = make_source([valid_payload], events=events)
        second.name = "second"

        async def scenario():
            first_task = asyncio.create_task(blocking_service.camera_scan(camera_index=0, source=first))
            await asyncio.to_thread(blocking_locator.entered.wait, 5)

            first_task.cancel()
            second_task = asyncio.create_task(blocking_service.camera_scan(camera_index=0, source=second))
            await asyncio.sleep(0.1)

            assert events == ["open:first"]

            blocking_locator.release.set()
            second_outcome = await second_task
            with pytest.raises(asyncio.CancelledError):
                await first_task
            return second_outcome

        second_outcome = asyncio.run(scenario())

        assert second_outcome.succeeded
        assert events == ["open:first", "close:first", "open:second", "close:second"]
        assert blocking_service.active_devices() == []

    def test_different_cameras_do_not_interfere(self, echo_service: ScanService, make_source, valid_payload):
        """Test sessions on different cameras run side by side."""
        slow = make_source([None] * 5 + [valid_payload])
        fast = make_source([valid_payload])

        async def scenario():
            return await asyncio.gather(
                echo_service.camera_scan(camera_index=0, source=slow),
                echo_service.camera_scan(camera_index=1, source=fast),
            )

        outcomes = asyncio.run(scenario())

        assert all(o.succeeded for o in outcomes)

    def test_shutdown_cancels_active_sessions(self, echo_service: ScanService, make_source):
        """Test shutdown releases every held camera."""
        source = make_source([None])

        async def scenario():
            task = asyncio.create_task(echo_service.camera_scan(camera_index=0, source=source))
            await asyncio.sleep(0.1)
            await echo_service.shutdown()
            return await task

        outcome = asyncio.run(scenario())

        assert outcome.cancelled
        assert source.closed == 1

    def test_decode_payload_propagates_errors(self, scan_service: ScanService):
        """Test direct decoding surfaces malformed payloads."""
        from productscan.core.exceptions import MalformedPayloadError

        with pytest.raises(MalformedPayloadError):
            scan_service.decode_payload("not-valid-base64!!")

    def test_policy_from_settings(self):
        """Test configured limits reach new sessions."""
        service = ScanService(Settings(scan_max_ticks=10, scan_max_malformed=3))

        assert service.policy.max_ticks == 10
        assert service.policy.max_malformed == 3
