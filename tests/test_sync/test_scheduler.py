"""Tests for the periodic scan scheduler."""
from unittest.mock import AsyncMock, MagicMock

import pytest

from scoreboard.core import scheduler as scheduler_module
from scoreboard.core.scheduler import ScanScheduler, get_scheduler, start_scheduler, stop_scheduler
from scoreboard.services.sync.orchestrator import ScanResult


def make_orchestrator(busy: bool = False) -> MagicMock:
    orchestrator = MagicMock()
    orchestrator.busy = busy
    orchestrator.scan_all = AsyncMock(return_value=[ScanResult(kind="tables")])
    return orchestrator


class TestScanScheduler:

    @pytest.mark.asyncio
    async def test_disabled_when_interval_is_zero(self):
        scheduler = ScanScheduler(make_orchestrator(), interval_minutes=0)
        await scheduler.start()
        assert scheduler.running is False
        assert scheduler.scheduler is None

    @pytest.mark.asyncio
    async def test_start_registers_full_scan_job(self):
        scheduler = ScanScheduler(make_orchestrator(), interval_minutes=15)
        await scheduler.start()
        try:
            assert scheduler.running is True
            assert scheduler.scheduler.get_job(scheduler_module.FULL_SCAN_JOB_ID) is not None
        finally:
            await scheduler.stop()
        assert scheduler.running is False

    @pytest.mark.asyncio
    async def test_run_full_scan_skips_while_busy(self):
        orchestrator = make_orchestrator(busy=True)
        await ScanScheduler(orchestrator, interval_minutes=15).run_full_scan()
        orchestrator.scan_all.assert_not_called()

    @pytest.mark.asyncio
    async def test_run_full_scan_logs_failures(self):
        orchestrator = make_orchestrator()
        orchestrator.scan_all.side_effect = RuntimeError("cabinet offline")
        # does not raise
        await ScanScheduler(orchestrator, interval_minutes=15).run_full_scan()
        orchestrator.scan_all.assert_awaited_once()


class TestGlobalScheduler:

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        orchestrator = make_orchestrator()
        started = await start_scheduler(orchestrator, interval_minutes=0)
        assert get_scheduler() is started
        assert await start_scheduler(orchestrator) is started

        await stop_scheduler()
        assert get_scheduler() is None
