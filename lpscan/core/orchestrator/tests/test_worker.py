"""Tests for the worker supervisor and watchdog."""
import asyncio
import threading
from decimal import Decimal

import pytest
from unittest.mock import AsyncMock, MagicMock

from lpscan.core.models import (
    BlockRange,
    PoolCreated,
    ProtocolVersion,
    ReserveSync,
    Swap,
    TradeAmounts,
)
from lpscan.core.orchestrator import Watchdog, WorkerState, WorkerSupervisor
from lpscan.fetchers import FetchError, FetchResult
from lpscan.processors import ClassifiedBatch, LedgerAction

POOL = "0x000000000000000000000000000000000000f001"
T0 = "0x00000000000000000000000000000000000000aa"
T1 = "0x00000000000000000000000000000000000000bb"


def _ranges():
    start = 0
    while True:
        yield BlockRange(start, start + 9)
        start += 10


@pytest.fixture
def allocator():
    allocator = MagicMock()
    ranges = _ranges()
    allocator.claim_range = AsyncMock(side_effect=lambda size: next(ranges))
    return allocator


@pytest.fixture
def fetcher():
    fetcher = MagicMock()
    fetcher.fetch_range = AsyncMock(
        return_value=FetchResult(
            BlockRange(0, 9), logs=[MagicMock()] * 4, metadata={"counts": {"v2_swap_sync": 4}}
        )
    )
    return fetcher


@pytest.fixture
def classifier():
    classifier = MagicMock()
    classifier.classify_batch.return_value = ClassifiedBatch(
        events=[
            PoolCreated(POOL, T0, T1, ProtocolVersion.V2),
            ReserveSync(POOL, 100, 50),
            Swap(POOL, ProtocolVersion.V2, TradeAmounts(30, 0)),
        ],
        skipped=1,
    )
    return classifier


@pytest.fixture
def ledger():
    results = {
        PoolCreated: (LedgerAction.POOL_CREATED, None),
        ReserveSync: (LedgerAction.RESERVES_UPDATED, None),
        Swap: (LedgerAction.TRADE_RECORDED, Decimal(60)),
    }
    ledger = MagicMock()
    ledger.apply_event = AsyncMock(side_effect=lambda event: results[type(event)])
    return ledger


@pytest.fixture
def supervisor(allocator, fetcher, classifier, ledger):
    return WorkerSupervisor(
        allocator, fetcher, classifier, ledger,
        batch_size=10, iteration_timeout=5, error_retry_delay=0,
        on_timeout=MagicMock(),
    )


class TestWatchdog:

    def test_fires_after_timeout(self):
        fired = threading.Event()
        watchdog = Watchdog(0.01, fired.set)

        watchdog.arm()

        assert fired.wait(2)
        assert watchdog.fired

    def test_cancel_prevents_firing(self):
        fired = threading.Event()
        watchdog = Watchdog(0.05, fired.set)

        watchdog.arm()
        watchdog.cancel()

        assert not fired.wait(0.2)
        assert not watchdog.armed


class TestWorkerSupervisor:
    """Test cases for WorkerSupervisor."""

    @pytest.mark.asyncio
    async def test_iteration_report(self, supervisor, allocator):
        report = await supervisor.run_iteration()

        allocator.claim_range.assert_awaited_once_with(10)
        assert report.block_range == BlockRange(0, 9)
        assert report.logs_fetched == 4
        assert report.events_decoded == 3
        assert report.skipped_logs == 1
        assert (report.pools_created, report.reserve_updates, report.trades) == (1, 1, 1)
        assert report.volume == Decimal(60)
        assert report.duration is not None
        assert supervisor.state is WorkerState.IDLE
        assert not supervisor.watchdog.armed

    @pytest.mark.asyncio
    async def test_events_applied_in_order(self, supervisor, ledger, classifier):
        await supervisor.run_iteration()

        applied = [call.args[0] for call in ledger.apply_event.await_args_list]
        assert applied == classifier.classify_batch.return_value.events

    @pytest.mark.asyncio
    async def test_fetch_failure_skips_range(self, supervisor, fetcher):
        fetcher.fetch_range.side_effect = FetchError("rpc down")

        with pytest.raises(FetchError):
            await supervisor.run_iteration()

        assert supervisor.skipped_ranges == [BlockRange(0, 9)]
        assert supervisor.state is WorkerState.IDLE
        assert not supervisor.watchdog.armed

    @pytest.mark.asyncio
    async def test_ledger_failure_skips_range(self, supervisor, ledger):
        ledger.apply_event.side_effect = OSError("connection reset")

        with pytest.raises(OSError):
            await supervisor.run_iteration()

        assert supervisor.skipped_ranges == [BlockRange(0, 9)]

    @pytest.mark.asyncio
    async def test_claim_failure_records_nothing(self, supervisor, allocator):
        allocator.claim_range.side_effect = OSError("redis down")

        with pytest.raises(OSError):
            await supervisor.run_iteration()

        assert supervisor.skipped_ranges == []
        assert supervisor.state is WorkerState.IDLE

    @pytest.mark.asyncio
    async def test_run_forever_moves_past_failed_range(self, supervisor, fetcher):
        ok = fetcher.fetch_range.return_value
        fetcher.fetch_range.side_effect = [FetchError("rpc down"), ok, ok]

        await supervisor.run_forever(max_iterations=3)

        assert supervisor.iterations == 3
        assert supervisor.skipped_ranges == [BlockRange(0, 9)]
        assert [r.block_range for r in supervisor.reports] == [BlockRange(10, 19), BlockRange(20, 29)]

    @pytest.mark.asyncio
    async def test_stop_ends_loop(self, supervisor, ledger):
        async def apply_and_stop(event):
            supervisor.stop()
            return LedgerAction.IGNORED, None

        ledger.apply_event.side_effect = apply_and_stop

        await supervisor.run_forever()

        assert supervisor.iterations == 1
        assert supervisor.reports[0].ignored_events == 3

    @pytest.mark.asyncio
    async def test_hung_iteration_aborts(self, allocator, classifier, ledger):
        fired = threading.Event()
        fetcher = MagicMock()

        async def hang(block_range):
            await asyncio.sleep(0.3)
            return FetchResult(block_range)

        fetcher.fetch_range = AsyncMock(side_effect=hang)
        supervisor = WorkerSupervisor(
            allocator, fetcher, classifier, ledger,
            batch_size=10, iteration_timeout=0.05, on_timeout=fired.set,
        )

        await supervisor.run_iteration()

        assert fired.is_set()
        assert supervisor.state is WorkerState.ABORTED
