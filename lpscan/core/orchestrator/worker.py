"""
Worker supervisor: drives the claim / fetch / decode / reconcile cycle.
"""

import asyncio
import logging
import os
import threading
from datetime import datetime
from typing import Callable, List, Optional

from ..models import BlockRange
from .allocator import BlockRangeAllocator
from .base import RangeReport, WorkerState
from ...fetchers.log_fetcher import LogFetcher
from ...processors.event_classifier import EventClassifier
from ...processors.pool_ledger import LedgerAction, PoolLedger

logger = logging.getLogger(__name__)


def _hard_exit() -> None:
    logger.critical("Iteration exceeded watchdog timeout, terminating process")
    logging.shutdown()
    os._exit(1)


class Watchdog:
    """
    Thread timer that fires if an iteration does not finish in time.

    Runs outside the event loop so it still fires when the loop is blocked.
    """

    def __init__(self, timeout: float, on_timeout: Optional[Callable[[], None]] = None):
        self.timeout = timeout
        self.on_timeout = on_timeout or _hard_exit
        self._timer: Optional[threading.Timer] = None
        self.fired = False

    def _fire(self) -> None:
        self.fired = True
        self.on_timeout()

    def arm(self) -> None:
        self.cancel()
        self.fired = False
        self._timer = threading.Timer(self.timeout, self._fire)
        self._timer.daemon = True
        self._timer.start()

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    @property
    def armed(self) -> bool:
        return self._timer is not None


class WorkerSupervisor:
    """
    Runs scanning iterations for one worker.

    A failed range is not retried: it is appended to ``skipped_ranges`` and the
    next iteration claims a fresh range.
    """

    def __init__(
        self,
        allocator: BlockRangeAllocator,
        fetcher: LogFetcher,
        classifier: EventClassifier,
        ledger: PoolLedger,
        batch_size: int,
        iteration_timeout: float = 60,
        error_retry_delay: float = 3.0,
        on_timeout: Optional[Callable[[], None]] = None,
    ):
        self.allocator = allocator
        self.fetcher = fetcher
        self.classifier = classifier
        self.ledger = ledger
        self.batch_size = batch_size
        self.error_retry_delay = error_retry_delay
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

        self._on_timeout = on_timeout or _hard_exit
        self.watchdog = Watchdog(iteration_timeout, self._timed_out)

        self.state = WorkerState.IDLE
        self.skipped_ranges: List[BlockRange] = []
        self.reports: List[RangeReport] = []
        self.iterations = 0
        self._running = False

    def _timed_out(self) -> None:
        self.state = WorkerState.ABORTED
        self._on_timeout()

    def _set_state(self, state: WorkerState) -> None:
        # ABORTED is terminal
        if self.state is not WorkerState.ABORTED:
            self.state = state

    async def run_iteration(self) -> RangeReport:
        """
        Claim one range and process it end to end.

        Raises:
            Exception: whatever aborted the iteration, after the range has
                been recorded in ``skipped_ranges``
        """
        self._set_state(WorkerState.CLAIMING_RANGE)
        try:
            block_range = await self.allocator.claim_range(self.batch_size)
        except Exception:
            self._set_state(WorkerState.IDLE)
            raise

        report = RangeReport(block_range=block_range, start_time=datetime.now())
        self.watchdog.arm()
        try:
            self._set_state(WorkerState.FETCHING)
            fetched = await self.fetcher.fetch_range(block_range)
            report.logs_fetched = len(fetched.logs)
            report.metadata["counts"] = fetched.metadata.get("counts", {})

            self._set_state(WorkerState.DECODING)
            batch = self.classifier.classify_batch(fetched.logs)
            report.events_decoded = len(batch.events)
            report.skipped_logs = batch.skipped
            report.metadata["unknown_logs"] = batch.unknown

            self._set_state(WorkerState.RECONCILING)
            for event in batch.events:
                action, volume = await self.ledger.apply_event(event)
                if action is LedgerAction.POOL_CREATED:
                    report.pools_created += 1
                elif action is LedgerAction.RESERVES_UPDATED:
                    report.reserve_updates += 1
                elif action is LedgerAction.TRADE_RECORDED:
                    report.trades += 1
                    report.volume += volume
                else:
                    report.ignored_events += 1
        except Exception as e:
            self.skipped_ranges.append(block_range)
            self.logger.error(f"Blocks {block_range} skipped, coverage gap: {e}")
            raise
        finally:
            self.watchdog.cancel()
            self._set_state(WorkerState.IDLE)

        report.end_time = datetime.now()
        self.reports.append(report)
        self.logger.info(f"Processed {report.summary()} in {report.duration:.2f}s")
        return report

    async def run_forever(self, max_iterations: Optional[int] = None) -> None:
        """Run iterations until stopped or max_iterations attempts have been made."""
        self._running = True
        self.logger.info(f"Worker started with batch size {self.batch_size}")
        try:
            while self._running:
                if max_iterations is not None and self.iterations >= max_iterations:
                    break
                self.iterations += 1
                try:
                    await self.run_iteration()
                except Exception as e:
                    self.logger.error(
                        f"Iteration failed: {e}, retrying in {self.error_retry_delay}s"
                    )
                    await asyncio.sleep(self.error_retry_delay)
        finally:
            self._running = False
            self.watchdog.cancel()
            self.logger.info(
                f"Worker stopped after {self.iterations} iterations, "
                f"{len(self.skipped_ranges)} skipped ranges"
            )

    def stop(self) -> None:
        """Stop after the current iteration."""
        self._running = False
