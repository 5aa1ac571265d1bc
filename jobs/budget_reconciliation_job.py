"""
============================================================================
Budget Reconciliation Job - Recurring Scheduled Pass
============================================================================

Reliability Level: L6 Critical
Traceability: Every pass carries its own correlation_id

This module implements the recurring budget reconciliation job:
- Runs one engine pass per interval
- Supplies the calendar date to the engine (UTC by default)
- Never retries a pass; the next interval is the retry
- Never lets a pass failure stop the loop

The blocking engine pass runs in the default executor so stop() can
cancel the wait between passes. A pass already in progress is allowed to
finish.
============================================================================
"""

from datetime import date, datetime, timezone
from typing import Callable, Optional
import asyncio
import logging
import uuid

from budget_engine.engine import BudgetReconciliationResult, BudgetScalingEngine

logger = logging.getLogger(__name__)


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


class BudgetReconciliationJob:
    """
    Background job that reconciles budgets on a fixed interval.

    Reliability Level: L6 Critical
    Input Constraints: interval_seconds must be positive
    Side Effects: Network I/O (revenue fetch), state store writes, notifications
    """

    def __init__(
        self,
        engine: BudgetScalingEngine,
        interval_seconds: int = 3600,
        today_provider: Callable[[], date] = utc_today,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError(
                f"interval_seconds must be positive, got: {interval_seconds}"
            )

        self._engine = engine
        self._interval_seconds = interval_seconds
        self._today_provider = today_provider
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._last_result: Optional[BudgetReconciliationResult] = None
        self._pass_count = 0

        logger.info(
            f"[BSE-JOB] Initialized | interval_seconds={interval_seconds}"
        )

    @property
    def interval_seconds(self) -> int:
        return self._interval_seconds

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def last_result(self) -> Optional[BudgetReconciliationResult]:
        return self._last_result

    @property
    def pass_count(self) -> int:
        return self._pass_count

    def run_once(self, today: Optional[date] = None) -> BudgetReconciliationResult:
        """Run a single reconciliation pass synchronously."""
        today = today or self._today_provider()
        correlation_id = str(uuid.uuid4())
        result = self._engine.run_reconciliation(today, correlation_id=correlation_id)
        self._last_result = result
        self._pass_count += 1
        return result

    async def start(self) -> None:
        if self._running:
            logger.warning("[BSE-JOB] Already running, ignoring start request")
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"[BSE-JOB] Started | interval_seconds={self._interval_seconds}")

    async def stop(self) -> None:
        if not self._running:
            logger.warning("[BSE-JOB] Not running, ignoring stop request")
            return

        self._running = False

        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("[BSE-JOB] Stopped")

    async def _run_loop(self) -> None:
        loop = asyncio.get_running_loop()

        while self._running:
            try:
                result = await asyncio.shield(
                    loop.run_in_executor(None, self.run_once)
                )
                logger.info(
                    f"[BSE-JOB] Pass complete | status={result.status.value} | "
                    f"pass_count={self._pass_count} | "
                    f"correlation_id={result.correlation_id}"
                )
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"[BSE-JOB] Error in main loop | error={e}")

            try:
                await asyncio.sleep(self._interval_seconds)
            except asyncio.CancelledError:
                break

        logger.info("[BSE-JOB] Main loop exited")

    def run(self) -> None:
        """Blocking entry point; runs until interrupted."""
        asyncio.run(self._run_async())

    async def _run_async(self) -> None:
        await self.start()
        try:
            while self._running:
                await asyncio.sleep(1)
        finally:
            if self._running:
                await self.stop()
