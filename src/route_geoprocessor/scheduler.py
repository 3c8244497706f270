"""
Background reprocessing of routes that are still missing attribution.

Ingestion skips the map-matching service, so new and changed routes land
in the store without segments. The scheduler drains that backlog a few
routes per run, sequentially and with a cool-down after each success, to
stay inside the public Valhalla instance's rate tolerance.

Usage:
    scheduler = ReprocessingScheduler(store)
    await scheduler.start()
    # ... later ...
    await scheduler.stop()
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Awaitable, Callable, Optional

from route_geoprocessor.config.settings import settings
from route_geoprocessor.models import ReprocessingReport, StoredRoute
from route_geoprocessor.pipeline import RouteProcessingPipeline
from route_geoprocessor.protocols import RouteStore

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]
ClockFunc = Callable[[], float]


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class ReprocessingScheduler:
    """
    Periodic runner for attribution backfill.

    `sleep` and `clock` are injectable so tests can drive the loop in
    virtual time instead of waiting out real cool-downs and intervals.
    """

    def __init__(
        self,
        store: RouteStore,
        pipeline: Optional[RouteProcessingPipeline] = None,
        daily_limit: Optional[int] = None,
        interval: Optional[float] = None,
        startup_delay: Optional[float] = None,
        cooldown: Optional[float] = None,
        sleep: SleepFunc = asyncio.sleep,
        clock: ClockFunc = time.monotonic,
    ):
        self.store = store
        self.pipeline = pipeline or RouteProcessingPipeline()
        self.daily_limit = daily_limit if daily_limit is not None else settings.DAILY_LIMIT
        self.interval = interval if interval is not None else settings.CHECK_INTERVAL_SECONDS
        self.startup_delay = startup_delay if startup_delay is not None else settings.STARTUP_DELAY_SECONDS
        self.cooldown = cooldown if cooldown is not None else settings.COOLDOWN_SECONDS
        self._sleep = sleep
        self._clock = clock

        self.state = SchedulerState.IDLE
        self.last_report: Optional[ReprocessingReport] = None
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the periodic loop as a background task."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self.run_forever())
        logger.info("Background reprocessing started")

    async def stop(self) -> None:
        """
        Stop the periodic loop. A run that is in progress is allowed to
        finish; only the wait between runs is cancelled.
        """
        self._running = False
        if self._task and self.state is SchedulerState.IDLE:
            self._task.cancel()
        if self._task:
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Background reprocessing stopped")

    async def run_forever(self) -> None:
        """
        Waits out the startup delay, then runs once per interval. The next
        run starts one interval after the previous one started, or right
        away if the previous run took longer than that.
        """
        self._running = True
        await self._sleep(self.startup_delay)

        while self._running:
            started = self._clock()
            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"Error in background job: {e}")

            if not self._running:
                break
            remaining = self.interval - (self._clock() - started)
            await self._sleep(max(remaining, 0.0))

    async def run_once(self) -> ReprocessingReport:
        """
        Processes up to `daily_limit` routes that have no attribution yet.

        Per-route failures are logged and skipped. Failing to query the
        candidates propagates to the caller.
        """
        if self.state is SchedulerState.RUNNING:
            raise RuntimeError("A reprocessing run is already in progress")

        self.state = SchedulerState.RUNNING
        try:
            report = await self._process_batch()
        finally:
            self.state = SchedulerState.IDLE

        self.last_report = report
        return report

    async def _process_batch(self) -> ReprocessingReport:
        logger.info("Running background Valhalla processing...")
        candidates = self.store.find_routes_missing_attribution(self.daily_limit)
        report = ReprocessingReport(candidates=len(candidates))

        if not candidates:
            logger.info("No routes pending Valhalla processing.")
            return report

        logger.info(f"Found {len(candidates)} routes to process.")

        for route in candidates:
            try:
                succeeded = await self._process_route(route)
            except Exception as e:
                logger.error(f"Error processing route {route.id}: {e}")
                succeeded = False

            if succeeded:
                report.succeeded.append(route.id)
                await self._sleep(self.cooldown)
            else:
                report.failed.append(route.id)

        logger.info(f"Background run finished: {len(report.succeeded)} ok, {len(report.failed)} failed")
        return report

    async def _process_route(self, route: StoredRoute) -> bool:
        if not route.gpx_content:
            logger.warning(f"Route {route.id} has no GPX content, skipping")
            return False

        logger.info(f"Processing route {route.id} for Valhalla...")
        processed = await self.pipeline.process(route.gpx_content, use_attribution=True)

        if processed.segments is None:
            logger.warning(f"Valhalla returned no result for route {route.id}")
            return False

        self.store.update_route(
            route.id,
            geometry=processed.geometry,
            total_ascent=processed.total_ascent,
            total_descent=processed.total_descent,
            segments=processed.segments,
        )
        logger.info(f"Successfully processed route {route.id}")
        return True
