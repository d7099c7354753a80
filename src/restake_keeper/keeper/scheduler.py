"""Cron scheduler - fires the keeper tick on a cron cadence."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable

from croniter import CroniterBadDateError, croniter

log = logging.getLogger(__name__)

TickCallback = Callable[[], Awaitable[None]]


def _local_now() -> datetime:
    return datetime.now().astimezone()


def next_fire_time(cron_expression: str, base: datetime | None = None) -> datetime:
    """Next match of cron_expression after base.

    Raises ValueError for malformed expressions and for ones that never
    match a real date (e.g. Feb 30).
    """
    if not croniter.is_valid(cron_expression):
        raise ValueError(f"Invalid cron expression: {cron_expression!r}")
    try:
        return croniter(cron_expression, base or _local_now()).get_next(datetime)
    except CroniterBadDateError:
        raise ValueError(f"Cron expression never matches: {cron_expression!r}") from None


class ScheduledJob:
    """Handle for a registered cadence. Cancel it to stop future firings."""

    def __init__(self, cron_expression: str) -> None:
        self.cron_expression = cron_expression
        self.next_run_at: datetime | None = None
        self._task: asyncio.Task | None = None
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled or self._task is None or self._task.done()

    def cancel(self) -> None:
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self.next_run_at = None


class CronScheduler:
    """Runs a no-argument async callback on a cron cadence.

    States: stopped -> scheduled (start) -> stopped (cancel).

    Each firing runs as its own task so a slow callback never delays the
    cadence; overlap protection belongs to the callback. Callback errors
    are logged and never stop the schedule.
    """

    def __init__(
        self,
        cron_expression: str,
        callback: TickCallback,
        run_on_startup: bool = True,
        now: Callable[[], datetime] = _local_now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        next_fire_time(cron_expression, now())
        self._cron = cron_expression
        self._callback = callback
        self._run_on_startup = run_on_startup
        self._now = now
        self._sleep = sleep
        self._job: ScheduledJob | None = None
        self._inflight: set[asyncio.Task] = set()

    @property
    def state(self) -> str:
        if self._job is None or self._job.cancelled:
            return "stopped"
        return "scheduled"

    @property
    def job(self) -> ScheduledJob | None:
        return self._job

    async def start(self) -> ScheduledJob:
        """Optionally run the callback once, then register the cadence."""
        if self.state == "scheduled":
            raise RuntimeError("Scheduler is already running")

        if self._run_on_startup:
            log.info("Running keeper on startup")
            await self._fire("startup")

        job = ScheduledJob(self._cron)
        job._task = asyncio.create_task(self._cadence_loop(job))
        self._job = job
        log.info("Keeper scheduled with cron pattern: %s", self._cron)
        return job

    def cancel(self) -> None:
        """Stop future firings. In-flight callbacks are left to finish."""
        if self._job is not None:
            self._job.cancel()
            log.info("Schedule cancelled")

    async def _cadence_loop(self, job: ScheduledJob) -> None:
        last_fired: datetime | None = None
        while True:
            try:
                now = self._now()
                base = now if last_fired is None or now > last_fired else last_fired
                next_at = next_fire_time(self._cron, base)
            except Exception as exc:
                log.error("Schedule stopped, cannot compute next run: %s", exc, exc_info=True)
                job.next_run_at = None
                break
            job.next_run_at = next_at

            delay = (next_at - now).total_seconds()
            log.debug("Next keeper run at %s (in %.0fs)", next_at.isoformat(), delay)
            try:
                await self._sleep(max(0.0, delay))
            except asyncio.CancelledError:
                break

            last_fired = next_at
            task = asyncio.create_task(self._fire("cadence"))
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)

    async def _fire(self, trigger: str) -> None:
        log.info("Keeper run starting (%s)", trigger)
        try:
            await self._callback()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            log.error("Keeper callback raised: %s", exc, exc_info=True)
