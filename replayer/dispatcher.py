"""Scheduled dispatch engine: fires each record at its shifted deadline.

One asyncio task per record. Each task sleeps until its own deadline,
sends through the shared sender and writes exactly one Outcome into its
own slot. Failures stay inside the task that produced them.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from replayer.errors import DeadlineElapsed, TransportError
from replayer.models import LogRecord, Outcome, OutcomeKind, ScheduledTask, schedule_for
from replayer.sender import Sender

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def build_schedule(records: list[LogRecord], shift: timedelta) -> list[ScheduledTask]:
    """Pair every record with its deadline (fired_at + shift), in input order."""
    return [schedule_for(i, record, shift) for i, record in enumerate(records)]


class DispatchEngine:
    """Replays records through ``sender`` at their shifted deadlines.

    ``clock`` must advance with real time. A frozen clock only works for
    deadlines at or before its value; a later deadline would never be
    reached by the wait loop.
    """

    def __init__(
        self,
        sender: Sender,
        clock: Callable[[], datetime] = utc_now,
        progress_interval: float = 0.0,
    ):
        self.sender = sender
        self.clock = clock
        self.progress_interval = progress_interval

    async def run(
        self,
        records: list[LogRecord],
        shift: timedelta = timedelta(0),
        timeout: Optional[float] = None,
        stop_event: Optional[asyncio.Event] = None,
    ) -> list[Outcome]:
        """Replay every record and return one Outcome per record, in input order.

        ``timeout`` (seconds) and ``stop_event`` end the run early; any
        task still waiting or in flight at that point reports CANCELLED.
        """
        schedule = build_schedule(records, shift)
        outcomes: list[Optional[Outcome]] = [None] * len(schedule)
        if not schedule:
            return []

        logger.info("Dispatching %d requests (shift=%s)", len(schedule), shift)

        tasks = [
            asyncio.create_task(self._execute(task, outcomes)) for task in schedule
        ]
        all_done = asyncio.gather(*tasks, return_exceptions=True)

        watchers = {all_done}
        stop_waiter = None
        if stop_event is not None:
            stop_waiter = asyncio.create_task(stop_event.wait())
            watchers.add(stop_waiter)

        progress_task = None
        if self.progress_interval > 0:
            progress_task = asyncio.create_task(self._progress_reporter(outcomes))

        try:
            done, _ = await asyncio.wait(
                watchers, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
            if all_done not in done:
                pending = sum(1 for t in tasks if not t.done())
                logger.warning("Replay cancelled with %d requests still pending", pending)
                for t in tasks:
                    t.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
        finally:
            for t in tasks:
                if not t.done():
                    t.cancel()
            helpers = [t for t in (stop_waiter, progress_task) if t is not None]
            for t in helpers:
                t.cancel()
            await asyncio.gather(*helpers, return_exceptions=True)

        results = [
            outcome
            if outcome is not None
            else Outcome.for_task(task, OutcomeKind.CANCELLED, error="replay cancelled")
            for task, outcome in zip(schedule, outcomes)
        ]

        failures = sum(1 for o in results if not o.ok)
        logger.info(
            "Replay finished: %d requests, %d responses, %d failures",
            len(results), len(results) - failures, failures,
        )
        return results

    async def _execute(self, task: ScheduledTask, outcomes: list[Optional[Outcome]]):
        """Wait for the task's deadline, send it, and fill its slot."""
        try:
            await self._wait_until(task.deadline)
        except DeadlineElapsed as e:
            logger.warning("Request %d %s %s: %s", task.index, task.record.method, task.record.url, e)
            outcomes[task.index] = Outcome.for_task(task, OutcomeKind.DEADLINE_ELAPSED, error=str(e))
            return

        record = task.record
        sent_at = self.clock()
        try:
            response = await self.sender.send(record.method, record.url, record.headers, record.body)
        except TransportError as e:
            logger.warning("Request %d %s %s failed: %s", task.index, record.method, record.url, e)
            outcomes[task.index] = Outcome.for_task(
                task, OutcomeKind.TRANSPORT_ERROR, error=str(e), sent_at=sent_at
            )
            return
        except Exception as e:
            logger.exception("Request %d %s %s raised unexpectedly", task.index, record.method, record.url)
            outcomes[task.index] = Outcome.for_task(
                task, OutcomeKind.TRANSPORT_ERROR, error=f"{type(e).__name__}: {e}", sent_at=sent_at
            )
            return

        logger.info(
            "Request %d %s %s -> %d (%.1fms)",
            task.index, record.method, record.url, response.status_code, response.elapsed_ms,
        )
        outcomes[task.index] = Outcome.for_task(
            task, OutcomeKind.RESPONSE, response=response, sent_at=sent_at
        )

    async def _wait_until(self, deadline: datetime):
        """Suspend until ``deadline``; raise DeadlineElapsed if it has already passed."""
        remaining = (deadline - self.clock()).total_seconds()
        if remaining < 0:
            raise DeadlineElapsed(
                f"cannot send a request in the past: specified datetime is {deadline.isoformat()}"
            )

        logger.debug("schedule for %.3fs (at %s)", remaining, deadline.isoformat())
        # asyncio timers run on the monotonic clock; re-check the wall clock
        # so a request never goes out before its deadline.
        while remaining > 0:
            await asyncio.sleep(remaining)
            remaining = (deadline - self.clock()).total_seconds()

    async def _progress_reporter(self, outcomes: list[Optional[Outcome]]):
        """Log progress every ``progress_interval`` seconds."""
        while True:
            await asyncio.sleep(self.progress_interval)
            finished = sum(1 for o in outcomes if o is not None)
            failed = sum(1 for o in outcomes if o is not None and not o.ok)
            logger.info(
                "[PROGRESS] finished: %d/%d | failures: %d",
                finished, len(outcomes), failed,
            )
