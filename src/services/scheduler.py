"""
Deferred-work schedulers for the auto-responder.

Three interchangeable backends share one ``schedule(delay, job, callback)``
signature:

- ManualScheduler: a virtual clock advanced by tests.
- TimerScheduler: a single daemon thread draining a heap of due tasks. No
  thread is parked per task and no lock is held while waiting.
- SqsDelayScheduler: pushes the job to an SQS queue with DelaySeconds; the
  ``auto_reply`` Lambda consumes it. Used where the process does not outlive
  the request (Lambda).

Tasks due at the same instant run in the order they were scheduled.
"""

from __future__ import annotations

import heapq
import itertools
import threading
import time
from typing import Callable, List, Optional, Protocol

import boto3

from models.conversation import ReplyJob
from utils.logging_config import get_logger

logger = get_logger(__name__)

ReplyCallback = Callable[[ReplyJob], None]


class ScheduledTask:
    """Handle for one scheduled job; cancel() before it runs to drop it."""

    def __init__(self, due: float, seq: int, job: ReplyJob, callback: Optional[ReplyCallback]):
        self.due = due
        self.seq = seq
        self.job = job
        self.callback = callback
        self.cancelled = False
        self.done = False
        self._lock = threading.Lock()

    def cancel(self) -> bool:
        """Return True if the task was still pending."""
        with self._lock:
            if self.done or self.cancelled:
                return False
            self.cancelled = True
            return True

    def mark_done(self) -> None:
        """Settle the task without running it (work handed off elsewhere)."""
        with self._lock:
            self.done = True

    @property
    def pending(self) -> bool:
        return not (self.done or self.cancelled)

    def __lt__(self, other: "ScheduledTask") -> bool:
        return (self.due, self.seq) < (other.due, other.seq)

    def run(self) -> None:
        with self._lock:
            if not self.pending:
                return
            self.done = True
        if self.callback is None:
            return
        try:
            self.callback(self.job)
        except Exception:
            # Deferred work has no caller left to report to.
            logger.exception(
                "Scheduled task failed",
                extra={"conversation_id": self.job.conversation_id},
            )


class Scheduler(Protocol):
    def schedule(
        self, delay_seconds: float, job: ReplyJob, callback: ReplyCallback
    ) -> ScheduledTask:
        ...


class ManualScheduler:
    """Virtual-clock scheduler; nothing runs until advance() is called."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self._queue: List[ScheduledTask] = []
        self._seq = itertools.count()
        self._lock = threading.Lock()

    def schedule(
        self, delay_seconds: float, job: ReplyJob, callback: ReplyCallback
    ) -> ScheduledTask:
        with self._lock:
            task = ScheduledTask(self.now + max(0.0, delay_seconds), next(self._seq), job, callback)
            heapq.heappush(self._queue, task)
            return task

    def advance(self, seconds: float) -> int:
        """Move the clock forward and run every task that became due."""
        with self._lock:
            self.now += seconds
        return self.run_due()

    def run_due(self) -> int:
        ran = 0
        while True:
            with self._lock:
                if not self._queue or self._queue[0].due > self.now:
                    return ran
                task = heapq.heappop(self._queue)
            if task.pending:
                task.run()
                ran += 1

    @property
    def pending_count(self) -> int:
        with self._lock:
            return sum(1 for t in self._queue if t.pending)


class TimerScheduler:
    """Real-clock scheduler backed by one worker thread."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._queue: List[ScheduledTask] = []
        self._seq = itertools.count()
        self._cond = threading.Condition()
        self._stopped = False
        self._worker = threading.Thread(
            target=self._loop, name="auto-reply-scheduler", daemon=True
        )
        self._worker.start()

    def schedule(
        self, delay_seconds: float, job: ReplyJob, callback: ReplyCallback
    ) -> ScheduledTask:
        with self._cond:
            if self._stopped:
                raise RuntimeError("scheduler is shut down")
            task = ScheduledTask(
                self._clock() + max(0.0, delay_seconds), next(self._seq), job, callback
            )
            heapq.heappush(self._queue, task)
            self._cond.notify()
            return task

    def _loop(self) -> None:
        while True:
            with self._cond:
                while not self._stopped:
                    if self._queue:
                        wait = self._queue[0].due - self._clock()
                        if wait <= 0:
                            break
                        self._cond.wait(timeout=wait)
                    else:
                        self._cond.wait()
                if self._stopped:
                    return
                task = heapq.heappop(self._queue)
            task.run()

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """Stop the worker; tasks not yet due are dropped."""
        with self._cond:
            self._stopped = True
            for task in self._queue:
                task.cancel()
            self._queue.clear()
            self._cond.notify_all()
        self._worker.join(timeout)


class SqsDelayScheduler:
    """Hand the job to an SQS delay queue for another invocation to deliver."""

    # SQS caps per-message delay at 15 minutes.
    MAX_DELAY_SECONDS = 900

    def __init__(self, queue_url: str, client: Optional[object] = None):
        self.queue_url = queue_url
        self.client = client or boto3.client("sqs")
        self._seq = itertools.count()

    def schedule(
        self, delay_seconds: float, job: ReplyJob, callback: ReplyCallback
    ) -> ScheduledTask:
        delay = min(self.MAX_DELAY_SECONDS, max(0, int(round(delay_seconds))))
        self.client.send_message(
            QueueUrl=self.queue_url,
            MessageBody=job.model_dump_json(),
            DelaySeconds=delay,
        )
        logger.debug(
            "Auto-reply queued",
            extra={"conversation_id": job.conversation_id, "delay_seconds": delay},
        )
        # The callback runs in the consumer Lambda, not here; once sent the
        # message cannot be recalled, so the handle is already settled.
        task = ScheduledTask(float(delay), next(self._seq), job, None)
        task.mark_done()
        return task
