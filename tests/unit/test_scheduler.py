"""
Scheduler backend tests.

Run with: pytest tests/unit/test_scheduler.py -v
"""

import json
import threading
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest


def _job(conversation_id="c1", message_id="m1"):
    from models.conversation import ReplyJob

    return ReplyJob(
        conversation_id=conversation_id,
        text="battery",
        customer_message_id=message_id,
        requested_at=datetime.now(timezone.utc),
    )


class TestScheduledTask:
    def test_mark_done_settles_without_running(self):
        from services.scheduler import ScheduledTask

        callback = MagicMock()
        task = ScheduledTask(0.0, 0, _job(), callback)

        task.mark_done()
        task.run()

        assert task.pending is False
        assert task.cancel() is False
        callback.assert_not_called()


class TestManualScheduler:
    def test_runs_due_tasks_in_schedule_order(self):
        from services.scheduler import ManualScheduler

        scheduler = ManualScheduler()
        ran = []
        scheduler.schedule(2.0, _job(message_id="late"), lambda j: ran.append(j.customer_message_id))
        scheduler.schedule(1.0, _job(message_id="a"), lambda j: ran.append(j.customer_message_id))
        scheduler.schedule(1.0, _job(message_id="b"), lambda j: ran.append(j.customer_message_id))

        assert scheduler.advance(1.0) == 2
        assert ran == ["a", "b"]
        assert scheduler.pending_count == 1
        assert scheduler.advance(1.0) == 1
        assert ran == ["a", "b", "late"]

    def test_cancelled_task_never_runs(self):
        from services.scheduler import ManualScheduler

        scheduler = ManualScheduler()
        callback = MagicMock()
        task = scheduler.schedule(1.0, _job(), callback)

        assert task.cancel() is True
        assert task.cancel() is False
        assert scheduler.advance(5.0) == 0
        callback.assert_not_called()

    def test_callback_errors_are_contained(self):
        from services.scheduler import ManualScheduler

        scheduler = ManualScheduler()
        after = MagicMock()
        scheduler.schedule(1.0, _job(), MagicMock(side_effect=RuntimeError("boom")))
        scheduler.schedule(1.0, _job(message_id="m2"), after)

        assert scheduler.advance(1.0) == 2
        after.assert_called_once()


class TestTimerScheduler:
    def test_runs_callback_after_delay(self):
        from services.scheduler import TimerScheduler

        scheduler = TimerScheduler()
        fired = threading.Event()
        try:
            task = scheduler.schedule(0.05, _job(), lambda j: fired.set())
            assert fired.wait(timeout=5)
            assert not task.pending
        finally:
            scheduler.shutdown(timeout=1)

    def test_cancel_before_due(self):
        from services.scheduler import TimerScheduler

        scheduler = TimerScheduler()
        fired = threading.Event()
        try:
            task = scheduler.schedule(0.3, _job(), lambda j: fired.set())
            assert task.cancel() is True
            assert not fired.wait(timeout=0.6)
        finally:
            scheduler.shutdown(timeout=1)

    def test_schedule_after_shutdown_fails(self):
        from services.scheduler import TimerScheduler

        scheduler = TimerScheduler()
        scheduler.shutdown(timeout=1)
        with pytest.raises(RuntimeError):
            scheduler.schedule(0.1, _job(), lambda j: None)


class TestSqsDelayScheduler:
    def test_sends_job_with_delay(self):
        from models.conversation import ReplyJob
        from services.scheduler import SqsDelayScheduler

        client = MagicMock()
        scheduler = SqsDelayScheduler("https://sqs.example/queue", client=client)
        job = _job()

        task = scheduler.schedule(1.0, job, lambda j: None)

        kwargs = client.send_message.call_args.kwargs
        assert kwargs["QueueUrl"] == "https://sqs.example/queue"
        assert kwargs["DelaySeconds"] == 1
        assert ReplyJob.model_validate_json(kwargs["MessageBody"]) == job
        assert json.loads(kwargs["MessageBody"])["conversation_id"] == "c1"
        assert not task.pending

    def test_delay_is_capped(self):
        from services.scheduler import SqsDelayScheduler

        client = MagicMock()
        SqsDelayScheduler("q", client=client).schedule(3600, _job(), lambda j: None)

        assert client.send_message.call_args.kwargs["DelaySeconds"] == 900


class TestBuildScheduler:
    def test_sqs_requires_queue_url(self):
        from services.portal import build_scheduler
        from utils.settings import PortalSettings

        with pytest.raises(RuntimeError):
            build_scheduler(PortalSettings(scheduler_backend="sqs"))

    def test_manual_backend(self):
        from services.portal import build_scheduler
        from services.scheduler import ManualScheduler
        from utils.settings import PortalSettings

        assert isinstance(build_scheduler(PortalSettings(scheduler_backend="manual")), ManualScheduler)
