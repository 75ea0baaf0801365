"""
Tests for the deferred task scheduler.
"""

import pytest

from tenpin.lane_core.scheduler import TaskScheduler


@pytest.fixture
def calls():
    return []


class TestScheduling:
    """Test timing and ordering of deferred callbacks."""

    def test_runs_when_due(self, scheduler, calls):
        """A task runs only once its delay has elapsed."""
        scheduler.schedule(1.0, lambda: calls.append("a"))

        assert scheduler.advance(0.5) == 0
        assert calls == []
        assert scheduler.advance(0.6) == 1
        assert calls == ["a"]

    def test_runs_once(self, scheduler, calls):
        scheduler.schedule(0.1, lambda: calls.append("a"))
        scheduler.advance(1.0)
        scheduler.advance(1.0)

        assert calls == ["a"]
        assert scheduler.pending == []

    def test_order_by_due_then_schedule_order(self, scheduler, calls):
        """Earlier deadlines first; ties keep scheduling order."""
        scheduler.schedule(0.5, lambda: calls.append("late"))
        scheduler.schedule(0.2, lambda: calls.append("first"))
        scheduler.schedule(0.2, lambda: calls.append("second"))

        scheduler.advance(1.0)
        assert calls == ["first", "second", "late"]

    def test_chained_task_runs_in_same_advance(self, scheduler, calls):
        """A zero-delay task scheduled from a callback runs immediately."""
        def outer():
            calls.append("outer")
            scheduler.schedule(0.0, lambda: calls.append("inner"))

        scheduler.schedule(0.1, outer)
        assert scheduler.advance(0.2) == 2
        assert calls == ["outer", "inner"]

    def test_cancel_single_task(self, scheduler, calls):
        task = scheduler.schedule(0.1, lambda: calls.append("a"))
        task.cancel()

        scheduler.advance(1.0)
        assert calls == []


class TestGenerations:
    """Test bulk cancellation."""

    def test_cancel_all_voids_pending(self, scheduler, calls):
        """Tasks scheduled before cancel_all never run."""
        scheduler.schedule(0.5, lambda: calls.append("old"))
        scheduler.cancel_all()
        scheduler.schedule(0.5, lambda: calls.append("new"))

        scheduler.advance(1.0)
        assert calls == ["new"]

    def test_cancel_all_bumps_generation(self, scheduler):
        before = scheduler.generation
        scheduler.cancel_all()
        assert scheduler.generation == before + 1

    def test_cancel_all_from_callback(self, scheduler, calls):
        """A callback that cancels everything stops later tasks in the same advance."""
        scheduler.schedule(0.1, scheduler.cancel_all)
        scheduler.schedule(0.2, lambda: calls.append("voided"))

        scheduler.advance(1.0)
        assert calls == []

    def test_reset_rewinds_clock(self, scheduler):
        scheduler.advance(3.0)
        scheduler.schedule(1.0, lambda: None)
        scheduler.reset()

        assert scheduler.now == 0.0
        assert scheduler.pending == []
