from __future__ import annotations

from codeknight.core.scheduler import Scheduler


def test_tasks_run_in_due_order_with_fifo_ties() -> None:
    scheduler = Scheduler()
    ran = []
    scheduler.call_later(30, lambda: ran.append("c"))
    scheduler.call_later(10, lambda: ran.append("a"))
    scheduler.call_later(10, lambda: ran.append("b"))

    assert scheduler.advance(20) == 2
    assert ran == ["a", "b"]
    assert scheduler.now_ms == 20

    scheduler.advance(10)
    assert ran == ["a", "b", "c"]


def test_cancelled_task_never_runs() -> None:
    scheduler = Scheduler()
    ran = []
    handle = scheduler.call_later(5, lambda: ran.append(1))
    assert handle.pending

    handle.cancel()

    assert scheduler.advance(100) == 0
    assert ran == []
    assert not handle.pending


def test_tasks_scheduled_by_tasks_run_within_the_same_advance() -> None:
    scheduler = Scheduler(frame_ms=16)
    seen = []

    def frame() -> None:
        seen.append(scheduler.now_ms)
        if len(seen) < 3:
            scheduler.request_frame(frame)

    scheduler.request_frame(frame)

    assert scheduler.advance(100) == 3
    assert seen == [16, 32, 48]
    assert scheduler.pending_count() == 0


def test_pump_follows_the_wall_clock() -> None:
    now = [1.0]
    scheduler = Scheduler(clock=lambda: now[0])
    ran = []
    scheduler.call_later(200, lambda: ran.append(scheduler.now_ms))

    assert scheduler.pump() == 0
    now[0] += 0.25
    assert scheduler.pump() == 1

    assert ran == [200]
    assert scheduler.now_ms == 250


def test_clear_cancels_everything() -> None:
    scheduler = Scheduler()
    handles = [scheduler.call_later(i, lambda: None) for i in range(3)]

    scheduler.clear()

    assert scheduler.pending_count() == 0
    assert all(h.cancelled for h in handles)
    assert scheduler.advance(10) == 0
