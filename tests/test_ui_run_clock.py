from __future__ import annotations


def _ensure_qapp():
    from PySide6.QtWidgets import QApplication

    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    return app


def test_clock_advances_only_while_running() -> None:
    _ensure_qapp()
    from labrun_ui.run_clock import RunClock

    clock = RunClock(total_duration=3, interval_ms=1000)
    ticks: list[float] = []
    clock.ticked.connect(ticks.append)

    # Not running: timeouts are ignored.
    clock._on_timeout()
    assert ticks == []
    assert not clock.is_active()

    clock.set_running(True)
    assert clock.is_active()
    clock._on_timeout()
    clock._on_timeout()
    assert ticks == [1.0, 2.0]

    clock.set_running(False)
    assert not clock.is_active()
    clock._on_timeout()
    assert clock.current_time() == 2.0


def test_clock_stops_at_total_and_reports_end() -> None:
    _ensure_qapp()
    from labrun_ui.run_clock import RunClock

    clock = RunClock(total_duration=2, interval_ms=1000)
    ended: list[float] = []
    clock.reached_end.connect(ended.append)

    clock.set_running(True)
    for _ in range(5):
        clock._on_timeout()

    assert clock.current_time() == 2.0
    assert ended == [2.0]
    assert not clock.is_active()

    # Resuming at the end does not restart the timer.
    clock.set_running(True)
    assert not clock.is_active()


def test_cancel_is_final() -> None:
    _ensure_qapp()
    from labrun_ui.run_clock import RunClock

    clock = RunClock(total_duration=10, interval_ms=1000)
    clock.set_running(True)
    clock.cancel()
    clock.cancel()

    assert clock.is_cancelled()
    assert not clock.is_active()
    clock.set_running(True)
    assert not clock.is_active()
    clock._on_timeout()
    assert clock.current_time() == 0.0


def test_reentrant_tick_is_dropped() -> None:
    _ensure_qapp()
    from labrun_ui.run_clock import RunClock

    clock = RunClock(total_duration=10, interval_ms=1000)
    clock.set_running(True)

    # A slot that re-enters the timeout handler while the first tick is in flight.
    clock.ticked.connect(lambda _t: clock._on_timeout())
    clock._on_timeout()
    assert clock.current_time() == 1.0
    clock.cancel()


def test_interval_defaults_to_settings(monkeypatch) -> None:
    _ensure_qapp()
    monkeypatch.setenv("LABRUN_TICK_MS", "250")
    from labrun_ui.run_clock import RunClock

    clock = RunClock(total_duration=1)
    assert clock._timer.interval() == 250
    assert clock.total_duration() == 1.0
