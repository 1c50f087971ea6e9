from __future__ import annotations

from PySide6.QtCore import QObject, QTimer, Signal, Slot

from labrun.log import get_logger
from labrun.projection import advance_clock
from labrun.settings import get_settings

log = get_logger(__name__)


class RunClock(QObject):
    """Elapsed-time source for one displayed run.

    Owned by the view session that created it. Advances one second per tick
    while the run is RUNNING, stops for good at the makespan or on `cancel()`.
    A tick that arrives while a previous one is still being handled is dropped.
    """

    ticked = Signal(float)  # current_time
    reached_end = Signal(float)  # total_duration

    def __init__(
        self,
        *,
        total_duration: float,
        interval_ms: int | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._total = max(0.0, float(total_duration))
        self._current = 0.0
        self._running = False
        self._cancelled = False
        self._in_tick = False

        self._timer = QTimer(self)
        self._timer.setInterval(int(interval_ms or get_settings().tick_ms))
        self._timer.timeout.connect(self._on_timeout)

    def current_time(self) -> float:
        return self._current

    def total_duration(self) -> float:
        return self._total

    def is_active(self) -> bool:
        return self._timer.isActive()

    def is_cancelled(self) -> bool:
        return self._cancelled

    def set_running(self, running: bool) -> None:
        """Follow the external run state; only RUNNING advances the clock."""

        if self._cancelled:
            return
        self._running = bool(running)
        if self._running and self._current < self._total:
            if not self._timer.isActive():
                log.debug("run_clock_started", current_time=self._current, total=self._total)
                self._timer.start()
        elif self._timer.isActive():
            log.debug("run_clock_paused", current_time=self._current)
            self._timer.stop()

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._timer.stop()
        log.debug("run_clock_cancelled", current_time=self._current)

    @Slot()
    def _on_timeout(self) -> None:
        if self._in_tick or self._cancelled or not self._running:
            return
        if self._current >= self._total:
            self._timer.stop()
            return
        self._in_tick = True
        try:
            self._current = advance_clock(self._current, self._total)
            self.ticked.emit(self._current)
            if self._current >= self._total:
                self._timer.stop()
                log.info("run_clock_reached_end", total=self._total)
                self.reached_end.emit(self._total)
        finally:
            self._in_tick = False
