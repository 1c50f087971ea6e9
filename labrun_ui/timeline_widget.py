from __future__ import annotations

"""Painted per-instrument lane timeline with a live time cursor."""

from PySide6.QtCore import QEvent, QRectF, Qt
from PySide6.QtGui import QColor, QPainter, QPen
from PySide6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QSizePolicy,
    QToolTip,
    QVBoxLayout,
    QWidget,
)

from labrun.types import InstrumentLane, TaskState, Timeline, TimelineTask
from labrun_ui.run_view_model import format_task_tooltip, pack_tracks

STATE_COLORS: dict[TaskState, QColor] = {
    TaskState.PENDING: QColor(110, 110, 110),
    TaskState.RUNNING: QColor(59, 130, 246),
    TaskState.COMPLETED: QColor(34, 197, 94),
    TaskState.FAILED: QColor(239, 68, 68),
    TaskState.SKIPPED: QColor(75, 75, 75),
}


class TimelineWidget(QWidget):
    """One row per instrument lane; tasks positioned by start/end over the makespan."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Preferred)

        self._layout = QVBoxLayout(self)
        self._layout.setContentsMargins(0, 0, 0, 0)
        self._layout.setSpacing(6)

        # Exposed for tests (lane order).
        self._rows: list[_LaneRow] = []
        self._timeline: Timeline | None = None
        self.set_timeline(None)

    def set_timeline(self, timeline: Timeline | None) -> None:
        for row in self._rows:
            row.setParent(None)
            row.deleteLater()
        self._rows = []
        while self._layout.count():
            item = self._layout.takeAt(0)
            w = item.widget()
            if w is not None:
                w.setParent(None)
                w.deleteLater()

        self._timeline = timeline
        if timeline is None or not timeline.lanes:
            empty = QLabel("No timeline", self)
            empty.setObjectName("timeline_empty")
            self._layout.addWidget(empty)
            self._layout.addStretch(1)
            return

        for i, lane in enumerate(timeline.lanes, start=1):
            row = _LaneRow(self, lane=lane, total_duration=timeline.total_duration)
            row.setObjectName(f"timeline_lane_{i:02d}")
            self._rows.append(row)
            self._layout.addWidget(row)
        self._layout.addStretch(1)

    def set_current_time(self, current_time: float) -> None:
        for row in self._rows:
            row.bar.set_current_time(current_time)

    def lane_bars(self) -> list["_LaneBar"]:
        return [row.bar for row in self._rows]


class _LaneRow(QWidget):
    def __init__(self, parent: QWidget, *, lane: InstrumentLane, total_duration: float) -> None:
        super().__init__(parent)
        layout = QHBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(8)

        label = QLabel(lane.name, self)
        label.setObjectName("timeline_lane_label")
        label.setMinimumWidth(110)
        label.setAlignment(Qt.AlignmentFlag.AlignVCenter | Qt.AlignmentFlag.AlignLeft)
        layout.addWidget(label, 0)

        self.bar = _LaneBar(self, lane=lane, total_duration=total_duration)
        layout.addWidget(self.bar, 1)


class _LaneBar(QWidget):
    _TRACK_H = 26
    _PAD = 3

    def __init__(self, parent: QWidget, *, lane: InstrumentLane, total_duration: float) -> None:
        super().__init__(parent)
        self.lane = lane
        self._total = float(total_duration)
        self._current = 0.0
        self._tracks = pack_tracks(lane.tasks)
        self.setMinimumHeight(self._TRACK_H * max(1, len(self._tracks)))
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Fixed)
        self.setMouseTracking(True)

    def set_current_time(self, current_time: float) -> None:
        self._current = float(current_time)
        self.update()

    def task_rect(self, task: TimelineTask, track: int) -> QRectF:
        w = float(self.width())
        if self._total <= 0:
            x, width = 0.0, 0.0
        else:
            x = task.start / self._total * w
            width = (task.end - task.start) / self._total * w
        y = track * self._TRACK_H + self._PAD
        return QRectF(x, y, max(width, 1.0), self._TRACK_H - 2 * self._PAD)

    def task_at(self, x: float, y: float) -> TimelineTask | None:
        for i, track in enumerate(self._tracks):
            for t in track:
                if self.task_rect(t, i).contains(x, y):
                    return t
        return None

    def event(self, e) -> bool:  # type: ignore[override]
        if e.type() == QEvent.Type.ToolTip:
            pos = e.position() if hasattr(e, "position") else e.pos()
            task = self.task_at(float(pos.x()), float(pos.y()))
            if task is None:
                QToolTip.hideText()
            else:
                QToolTip.showText(e.globalPos(), format_task_tooltip(task), self)
            return True
        return super().event(e)

    def paintEvent(self, event) -> None:  # type: ignore[override]
        p = QPainter(self)
        p.setRenderHint(QPainter.RenderHint.Antialiasing, True)
        p.fillRect(self.rect(), self.palette().base())

        text_pen = QPen(QColor(255, 255, 255))
        for i, track in enumerate(self._tracks):
            for t in track:
                r = self.task_rect(t, i)
                p.fillRect(r, STATE_COLORS.get(t.state, STATE_COLORS[TaskState.PENDING]))
                p.setPen(text_pen)
                p.drawText(
                    r.adjusted(4, 0, -2, 0),
                    int(Qt.AlignmentFlag.AlignVCenter | Qt.AlignmentFlag.AlignLeft),
                    t.id,
                )

        if self._total > 0:
            x = self._current / self._total * self.width()
            p.setPen(QPen(self.palette().highlight().color(), 2))
            p.drawLine(int(x), 0, int(x), self.height())
