"""
Waveform widget for LinguaPlayer.
Paints the envelope and overlays produced by WaveformRenderer; the surface
width is measured at the start of every paint.
"""

from typing import Optional

from PySide6.QtCore import QLineF, QRectF, Qt, QTimer, Signal
from PySide6.QtGui import QColor, QPainter, QPen
from PySide6.QtWidgets import QWidget

from linguaplayer.engine.editing import BoundaryEditor
from linguaplayer.engine.session import PlayerSession


HANDLE_GRAB_PX = 8


class WaveformWidget(QWidget):
    """
    Scrolling envelope around the current segment.

    Performance:
    - The envelope is cached by the renderer per (window, width).
    - The cursor timer only triggers repaint; nothing is recomputed per tick.
    """

    bounds_dragged = Signal(float, float)  # provisional start, end

    WAVE_COLOR = QColor("#00FF00")
    MARKER_COLOR = QColor(159, 179, 255, 140)
    BAND_COLOR = QColor(58, 141, 255, 60)
    BAND_EDGE_COLOR = QColor("#3a8dff")
    HANDLE_COLOR = QColor("#ffcc00")
    CURSOR_COLOR = QColor("#ff3b30")
    BACKGROUND = QColor("#000030")

    def __init__(self, session: PlayerSession, parent=None, cursor_interval_ms: int = 16):
        super().__init__(parent)
        self._session = session
        self._drag_handle: Optional[str] = None

        self.setMinimumHeight(80)
        self.setMouseTracking(True)

        # Cursor refresh (~60 FPS)
        self._anim_timer = QTimer(self)
        self._anim_timer.setInterval(cursor_interval_ms)
        self._anim_timer.timeout.connect(self.update)
        self._anim_timer.start()

    def samples_ready(self):
        """First availability of decoded samples."""
        self.update()

    def window_changed(self):
        if self._session.sync_window():
            self.update()

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self.update()

    # ------------------------------------------------------------------
    # Painting
    # ------------------------------------------------------------------
    def paintEvent(self, event):
        painter = QPainter(self)
        painter.fillRect(self.rect(), self.BACKGROUND)

        # Re-measure right before drawing
        width = self.width()
        height = self.height()
        frame = self._session.current_frame(width)
        if frame is None:
            painter.end()
            return

        mid = height / 2.0
        half = height / 2.0

        pen = QPen(self.WAVE_COLOR)
        pen.setWidth(1)
        painter.setPen(pen)
        for x, (lo, hi) in enumerate(zip(frame.mins, frame.maxs)):
            if lo == 0.0 and hi == 0.0:
                continue
            painter.drawLine(QLineF(x + 0.5, mid - hi * half, x + 0.5, mid - lo * half))

        marker_pen = QPen(self.MARKER_COLOR)
        marker_pen.setStyle(Qt.PenStyle.DashLine)
        painter.setPen(marker_pen)
        for x in frame.markers:
            painter.drawLine(QLineF(x, 0, x, height))

        if frame.band is not None:
            x0, x1 = frame.band
            painter.fillRect(QRectF(x0, 0, x1 - x0, height), self.BAND_COLOR)
            edge_pen = QPen(self.HANDLE_COLOR if frame.editing else self.BAND_EDGE_COLOR)
            edge_pen.setWidth(4 if frame.editing else 2)
            painter.setPen(edge_pen)
            painter.drawLine(QLineF(x0, 0, x0, height))
            painter.drawLine(QLineF(x1, 0, x1, height))

        if frame.cursor is not None:
            cursor_pen = QPen(self.CURSOR_COLOR)
            cursor_pen.setWidth(2)
            painter.setPen(cursor_pen)
            painter.drawLine(QLineF(frame.cursor, 0, frame.cursor, height))

        painter.end()

    # ------------------------------------------------------------------
    # Handle dragging
    # ------------------------------------------------------------------
    def _handle_at(self, x: float) -> Optional[str]:
        frame = self._session.current_frame(self.width())
        if frame is None or not frame.editing or frame.band is None:
            return None
        x0, x1 = frame.band
        if abs(x - x0) <= HANDLE_GRAB_PX:
            return BoundaryEditor.HANDLE_START
        if abs(x - x1) <= HANDLE_GRAB_PX:
            return BoundaryEditor.HANDLE_END
        return None

    def mousePressEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            self._drag_handle = self._handle_at(event.position().x())
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event):
        x = event.position().x()
        if self._drag_handle is None:
            handle = self._handle_at(x)
            self.setCursor(
                Qt.CursorShape.SizeHorCursor if handle else Qt.CursorShape.ArrowCursor
            )
            return

        window = self._session.renderer.window
        editor = self._session.boundary_editor
        if window is None or not editor.active:
            self._drag_handle = None
            return
        fraction = window.x_to_fraction(x, self.width())
        start, end = editor.drag(self._drag_handle, fraction, window)
        self.bounds_dragged.emit(start, end)
        self.update()

    def mouseReleaseEvent(self, event):
        self._drag_handle = None
        super().mouseReleaseEvent(event)
