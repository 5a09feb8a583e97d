"""
Main Window for LinguaPlayer.
Sentence list, transport controls, starred filter, waveform and editing.
"""

import os
from typing import Optional, Tuple

from PySide6.QtCore import QEvent, Qt, Signal
from PySide6.QtWidgets import (
    QApplication,
    QCheckBox,
    QFileDialog,
    QHBoxLayout,
    QInputDialog,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QMessageBox,
    QPlainTextEdit,
    QProgressBar,
    QPushButton,
    QTextEdit,
    QVBoxLayout,
    QWidget,
)

from linguaplayer.engine.audio import SampleBuffer, WaveformLoader
from linguaplayer.engine.editing import InvalidBoundsError
from linguaplayer.engine.navigation import Direction, PlaybackState
from linguaplayer.engine.session import PlayerSession
from linguaplayer.engine.subtitle import Segment
from linguaplayer.engine.timecode import SubtitleError, format_timestamp
from linguaplayer.gui.player import QtMediaPlayback
from linguaplayer.gui.settings import load_settings, save_setting
from linguaplayer.gui.waveform import WaveformWidget
from linguaplayer.utils.json_logger import attach_file_handler, get_logger


# Qt key -> transport key name understood by NavigationController
QT_KEY_NAMES = {
    Qt.Key.Key_Space: "Space",
    Qt.Key.Key_Left: "ArrowLeft",
    Qt.Key.Key_Right: "ArrowRight",
    Qt.Key.Key_Up: "ArrowUp",
    Qt.Key.Key_Down: "ArrowDown",
    Qt.Key.Key_Return: "Enter",
    Qt.Key.Key_Enter: "Enter",
}


class MainWindow(QMainWindow):
    """Top-level window. All engine access goes through PlayerSession."""

    waveform_audio_loaded = Signal(str, int, object)  # path, generation, SampleBuffer | None

    def __init__(self):
        super().__init__()
        self._settings = load_settings()
        if self._settings["log_file"]:
            attach_file_handler(self._settings["log_file"], self._settings["log_level"])
        self._logger = get_logger("main_window", log_level=self._settings["log_level"])

        self._playback = QtMediaPlayback(self)
        self._session = PlayerSession(
            self._playback,
            min_duration=self._settings["min_duration"],
            window_segments=self._settings["window_segments"],
            replay_threshold=self._settings["replay_threshold"],
            save_callback=self._on_segments_saved,
        )
        self._session.navigation.set_on_change(self._refresh_transport)

        self._loader = WaveformLoader()
        self._loader.set_on_loaded(
            lambda path, gen, buf: self.waveform_audio_loaded.emit(path, gen, buf)
        )
        self.waveform_audio_loaded.connect(self._on_waveform_audio_loaded)

        self._subtitle_path: Optional[str] = None
        self._rendered_view: Tuple[Segment, ...] = ()

        self.setWindowTitle("LinguaPlayer")
        self.resize(900, 640)
        self._setup_ui()

        self._playback.time_updated.connect(self._session.navigation.on_time_update)
        self._playback.played.connect(self._session.navigation.on_play)
        self._playback.paused_changed.connect(self._session.navigation.on_pause)

        # Transport keys (ignored while typing in text fields)
        app = QApplication.instance()
        if app:
            app.installEventFilter(self)

        self._refresh_all()

    # ------------------------------------------------------------------
    # UI
    # ------------------------------------------------------------------
    def _setup_ui(self):
        central = QWidget(self)
        layout = QVBoxLayout(central)

        file_row = QHBoxLayout()
        self.btn_open_audio = QPushButton("Open Audio…")
        self.btn_open_audio.clicked.connect(self._on_open_audio)
        self.btn_open_srt = QPushButton("Open Subtitles…")
        self.btn_open_srt.clicked.connect(self._on_open_subtitles)
        self.btn_export_srt = QPushButton("Download .srt")
        self.btn_export_srt.clicked.connect(self._on_export_srt)
        self.btn_export_txt = QPushButton("Download .txt")
        self.btn_export_txt.clicked.connect(self._on_export_txt)
        for btn in (self.btn_open_audio, self.btn_open_srt, self.btn_export_srt, self.btn_export_txt):
            btn.setFocusPolicy(Qt.FocusPolicy.NoFocus)
            file_row.addWidget(btn)
        layout.addLayout(file_row)

        self.waveform = WaveformWidget(
            self._session, self, cursor_interval_ms=self._settings["cursor_interval_ms"]
        )
        self.waveform.bounds_dragged.connect(self._on_bounds_dragged)
        layout.addWidget(self.waveform)

        edit_row = QHBoxLayout()
        self.btn_edit_timing = QPushButton("Edit Timing")
        self.btn_edit_timing.clicked.connect(self._on_edit_timing)
        self.btn_save_timing = QPushButton("Save")
        self.btn_save_timing.clicked.connect(self._on_save_timing)
        self.btn_cancel_timing = QPushButton("Cancel")
        self.btn_cancel_timing.clicked.connect(self._on_cancel_timing)
        self.lbl_timing = QLabel("")
        for w in (self.btn_edit_timing, self.btn_save_timing, self.btn_cancel_timing):
            w.setFocusPolicy(Qt.FocusPolicy.NoFocus)
            edit_row.addWidget(w)
        edit_row.addWidget(self.lbl_timing, 1)
        layout.addLayout(edit_row)

        self.progress = QProgressBar()
        self.progress.setRange(0, 1000)
        self.progress.setTextVisible(False)
        layout.addWidget(self.progress)

        self.sentence_list = QListWidget()
        self.sentence_list.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        self.sentence_list.itemClicked.connect(self._on_item_clicked)
        self.sentence_list.itemDoubleClicked.connect(self._on_item_double_clicked)
        layout.addWidget(self.sentence_list, 1)

        transport = QHBoxLayout()
        self.btn_prev = QPushButton("⏪")
        self.btn_prev.clicked.connect(lambda: self._session.navigation.advance(Direction.PREVIOUS))
        self.btn_play = QPushButton("▶")
        self.btn_play.clicked.connect(self._session.navigation.toggle_play_pause)
        self.btn_next = QPushButton("⏩")
        self.btn_next.clicked.connect(lambda: self._session.navigation.advance(Direction.NEXT))
        self.btn_star = QPushButton("☆")
        self.btn_star.clicked.connect(lambda: self._toggle_star(None))
        for btn in (self.btn_prev, self.btn_play, self.btn_next, self.btn_star):
            btn.setFocusPolicy(Qt.FocusPolicy.NoFocus)
            transport.addWidget(btn)
        layout.addLayout(transport)

        self.chk_starred = QCheckBox("Show Starred Only")
        self.chk_starred.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        self.chk_starred.toggled.connect(self._on_filter_toggled)
        layout.addWidget(self.chk_starred, alignment=Qt.AlignmentFlag.AlignHCenter)

        self.setCentralWidget(central)
        self.statusBar().showMessage("Ready")

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------
    def _refresh_all(self):
        self._rebuild_list()
        self._refresh_transport()

    def _rebuild_list(self):
        store = self._session.store
        view = store.active_view()
        self.sentence_list.blockSignals(True)
        self.sentence_list.clear()
        for seg in view:
            number = store.canonical_position(seg.id) + 1
            item = QListWidgetItem(self._item_text(number, seg))
            item.setData(Qt.ItemDataRole.UserRole, seg.id)
            self.sentence_list.addItem(item)
        self.sentence_list.blockSignals(False)
        self._rendered_view = view

    @staticmethod
    def _item_text(number: int, seg: Segment) -> str:
        star = "★" if seg.starred else "☆"
        return f"{star} {number}. {seg.text}"

    def _refresh_transport(self):
        session = self._session
        store = session.store
        nav = session.navigation

        if store.active_view() != self._rendered_view:
            self._rebuild_list()

        pos = store.position_of(store.current_id)
        if pos is not None:
            self.sentence_list.setCurrentRow(pos)
            self.sentence_list.scrollToItem(self.sentence_list.item(pos))

        view_len = len(store.active_view())
        editing = session.boundary_editor.active
        self.btn_prev.setEnabled(not editing and pos is not None and pos > 0)
        self.btn_next.setEnabled(not editing and pos is not None and pos < view_len - 1)
        self.btn_play.setEnabled(not editing and session.loaded)
        self.btn_play.setText("⏸" if nav.state is PlaybackState.PLAYING else "▶")

        current = store.current_segment()
        self.btn_star.setEnabled(current is not None)
        self.btn_star.setText("★" if current and current.starred else "☆")

        self.chk_starred.blockSignals(True)
        self.chk_starred.setChecked(store.filter_on)
        self.chk_starred.blockSignals(False)
        self.chk_starred.setVisible(store.has_starred)

        self.progress.setValue(int(nav.progress * 10))
        self.btn_edit_timing.setEnabled(session.loaded and not editing)
        self.btn_save_timing.setVisible(editing)
        self.btn_cancel_timing.setVisible(editing)
        self.lbl_timing.setVisible(editing)
        self.btn_export_srt.setEnabled(session.loaded)
        self.btn_export_txt.setEnabled(session.loaded)

        self.waveform.window_changed()

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------
    def _on_open_audio(self):
        start_dir = os.path.dirname(self._settings["last_audio_path"])
        path, _ = QFileDialog.getOpenFileName(
            self, "Open Audio", start_dir, "Audio Files (*.wav *.mp3 *.m4a *.ogg *.flac);;All Files (*)"
        )
        if path:
            self.load_audio(path)

    def load_audio(self, path: str):
        self._playback.set_source(path)
        self._session.set_samples(None)
        self._loader.load(path)
        self._settings["last_audio_path"] = path
        save_setting("last_audio_path", path)
        self.statusBar().showMessage(f"Decoding waveform: {os.path.basename(path)}")
        self.waveform.update()

    def _on_waveform_audio_loaded(
        self, path: str, generation: int, buffer: Optional[SampleBuffer]
    ):
        # Queued across threads: a reload may have happened since the worker checked
        if not self._loader.is_current(generation):
            return
        if buffer is None:
            self.statusBar().showMessage("Waveform unavailable for this audio file.")
            return
        if self._session.set_samples(buffer):
            self.waveform.samples_ready()
        self.statusBar().showMessage("Waveform ready")

    def _on_open_subtitles(self):
        start_dir = os.path.dirname(self._settings["last_subtitle_path"])
        path, _ = QFileDialog.getOpenFileName(
            self, "Open Subtitles", start_dir, "Subtitle Files (*.srt);;All Files (*)"
        )
        if path:
            self.load_subtitles(path)

    def load_subtitles(self, path: str) -> bool:
        try:
            with open(path, "r", encoding="utf-8-sig", errors="replace") as f:
                document = f.read()
        except OSError as e:
            QMessageBox.warning(self, "Open Failed", f"Could not read {path}:\n{e}")
            return False

        try:
            self._session.load(document)
        except SubtitleError as e:
            self._logger.warning(
                "Subtitle load failed", extra={"data": {"path": path, "error": str(e)}}
            )
            QMessageBox.warning(self, "SRT Parsing Failed", str(e))
            return False

        self._subtitle_path = path
        self._settings["last_subtitle_path"] = path
        save_setting("last_subtitle_path", path)
        self.statusBar().showMessage(
            f"Loaded {len(self._session.store.segments)} sentences from {os.path.basename(path)}"
        )
        self._refresh_all()
        return True

    def _export(self, suffix: str, content: str):
        base = self._subtitle_path or "subtitles.srt"
        stem, _ = os.path.splitext(base)
        default = f"{stem}_edited.srt" if suffix == ".srt" else f"{stem}.txt"
        path, _ = QFileDialog.getSaveFileName(self, "Save As", default)
        if not path:
            return
        try:
            with open(path, "w", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            QMessageBox.warning(self, "Save Failed", str(e))
            return
        self.statusBar().showMessage(f"Saved {os.path.basename(path)}")

    def _on_export_srt(self):
        self._export(".srt", self._session.store.export_document())

    def _on_export_txt(self):
        self._export(".txt", self._session.store.export_text())

    # ------------------------------------------------------------------
    # Sentence list
    # ------------------------------------------------------------------
    def _on_item_clicked(self, item: QListWidgetItem):
        if self._session.editing:
            return
        self._session.navigation.select_and_play(item.data(Qt.ItemDataRole.UserRole))

    def _on_item_double_clicked(self, item: QListWidgetItem):
        if self._session.boundary_editor.active:
            return
        segment_id = item.data(Qt.ItemDataRole.UserRole)
        editor = self._session.text_editor
        text = editor.begin(segment_id)
        while True:
            new_text, ok = QInputDialog.getMultiLineText(self, "Edit Sentence", "Text:", text)
            if not ok:
                editor.cancel()
                return
            try:
                editor.commit(new_text)
                break
            except ValueError as e:
                QMessageBox.warning(self, "Invalid Text", str(e))
                text = new_text
        self.statusBar().showMessage("Sentence saved")
        self._refresh_all()

    def _toggle_star(self, segment_id: Optional[int]):
        if not self._session.loaded:
            return
        self._session.navigation.toggle_star(segment_id)

    def _on_filter_toggled(self, checked: bool):
        self._session.set_filter(checked)

    # ------------------------------------------------------------------
    # Boundary editing
    # ------------------------------------------------------------------
    def _on_edit_timing(self):
        if not self._session.loaded:
            return
        self._session.boundary_editor.enter()
        start, end = self._session.boundary_editor.provisional
        self._on_bounds_dragged(start, end)
        self._refresh_transport()

    def _on_bounds_dragged(self, start: float, end: float):
        self.lbl_timing.setText(f"{format_timestamp(start)} → {format_timestamp(end)}")

    def _on_save_timing(self):
        try:
            self._session.boundary_editor.commit()
        except InvalidBoundsError as e:
            self._logger.warning(
                "Timestamp save rejected",
                extra={"data": {"segment_id": self._session.boundary_editor.segment_id, "error": str(e)}},
            )
            QMessageBox.warning(self, "Invalid Timing", str(e))
            return
        self.statusBar().showMessage("Timestamps saved")
        self._refresh_transport()

    def _on_cancel_timing(self):
        self._session.boundary_editor.cancel()
        self._refresh_transport()

    def _on_segments_saved(self, segments: Tuple[Segment, ...]):
        self._logger.info(
            "Segments saved", extra={"data": {"segments": len(segments)}}
        )
        self._rebuild_list()

    # ------------------------------------------------------------------
    # Keyboard
    # ------------------------------------------------------------------
    def eventFilter(self, obj, event):
        if event.type() == QEvent.Type.KeyPress and not event.isAutoRepeat():
            focus = QApplication.focusWidget()
            if isinstance(focus, (QLineEdit, QPlainTextEdit, QTextEdit)):
                return super().eventFilter(obj, event)
            if QApplication.activeModalWidget() is not None:
                return super().eventFilter(obj, event)
            name = QT_KEY_NAMES.get(event.key())
            if name and self._session.handle_key(name):
                return True
        return super().eventFilter(obj, event)

    def closeEvent(self, event):
        self._loader.clear()
        self._playback.pause()
        super().closeEvent(event)
