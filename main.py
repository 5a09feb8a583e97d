"""
LinguaPlayer - Sentence-by-sentence listening practice
Entry point for the application.
"""

import sys
import os

# Add project root to Python path for imports
project_root = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, project_root)

from PySide6.QtWidgets import QApplication
from PySide6.QtCore import Qt

from linguaplayer.gui.main_window import MainWindow


def main():
    # Enable High DPI scaling
    QApplication.setHighDpiScaleFactorRoundingPolicy(
        Qt.HighDpiScaleFactorRoundingPolicy.PassThrough
    )

    app = QApplication(sys.argv)
    app.setApplicationName("LinguaPlayer")
    app.setOrganizationName("LinguaPlayer")

    window = MainWindow()
    window.show()

    # Optional: main.py [audio] [subtitles]
    args = app.arguments()[1:]
    for path in args:
        if path.lower().endswith(".srt"):
            window.load_subtitles(path)
        elif os.path.exists(path):
            window.load_audio(path)

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
