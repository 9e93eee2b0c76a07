import sys
import os
import asyncio
import argparse
import logging

# Add project root to sys.path to ensure absolute imports work correctly
project_root = os.path.dirname(os.path.abspath(__file__))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

# QtWebEngine must be imported before the QApplication is created
from PySide6.QtWebEngineWidgets import QWebEngineView  # noqa: F401
from PySide6.QtWidgets import QApplication, QWidget, QVBoxLayout, QHBoxLayout, QLineEdit, QPushButton, QProgressBar, QLabel
from qasync import QEventLoop

from adapters.config import load_log_level, load_player_settings
from adapters.player.youtube_iframe import WebEngineEnvironment
from adapters.ui.youtube_player_widget import YoutubePlayerWidget
from app.capability_loader import CapabilityLoader

logger = logging.getLogger(__name__)


class DemoWindow(QWidget):
    def __init__(self, loader: CapabilityLoader, settings):
        super().__init__()
        self.setWindowTitle("YouTube Player")
        self.resize(960, 640)

        layout = QVBoxLayout(self)

        top = QHBoxLayout()
        self.input = QLineEdit()
        self.input.setPlaceholderText("YouTube video id")
        self.load_button = QPushButton("Load")
        top.addWidget(self.input)
        top.addWidget(self.load_button)
        layout.addLayout(top)

        self.player = YoutubePlayerWidget(loader, settings, parent=self)
        layout.addWidget(self.player, 1)

        self.progress_bar = QProgressBar()
        self.progress_bar.setRange(0, 100)
        self.status = QLabel("Stopped")
        layout.addWidget(self.progress_bar)
        layout.addWidget(self.status)

        self.load_button.clicked.connect(self._on_load_clicked)
        self.input.returnPressed.connect(self._on_load_clicked)
        self.player.change.connect(self._on_change)
        self.player.progress.connect(self._on_progress)

    def _on_load_clicked(self):
        self.player.video = self.input.text().strip()

    def _on_change(self, event):
        self.status.setText("Playing" if event.play else "Stopped")

    def _on_progress(self, event):
        # Progress may be nan/inf while the duration is unknown
        try:
            self.progress_bar.setValue(max(0, min(100, int(event.progress))))
        except (ValueError, OverflowError):
            self.progress_bar.setValue(0)


def main():
    parser = argparse.ArgumentParser(description="Embedded YouTube player demo")
    parser.add_argument("--video", help="YouTube video id to play on start")
    args = parser.parse_args()

    logging.basicConfig(
        level=load_log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = load_player_settings()

    app = QApplication(sys.argv)
    loop = QEventLoop(app)
    asyncio.set_event_loop(loop)

    # Composition Root: one environment and one loader for the whole process
    environment = WebEngineEnvironment()
    loader = CapabilityLoader(environment, settings.api_url)

    window = DemoWindow(loader, settings)
    window.show()

    if args.video:
        window.input.setText(args.video)
        window.player.video = args.video

    logger.info("Player demo started")
    with loop:
        loop.run_forever()


if __name__ == "__main__":
    main()
