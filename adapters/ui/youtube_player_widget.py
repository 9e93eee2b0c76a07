import logging
from typing import Any, Optional

from PySide6.QtCore import QEvent, Property, Signal
from PySide6.QtWidgets import QFrame, QVBoxLayout
from qasync import asyncSlot

from app.capability_loader import CapabilityLoader
from app.controller import PlaybackController
from domain.models import PlayerSettings

logger = logging.getLogger(__name__)


class YoutubePlayerWidget(QFrame):
    """
    Host-facing player widget.

    Set `video` to a YouTube id to create or retarget the player. Listen to
    `change` (PlaybackChangeEvent) and `progress` (ProgressEvent).
    """
    progress = Signal(object)
    change = Signal(object)

    def __init__(self, loader: CapabilityLoader, settings: Optional[PlayerSettings] = None,
                 render_target: Any = None, parent=None):
        super().__init__(parent)
        self._video = ""
        self._watched_window = None

        if render_target is None:
            from PySide6.QtWebEngineWidgets import QWebEngineView
            render_target = QWebEngineView(self)
        self.render_target = render_target

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self.render_target)

        self.controller = PlaybackController(loader, self.render_target, settings, parent=self)
        self.controller.channel.progress.connect(self.progress.emit)
        self.controller.channel.change.connect(self.change.emit)

        self._watch_window()

    def get_video(self) -> str:
        return self._video

    def set_video(self, value: Optional[str]):
        self._video = value or ""
        if self._video:
            self._reconcile(self._video)

    video = Property(str, get_video, set_video)

    @asyncSlot(str)
    async def _reconcile(self, identifier: str):
        await self.controller.on_identifier_changed(identifier)

    def detach(self):
        """Widget left its host: stop polling and publish a final stop."""
        if self.controller.detached:
            return
        logger.debug("Player widget detached")
        self.controller.on_detach()

    def closeEvent(self, event):
        self.detach()
        super().closeEvent(event)

    def event(self, event):
        if event.type() == QEvent.Type.ParentChange:
            if self.parent() is None:
                self.detach()
            self._watch_window()
        return super().event(event)

    def eventFilter(self, watched, event):
        # Closing the host window counts as leaving the host, even if the
        # window later ignores the close request
        if watched is self._watched_window and event.type() == QEvent.Type.Close:
            self.detach()
        return super().eventFilter(watched, event)

    def _watch_window(self):
        window = self.window()
        if window is self._watched_window:
            return
        if self._watched_window is not None:
            self._watched_window.removeEventFilter(self)
            self._watched_window = None
        if window is not self:
            window.installEventFilter(self)
            self._watched_window = window
