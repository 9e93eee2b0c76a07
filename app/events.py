"""
Normalized events published by the player widget.

`change` carries {"play": bool}, `progress` carries {"progress": int}.
Progress is not clamped and may be a non-finite float when the duration is
not known yet; observers must handle that.
"""
from dataclasses import dataclass
from typing import Union

from PySide6.QtCore import QObject, Signal

Progress = Union[int, float]


@dataclass(frozen=True)
class ProgressEvent:
    progress: Progress
    name: str = "progress"

    def to_dict(self) -> dict:
        return {"progress": self.progress}


@dataclass(frozen=True)
class PlaybackChangeEvent:
    play: bool
    name: str = "change"

    def to_dict(self) -> dict:
        return {"play": self.play}


class PlayerEventChannel(QObject):
    progress = Signal(object)  # ProgressEvent
    change = Signal(object)  # PlaybackChangeEvent

    def emit_progress(self, progress: Progress):
        self.progress.emit(ProgressEvent(progress))

    def emit_change(self, play: bool):
        self.change.emit(PlaybackChangeEvent(bool(play)))
