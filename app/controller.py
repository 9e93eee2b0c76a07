import logging
from enum import Enum, auto
from typing import Any, Optional

from PySide6.QtCore import QObject, QTimer

from app.capability_loader import CapabilityLoader
from app.events import PlayerEventChannel
from domain.models import (PlaybackState, PlayerSettings, VideoIdentifier,
                           compute_progress, project_native_state)
from domain.ports import PlayerCapabilityPort, PlayerInstancePort

logger = logging.getLogger(__name__)


class ControllerState(Enum):
    UNATTACHED = auto()
    AWAITING_CAPABILITY = auto()
    ATTACHED = auto()


class PlaybackController(QObject):
    """
    Owns one player instance and keeps the normalized events in sync with it.

    The first identifier builds the player, later ones retarget it. The
    polling timer is active iff the projected playback state is PLAYING.
    """

    def __init__(self, loader: CapabilityLoader, render_target: Any,
                 settings: Optional[PlayerSettings] = None,
                 channel: Optional[PlayerEventChannel] = None, parent=None):
        super().__init__(parent)
        self.loader = loader
        self.render_target = render_target
        self.settings = settings or PlayerSettings()
        self.channel = channel or PlayerEventChannel(self)

        self._state = ControllerState.UNATTACHED
        self._playback_state = PlaybackState.STOPPED
        self._player: Optional[PlayerInstancePort] = None
        self._identifier: Optional[VideoIdentifier] = None

        # Bumped on every identifier change and on detach. A continuation
        # resuming with an older value has been superseded.
        self._generation = 0
        self._detached = False

        self._timer = QTimer(self)
        self._timer.setInterval(self.settings.tick_interval_ms)
        self._timer.timeout.connect(self.on_timer_tick)

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def playback_state(self) -> PlaybackState:
        return self._playback_state

    @property
    def timer_active(self) -> bool:
        return self._timer.isActive()

    @property
    def player(self) -> Optional[PlayerInstancePort]:
        return self._player

    @property
    def identifier(self) -> Optional[VideoIdentifier]:
        return self._identifier

    @property
    def detached(self) -> bool:
        return self._detached

    async def on_identifier_changed(self, identifier: Optional[VideoIdentifier]):
        if not identifier:
            return

        self._detached = False
        self._generation += 1
        generation = self._generation
        if self._player is None:
            self._state = ControllerState.AWAITING_CAPABILITY

        capability: PlayerCapabilityPort = await self.loader.ensure_capability()

        if generation != self._generation:
            logger.debug("Identifier %r superseded while waiting for capability", identifier)
            return

        self._identifier = identifier
        if self._player is not None:
            logger.info("Retargeting player to %r", identifier)
            self._player.cue_video_by_id(identifier)
            self._player.play_video()
            return

        logger.info("Creating player for %r", identifier)
        self._player = capability.create_player(
            self.render_target,
            self.settings.options_for(identifier),
            on_ready=self.on_ready,
            on_state_change=self.on_state_change,
        )
        self._state = ControllerState.ATTACHED
        # A ready hook fired inside create_player started the timer without a player to read
        if self._timer.isActive():
            self.on_timer_tick()

    def on_ready(self):
        if self._detached:
            logger.debug("Player ready after detach, ignoring")
            return
        self._playback_state = PlaybackState.PLAYING
        self.channel.emit_change(True)
        self._start_timer()

    def on_state_change(self, native_state: int):
        if self._detached:
            logger.debug("State %r after detach, ignoring", native_state)
            return

        self._playback_state = project_native_state(native_state)
        if self._playback_state is PlaybackState.PLAYING:
            self.channel.emit_change(True)
            self._start_timer()
        else:
            self._stop_timer()
            self.channel.emit_change(False)

    def on_detach(self):
        self._detached = True
        self._generation += 1
        if self._state is ControllerState.AWAITING_CAPABILITY:
            self._state = ControllerState.UNATTACHED

        self._stop_timer()
        self._playback_state = PlaybackState.STOPPED
        self.channel.emit_change(False)

    def on_timer_tick(self):
        if self._player is None:
            return
        progress = compute_progress(self._player.get_current_time(), self._player.get_duration())
        self.channel.emit_progress(progress)

    def _start_timer(self):
        if self._timer.isActive():
            return
        self.on_timer_tick()
        self._timer.start()

    def _stop_timer(self):
        if self._timer.isActive():
            self._timer.stop()
