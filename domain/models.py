from dataclasses import dataclass, field
import math
from enum import Enum, IntEnum, auto
from typing import Optional

VideoIdentifier = str

DEFAULT_API_URL = "https://www.youtube.com/iframe_api"
DEFAULT_EMBED_HOST = "https://www.youtube-nocookie.com"
DEFAULT_TICK_INTERVAL_MS = 1000


class PlaybackState(Enum):
    STOPPED = auto()
    PLAYING = auto()


class NativePlayerState(IntEnum):
    """YouTube IFrame API player state codes."""
    UNSTARTED = -1
    ENDED = 0
    PLAYING = 1
    PAUSED = 2
    BUFFERING = 3
    CUED = 5


# Single source of truth for the projection. Codes missing here are STOPPED.
PLAYBACK_STATE_BY_NATIVE = {
    NativePlayerState.UNSTARTED: PlaybackState.STOPPED,
    NativePlayerState.ENDED: PlaybackState.STOPPED,
    NativePlayerState.PLAYING: PlaybackState.PLAYING,
    NativePlayerState.PAUSED: PlaybackState.STOPPED,
    NativePlayerState.BUFFERING: PlaybackState.STOPPED,
    NativePlayerState.CUED: PlaybackState.STOPPED,
}


def project_native_state(native_state: int) -> PlaybackState:
    try:
        return PLAYBACK_STATE_BY_NATIVE.get(int(native_state), PlaybackState.STOPPED)
    except (TypeError, ValueError):
        return PlaybackState.STOPPED


def default_player_vars() -> dict:
    return {
        "autoplay": 1,
        "loop": 0,
        "controls": 1,
        "showinfo": 0,
        "rel": 0,
    }


@dataclass(frozen=True)
class PlayerOptions:
    video_id: VideoIdentifier
    host: str = DEFAULT_EMBED_HOST
    player_vars: dict = field(default_factory=default_player_vars)


@dataclass(frozen=True)
class PlayerSettings:
    api_url: str = DEFAULT_API_URL
    embed_host: str = DEFAULT_EMBED_HOST
    tick_interval_ms: int = DEFAULT_TICK_INTERVAL_MS
    player_vars: dict = field(default_factory=default_player_vars)

    def options_for(self, video_id: VideoIdentifier) -> PlayerOptions:
        return PlayerOptions(video_id=video_id, host=self.embed_host, player_vars=dict(self.player_vars))


def compute_progress(current_time: Optional[float], duration: Optional[float]):
    """
    Percentage of playback, rounded half up.

    Not clamped. A zero/unknown duration yields the non-finite ratio
    (nan or +/-inf) instead of raising, so the host sees it as-is.
    """
    current = float(current_time or 0.0)
    total = float(duration or 0.0)

    if total == 0.0:
        if current == 0.0 or math.isnan(current):
            return math.nan
        return math.copysign(math.inf, current)

    value = 100.0 * current / total
    if not math.isfinite(value):
        return value
    return int(math.floor(value + 0.5))
