from abc import ABC, abstractmethod
from typing import Any, Callable, Optional
from domain.models import PlayerOptions, VideoIdentifier

ReadyHook = Callable[[Any], None]


class PlayerInstancePort(ABC):
    @abstractmethod
    def cue_video_by_id(self, video_id: VideoIdentifier):
        pass

    @abstractmethod
    def play_video(self):
        pass

    @abstractmethod
    def get_current_time(self) -> float:
        """Seconds played so far."""
        pass

    @abstractmethod
    def get_duration(self) -> float:
        """Total seconds, 0 while unknown."""
        pass


class PlayerCapabilityPort(ABC):
    """The loaded player factory."""

    @abstractmethod
    def create_player(self, target: Any, options: PlayerOptions,
                      on_ready: Callable[[], None],
                      on_state_change: Callable[[int], None]) -> PlayerInstancePort:
        """Build a player inside `target`. Hooks are bound once, here."""
        pass


class CapabilityEnvironmentPort(ABC):
    """
    Where the capability comes from.

    The environment exposes one global ready slot. Whoever is installed there
    gets called exactly once when the capability becomes usable.
    """

    @abstractmethod
    def install_ready_hook(self, hook: Optional[ReadyHook]):
        """Install (or clear, with None) the global ready callback."""
        pass

    @abstractmethod
    def insert_loader(self, url: str):
        """Start loading the capability from `url`. Side effect, fire and forget."""
        pass
