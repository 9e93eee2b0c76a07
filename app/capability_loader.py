import asyncio
import logging
from enum import Enum, auto
from typing import Any, Optional

from domain.models import DEFAULT_API_URL
from domain.ports import CapabilityEnvironmentPort

logger = logging.getLogger(__name__)


class LoaderState(Enum):
    UNLOADED = auto()
    LOADING = auto()
    READY = auto()


class CapabilityLoader:
    """
    Loads the external player capability once and hands it to every requester.

    One instance is created by the composition root and shared by reference
    with all widgets. Requests made while a load is in flight join the same
    wait instead of starting a second load. There is no timeout: if the
    environment never reports readiness, waiters stay suspended.
    """

    def __init__(self, environment: CapabilityEnvironmentPort, api_url: str = DEFAULT_API_URL):
        self._environment = environment
        self._api_url = api_url
        self._state = LoaderState.UNLOADED
        self._capability: Optional[Any] = None
        self._waiters: list[asyncio.Future] = []

    @property
    def state(self) -> LoaderState:
        return self._state

    @property
    def capability(self) -> Optional[Any]:
        return self._capability

    @property
    def waiter_count(self) -> int:
        return len(self._waiters)

    async def ensure_capability(self) -> Any:
        if self._state is LoaderState.READY:
            return self._capability

        future = asyncio.get_running_loop().create_future()
        self._waiters.append(future)

        if self._state is LoaderState.UNLOADED:
            self._state = LoaderState.LOADING
            logger.info("Loading player capability from %s", self._api_url)
            self._environment.install_ready_hook(self._on_capability_ready)
            self._environment.insert_loader(self._api_url)
        else:
            logger.debug("Capability load in flight, joining %d waiter(s)", len(self._waiters) - 1)

        return await future

    def _on_capability_ready(self, capability: Any):
        if self._state is LoaderState.READY:
            logger.warning("Capability ready hook fired twice, ignoring")
            return

        self._capability = capability
        self._state = LoaderState.READY
        self._environment.install_ready_hook(None)

        waiters, self._waiters = self._waiters, []
        logger.info("Player capability ready, resolving %d waiter(s)", len(waiters))
        for future in waiters:
            # Waiters whose task was cancelled (e.g. widget torn down) are skipped
            if not future.done():
                future.set_result(capability)
