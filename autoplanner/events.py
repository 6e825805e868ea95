import logging
from typing import Any, Callable

_LOGGER = logging.getLogger(__name__)

# inbound commands
START = "start"
PAUSE = "pause"
RESET = "reset"
SET_PARAMS = "setParams"
COMMANDS = (START, PAUSE, RESET, SET_PARAMS)

# outbound events
INIT = "init"
UPDATE = "update"
EPISODE_LOG = "episodeLog"
TRAINING_COMPLETE = "trainingComplete"
RESET_COMPLETE = "resetComplete"
PARAMS_UPDATED = "paramsUpdated"
STARTED = "started"
PAUSED = "paused"

Emit = Callable[[str, dict], None]


class EventHub:
    """
    In-process publish/subscribe.

    Subscribers are called synchronously, in subscription order, from
    whatever code calls ``emit``. A subscriber that raises is logged and
    the remaining subscribers still run.
    """

    def __init__(self) -> None:
        self._subscribers: list[Emit] = []

    def subscribe(self, callback: Emit) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def emit(self, event: str, payload: dict[str, Any]) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event, payload)
            except Exception:
                _LOGGER.exception("subscriber %r failed on %s", callback, event)

    def __len__(self) -> int:
        return len(self._subscribers)
