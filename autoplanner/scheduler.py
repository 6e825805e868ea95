import asyncio
import logging
from typing import Callable

_LOGGER = logging.getLogger(__name__)

DEFAULT_INTERVAL = 0.05  # seconds, ~20 ticks per second


class TickScheduler:
    """
    Fixed-interval recurring tick on the running asyncio loop.

    Every start/stop bumps ``generation``. A timer callback carries the
    generation it was armed with and does nothing if that generation is no
    longer current, so a callback that was already due when ``stop`` ran
    can never reach ``on_tick``.
    """

    def __init__(self, on_tick: Callable[[], None], interval: Callable[[], float] | float = DEFAULT_INTERVAL):
        self._on_tick = on_tick
        self._interval = interval
        self._handle: asyncio.TimerHandle | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self.generation = 0
        self.running = False

    @property
    def interval(self) -> float:
        value = self._interval() if callable(self._interval) else self._interval
        return max(0.0, float(value))

    def start(self) -> bool:
        """Begin ticking. Returns False (and does nothing) when already running."""
        if self.running:
            return False
        self._loop = asyncio.get_running_loop()
        self.generation += 1
        self.running = True
        self._arm(self.generation)
        return True

    def stop(self) -> None:
        """Cancel the pending tick and invalidate any in-flight one. Idempotent."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self.running:
            self.running = False
            self.generation += 1

    def is_current(self, generation: int) -> bool:
        return self.running and generation == self.generation

    def _arm(self, generation: int) -> None:
        self._handle = self._loop.call_later(self.interval, self._fire, generation)

    def _fire(self, generation: int) -> None:
        if not self.is_current(generation):
            _LOGGER.debug("dropping stale tick from generation %d", generation)
            return
        self._handle = None
        try:
            self._on_tick()
        finally:
            # on_tick may have stopped us (e.g. training complete)
            if self.is_current(generation):
                self._arm(generation)
