import pytest

from autoplanner.hyperparams import Hyperparameters
from autoplanner.session import SessionConfig, SessionController


class Collector:
    """Records (event, payload) pairs emitted by a session."""

    def __init__(self):
        self.events = []

    def __call__(self, event, payload):
        self.events.append((event, payload))

    def named(self, name):
        return [p for e, p in self.events if e == name]

    def clear(self):
        self.events.clear()


@pytest.fixture
def collector():
    return Collector()


@pytest.fixture
def make_session(collector):
    def _make(seed=7, tick_interval=0.05, log_every=5, **hp):
        session = SessionController(
            collector,
            hyperparams=Hyperparameters(**hp),
            config=SessionConfig(tick_interval=tick_interval, log_every=log_every, seed=seed),
        )
        collector.clear()
        return session
    return _make
