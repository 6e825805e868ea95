import math

import numpy as np

STATE_SIZE = 100
ACTION_SIZE = 3
ACTION_NAMES = ("decrease", "hold", "increase")


def to_bucket(state: float, n_states: int = STATE_SIZE) -> int:
    """
    Map a continuous dose onto a table row.

    The dose is clamped to [0, n_states - 1] before flooring, so any raw
    value lands inside the table.
    """
    clamped = min(max(float(state), 0.0), float(n_states - 1))
    return int(math.floor(clamped))


class QTable:
    # Dense table of action values indexed by discretized dose

    def __init__(self, n_states: int = STATE_SIZE, n_actions: int = ACTION_SIZE):
        self.n_states = n_states
        self.n_actions = n_actions
        self.values = np.zeros((n_states, n_actions), dtype=float)

    def bucket(self, state: float) -> int:
        return to_bucket(state, self.n_states)

    def row(self, state: float) -> np.ndarray:
        """Action values for the bucket containing ``state`` (a view, not a copy)."""
        return self.values[self.bucket(state)]

    def get(self, state: float, action: int) -> float:
        return float(self.values[self.bucket(state), action])

    def add(self, state: float, action: int, delta: float) -> None:
        self.values[self.bucket(state), action] += delta

    def reset(self) -> None:
        self.values.fill(0.0)

    def sample(self, state: float) -> list[float]:
        """JSON-friendly copy of the row for ``state``."""
        return [float(v) for v in self.row(state)]
