import numpy as np
import gymnasium as gym
from gymnasium import spaces
from typing import Optional

__all__ = ["DoseEnv"]

# Dose domain
DOSE_MIN, DOSE_MAX = 0.0, 100.0
INIT_LOW, INIT_HIGH = 30.0, 70.0
MAX_STEP = 5.0

# Reward shaping
TARGET_DOSE = 70.0
OAR_LIMIT = 26.0
OAR_PENALTY_SCALE = 10.0


class DoseEnv(gym.Env):
    """
    Scalar dose-delivery process.
    Actions: decrease (0), hold (1), increase (2).
    Reward: minus the distance to the target dose minus a penalty for
    exceeding the organ-at-risk limit.

    The episode never terminates on its own; episode length is decided by
    whoever drives the environment.
    """
    metadata = {"render_modes": []}

    def __init__(
        self,
        *,
        target_dose: float = TARGET_DOSE, # dose the agent should settle on
        oar_limit: float = OAR_LIMIT, # dose above which the organ at risk is penalised
        max_step: float = MAX_STEP, # largest dose change per step
        seed: Optional[int] = None, # random seed for reproducibility
    ) -> None:
        super().__init__()

        self.rng = np.random.default_rng(seed)
        self.target_dose = target_dose
        self.oar_limit = oar_limit
        self.max_step = max_step

        self.action_space = spaces.Discrete(3)
        self.observation_space = spaces.Box(low=DOSE_MIN, high=DOSE_MAX, shape=(), dtype=np.float64)

        self.state = self._sample_initial()

    def reset(self, *, seed: Optional[int] = None, options=None):
        if seed is not None:
            self.rng = np.random.default_rng(seed)
        self.state = self._sample_initial()
        return self.state, {}

    def step(self, action: int):
        assert self.action_space.contains(action)

        # hold (1) never moves the dose, the other two drift by a random magnitude
        delta = (int(action) - 1) * float(self.rng.random()) * self.max_step
        self.state = float(np.clip(self.state + delta, DOSE_MIN, DOSE_MAX))

        target_error = abs(self.target_dose - self.state)
        oar_penalty = self._oar_penalty(self.state)
        reward = -target_error - oar_penalty

        info = {"target_error": target_error, "oar_penalty": oar_penalty, "delta": delta}
        return self.state, reward, False, False, info

    def _oar_penalty(self, dose: float) -> float:
        """Penalty proportional to the excess over the organ-at-risk limit."""
        return max(0.0, (dose - self.oar_limit) / OAR_PENALTY_SCALE)

    def _sample_initial(self) -> float:
        """Uniform initial dose inside the safe starting band."""
        return float(self.rng.uniform(INIT_LOW, INIT_HIGH))
