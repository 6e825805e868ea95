import math
import numbers
from dataclasses import dataclass, fields
from typing import Any, Mapping

# wire name -> attribute; the upper-case names are the ones older clients send
FIELD_ALIASES = {
    "alpha": "alpha",
    "ALPHA": "alpha",
    "gamma": "gamma",
    "GAMMA": "gamma",
    "epsilon": "epsilon",
    "EPSILON": "epsilon",
    "episodeTarget": "episode_target",
    "episode_target": "episode_target",
    "NUM_EPISODES": "episode_target",
    "stepsPerEpisode": "steps_per_episode",
    "steps_per_episode": "steps_per_episode",
    "STEPS_PER_EPISODE": "steps_per_episode",
}

COUNT_FIELDS = ("episode_target", "steps_per_episode")


def is_numeric(value: Any) -> bool:
    """Real, finite and not a bool."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    return math.isfinite(value)


@dataclass
class Hyperparameters:
    alpha: float = 0.1            # learning rate
    gamma: float = 0.9            # discount factor
    epsilon: float = 0.2          # exploration rate
    episode_target: int = 100     # episodes after which training completes
    steps_per_episode: int = 100  # ticks per episode

    def merge(self, partial: Mapping[str, Any] | None) -> list[str]:
        """
        Overwrite every recognised field whose value is numeric.

        Unknown keys and non-numeric values are skipped without complaint.
        Returns the names of the attributes that were written.
        """
        if not isinstance(partial, Mapping):
            return []
        applied = []
        for key, value in partial.items():
            name = FIELD_ALIASES.get(key)
            if name is None or not is_numeric(value):
                continue
            if name in COUNT_FIELDS and float(value).is_integer():
                value = int(value)
            setattr(self, name, value)
            applied.append(name)
        return applied

    def to_payload(self) -> dict:
        return {
            "alpha": self.alpha,
            "gamma": self.gamma,
            "epsilon": self.epsilon,
            "episodeTarget": self.episode_target,
            "stepsPerEpisode": self.steps_per_episode,
        }

    def as_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}
