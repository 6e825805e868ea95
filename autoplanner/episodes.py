from dataclasses import dataclass, field


@dataclass
class EpisodeTracker:
    """Per-step reward bookkeeping and the single place episode boundaries are decided."""
    episode: int = 0              # number of completed episodes
    step: int = 0                 # steps taken in the current episode
    total_reward: float = 0.0     # reward accumulated in the current episode
    rewards: list[float] = field(default_factory=list)  # average reward per completed episode

    def record_step(self, reward: float) -> None:
        self.total_reward += float(reward)
        self.step += 1

    def maybe_close_episode(self, steps_per_episode: float) -> float | None:
        """
        Close the episode once the step counter reaches steps_per_episode.

        Returns the episode's average reward when it closed, otherwise None.
        The average divides by the steps actually recorded, which equals
        steps_per_episode for any positive whole number.
        """
        if self.step < steps_per_episode:
            return None
        avg_reward = self.total_reward / self.step
        self.rewards.append(avg_reward)
        self.episode += 1
        self.total_reward = 0.0
        self.step = 0
        return avg_reward

    def reset(self) -> None:
        self.episode = 0
        self.step = 0
        self.total_reward = 0.0
        self.rewards = []
