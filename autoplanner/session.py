"""
Training session: owns the environment, the agent, the episode bookkeeping
and the tick scheduler, and is the only thing that mutates them.

All methods are meant to be called from one asyncio loop thread. Each call
runs to completion (including the events it emits) before the next tick or
command is processed.
"""
import logging
from dataclasses import dataclass
from typing import Any, Mapping

import numpy as np

from autoplanner import events
from autoplanner.episodes import EpisodeTracker
from autoplanner.events import Emit
from autoplanner.hyperparams import Hyperparameters
from autoplanner.sarsa import SarsaAgent
from autoplanner.scheduler import DEFAULT_INTERVAL, TickScheduler
from dose_gym import DoseEnv

_LOGGER = logging.getLogger(__name__)


@dataclass
class SessionConfig:
    tick_interval: float = DEFAULT_INTERVAL  # seconds between ticks
    log_every: int = 5                       # episodeLog cadence (also sent on the final episode)
    queue_size: int = 64                     # outbound events buffered per observer
    seed: int | None = None                  # seeds env/agent generators; None = fresh entropy


def _discard(event: str, payload: dict) -> None:
    pass


class SessionController:

    def __init__(
        self,
        emit: Emit | None = None,
        hyperparams: Hyperparameters | None = None,
        config: SessionConfig | None = None,
    ):
        self._emit = emit or _discard
        self.hyperparams = hyperparams or Hyperparameters()
        self.config = config or SessionConfig()
        # session-level generator hands out seeds for every env/agent we build
        self._seeds = np.random.default_rng(self.config.seed)
        self.agent = SarsaAgent(seed=self._next_seed())
        self.tracker = EpisodeTracker()
        self.scheduler = TickScheduler(self.tick, interval=lambda: self.config.tick_interval)
        self.env: DoseEnv | None = None
        self.state: float | None = None
        self.action: int | None = None
        self._completion_sent = False
        self._reinitialize()

    # ---------- read-only views ----------

    @property
    def running(self) -> bool:
        return self.scheduler.running

    @property
    def episode(self) -> int:
        return self.tracker.episode

    @property
    def step_in_episode(self) -> int:
        return self.tracker.step

    @property
    def rewards(self) -> list[float]:
        return self.tracker.rewards

    @property
    def initialized(self) -> bool:
        return self.state is not None and self.action is not None

    def status(self) -> dict:
        return {
            "running": self.running,
            "currentEpisode": self.episode,
            "stepInEpisode": self.step_in_episode,
            "state": self.state,
            "action": self.action,
            "rewardsLength": len(self.rewards),
        }

    def init_payload(self) -> dict:
        """Everything a late-joining observer needs to rebuild its view."""
        payload = self.hyperparams.to_payload()
        payload.update({
            "currentEpisode": self.episode,
            "rewards": list(self.rewards),
        })
        return payload

    # ---------- commands ----------

    def start(self) -> None:
        if self.running:
            # already ticking; still answer so late joiners see the run state
            self._emit(events.STARTED, {"running": True})
            return
        if not self.initialized:
            self.state, _ = self.env.reset()
            self.action = self.agent.act(self.state, self.hyperparams.epsilon)
        self._completion_sent = False
        self.scheduler.start()
        _LOGGER.info("training started at episode %d", self.episode)
        self._emit(events.STARTED, {"running": True})

    def pause(self) -> None:
        self.scheduler.stop()
        self._emit(events.PAUSED, {"running": False})

    def reset(self) -> None:
        # stop first: bumps the scheduler generation so a tick already due is dropped
        self.scheduler.stop()
        self._reinitialize()
        _LOGGER.info("session reset, initial dose %.2f", self.state)
        self._emit(events.RESET_COMPLETE, {
            "currentEpisode": self.episode,
            "rewards": list(self.rewards),
            "state": self.state,
        })

    def configure(self, partial: Mapping[str, Any] | None) -> dict:
        """Merge numeric hyperparameters; applies from the next tick on."""
        applied = self.hyperparams.merge(partial)
        if applied:
            _LOGGER.info("hyperparameters updated: %s", ", ".join(applied))
        return self.hyperparams.to_payload()

    def set_params(self, partial: Mapping[str, Any] | None, reply: Emit | None = None) -> dict:
        payload = self.configure(partial)
        (reply or self._emit)(events.PARAMS_UPDATED, payload)
        return payload

    def handle_command(self, command: str, payload: Any = None, reply: Emit | None = None) -> bool:
        """Dispatch one inbound command. Returns False for unknown commands."""
        if command == events.START:
            self.start()
        elif command == events.PAUSE:
            self.pause()
        elif command == events.RESET:
            self.reset()
        elif command == events.SET_PARAMS:
            self.set_params(payload, reply=reply)
        else:
            _LOGGER.warning("ignoring unknown command %r", command)
            return False
        return True

    # ---------- tick ----------

    def tick(self) -> None:
        """
        Advance the simulation by one step.

        Order: completion check, env step, next-action selection, SARSA
        update, bookkeeping, optional episode log, per-tick update event.
        """
        hp = self.hyperparams
        if self.episode >= hp.episode_target:
            self.scheduler.stop()
            if not self._completion_sent:
                self._completion_sent = True
                _LOGGER.info("training complete after %d episodes", self.episode)
                self._emit(events.TRAINING_COMPLETE, {
                    "currentEpisode": self.episode,
                    "rewards": list(self.rewards),
                })
            return

        next_state, reward, _, _, _ = self.env.step(self.action)
        next_action = self.agent.act(next_state, hp.epsilon)
        self.agent.update(self.state, self.action, reward, next_state, next_action, hp.alpha, hp.gamma)
        self.state, self.action = next_state, next_action

        self.tracker.record_step(reward)
        avg_reward = self.tracker.maybe_close_episode(hp.steps_per_episode)
        if avg_reward is not None and self._should_log(self.episode):
            self._emit(events.EPISODE_LOG, {
                "episode": self.episode,
                "avgReward": f"{avg_reward:.3f}",
            })

        self._emit(events.UPDATE, {
            "state": self.state,
            "action": self.action,
            "currentEpisode": self.episode,
            "stepInEpisode": self.step_in_episode,
            "rewards": list(self.rewards),
            "qSample": self.agent.q.sample(self.state),
        })

    # ---------- helpers ----------

    def _should_log(self, episode: int) -> bool:
        every = self.config.log_every
        return (every > 0 and episode % every == 0) or episode == self.hyperparams.episode_target

    def _next_seed(self) -> int:
        return int(self._seeds.integers(0, 2**32))

    def _reinitialize(self) -> None:
        self.agent.reset()
        self.agent.rng = np.random.default_rng(self._next_seed())
        self.tracker.reset()
        self.env = DoseEnv(seed=self._next_seed())
        self.state, _ = self.env.reset()
        self.action = self.agent.act(self.state, self.hyperparams.epsilon)
        self._completion_sent = False
