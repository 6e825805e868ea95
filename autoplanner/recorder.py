import csv
import json
import logging
from datetime import datetime
from pathlib import Path

from autoplanner import events
from autoplanner.hyperparams import Hyperparameters

_LOGGER = logging.getLogger(__name__)


def make_results_dir(base: Path, hyperparams: Hyperparameters) -> Path:
    """Create a timestamped directory named after the run's hyperparameters."""
    timestamp = datetime.now().strftime("%Y_%m_%d_%H%M%S")
    hp = hyperparams
    name = (
        f"{timestamp}_({hp.episode_target}ep_{hp.steps_per_episode}st_"
        f"{hp.epsilon:.2f}e_{hp.alpha:.2f}a_{hp.gamma:.2f}g)"
    )
    results_dir = Path(base) / name
    results_dir.mkdir(parents=True, exist_ok=True)
    return results_dir


class RunRecorder:
    """
    Event subscriber that exports completed-episode rewards to CSV.

    One ``episode_rewards_run<N>.csv`` per run; a reset starts the next run
    file. Files are only written, never read back into a session.
    """

    def __init__(self, results_dir: Path, hyperparams: Hyperparameters, seed: int | None = None):
        self.results_dir = Path(results_dir)
        self.results_dir.mkdir(parents=True, exist_ok=True)
        self.run = 1
        self.written = 0

        meta = {
            "started": datetime.now().isoformat(timespec="seconds"),
            "seed": seed,
            **hyperparams.as_dict(),
        }
        with (self.results_dir / "run_meta.json").open("w") as mf:
            json.dump(meta, mf, indent=2)

    @property
    def current_file(self) -> Path:
        return self.results_dir / f"episode_rewards_run{self.run}.csv"

    def __call__(self, event: str, payload: dict) -> None:
        if event in (events.UPDATE, events.TRAINING_COMPLETE):
            self._append(payload.get("rewards", []))
        elif event == events.RESET_COMPLETE:
            if self.written:
                self.run += 1
            self.written = 0

    def _append(self, rewards: list[float]) -> None:
        new = rewards[self.written:]
        if not new:
            return
        path = self.current_file
        fresh = not path.exists()
        with path.open("a", newline="") as f:
            writer = csv.writer(f)
            if fresh:
                writer.writerow(["episode", "avg_reward"])
            for ep_idx, r in enumerate(new, start=self.written + 1):
                writer.writerow([ep_idx, r])
        self.written = len(rewards)
        _LOGGER.debug("recorded %d episode(s) to %s", len(new), path)
