from __future__ import annotations

import argparse
import asyncio
import logging
import os
from pathlib import Path

from aiohttp import web

from autoplanner import events
from autoplanner.events import EventHub
from autoplanner.hyperparams import Hyperparameters
from autoplanner.recorder import RunRecorder, make_results_dir
from autoplanner.server import create_app
from autoplanner.session import SessionConfig, SessionController


def _print_progress(current: int, total: int, avg_reward: float | None = None) -> None:
    """
    Print a progress bar to the console
    """
    width = 30
    total = max(1, int(total))
    filled = min(width, int(width * current / total))
    bar = "#" * filled + "-" * (width - filled)
    tail = f" | avg {avg_reward:+.3f}" if avg_reward is not None else ""
    msg = f"\r[SARSA] |{bar}| {current}/{total}{tail}"
    print(msg, end="", flush=True)


def build_session(args: argparse.Namespace) -> tuple[SessionController, EventHub, RunRecorder | None]:
    """
    Wire a hub, a session and (optionally) a recorder from parsed CLI args.
    """
    hyperparams = Hyperparameters(
        alpha=args.alpha,
        gamma=args.gamma,
        epsilon=args.eps,
        episode_target=args.episodes,
        steps_per_episode=args.steps,
    )
    config = SessionConfig(
        tick_interval=args.tick_ms / 1000.0,
        log_every=args.log_every,
        queue_size=args.queue_size,
        seed=args.seed,
    )
    hub = EventHub()
    session = SessionController(hub.emit, hyperparams=hyperparams, config=config)

    recorder = None
    if not args.no_record:
        results_dir = make_results_dir(Path(args.results_dir), hyperparams)
        recorder = RunRecorder(results_dir, hyperparams, seed=args.seed)
        hub.subscribe(recorder)
    return session, hub, recorder


async def run_headless(session: SessionController, hub: EventHub) -> list[float]:
    """
    Run one session to completion with no network surface.
    Returns the average reward of every completed episode.
    """
    done = asyncio.get_running_loop().create_future()

    def on_event(event: str, payload: dict) -> None:
        if event == events.UPDATE and payload["stepInEpisode"] == 0 and payload["rewards"]:
            _print_progress(payload["currentEpisode"], session.hyperparams.episode_target, payload["rewards"][-1])
        elif event == events.TRAINING_COMPLETE and not done.done():
            done.set_result(list(payload["rewards"]))

    unsubscribe = hub.subscribe(on_event)
    session.start()
    try:
        rewards = await done
    finally:
        unsubscribe()
        session.scheduler.stop()
    print() # Newline after progress bar
    return rewards


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Live SARSA dose-control training session"
    )
    parser.add_argument(
        "--mode", "-m", choices=("serve", "headless"), default="serve",
        help="Serve observers over HTTP/websocket, or train once without a server"
    )
    parser.add_argument(
        "--host", type=str, default="0.0.0.0",
        help="Interface to bind in serve mode"
    )
    parser.add_argument(
        "--port", type=int, default=int(os.environ.get("PORT", 4000)),
        help="Port to bind in serve mode (defaults to $PORT or 4000)"
    )
    parser.add_argument(
        "--episodes", "-p", type=int, default=100,
        help="Number of episodes before training completes"
    )
    parser.add_argument(
        "--steps", "-l", type=int, default=100,
        help="Steps per episode"
    )
    parser.add_argument(
        "--eps", "-e", type=float, default=0.2,
        help="Exploration rate ε"
    )
    parser.add_argument(
        "--alpha", "-a", type=float, default=0.1,
        help="Learning rate α"
    )
    parser.add_argument(
        "--gamma", "-g", type=float, default=0.9,
        help="Discount factor γ"
    )
    parser.add_argument(
        "--seed", "-s", type=int, default=None,
        help="Seed for environment and agent (random when omitted)"
    )
    parser.add_argument(
        "--tick_ms", type=float, default=50.0,
        help="Milliseconds between simulation ticks"
    )
    parser.add_argument(
        "--log_every", type=int, default=5,
        help="Send an episodeLog every N closed episodes (and on the final one)"
    )
    parser.add_argument(
        "--queue_size", type=int, default=64,
        help="Outbound events buffered per observer before the oldest is dropped"
    )
    parser.add_argument(
        "--results_dir", type=str, default="results",
        help="Base directory for recorded episode rewards"
    )
    parser.add_argument(
        "--no_record", action="store_true",
        help="Do not write episode rewards to disk"
    )
    parser.add_argument(
        "--log_level", type=str, default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ...)"
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    session, hub, recorder = build_session(args)

    if args.mode == "headless":
        rewards = asyncio.run(run_headless(session, hub))
        print(f"Finished {len(rewards)} episodes, last avg reward {rewards[-1]:+.3f}" if rewards else "No episodes run")
    else:
        app = create_app(session, hub)
        print(f"AutoPlanner SARSA server listening on :{args.port}")
        web.run_app(app, host=args.host, port=args.port, print=None)

    if recorder is not None:
        print(f"Results saved to → {recorder.results_dir}")


if __name__ == "__main__":
    main()
