from __future__ import annotations

import argparse
import json
import re
from pathlib import Path
from typing import Optional

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import pandas as pd

# ---------- Helpers ----------

def find_latest_results_dir(base: Path) -> Optional[Path]:
    if not base.exists():
        return None
    dirs = [p for p in base.iterdir() if p.is_dir()]
    if not dirs:
        return None
    dirs.sort(key=lambda p: p.name, reverse=True)
    return dirs[0]


def ensure_fig_dir(d: Path) -> Path:
    d.mkdir(parents=True, exist_ok=True)
    return d


def savefig(fig, outdir: Path, name: str) -> Path:
    outdir = ensure_fig_dir(outdir)
    path = outdir / f"{name}.png"
    fig.tight_layout()
    fig.savefig(path, dpi=150)
    plt.close(fig)
    print(f"[saved] {path}")
    return path


def load_runs(results_dir: Path) -> Optional[pd.DataFrame]:
    """Stack every episode_rewards_run<N>.csv into one frame with a ``run`` column."""
    frames = []
    for f in sorted(results_dir.glob("episode_rewards_run*.csv")):
        m = re.match(r"episode_rewards_run(?P<run>\d+)\.csv$", f.name)
        if not m:
            continue
        df = pd.read_csv(f)
        if df.empty:
            continue
        df["run"] = int(m.group("run"))
        frames.append(df)
    if frames:
        return pd.concat(frames, ignore_index=True)
    return None


# ---------- Plotter ----------

def plot_learning_curves(runs: pd.DataFrame, out: Path, rolling: int = 10) -> Path:
    df = runs.sort_values(["run", "episode"])

    fig, ax = plt.subplots(figsize=(10, 6))
    for run, g in df.groupby("run"):
        line, = ax.plot(g["episode"], g["avg_reward"], alpha=0.3, linewidth=1)
        smooth = g["avg_reward"].rolling(rolling, min_periods=max(1, rolling // 2)).mean()
        ax.plot(g["episode"], smooth, linewidth=2, color=line.get_color(), label=f"run {run}")
    ax.set_title(f"Average reward per episode (rolling={rolling})")
    ax.set_xlabel("Episode")
    ax.set_ylabel("Average reward")
    ax.legend()
    return savefig(fig, out, "learning_curves")


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument('--dir', type=str, default=None, help='results directory (default: newest under ./results)')
    ap.add_argument('--rolling', type=int, default=10, help='window for the rolling mean')
    args = ap.parse_args()

    base = Path('results')
    if args.dir:
        results_dir = Path(args.dir)
    else:
        results_dir = find_latest_results_dir(base)
    if results_dir is None or not results_dir.exists():
        print('[error] No results directory found. Pass --dir <path> or run run_session.py first.')
        return

    print(f"[info] results-dir: {results_dir}")
    fig_dir = ensure_fig_dir(results_dir / 'figures')

    meta_path = results_dir / 'run_meta.json'
    if meta_path.exists():
        meta = json.loads(meta_path.read_text())
        print('[meta]', json.dumps(meta, indent=2))

    runs = load_runs(results_dir)
    if runs is None:
        print('[warn] no episode_rewards_run*.csv found, nothing to plot')
        return
    plot_learning_curves(runs, fig_dir, rolling=args.rolling)

    summary = runs.groupby("run")["avg_reward"].agg(["count", "mean", "min", "max"])
    print(summary.to_string())
    print(f"Done. Figures are in: {fig_dir}")


if __name__ == '__main__':
    main()
