import asyncio
import multiprocessing as mp
import queue
from typing import Optional, Dict, List, Tuple
import uuid
import os
from time import monotonic
import traceback

import matplotlib.pyplot as plt
import pandas as pd
import logging

from .config import Config
from .data import TrialEntry, TrialDatabase

STATS_HEADERS = ["id", "architecture", "seed", "iteration", "learning_rate", "steps",
                 "initial_loss", "loss", "accuracy", "converged", "plateaued", "duration"]

# -------------------------------
# Logging helpers
# -------------------------------
class QueueHandler(logging.Handler):
    def __init__(self, queue: mp.Queue):
        super().__init__()
        self.queue = queue

    def emit(self, record):
        try:
            self.queue.put(record)
        except Exception:
            self.handleError(record)

def listener_process(queue: mp.Queue, log_file: str, level: str = "INFO"):
    logger = logging.getLogger("XorInvestigation")
    logger.setLevel(logging.DEBUG)

    ch = logging.StreamHandler()
    ch.setLevel(getattr(logging, level, logging.INFO))

    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    fh = logging.FileHandler(log_file)
    fh.setLevel(logging.DEBUG)

    fmt = logging.Formatter("[%(asctime)s][%(processName)s][%(levelname)s] %(message)s")
    ch.setFormatter(fmt)
    fh.setFormatter(fmt)

    logger.addHandler(ch)
    logger.addHandler(fh)

    while True:
        record = queue.get()
        if record is None:
            break
        logger.handle(record)

# -------------------------------
# Worker logic
# -------------------------------
def _worker_target(
    config: Config,
    trial_id: str,
    architecture: List[int],
    seed: int,
    iteration: int,
    q: mp.Queue,
    log_queue: Optional[mp.Queue],
) -> None:
    logger = logging.getLogger(f"Worker-{iteration}")
    logger.setLevel(logging.DEBUG)
    if log_queue:
        logger.addHandler(QueueHandler(log_queue))

    try:
        from .evaluate import run_trial

        logger.debug(f"Trial {trial_id}: architecture={architecture}, seed={seed}")
        result = run_trial(trial_id, architecture, config, seed, iteration)
        q.put(result)

    except Exception:
        logger.error(f"[Worker Error]Iteration {iteration}: {traceback.format_exc()}")
        q.put(None)

class InvestigationLoop:
    """Trains many independently seeded networks in worker processes and records how each one ends up."""
    def __init__(self, config: Config) -> None:
        self.config = config
        self.timeout = getattr(config, "worker_timeout", 600)
        self.max_workers = config.num_workers
        self.log_path = getattr(config, "log_path", "investigation.log")
        self.architectures = [list(a) for a in getattr(config, "architectures", [config.architecture])]

    async def run_investigation(self) -> TrialDatabase:
        self.db = TrialDatabase(self.config)

        stats_dir = os.path.dirname(self.config.stats_path)
        if stats_dir:
            os.makedirs(stats_dir, exist_ok=True)
        if not os.path.exists(self.config.stats_path):
            df = pd.DataFrame(columns=STATS_HEADERS)
            df.to_csv(self.config.stats_path, index=False)

        self.log_queue = mp.Queue()
        listener = mp.Process(
            target=listener_process,
            args=(self.log_queue, self.log_path, getattr(self.config, "log_level", "INFO")),
        )
        listener.start()

        logger = logging.getLogger("XorInvestigation")
        logger.setLevel(logging.DEBUG)
        handler = QueueHandler(self.log_queue)
        logger.addHandler(handler)

        logger.info(f"Starting loss investigation: {self.config.num_trials} trials over {self.architectures}")

        pending: Dict[int, Tuple[mp.Process, mp.Queue, float]] = {}
        current_iteration = 0
        completed_iterations = 0

        while len(pending) < self.max_workers and current_iteration < self.config.num_trials:
            proc, q = self._spawn_worker(current_iteration)
            pending[current_iteration] = (proc, q, monotonic())
            logger.info(f"Submitted Worker: {current_iteration}")
            current_iteration += 1

        while pending:
            done_iters = []

            for iteration, (proc, q, start_time) in list(pending.items()):
                # check timeout
                if monotonic() - start_time > self.timeout:
                    logger.warning(f"Iteration {iteration}: Exceeded {self.timeout}s. Killing process {proc.pid}.")
                    proc.terminate()
                    proc.join()
                    done_iters.append(iteration)
                    continue

                # Non-blocking result
                try:
                    result = q.get_nowait()
                except queue.Empty:
                    if proc.exitcode is not None:
                        logger.error(f"Iteration {iteration}: Worker exited with code {proc.exitcode} and no result")
                        done_iters.append(iteration)
                    continue

                proc.join()
                if result is not None:
                    self.db.add(result)
                    self.log_stats(result)
                    completed_iterations += 1
                    if completed_iterations % self.config.db_save_interval == 0:
                        self.db.save(self.config.db_path)
                        self.log_checkpoint(logger, completed_iterations)
                    logger.info(f"Iteration {iteration}: Saved, metrics={result.metrics}")
                done_iters.append(iteration)

            # cleanup finished/terminated
            for it in done_iters:
                pending.pop(it, None)

            # spawn new workers if slots are free
            while len(pending) < self.max_workers and current_iteration < self.config.num_trials:
                proc, q = self._spawn_worker(current_iteration)
                pending[current_iteration] = (proc, q, monotonic())
                logger.info(f"Submitted Worker: {current_iteration}")
                current_iteration += 1

            await asyncio.sleep(0.01)

        self.db.save(self.config.db_path)
        if len(self.db):
            self.plot_loss_curves(self.config.plot_path)

        for key, stats in self.db.summary().items():
            logger.info(
                f"[Summary] {key}: trials={stats['trials']}, converged={stats['convergence_rate']:.0%}, "
                f"plateaued={stats['plateau_rate']:.0%}, mean loss={stats['mean_loss']:.6f}"
            )
        logger.info("Loss Investigation Complete")

        logger.removeHandler(handler)
        self.log_queue.put(None)
        listener.join()
        return self.db

    def _spawn_worker(self, iteration: int) -> Tuple[mp.Process, mp.Queue]:
        architecture = self.architectures[iteration % len(self.architectures)]
        seed = getattr(self.config, "base_seed", 0) + iteration
        q = mp.Queue()
        proc = mp.Process(
            target=_worker_target,
            args=(self.config, str(uuid.uuid4()), architecture, seed, iteration, q, self.log_queue),
        )
        proc.start()
        return proc, q

    def log_stats(self, result: TrialEntry) -> None:
        df = pd.DataFrame(
            {
                "id": [result.id],
                "architecture": [result.key],
                "seed": [result.seed],
                "iteration": [result.iteration_found],
                "learning_rate": [result.learning_rate],
                "steps": [result.steps],
                "initial_loss": [result.metrics["initial_loss"]],
                "loss": [result.metrics["loss"]],
                "accuracy": [result.metrics["accuracy"]],
                "converged": [result.metrics["converged"]],
                "plateaued": [result.metrics["plateaued"]],
                "duration": [result.duration],
            }
        )
        df.to_csv(self.config.stats_path, mode="a", header=False, index=False)

    def log_checkpoint(self, logger: logging.Logger, iteration: int):
        best = self.db.best_trial
        best_architectures = sorted(
            self.db.best_trial_per_architecture.items(),
            key=lambda x: x[1].metrics["loss"]
        )

        architectures_str = " | ".join(
            f"{key}: loss={trial.metrics['loss']:.6f}, accuracy={trial.metrics['accuracy']:.2f}"
            for key, trial in best_architectures
        )

        logger.info(
            f"[Checkpoint] Iteration: {iteration} | saved to {self.config.db_path} | "
            f"Global Best -> {best.key} loss={best.metrics['loss']:.6f} | "
            f"Best per Architecture -> {architectures_str}"
        )

    def plot_loss_curves(self, path: str) -> None:
        fig, ax = plt.subplots(figsize=(8, 5))
        colors = {}
        for trial in self.db.trials.values():
            color = colors.setdefault(trial.key, f"C{len(colors)}")
            interval = max(1, getattr(self.config, "curve_interval", 100))
            xs = [i * interval for i in range(len(trial.loss_curve))]
            ax.plot(xs, trial.loss_curve, color=color, alpha=0.4, linewidth=1)

        for key, color in colors.items():
            ax.plot([], [], color=color, label=key)
        ax.axhline(0.25, color="grey", linestyle="--", linewidth=1, label="plateau (0.25)")
        ax.set_xlabel("training step")
        ax.set_ylabel("loss")
        ax.legend()

        plot_dir = os.path.dirname(path)
        if plot_dir:
            os.makedirs(plot_dir, exist_ok=True)
        fig.savefig(path)
        plt.close(fig)


def load_stats(path: str) -> pd.DataFrame:
    """Read the per-trial CSV written by ``InvestigationLoop.log_stats``."""
    return pd.read_csv(path)


def summarize_stats(df: pd.DataFrame) -> pd.DataFrame:
    """Convergence and plateau rates plus mean final loss, grouped by architecture."""
    return df.groupby("architecture").agg(
        trials=("id", "count"),
        convergence_rate=("converged", "mean"),
        plateau_rate=("plateaued", "mean"),
        mean_loss=("loss", "mean"),
    )
