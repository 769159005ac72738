from typing import Dict, Optional, List, Any
import math
import pickle

from .trial_entry import TrialEntry
from ..config import Config


class TrialDatabase:
    def __init__(self, config: Config, path: Optional[str] = None):
        self.trials: Dict[str, TrialEntry] = {}
        self.config = config

        self.architectures: Dict[str, Dict[str, TrialEntry]] = {}
        self.best_trial_per_architecture: Dict[str, TrialEntry] = {}

        self.best_trial: Optional[TrialEntry] = None
        self.best_trial_id: Optional[str] = None

        for architecture in getattr(config, "architectures", []):
            self.architectures["-".join(str(size) for size in architecture)] = {}

        if path is not None:
            self.load(path)

    def load(self, path: str):
        with open(path, "rb") as f:
            load = pickle.load(f)

        self.trials = load["trials"]
        self.architectures = load["architectures"]
        self.best_trial_per_architecture = load["best_trial_per_architecture"]
        self.best_trial = load["best_trial"]
        self.best_trial_id = self.best_trial.id if self.best_trial is not None else None

    def save(self, path: str):
        with open(path, "wb") as f:
            pickle.dump({
                "trials": self.trials,
                "architectures": self.architectures,
                "best_trial_per_architecture": self.best_trial_per_architecture,
                "best_trial": self.best_trial,
            }, f)

    def add(self, trial: TrialEntry):
        self.trials[trial.id] = trial
        self.architectures.setdefault(trial.key, {})[trial.id] = trial

        self._update_best_trial_per_architecture(trial)
        self._update_best_trial(trial)

    def get_trial(self, id: str) -> Optional[TrialEntry]:
        return self.trials.get(id)

    def summary(self) -> Dict[str, Dict[str, Any]]:
        """Per architecture: trial count, convergence rate, plateau rate, mean final loss."""
        result = {}
        for key, trials in self.architectures.items():
            entries = list(trials.values())
            if not entries:
                continue

            losses = [t.metrics.get("loss", math.nan) for t in entries]
            finite = [l for l in losses if math.isfinite(l)]
            result[key] = {
                "trials": len(entries),
                "convergence_rate": sum(1 for t in entries if t.metrics.get("converged")) / len(entries),
                "plateau_rate": sum(1 for t in entries if t.metrics.get("plateaued")) / len(entries),
                "mean_loss": sum(finite) / len(finite) if finite else math.nan,
            }
        return result

    def _is_better(self, trial1: TrialEntry, trial2: TrialEntry) -> bool:
        loss1 = trial1.metrics.get("loss")
        loss2 = trial2.metrics.get("loss")

        # NaN losses never win
        if loss1 is not None and math.isnan(loss1):
            loss1 = None
        if loss2 is not None and math.isnan(loss2):
            loss2 = None

        if loss1 is not None and loss2 is not None:
            return loss1 < loss2
        elif loss1 is not None:
            return True
        return False

    def _update_best_trial(self, trial: TrialEntry):
        if self.best_trial is None or self._is_better(trial, self.best_trial):
            self.best_trial = trial
            self.best_trial_id = trial.id

    def _update_best_trial_per_architecture(self, trial: TrialEntry):
        best = self.best_trial_per_architecture.get(trial.key)
        if best is None or self._is_better(trial, best):
            self.best_trial_per_architecture[trial.key] = trial

    def __len__(self) -> int:
        return len(self.trials)
