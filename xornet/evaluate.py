import math
import random
from time import monotonic
from typing import List, Sequence

from .config import Config
from .data import TrialEntry
from .network import create_network
from .training import XOR_DATA, accuracy, compute_loss, train_step

PLATEAU_LOSS = 0.25


def run_trial(id: str, architecture: Sequence[int], config: Config, seed: int, iteration: int = 0) -> TrialEntry:
    rng = random.Random(seed)
    network = create_network(
        architecture,
        rng=rng,
        weight_scale=getattr(config, "weight_scale", 2.0),
        bias_scale=getattr(config, "bias_scale", 0.1),
    )

    learning_rate = config.learning_rate
    steps = config.steps_per_trial
    interval = max(1, getattr(config, "curve_interval", 100))
    tolerance = getattr(config, "plateau_tolerance", 0.01)

    start = monotonic()
    initial_loss = compute_loss(network)
    loss_curve: List[float] = [initial_loss]

    for step in range(1, steps + 1):
        loss = train_step(network, learning_rate)
        if step % interval == 0:
            loss_curve.append(loss)

    final_loss = compute_loss(network)
    final_accuracy = accuracy(network, XOR_DATA)

    return TrialEntry(
        id=id,
        architecture=list(architecture),
        seed=seed,
        learning_rate=learning_rate,
        steps=steps,
        iteration_found=iteration,
        duration=monotonic() - start,
        loss_curve=loss_curve,
        metrics={
            "initial_loss": initial_loss,
            "loss": final_loss,
            "accuracy": final_accuracy,
            "converged": final_accuracy == 1.0,
            "plateaued": math.isfinite(final_loss) and abs(final_loss - PLATEAU_LOSS) < tolerance,
        },
    )
