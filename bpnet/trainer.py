"""
trainer.py
~~~~~~~~~~

Epoch loop for online backpropagation training.

Each pattern is presented once per epoch and weights are updated after
every pattern. Progress is reported through an optional callback, and an
optional yield function lets cooperative schedulers run between epochs.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np

from bpnet.network import Network
from bpnet.pattern import Pattern

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 0.1


def pattern_within_tolerance(
    network: Network,
    pattern: Pattern,
    tolerance: float
) -> bool:
    """Run a pattern and check every output is within tolerance of its target."""
    network.set_input_pattern(pattern)
    network.run()
    return all(
        abs(network.get_output(i) - pattern.get_output(i)) <= tolerance
        for i in range(pattern.out_size)
    )


def evaluate(
    network: Network,
    patterns: Sequence[Pattern],
    tolerance: float = DEFAULT_TOLERANCE
) -> int:
    """
    Count patterns whose outputs are all within tolerance of the targets.

    Weights are not changed.
    """
    return sum(
        1 for pattern in patterns
        if pattern_within_tolerance(network, pattern, tolerance)
    )


def total_error(network: Network, patterns: Sequence[Pattern]) -> float:
    """Sum of squared output errors over all patterns, without learning."""
    error = 0.0
    for pattern in patterns:
        network.set_input_pattern(pattern)
        network.run()
        for i in range(pattern.out_size):
            diff = pattern.get_output(i) - network.get_output(i)
            error += diff * diff
    return error


def train(
    network: Network,
    patterns: Sequence[Pattern],
    epochs: int,
    shuffle: bool = False,
    tolerance: Optional[float] = None,
    callback: Optional[Callable[[Dict[str, Any]], None]] = None,
    yield_func: Optional[Callable[[], None]] = None,
    seed: Optional[int] = None
) -> Dict[str, Any]:
    """
    Train a network on a list of patterns.

    Args:
        network: Network to train in place
        patterns: Training patterns
        epochs: Maximum number of passes over the patterns
        shuffle: Present patterns in a new random order every epoch
        tolerance: Stop once every output of every pattern is within
            this distance of its target
        callback: Called after each epoch with a progress dictionary
        yield_func: Called after each epoch to let other tasks run
        seed: Seed for the shuffling order

    Returns:
        dict: ``epochs`` run, per-epoch ``errors``, ``converged``,
        ``correct``, ``total`` and ``elapsed_time``

    Raises:
        ValueError: If epochs < 1 or there are no patterns
    """
    if epochs < 1:
        raise ValueError(f"epochs must be at least 1, got {epochs}")
    if not patterns:
        raise ValueError("Cannot train on an empty pattern list")

    rng = np.random.default_rng(seed)
    order = list(range(len(patterns)))
    count_tolerance = tolerance if tolerance is not None else DEFAULT_TOLERANCE

    errors: List[float] = []
    converged = False
    correct = 0
    start_time = time.time()

    logger.debug(
        f"Training {network} on {len(patterns)} pattern(s) for up to "
        f"{epochs} epoch(s)"
    )

    for epoch in range(1, epochs + 1):
        if shuffle:
            order = [int(i) for i in rng.permutation(len(patterns))]

        epoch_error = 0.0
        for index in order:
            epoch_error += network.train_pattern(patterns[index])
        errors.append(epoch_error)

        correct = evaluate(network, patterns, count_tolerance)

        if callback is not None:
            callback({
                'epoch': epoch,
                'total_epochs': epochs,
                'error': epoch_error,
                'correct': correct,
                'total': len(patterns),
                'elapsed_time': time.time() - start_time
            })

        if yield_func is not None:
            yield_func()

        if tolerance is not None and correct == len(patterns):
            converged = True
            logger.debug(f"Converged after {epoch} epoch(s)")
            break

    elapsed = time.time() - start_time
    logger.info(
        f"Trained for {len(errors)} epoch(s) in {elapsed:.2f}s: "
        f"final error {errors[-1]:.6f}, {correct}/{len(patterns)} within "
        f"{count_tolerance}"
    )

    return {
        'epochs': len(errors),
        'errors': errors,
        'converged': converged,
        'correct': correct,
        'total': len(patterns),
        'elapsed_time': elapsed
    }
