"""
datasets.py
~~~~~~~~~~~

Built-in toy pattern sets and pattern file helpers.

Units have no bias weights, so the built-in sets append a constant 1.0
input by default. A network for them needs one extra input unit.
"""

import logging
from typing import Callable, Dict, List, Tuple

from bpnet.pattern import Pattern, load_patterns, save_patterns

logger = logging.getLogger(__name__)


class UnknownDatasetError(KeyError):
    """Raised when a built-in dataset name is not recognised."""


_TRUTH_TABLE_INPUTS: List[Tuple[float, float]] = [
    (0.0, 0.0),
    (0.0, 1.0),
    (1.0, 0.0),
    (1.0, 1.0),
]


def _truth_table(targets: List[float], bias: bool) -> List[Pattern]:
    patterns = []
    for pattern_id, ((a, b), target) in enumerate(zip(_TRUTH_TABLE_INPUTS, targets)):
        inputs = [a, b, 1.0] if bias else [a, b]
        patterns.append(Pattern.from_values(pattern_id, inputs, [target]))
    return patterns


def xor_patterns(bias: bool = True) -> List[Pattern]:
    """The four XOR patterns: (0,0)->0, (0,1)->1, (1,0)->1, (1,1)->0."""
    return _truth_table([0.0, 1.0, 1.0, 0.0], bias)


def and_patterns(bias: bool = True) -> List[Pattern]:
    """The four AND patterns."""
    return _truth_table([0.0, 0.0, 0.0, 1.0], bias)


def or_patterns(bias: bool = True) -> List[Pattern]:
    """The four OR patterns."""
    return _truth_table([0.0, 1.0, 1.0, 1.0], bias)


DATASETS: Dict[str, Callable[..., List[Pattern]]] = {
    'xor': xor_patterns,
    'and': and_patterns,
    'or': or_patterns,
}


def get_dataset(name: str, bias: bool = True) -> List[Pattern]:
    """
    Return a built-in dataset by name.

    Raises:
        UnknownDatasetError: If no dataset has that name
    """
    try:
        factory = DATASETS[name.lower()]
    except KeyError:
        raise UnknownDatasetError(
            f"Unknown dataset '{name}'. Available: {', '.join(sorted(DATASETS))}"
        ) from None
    return factory(bias=bias)


def load_pattern_file(path: str, in_size: int, out_size: int) -> List[Pattern]:
    """
    Load patterns from a pattern file.

    Raises:
        OSError: If the file cannot be opened
        NetworkFormatError: If a line is malformed
    """
    with open(path, 'r') as f:
        patterns = load_patterns(f, in_size, out_size)

    logger.info(f"Loaded {len(patterns)} pattern(s) from '{path}'")
    return patterns


def save_pattern_file(path: str, patterns: List[Pattern]) -> bool:
    """
    Write patterns to a pattern file.

    Returns:
        bool: True if successful, False otherwise
    """
    try:
        with open(path, 'w') as f:
            saved = save_patterns(f, patterns)
    except OSError as e:
        logger.error(f"Could not write patterns to '{path}': {e}")
        return False

    if saved:
        logger.info(f"Saved {len(patterns)} pattern(s) to '{path}'")
    return saved
