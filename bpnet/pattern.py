"""
pattern.py
~~~~~~~~~~

Training examples: a fixed-size input vector, a fixed-size desired
output vector and an integer id.

On disk a pattern is one line: ``id in_0 ... in_{n-1} out_0 ... out_{m-1}``,
tab-separated when written, any whitespace accepted when read.
"""

import logging
from typing import Iterable, List, Optional, Sequence, TextIO

import numpy as np

from bpnet.exceptions import NetworkFormatError, PatternIndexError
from bpnet.serialization import format_float, stream_ready

logger = logging.getLogger(__name__)


class Pattern:
    """One training example."""

    def __init__(self, in_size: int, out_size: int, pattern_id: int = -1):
        if in_size <= 0 or out_size <= 0:
            raise ValueError(
                f"Pattern sizes must be positive, got in_size={in_size}, "
                f"out_size={out_size}"
            )

        self.id = pattern_id
        self.inputs = np.zeros(in_size)
        self.outputs = np.zeros(out_size)

    @classmethod
    def from_values(
        cls,
        pattern_id: int,
        inputs: Sequence[float],
        outputs: Sequence[float]
    ) -> 'Pattern':
        """
        Build a pattern from explicit input and output values.

        Example:
            >>> p = Pattern.from_values(0, [0.0, 1.0], [1.0])
            >>> p.in_size, p.out_size
            (2, 1)
        """
        pattern = cls(len(inputs), len(outputs), pattern_id)
        pattern.inputs[:] = inputs
        pattern.outputs[:] = outputs
        return pattern

    def __repr__(self) -> str:
        return (
            f"Pattern(id={self.id}, inputs={self.inputs.tolist()}, "
            f"outputs={self.outputs.tolist()})"
        )

    @property
    def in_size(self) -> int:
        return len(self.inputs)

    @property
    def out_size(self) -> int:
        return len(self.outputs)

    def _check(self, index: int, size: int, kind: str) -> None:
        if not 0 <= index < size:
            raise PatternIndexError(
                f"{kind} index {index} out of range for pattern {self.id} "
                f"with {size} {kind}s"
            )

    def get_input(self, index: int) -> float:
        self._check(index, self.in_size, 'input')
        return float(self.inputs[index])

    def get_output(self, index: int) -> float:
        self._check(index, self.out_size, 'output')
        return float(self.outputs[index])

    def set_input(self, value: float, index: int) -> None:
        self._check(index, self.in_size, 'input')
        self.inputs[index] = value

    def set_output(self, value: float, index: int) -> None:
        self._check(index, self.out_size, 'output')
        self.outputs[index] = value

    def save(self, stream: TextIO) -> bool:
        """
        Write this pattern as one tab-separated line.

        Returns:
            bool: False if the stream is not writable
        """
        if not stream_ready(stream, writing=True):
            return False

        fields = [str(self.id)]
        fields.extend(format_float(v) for v in self.inputs)
        fields.extend(format_float(v) for v in self.outputs)
        stream.write('\t'.join(fields) + '\n')
        return True

    def parse(self, line: str, line_number: Optional[int] = None) -> None:
        """
        Fill this pattern from one text line.

        Raises:
            NetworkFormatError: If the field count or a value is wrong
        """
        fields = line.split()
        expected = 1 + self.in_size + self.out_size
        if len(fields) != expected:
            raise NetworkFormatError(
                f"expected {expected} fields for a pattern with "
                f"{self.in_size} inputs and {self.out_size} outputs, "
                f"got {len(fields)}",
                field='pattern',
                line_number=line_number
            )

        try:
            pattern_id = int(fields[0])
        except ValueError:
            raise NetworkFormatError(
                f"expected an integer pattern id, got {fields[0]!r}",
                field='pattern id',
                line_number=line_number
            ) from None

        try:
            values = [float(f) for f in fields[1:]]
        except ValueError as e:
            raise NetworkFormatError(
                f"non-numeric pattern value: {e}",
                field='pattern value',
                line_number=line_number
            ) from None

        self.id = pattern_id
        self.inputs[:] = values[:self.in_size]
        self.outputs[:] = values[self.in_size:]

    def load(self, stream: TextIO) -> bool:
        """
        Read the next non-blank line of the stream into this pattern.

        Returns:
            bool: False at end of stream or if the stream is not readable

        Raises:
            NetworkFormatError: If the line is malformed
        """
        if not stream_ready(stream, writing=False):
            return False

        for line in iter(stream.readline, ''):
            if line.strip():
                self.parse(line)
                return True

        return False


def load_patterns(stream: TextIO, in_size: int, out_size: int) -> List[Pattern]:
    """
    Read every pattern in a pattern stream.

    Blank lines are skipped.

    Args:
        stream: Readable text stream
        in_size: Number of inputs per pattern
        out_size: Number of outputs per pattern

    Returns:
        list: Patterns in file order

    Raises:
        NetworkFormatError: If any line is malformed
    """
    patterns = []
    for line_number, line in enumerate(stream, start=1):
        if not line.strip():
            continue
        pattern = Pattern(in_size, out_size)
        pattern.parse(line, line_number)
        patterns.append(pattern)

    logger.debug(f"Read {len(patterns)} pattern(s) ({in_size} in, {out_size} out)")
    return patterns


def save_patterns(stream: TextIO, patterns: Iterable[Pattern]) -> bool:
    """
    Write patterns one per line.

    Returns:
        bool: False if the stream is not writable
    """
    if not stream_ready(stream, writing=True):
        return False

    for pattern in patterns:
        if not pattern.save(stream):
            return False
    return True
