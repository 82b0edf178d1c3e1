"""
unit.py
~~~~~~~

A computation node of the network.

A unit's role follows from its connections: no incoming connections
makes it an input unit, no outgoing connections an output unit, and
anything else a hidden unit.
"""

import math
from typing import List, TextIO, TYPE_CHECKING

from bpnet.serialization import FieldReader, format_float, stream_ready

if TYPE_CHECKING:
    from bpnet.connection import Connection

DEFAULT_LEARNING_RATE = 0.3
DEFAULT_MOMENTUM = 0.5


def sigmoid(x: float) -> float:
    """Logistic activation 1 / (1 + e^-x)."""
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    # e^-x overflows for large negative x
    z = math.exp(x)
    return z / (1.0 + z)


def sigmoid_derivative(value: float) -> float:
    """
    Derivative of the sigmoid expressed through its output.

    For y = sigmoid(x), dy/dx = y * (1 - y), so the pre-activation sum
    never needs to be stored.
    """
    return value * (1.0 - value)


class Unit:
    """
    Network node holding an activation value and an error signal.

    The ``error`` attribute has two roles. Before learn() runs on an
    output unit it holds the desired output written by the network;
    afterwards it holds the backpropagated error.

    Attributes:
        id: Position of this unit in the owning network
        value: Current activation
        error: Desired output (output units, before learn) or error signal
        learning_rate: Step size for weights of incoming connections
        momentum: Fraction of the previous weight change carried forward
        incoming: Indices of incoming connections
        outgoing: Indices of outgoing connections
    """

    def __init__(
        self,
        unit_id: int = 0,
        learning_rate: float = DEFAULT_LEARNING_RATE,
        momentum: float = DEFAULT_MOMENTUM
    ):
        self.id = unit_id
        self.value = 0.0
        self.error = 0.0
        self.learning_rate = learning_rate
        self.momentum = momentum
        self.incoming: List[int] = []
        self.outgoing: List[int] = []

    def __repr__(self) -> str:
        return (
            f"Unit(id={self.id}, value={self.value:.6f}, "
            f"error={self.error:.6f}, in={len(self.incoming)}, "
            f"out={len(self.outgoing)})"
        )

    @property
    def is_input(self) -> bool:
        return not self.incoming

    @property
    def is_output(self) -> bool:
        return not self.outgoing

    def run(self, connections: List['Connection'], units: List['Unit']) -> None:
        """
        Forward pass: sum weighted inputs and apply the sigmoid.

        Args:
            connections: Connection list of the owning network
            units: Unit list of the owning network
        """
        total = 0.0
        for index in self.incoming:
            total += connections[index].weighted_source_value(units)

        self.value = sigmoid(total)

    def learn(self, connections: List['Connection'], units: List['Unit']) -> None:
        """
        Backward pass: compute the error and adjust incoming weights.

        Each incoming weight changes by learning_rate * error * input value,
        plus the momentum term applied by the connection.
        """
        self.error = self.compute_error(connections, units)

        for index in self.incoming:
            connection = connections[index]
            change = self.learning_rate * self.error * connection.source_value(units)
            connection.update_weight(change, units)

    def compute_error(self, connections: List['Connection'], units: List['Unit']) -> float:
        """
        Compute this unit's error signal.

        Output unit: f'(value) * (desired - value), with the desired output
        read from ``error``. Hidden unit: f'(value) times the weighted sum
        of the errors of the units it feeds.
        """
        if not self.outgoing:
            return sigmoid_derivative(self.value) * (self.error - self.value)

        total = 0.0
        for index in self.outgoing:
            total += connections[index].weighted_dest_error(units)

        return sigmoid_derivative(self.value) * total

    def save(self, stream: TextIO) -> bool:
        """
        Write this unit's record, one field per line.

        Fields: id, learning rate, momentum, value, error.

        Returns:
            bool: False if the stream is not writable
        """
        if not stream_ready(stream, writing=True):
            return False

        stream.write(f"{self.id:4d}\n")
        stream.write(f"{format_float(self.learning_rate)}\n")
        stream.write(f"{format_float(self.momentum)}\n")
        stream.write(f"{format_float(self.value)}\n")
        stream.write(f"{format_float(self.error)}\n")
        return True

    def load(self, reader: FieldReader) -> int:
        """
        Read a unit record written by save().

        The stored id is returned but not applied: a unit's id is its
        position in the network.

        Returns:
            int: The id stored in the record

        Raises:
            NetworkFormatError: If the record is incomplete or not numeric
        """
        stored_id = reader.read_int('unit id')
        learning_rate = reader.read_float('unit learning rate')
        momentum = reader.read_float('unit momentum')
        value = reader.read_float('unit value')
        error = reader.read_float('unit error')

        self.learning_rate = learning_rate
        self.momentum = momentum
        self.value = value
        self.error = error
        return stored_id
