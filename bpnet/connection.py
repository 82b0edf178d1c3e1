"""
connection.py
~~~~~~~~~~~~~

A single directed, weighted edge between two units.

Connections live in the connection list of their owning Network and
refer to their endpoints by index into the network's unit list.
"""

from typing import List, Optional, TextIO, TYPE_CHECKING

import numpy as np

from bpnet.exceptions import UnboundConnectionError
from bpnet.serialization import FieldReader, format_float, stream_ready

if TYPE_CHECKING:
    from bpnet.unit import Unit


class Connection:
    """
    Weighted edge carrying activation forward and error backward.

    Attributes:
        id: Position of this connection in the owning network
        weight: Current connection weight
        previous_delta: Last weight change applied, used for momentum
        source: Index of the source unit, None until bound
        dest: Index of the destination unit, None until bound
    """

    def __init__(self, connection_id: int = 0, rng: Optional[np.random.Generator] = None):
        self.id = connection_id
        self.weight = 0.0
        self.previous_delta = 0.0
        self.source: Optional[int] = None
        self.dest: Optional[int] = None
        self.init_weight(rng)

    def __repr__(self) -> str:
        return (
            f"Connection(id={self.id}, source={self.source}, "
            f"dest={self.dest}, weight={self.weight:.6f})"
        )

    @property
    def is_bound(self) -> bool:
        return self.source is not None and self.dest is not None

    def init_weight(self, rng: Optional[np.random.Generator] = None) -> None:
        """Set the weight to a uniform random value in [-1, 1]."""
        if rng is None:
            rng = np.random.default_rng()
        self.weight = float(rng.uniform(-1.0, 1.0))

    def bind(self, units: List['Unit'], source: int, dest: int) -> None:
        """
        Connect a source unit to a destination unit.

        Registers this connection as outgoing on the source unit and
        incoming on the destination unit. A connection is bound once.

        Args:
            units: Unit list of the owning network
            source: Index of the source unit
            dest: Index of the destination unit

        Raises:
            UnboundConnectionError: If an endpoint is missing or the
                connection is already bound
        """
        if source is None or dest is None:
            raise UnboundConnectionError(
                f"Connection {self.id} needs both a source and a destination"
            )
        if self.is_bound:
            raise UnboundConnectionError(
                f"Connection {self.id} is already bound "
                f"({self.source} -> {self.dest})"
            )

        self.source = source
        self.dest = dest
        units[source].outgoing.append(self.id)
        units[dest].incoming.append(self.id)

    def _require_bound(self) -> None:
        if not self.is_bound:
            raise UnboundConnectionError(
                f"Connection {self.id} has not been bound to units"
            )

    def source_value(self, units: List['Unit']) -> float:
        """Return the activation value of the source unit."""
        self._require_bound()
        return units[self.source].value

    def weighted_source_value(self, units: List['Unit']) -> float:
        """Return the source unit's value multiplied by the weight."""
        self._require_bound()
        return units[self.source].value * self.weight

    def weighted_dest_error(self, units: List['Unit']) -> float:
        """Return the destination unit's error multiplied by the weight."""
        self._require_bound()
        return units[self.dest].error * self.weight

    def update_weight(self, change: float, units: List['Unit']) -> None:
        """
        Apply a weight change plus momentum from the previous change.

        The momentum coefficient is taken from the destination unit.

        Args:
            change: Weight change computed by the destination unit
            units: Unit list of the owning network
        """
        self._require_bound()
        momentum = units[self.dest].momentum

        delta = change + momentum * self.previous_delta
        self.weight += delta
        self.previous_delta = delta

    def save(self, stream: TextIO) -> bool:
        """
        Write this connection as one record line.

        Fields: id, weight, previous delta, source id, destination id.

        Returns:
            bool: False if the stream is not writable
        """
        self._require_bound()
        if not stream_ready(stream, writing=True):
            return False

        stream.write(
            f"{self.id:4d} {format_float(self.weight)} "
            f"{format_float(self.previous_delta)} "
            f"{self.source:4d} {self.dest:4d}\n"
        )
        return True

    def load(self, reader: FieldReader) -> tuple:
        """
        Read a connection record written by save().

        Weight and previous delta are restored. The stored endpoint ids
        are returned to the caller but never used to rebind: topology is
        rebuilt by the network before records are loaded.

        Returns:
            tuple: (stored_id, stored_source_id, stored_dest_id)

        Raises:
            NetworkFormatError: If the record is incomplete or not numeric
        """
        stored_id = reader.read_int('connection id')
        weight = reader.read_float('connection weight')
        previous_delta = reader.read_float('connection previous delta')
        stored_source = reader.read_int('connection source id')
        stored_dest = reader.read_int('connection destination id')

        self.weight = weight
        self.previous_delta = previous_delta
        return stored_id, stored_source, stored_dest
