"""
network.py
~~~~~~~~~~

Layered, fully-connected feed-forward network trained by
backpropagation with momentum.

Units are stored layer by layer: the input layer first, then each
hidden layer, then the output layer. Connections are stored layer
transition by layer transition, and within a transition ordered by
destination unit first and source unit second. The text format written
by save() depends on both orderings.

Example:
    >>> net = Network([2, 3, 1], learning_rate=0.3, momentum=0.5, seed=1)
    >>> outputs = net.feedforward([0.0, 1.0])
    >>> 0.0 < outputs[0] < 1.0
    True
"""

import io
import logging
from typing import List, Optional, Sequence, TextIO

import numpy as np

from bpnet.connection import Connection
from bpnet.exceptions import NetworkFormatError, TopologyError, UnitIndexError
from bpnet.pattern import Pattern
from bpnet.serialization import FieldReader, stream_ready
from bpnet.unit import DEFAULT_LEARNING_RATE, DEFAULT_MOMENTUM, Unit

logger = logging.getLogger(__name__)


class Network:
    """
    Feed-forward network of sigmoid units.

    Attributes:
        sizes: Number of units in each layer
        units: All units, input layer first and output layer last
        connections: All connections, in binding order
        first_hidden_index: Index of the first unit after the input layer
        first_output_index: Index of the first output-layer unit
        rng: Random generator used to initialise weights
    """

    def __init__(
        self,
        sizes: Optional[Sequence[int]] = None,
        learning_rate: float = DEFAULT_LEARNING_RATE,
        momentum: float = DEFAULT_MOMENTUM,
        seed: Optional[int] = None
    ):
        """
        Create a network, building its topology if sizes are given.

        Args:
            sizes: Units per layer, e.g. [2, 3, 1]
            learning_rate: Learning rate given to every unit
            momentum: Momentum coefficient given to every unit
            seed: Seed for weight initialisation
        """
        self.rng = np.random.default_rng(seed)
        self.sizes: List[int] = []
        self.units: List[Unit] = []
        self.connections: List[Connection] = []
        self.first_hidden_index = 0
        self.first_output_index = 0

        if sizes is not None:
            self.build_topology(learning_rate, momentum, sizes)

    def __repr__(self) -> str:
        return (
            f"Network(sizes={self.sizes}, units={len(self.units)}, "
            f"connections={len(self.connections)})"
        )

    # ------------------------------------------------------------------
    # Topology
    # ------------------------------------------------------------------

    def _destroy(self) -> None:
        self.sizes = []
        self.units = []
        self.connections = []
        self.first_hidden_index = 0
        self.first_output_index = 0

    def build_topology(
        self,
        learning_rate: float,
        momentum: float,
        sizes: Sequence[int]
    ) -> None:
        """
        Replace the network with a fully-connected layered graph.

        Every unit of layer i is connected to every unit of layer i+1.
        An empty size list leaves the network empty.

        Args:
            learning_rate: Learning rate given to every unit
            momentum: Momentum coefficient given to every unit
            sizes: Units per layer

        Raises:
            TopologyError: If any layer size is not positive
        """
        sizes = [int(size) for size in sizes]
        invalid = [size for size in sizes if size <= 0]
        if invalid:
            raise TopologyError(
                f"Layer sizes must be positive, got {sizes}"
            )

        self._destroy()
        if not sizes:
            logger.debug("Empty layer list: network left without topology")
            return

        self.sizes = sizes

        for layer_size in sizes:
            for _ in range(layer_size):
                self.units.append(Unit(len(self.units), learning_rate, momentum))

        num_connections = sum(
            sizes[i] * sizes[i + 1] for i in range(len(sizes) - 1)
        )
        self.connections = [
            Connection(i, self.rng) for i in range(num_connections)
        ]

        self.first_hidden_index = sizes[0]
        self.first_output_index = len(self.units) - sizes[-1]

        # destination-major, source-minor
        current = 0
        layer_start = 0
        for i in range(len(sizes) - 1):
            next_start = layer_start + sizes[i]
            for j in range(sizes[i + 1]):
                for k in range(sizes[i]):
                    self.connections[current].bind(
                        self.units, layer_start + k, next_start + j
                    )
                    current += 1
            layer_start = next_start

        logger.debug(
            f"Built network {sizes}: {len(self.units)} units, "
            f"{len(self.connections)} connections"
        )

    @property
    def num_layers(self) -> int:
        return len(self.sizes)

    def layer_size(self, layer_index: int) -> int:
        """Return the number of units in a layer."""
        if not 0 <= layer_index < len(self.sizes):
            raise UnitIndexError(
                f"Layer index {layer_index} out of range for "
                f"{len(self.sizes)} layer(s)"
            )
        return self.sizes[layer_index]

    def _require_layers(self) -> None:
        if not self.sizes:
            raise TopologyError("Network has no layers")

    def _check_input_index(self, index: int) -> None:
        self._require_layers()
        if not 0 <= index < self.sizes[0]:
            raise UnitIndexError(
                f"Input index {index} out of range for {self.sizes[0]} input(s)"
            )

    def _check_output_index(self, index: int) -> None:
        self._require_layers()
        if not 0 <= index < self.sizes[-1]:
            raise UnitIndexError(
                f"Output index {index} out of range for "
                f"{self.sizes[-1]} output(s)"
            )

    # ------------------------------------------------------------------
    # Forward and backward passes
    # ------------------------------------------------------------------

    def run(self) -> None:
        """
        Forward pass over hidden and output units in ascending order.

        Input unit values are supplied by set_input and never recomputed.
        A unit's sources always have lower indices, so ascending order is
        a topological order.
        """
        for i in range(self.first_hidden_index, len(self.units)):
            self.units[i].run(self.connections, self.units)

    def learn(self) -> None:
        """
        Backward pass from the last unit down to the first hidden unit.

        Desired outputs must have been set with set_error first. Each unit
        computes its error only after every unit it feeds has done so.
        """
        for i in range(len(self.units) - 1, self.first_hidden_index - 1, -1):
            self.units[i].learn(self.connections, self.units)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def set_input(self, value: float, index: int) -> None:
        """Set the value of one input unit."""
        self._check_input_index(index)
        self.units[index].value = float(value)

    def set_inputs(self, values: Sequence[float]) -> None:
        """Set the values of all input units."""
        self._require_layers()
        if len(values) != self.sizes[0]:
            raise TopologyError(
                f"Expected {self.sizes[0]} input value(s), got {len(values)}"
            )
        for i, value in enumerate(values):
            self.units[i].value = float(value)

    def set_input_pattern(self, pattern: Pattern) -> None:
        """Set the input units from a pattern's inputs."""
        self._require_layers()
        if pattern.in_size != self.sizes[0]:
            raise TopologyError(
                f"Pattern {pattern.id} has {pattern.in_size} input(s), "
                f"network expects {self.sizes[0]}"
            )
        for i in range(self.sizes[0]):
            self.units[i].value = pattern.get_input(i)

    def set_error(self, value: float, index: int) -> None:
        """Set the desired output of one output unit."""
        self._check_output_index(index)
        self.units[self.first_output_index + index].error = float(value)

    def set_error_pattern(self, pattern: Pattern) -> None:
        """Set the desired outputs from a pattern's outputs."""
        self._require_layers()
        if pattern.out_size != self.sizes[-1]:
            raise TopologyError(
                f"Pattern {pattern.id} has {pattern.out_size} output(s), "
                f"network expects {self.sizes[-1]}"
            )
        for i in range(self.sizes[-1]):
            self.units[self.first_output_index + i].error = pattern.get_output(i)

    def get_output(self, index: int) -> float:
        """Return the value of one output unit."""
        self._check_output_index(index)
        return self.units[self.first_output_index + index].value

    def get_outputs(self) -> List[float]:
        """Return the values of all output units."""
        self._require_layers()
        return [unit.value for unit in self.units[self.first_output_index:]]

    def get_error(self, index: int) -> float:
        """Return the error slot of one output unit."""
        self._check_output_index(index)
        return self.units[self.first_output_index + index].error

    def set_learning_rate(self, learning_rate: float) -> None:
        """Set the learning rate of every unit."""
        for unit in self.units:
            unit.learning_rate = learning_rate

    def set_momentum(self, momentum: float) -> None:
        """Set the momentum coefficient of every unit."""
        for unit in self.units:
            unit.momentum = momentum

    def get_learning_rate(self) -> float:
        """Return the learning rate of the first unit."""
        self._require_layers()
        return self.units[0].learning_rate

    def get_momentum(self) -> float:
        """Return the momentum coefficient of the first unit."""
        self._require_layers()
        return self.units[0].momentum

    def feedforward(self, inputs: Sequence[float]) -> List[float]:
        """
        Set the inputs, run the forward pass and return the outputs.

        Args:
            inputs: One value per input unit

        Returns:
            list: Output unit values
        """
        self.set_inputs(inputs)
        self.run()
        return self.get_outputs()

    def train_pattern(self, pattern: Pattern) -> float:
        """
        Run one online training step on a single pattern.

        Returns:
            float: Squared output error measured before the weight update
        """
        self.set_input_pattern(pattern)
        self.run()

        squared_error = 0.0
        for i in range(pattern.out_size):
            diff = pattern.get_output(i) - self.get_output(i)
            squared_error += diff * diff

        self.set_error_pattern(pattern)
        self.learn()
        return squared_error

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, stream: TextIO) -> bool:
        """
        Write the network in the text format.

        Layout: number of layers, each layer size, number of units,
        number of connections, every unit record, every connection record.

        Returns:
            bool: True if successful, False if the stream could not be written
        """
        if not stream_ready(stream, writing=True):
            logger.error("Cannot save network: stream is not writable")
            return False

        try:
            stream.write(f"{len(self.sizes)}\n")
            for size in self.sizes:
                stream.write(f"{size}\n")
            stream.write(f"{len(self.units)}\n")
            stream.write(f"{len(self.connections)}\n")

            for unit in self.units:
                if not unit.save(stream):
                    return False
            for connection in self.connections:
                if not connection.save(stream):
                    return False

        except OSError as e:
            logger.error(f"I/O error saving network: {e}")
            return False

        return True

    def load(self, stream: TextIO, verify_endpoints: bool = False) -> bool:
        """
        Replace this network with one read from the text format.

        The topology is rebuilt from the stored layer sizes, then record i
        overwrites unit i or connection i. Stored ids are informational;
        position is authoritative. On failure the network may be left
        partly overwritten and should not be used.

        Args:
            stream: Readable text stream
            verify_endpoints: Also require each connection's stored source
                and destination ids to match the rebuilt topology

        Returns:
            bool: True if successful, False if the stream could not be read

        Raises:
            NetworkFormatError: If the data is malformed
        """
        if not stream_ready(stream, writing=False):
            logger.error("Cannot load network: stream is not readable")
            return False

        try:
            reader = FieldReader(stream)

            num_layers = reader.read_int('numLayers')
            if num_layers < 0:
                raise NetworkFormatError(
                    f"negative layer count {num_layers}",
                    field='numLayers',
                    line_number=reader.line_number
                )
            sizes = [
                reader.read_int(f'layerSize_{i}') for i in range(num_layers)
            ]
            num_units = reader.read_int('numUnits')
            num_connections = reader.read_int('numConnections')

            try:
                self.build_topology(0.0, 0.0, sizes)
            except TopologyError as e:
                raise NetworkFormatError(
                    str(e), field='layer sizes', line_number=reader.line_number
                ) from e

            if num_units != len(self.units):
                raise NetworkFormatError(
                    f"header declares {num_units} units, layer sizes "
                    f"{sizes} give {len(self.units)}",
                    field='numUnits'
                )
            if num_connections != len(self.connections):
                raise NetworkFormatError(
                    f"header declares {num_connections} connections, layer "
                    f"sizes {sizes} give {len(self.connections)}",
                    field='numConnections'
                )

            for unit in self.units:
                unit.load(reader)

            for connection in self.connections:
                _, source, dest = connection.load(reader)
                if verify_endpoints and (source, dest) != (connection.source, connection.dest):
                    raise NetworkFormatError(
                        f"connection {connection.id} stored as {source} -> "
                        f"{dest}, topology has {connection.source} -> "
                        f"{connection.dest}",
                        field='connection endpoints',
                        line_number=reader.line_number
                    )

        except OSError as e:
            logger.error(f"I/O error loading network: {e}")
            return False

        logger.debug(f"Loaded network {self.sizes}")
        return True

    def dumps(self) -> str:
        """Return the network in the text format as a string."""
        buffer = io.StringIO()
        self.save(buffer)
        return buffer.getvalue()

    @classmethod
    def loads(cls, text: str, verify_endpoints: bool = False) -> 'Network':
        """
        Build a network from text produced by dumps().

        Raises:
            NetworkFormatError: If the text is malformed
        """
        network = cls()
        network.load(io.StringIO(text), verify_endpoints=verify_endpoints)
        return network

    def save_file(self, path: str) -> bool:
        """
        Save the network to a file.

        Returns:
            bool: True if successful, False otherwise
        """
        try:
            with open(path, 'w') as f:
                return self.save(f)
        except OSError as e:
            logger.error(f"Could not open '{path}' for writing: {e}")
            return False

    def load_file(self, path: str, verify_endpoints: bool = False) -> bool:
        """
        Load the network from a file.

        Returns:
            bool: True if successful, False if the file could not be read

        Raises:
            NetworkFormatError: If the file content is malformed
        """
        try:
            with open(path, 'r') as f:
                return self.load(f, verify_endpoints=verify_endpoints)
        except OSError as e:
            logger.error(f"Could not open '{path}' for reading: {e}")
            return False
