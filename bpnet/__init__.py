"""
bpnet package
~~~~~~~~~~~~~

Feed-forward neural networks trained by backpropagation with momentum.
Contains the unit/connection graph, the network topology builder,
the text persistence format, training utilities, model persistence,
an API server and a command-line tool.
"""

__version__ = "1.0.0"

from bpnet.connection import Connection
from bpnet.exceptions import (
    BPNetError,
    NetworkFormatError,
    PatternIndexError,
    TopologyError,
    UnboundConnectionError,
    UnitIndexError,
)
from bpnet.network import Network
from bpnet.pattern import Pattern
from bpnet.unit import Unit

__all__ = [
    "BPNetError",
    "Connection",
    "Network",
    "NetworkFormatError",
    "Pattern",
    "PatternIndexError",
    "TopologyError",
    "UnboundConnectionError",
    "Unit",
    "UnitIndexError",
]
