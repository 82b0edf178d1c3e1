"""
exceptions.py
~~~~~~~~~~~~~

Exceptions raised by the network engine.
"""

from typing import Optional


class BPNetError(Exception):
    """Base class for all bpnet errors."""


class UnboundConnectionError(BPNetError):
    """A connection was used before its endpoints were bound, or bound twice."""


class TopologyError(BPNetError, ValueError):
    """Invalid layer sizes, or an operation on a network with no layers."""


class UnitIndexError(BPNetError, IndexError):
    """A layer or unit index outside the network's range."""


class PatternIndexError(BPNetError, IndexError):
    """An input or output index outside a pattern's range."""


class NetworkFormatError(BPNetError, ValueError):
    """
    Persisted network or pattern data could not be parsed.

    Attributes:
        field: Name of the field being read when parsing failed
        line_number: 1-based line of the stream, if known
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        line_number: Optional[int] = None
    ):
        self.field = field
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
