"""
serialization.py
~~~~~~~~~~~~~~~~

Helpers for the whitespace-delimited text format used to persist
networks and patterns.

Records carry no type tags: a reader pulls fields one at a time, in the
order the writer emitted them, and converts each to the expected type.
"""

from collections import deque
from typing import Deque, TextIO

from bpnet.exceptions import NetworkFormatError


def format_float(value: float) -> str:
    """
    Format a float so that reading it back yields the identical value.

    Args:
        value: Number to format (numpy scalars are converted first)

    Returns:
        Shortest string that round-trips to the same double
    """
    return repr(float(value))


def stream_ready(stream, writing: bool) -> bool:
    """
    Check that a text stream is open and usable in the given direction.

    Args:
        stream: File-like object
        writing: True to check for writing, False for reading

    Returns:
        bool: False if the stream is missing, closed or opened the wrong way
    """
    if stream is None or getattr(stream, 'closed', False):
        return False

    check = getattr(stream, 'writable' if writing else 'readable', None)
    if check is None:
        return True

    try:
        return bool(check())
    except (OSError, ValueError):
        return False


class FieldReader:
    """
    Pulls whitespace-separated fields from a text stream.

    Lines are read lazily, so a reader stops consuming the stream at the
    end of the last line it needed.
    """

    def __init__(self, stream: TextIO):
        self._stream = stream
        self._fields: Deque[str] = deque()
        self.line_number = 0

    def _fill(self) -> bool:
        while not self._fields:
            line = self._stream.readline()
            if not line:
                return False
            self.line_number += 1
            self._fields.extend(line.split())
        return True

    def at_end(self) -> bool:
        """Return True when no fields remain in the stream."""
        return not self._fill()

    def next_field(self, name: str) -> str:
        """
        Return the next raw field.

        Raises:
            NetworkFormatError: If the stream ends first
        """
        if not self._fill():
            raise NetworkFormatError(
                f"unexpected end of data while reading '{name}'",
                field=name,
                line_number=self.line_number
            )
        return self._fields.popleft()

    def read_int(self, name: str) -> int:
        """Read the next field as an integer."""
        token = self.next_field(name)
        try:
            return int(token)
        except ValueError:
            raise NetworkFormatError(
                f"expected an integer for '{name}', got {token!r}",
                field=name,
                line_number=self.line_number
            ) from None

    def read_float(self, name: str) -> float:
        """Read the next field as a float."""
        token = self.next_field(name)
        try:
            return float(token)
        except ValueError:
            raise NetworkFormatError(
                f"expected a number for '{name}', got {token!r}",
                field=name,
                line_number=self.line_number
            ) from None
