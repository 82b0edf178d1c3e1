"""
test_pattern.py
~~~~~~~~~~~~~~~

Tests for training patterns, pattern files and built-in datasets.
"""

import io

import pytest

from bpnet.datasets import (
    UnknownDatasetError,
    and_patterns,
    get_dataset,
    load_pattern_file,
    or_patterns,
    save_pattern_file,
    xor_patterns,
)
from bpnet.exceptions import NetworkFormatError, PatternIndexError
from bpnet.pattern import Pattern, load_patterns, save_patterns


@pytest.mark.unit
class TestPattern:
    """Test the pattern container."""

    def test_new_pattern_is_zeroed(self):
        """Test that a new pattern has id -1 and zero values."""
        pattern = Pattern(3, 2)

        assert pattern.id == -1
        assert pattern.in_size == 3
        assert pattern.out_size == 2
        assert [pattern.get_input(i) for i in range(3)] == [0.0, 0.0, 0.0]

    @pytest.mark.parametrize("in_size,out_size", [(0, 1), (1, 0), (-2, 3)])
    def test_sizes_must_be_positive(self, in_size, out_size):
        """Test that pattern sizes must be positive."""
        with pytest.raises(ValueError):
            Pattern(in_size, out_size)

    def test_from_values(self):
        """Test building a pattern from explicit values."""
        pattern = Pattern.from_values(7, [0.5, 1.0], [0.25])

        assert pattern.id == 7
        assert pattern.get_input(1) == 1.0
        assert pattern.get_output(0) == 0.25
        assert isinstance(pattern.get_input(0), float)

    def test_setters(self):
        """Test setting single input and output values."""
        pattern = Pattern(2, 2)
        pattern.set_input(0.3, 1)
        pattern.set_output(0.9, 0)

        assert pattern.get_input(1) == 0.3
        assert pattern.get_output(0) == 0.9

    @pytest.mark.parametrize("method,args", [
        ("get_input", (2,)),
        ("get_input", (-1,)),
        ("get_output", (1,)),
        ("set_input", (1.0, 5)),
        ("set_output", (1.0, -1)),
    ])
    def test_index_checks(self, method, args):
        """Test that out-of-range indexes raise PatternIndexError."""
        pattern = Pattern(2, 1)
        with pytest.raises(PatternIndexError):
            getattr(pattern, method)(*args)


@pytest.mark.unit
class TestPatternText:
    """Test the one-line pattern format."""

    def test_save_is_tab_separated(self):
        """Test the written line layout."""
        pattern = Pattern.from_values(3, [0.0, 1.0], [0.5])
        stream = io.StringIO()

        assert pattern.save(stream) is True
        assert stream.getvalue() == "3\t0.0\t1.0\t0.5\n"

    def test_load_skips_blank_lines(self):
        """Test that load skips blank lines and stops at end of stream."""
        stream = io.StringIO("\n   \n4 1 0 1\n5 0 0 0\n")
        pattern = Pattern(2, 1)

        assert pattern.load(stream) is True
        assert pattern.id == 4
        assert pattern.inputs.tolist() == [1.0, 0.0]
        assert pattern.outputs.tolist() == [1.0]

        assert pattern.load(stream) is True
        assert pattern.id == 5

        assert pattern.load(stream) is False

    def test_load_wrong_field_count(self):
        """Test that a line with too few fields is rejected."""
        pattern = Pattern(2, 1)
        with pytest.raises(NetworkFormatError):
            pattern.load(io.StringIO("1 0.5 0.5\n"))

    def test_load_non_numeric(self):
        """Test that non-numeric values are rejected."""
        pattern = Pattern(2, 1)
        with pytest.raises(NetworkFormatError) as exc_info:
            pattern.load(io.StringIO("1 0.5 x 1\n"))
        assert exc_info.value.field == 'pattern value'

    def test_load_non_integer_id(self):
        """Test that the pattern id must be an integer."""
        pattern = Pattern(1, 1)
        with pytest.raises(NetworkFormatError) as exc_info:
            pattern.parse("first 0.5 1", line_number=3)
        assert exc_info.value.field == 'pattern id'
        assert exc_info.value.line_number == 3

    def test_load_from_closed_stream(self):
        """Test that a closed stream loads nothing."""
        stream = io.StringIO("1 0 1\n")
        stream.close()
        assert Pattern(1, 1).load(stream) is False

    def test_load_patterns_reports_line(self):
        """Test that errors report the line number within the file."""
        stream = io.StringIO("0 0 0 0\n\n1 0 1\n")

        with pytest.raises(NetworkFormatError) as exc_info:
            load_patterns(stream, 2, 1)
        assert exc_info.value.line_number == 3

    def test_save_and_load_pattern_list(self):
        """Test writing and reading a list of patterns."""
        patterns = xor_patterns()
        stream = io.StringIO()

        assert save_patterns(stream, patterns) is True
        stream.seek(0)
        loaded = load_patterns(stream, 3, 1)

        assert [p.id for p in loaded] == [0, 1, 2, 3]
        for original, restored in zip(patterns, loaded):
            assert restored.inputs.tolist() == original.inputs.tolist()
            assert restored.outputs.tolist() == original.outputs.tolist()


@pytest.mark.unit
class TestDatasets:
    """Test the built-in truth tables."""

    def test_xor_targets(self):
        """Test the XOR inputs with bias and their targets."""
        patterns = xor_patterns()

        assert [p.inputs.tolist() for p in patterns] == [
            [0.0, 0.0, 1.0], [0.0, 1.0, 1.0], [1.0, 0.0, 1.0], [1.0, 1.0, 1.0]
        ]
        assert [p.get_output(0) for p in patterns] == [0.0, 1.0, 1.0, 0.0]

    def test_without_bias(self):
        """Test the truth tables without the bias input."""
        patterns = xor_patterns(bias=False)
        assert all(p.in_size == 2 for p in patterns)

    def test_and_or_targets(self):
        """Test the AND and OR targets."""
        assert [p.get_output(0) for p in and_patterns()] == [0.0, 0.0, 0.0, 1.0]
        assert [p.get_output(0) for p in or_patterns()] == [0.0, 1.0, 1.0, 1.0]

    def test_get_dataset_by_name(self):
        """Test case-insensitive lookup by name."""
        assert [p.get_output(0) for p in get_dataset('XOR')] == [0.0, 1.0, 1.0, 0.0]

    def test_unknown_dataset(self):
        """Test that unknown names list the available datasets."""
        with pytest.raises(UnknownDatasetError) as exc_info:
            get_dataset('nand')
        assert 'xor' in str(exc_info.value)

    def test_pattern_file_round_trip(self, tmp_path):
        """Test saving and loading a pattern file."""
        path = str(tmp_path / "xor.pat")

        assert save_pattern_file(path, xor_patterns()) is True
        loaded = load_pattern_file(path, 3, 1)

        assert [p.get_output(0) for p in loaded] == [0.0, 1.0, 1.0, 0.0]

    def test_load_missing_pattern_file(self, tmp_path):
        """Test that a missing pattern file raises OSError."""
        with pytest.raises(OSError):
            load_pattern_file(str(tmp_path / "missing.pat"), 2, 1)
