"""
test_cli.py
~~~~~~~~~~~

Tests for the bpnet command-line tool.
"""

from pathlib import Path

import pytest
from click.testing import CliRunner

from bpnet import __version__
from bpnet.cli import cli
from bpnet.datasets import save_pattern_file, xor_patterns
from bpnet.network import Network


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def saved_network(tmp_path):
    path = str(tmp_path / "small.net")
    assert Network([3, 4, 1], learning_rate=0.25, momentum=0.75, seed=3).save_file(path)
    return path


@pytest.mark.unit
class TestCli:
    """Test command parsing and output."""

    def test_version(self, runner):
        """Test the version option."""
        result = runner.invoke(cli, ['--version'])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_train_dataset_and_save(self, runner, tmp_path):
        """Test training on a built-in dataset and saving the result."""
        output = str(tmp_path / "xor.net")

        result = runner.invoke(cli, [
            'train', 'xor', '--layers', '3,4,1', '--epochs', '20',
            '--seed', '1', '-o', output
        ])

        assert result.exit_code == 0, result.output
        assert "Epochs run:   20" in result.output
        assert "Final error:" in result.output
        assert "Converged:" not in result.output
        assert f"Saved network to {output}" in result.output

        net = Network()
        assert net.load_file(output) is True
        assert net.sizes == [3, 4, 1]

    def test_train_with_tolerance_reports_convergence(self, runner):
        """Test that a tolerance run reports convergence."""
        result = runner.invoke(cli, [
            'train', 'and', '-l', '3,2,1', '-e', '5', '--tolerance', '1.0'
        ])

        assert result.exit_code == 0, result.output
        assert "Epochs run:   1" in result.output
        assert "Converged:    yes" in result.output

    def test_train_pattern_file(self, runner, tmp_path):
        """Test training from a pattern file."""
        path = str(tmp_path / "xor.pat")
        save_pattern_file(path, xor_patterns())

        result = runner.invoke(cli, ['train', path, '-l', '3,3,1', '-e', '3', '--shuffle'])

        assert result.exit_code == 0, result.output
        assert "Within tol.:" in result.output

    def test_train_size_mismatch(self, runner):
        """Test that patterns must fit the requested layers."""
        result = runner.invoke(cli, ['train', 'xor', '-l', '2,2,1'])
        assert result.exit_code == 1
        assert "expect" in result.output

    def test_train_missing_pattern_file(self, runner, tmp_path):
        """Test the error for a missing pattern file."""
        result = runner.invoke(cli, ['train', str(tmp_path / "none.pat"), '-l', '2,1'])
        assert result.exit_code == 1
        assert "Could not read pattern file" in result.output

    @pytest.mark.parametrize("layers", ["3", "3,0,1", "a,b"])
    def test_bad_layers(self, runner, layers):
        """Test that invalid layer lists are usage errors."""
        result = runner.invoke(cli, ['train', 'xor', '--layers', layers])
        assert result.exit_code == 2

    def test_info(self, runner, saved_network):
        """Test the summary printed for a saved network."""
        result = runner.invoke(cli, ['info', saved_network])

        assert result.exit_code == 0, result.output
        assert "Layers:        3,4,1" in result.output
        assert "Units:         8" in result.output
        assert "Connections:   16" in result.output
        assert "Learning rate: 0.25" in result.output
        assert "Momentum:      0.75" in result.output

    def test_run(self, runner, saved_network):
        """Test running a saved network on command-line inputs."""
        expected = Network.loads(Path(saved_network).read_text()).feedforward([1.0, 0.0, 1.0])

        result = runner.invoke(cli, ['run', saved_network, '1', '0', '1'])

        assert result.exit_code == 0, result.output
        assert result.output.strip() == f"{expected[0]:.6f}"

    def test_run_wrong_input_count(self, runner, saved_network):
        """Test that the input count must match the input layer."""
        result = runner.invoke(cli, ['run', saved_network, '1', '0'])
        assert result.exit_code == 1
        assert "expects 3 input value(s)" in result.output

    def test_run_invalid_network_file(self, runner, tmp_path):
        """Test the error for a malformed network file."""
        path = tmp_path / "broken.net"
        path.write_text("2\n1\n")

        result = runner.invoke(cli, ['info', str(path)])

        assert result.exit_code == 1
        assert "Invalid network file" in result.output
