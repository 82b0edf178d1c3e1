"""
cli.py
~~~~~~

Command-line tool for training and running networks.

Usage:
    bpnet train xor --layers 3,4,1 --epochs 5000 --tolerance 0.1 -o xor.net
    bpnet train patterns.txt --layers 2,3,1 -o model.net
    bpnet run xor.net 1 0 1
    bpnet info xor.net
"""

import logging
import os
import sys
from typing import List, Tuple

import click

from bpnet import __version__, trainer
from bpnet.datasets import DATASETS, get_dataset, load_pattern_file
from bpnet.exceptions import BPNetError
from bpnet.network import Network
from bpnet.unit import DEFAULT_LEARNING_RATE, DEFAULT_MOMENTUM


def parse_layers(ctx, param, value: str) -> List[int]:
    """Parse a comma-separated list of layer sizes."""
    try:
        sizes = [int(part) for part in value.split(',') if part.strip()]
    except ValueError:
        raise click.BadParameter(f"expected comma-separated integers, got '{value}'")

    if len(sizes) < 2 or any(size <= 0 for size in sizes):
        raise click.BadParameter("need at least two layers of positive size")
    return sizes


def _load_network(path: str) -> Network:
    net = Network()
    try:
        loaded = net.load_file(path)
    except BPNetError as e:
        raise click.ClickException(f"Invalid network file '{path}': {e}")
    if not loaded:
        raise click.ClickException(f"Could not read network file '{path}'")
    return net


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Verbose output with detailed logging")
def cli(verbose: bool) -> None:
    """Feed-forward backpropagation networks."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )


@cli.command(name="train")
@click.argument("patterns", type=str)
@click.option("--layers", "-l", required=True, callback=parse_layers,
              help="Comma-separated layer sizes, e.g. 3,4,1")
@click.option("--epochs", "-e", default=1000, show_default=True,
              type=click.IntRange(min=1), help="Maximum number of epochs")
@click.option("--learning-rate", default=DEFAULT_LEARNING_RATE, show_default=True,
              type=click.FloatRange(min=0, min_open=True), help="Learning rate of every unit")
@click.option("--momentum", default=DEFAULT_MOMENTUM, show_default=True,
              type=click.FloatRange(min=0), help="Momentum coefficient of every unit")
@click.option("--tolerance", type=click.FloatRange(min=0, min_open=True), default=None,
              help="Stop when every output is within this distance of its target")
@click.option("--shuffle/--no-shuffle", default=False, help="Shuffle patterns every epoch")
@click.option("--seed", type=int, default=None, help="Seed for weights and shuffling")
@click.option("--output", "-o", type=click.Path(dir_okay=False), default=None,
              help="Write the trained network to this file")
def train_command(
    patterns: str,
    layers: List[int],
    epochs: int,
    learning_rate: float,
    momentum: float,
    tolerance: float,
    shuffle: bool,
    seed: int,
    output: str,
) -> None:
    """Train a network on a pattern file or a built-in dataset.

    PATTERNS is a pattern file path or one of the built-in dataset names.
    """
    if patterns.lower() in DATASETS and not os.path.exists(patterns):
        pattern_list = get_dataset(patterns)
    else:
        try:
            pattern_list = load_pattern_file(patterns, layers[0], layers[-1])
        except OSError as e:
            raise click.ClickException(f"Could not read pattern file '{patterns}': {e}")
        except BPNetError as e:
            raise click.ClickException(f"Invalid pattern file '{patterns}': {e}")

    if not pattern_list:
        raise click.ClickException("No patterns to train on")
    if pattern_list[0].in_size != layers[0] or pattern_list[0].out_size != layers[-1]:
        raise click.ClickException(
            f"Patterns have {pattern_list[0].in_size} inputs and "
            f"{pattern_list[0].out_size} outputs, layers {layers} expect "
            f"{layers[0]} and {layers[-1]}"
        )

    net = Network(layers, learning_rate, momentum, seed=seed)
    result = trainer.train(
        net, pattern_list, epochs, shuffle=shuffle, tolerance=tolerance, seed=seed
    )

    click.echo(f"Epochs run:   {result['epochs']}")
    click.echo(f"Final error:  {result['errors'][-1]:.6f}")
    click.echo(f"Within tol.:  {result['correct']}/{result['total']}")
    if tolerance is not None:
        click.echo(f"Converged:    {'yes' if result['converged'] else 'no'}")

    if output:
        if not net.save_file(output):
            raise click.ClickException(f"Could not write network to '{output}'")
        click.echo(f"Saved network to {output}")


@cli.command(name="run")
@click.argument("network_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("values", nargs=-1, required=True, type=float)
def run_command(network_file: str, values: Tuple[float, ...]) -> None:
    """Run a saved network on input VALUES and print the outputs."""
    net = _load_network(network_file)

    if not net.sizes:
        raise click.ClickException("Network has no layers")
    if len(values) != net.sizes[0]:
        raise click.ClickException(
            f"Network expects {net.sizes[0]} input value(s), got {len(values)}"
        )

    outputs = net.feedforward(list(values))
    click.echo(" ".join(f"{value:.6f}" for value in outputs))


@cli.command(name="info")
@click.argument("network_file", type=click.Path(exists=True, dir_okay=False))
def info_command(network_file: str) -> None:
    """Show the shape and training parameters of a saved network."""
    net = _load_network(network_file)

    click.echo(f"Layers:        {','.join(str(size) for size in net.sizes)}")
    click.echo(f"Units:         {len(net.units)}")
    click.echo(f"Connections:   {len(net.connections)}")
    if net.units:
        click.echo(f"Learning rate: {net.get_learning_rate()}")
        click.echo(f"Momentum:      {net.get_momentum()}")


def main() -> None:
    """Entry point for the bpnet command."""
    try:
        cli()
    except KeyboardInterrupt:
        click.echo("Interrupted", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
