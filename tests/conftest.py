"""
conftest.py
~~~~~~~~~~~

Shared fixtures for the bpnet test suite.
"""

import os
import tempfile

import pytest

# The API server reads its model directory at import time
os.environ.setdefault(
    'BPNET_MODEL_DIR', tempfile.mkdtemp(prefix='bpnet-test-models-')
)

from bpnet.network import Network
from bpnet.pattern import Pattern


@pytest.fixture
def temp_db_dir(tmp_path):
    """Create a temporary directory for database storage."""
    db_dir = tmp_path / "test_models"
    db_dir.mkdir()
    return str(db_dir)


@pytest.fixture
def simple_network():
    """Create a small 3-layer network with fixed weights."""
    return Network([3, 4, 2], learning_rate=0.3, momentum=0.5, seed=1234)


@pytest.fixture
def training_patterns():
    """Ten patterns matching simple_network's input and output sizes."""
    patterns = []
    for i in range(10):
        inputs = [(i % 3) / 2.0, ((i + 1) % 2) * 1.0, 1.0]
        outputs = [1.0, 0.0] if i % 2 == 0 else [0.0, 1.0]
        patterns.append(Pattern.from_values(i, inputs, outputs))
    return patterns


@pytest.fixture
def trained_network(simple_network, training_patterns):
    """simple_network after a few epochs of training."""
    for _ in range(5):
        for pattern in training_patterns:
            simple_network.train_pattern(pattern)
    return simple_network
