"""
test_model_persistence.py
~~~~~~~~~~~~~~~~~~~~~~~~~~

Unit tests for SQLite-based model persistence.
"""

import os
import sqlite3

import pytest

from bpnet.datasets import xor_patterns
from bpnet.model_persistence import (
    ModelDatabase,
    delete_network,
    delete_old_networks,
    get_network_metadata,
    list_saved_networks,
    load_network,
    save_network,
)
from bpnet.network import Network
from bpnet.trainer import train


def age_network(db_dir, network_id, days):
    """Move a network's creation time into the past."""
    conn = sqlite3.connect(os.path.join(db_dir, "networks.db"))
    cursor = conn.cursor()
    cursor.execute('''
        UPDATE networks
        SET created_at = datetime('now', ?)
        WHERE network_id = ?
    ''', (f'-{days} days', network_id))
    conn.commit()
    conn.close()


@pytest.mark.unit
class TestModelPersistence:
    """Test basic model persistence operations."""

    def test_save_network_creates_database(self, simple_network, temp_db_dir):
        """Test that saving a network creates the database file."""
        network_id = "test_network_1"

        success = save_network(
            simple_network,
            network_id,
            model_dir=temp_db_dir,
            trained=False
        )

        assert success is True
        assert os.path.exists(f"{temp_db_dir}/networks.db")

    def test_save_network_with_metadata(self, trained_network, temp_db_dir):
        """Test that network metadata is saved correctly."""
        network_id = "trained_network_1"
        accuracy = 0.85

        success = save_network(
            trained_network,
            network_id,
            model_dir=temp_db_dir,
            trained=True,
            final_error=0.0125,
            accuracy=accuracy
        )

        assert success is True

        metadata = get_network_metadata(network_id, temp_db_dir)
        assert metadata is not None
        assert metadata['network_id'] == network_id
        assert metadata['trained'] is True
        assert metadata['accuracy'] == accuracy
        assert metadata['final_error'] == 0.0125
        assert metadata['architecture'] == [3, 4, 2]
        assert metadata['num_units'] == 9
        assert metadata['num_connections'] == 20

    def test_invalid_accuracy_rejected(self, simple_network, temp_db_dir):
        """Test that accuracy outside [0, 1] is refused."""
        assert save_network(
            simple_network, "bad_accuracy", model_dir=temp_db_dir, accuracy=1.5
        ) is False
        assert get_network_metadata("bad_accuracy", temp_db_dir) is None

    @pytest.mark.parametrize("network_id", ["", None, 42])
    def test_invalid_network_id(self, simple_network, temp_db_dir, network_id):
        """Test that ids must be non-empty strings."""
        assert save_network(simple_network, network_id, model_dir=temp_db_dir) is False
        assert load_network(network_id, temp_db_dir) is None
        assert delete_network(network_id, temp_db_dir) is False

    def test_load_network_returns_network(self, simple_network, temp_db_dir):
        """Test that loading a network returns a valid Network object."""
        network_id = "test_network_2"

        save_network(simple_network, network_id, model_dir=temp_db_dir)
        loaded_network = load_network(network_id, temp_db_dir)

        assert loaded_network is not None
        assert isinstance(loaded_network, Network)
        assert loaded_network.sizes == simple_network.sizes

    def test_load_nonexistent_network(self, temp_db_dir):
        """Test that loading a non-existent network returns None."""
        loaded_network = load_network("nonexistent", temp_db_dir)
        assert loaded_network is None

    def test_load_preserves_weights(self, trained_network, temp_db_dir):
        """Test that saved weights and momentum state are preserved exactly."""
        network_id = "test_network_3"

        save_network(trained_network, network_id, model_dir=temp_db_dir)
        loaded_network = load_network(network_id, temp_db_dir)

        assert [c.weight for c in loaded_network.connections] == [
            c.weight for c in trained_network.connections
        ]
        assert [c.previous_delta for c in loaded_network.connections] == [
            c.previous_delta for c in trained_network.connections
        ]
        assert [(c.source, c.dest) for c in loaded_network.connections] == [
            (c.source, c.dest) for c in trained_network.connections
        ]

    def test_load_corrupt_network_data(self, simple_network, temp_db_dir):
        """Test that corrupt stored text loads as None."""
        network_id = "corrupt"
        save_network(simple_network, network_id, model_dir=temp_db_dir)

        conn = sqlite3.connect(os.path.join(temp_db_dir, "networks.db"))
        conn.execute(
            "UPDATE networks SET network_data = ? WHERE network_id = ?",
            ("3\n3\n4\n", network_id)
        )
        conn.commit()
        conn.close()

        assert load_network(network_id, temp_db_dir) is None

    def test_list_saved_networks_empty(self, temp_db_dir):
        """Test listing networks when database is empty."""
        networks = list_saved_networks(temp_db_dir)
        assert networks == []

    def test_list_saved_networks(self, simple_network, temp_db_dir):
        """Test that listing networks returns correct metadata."""
        save_network(simple_network, "net1", model_dir=temp_db_dir, trained=True, accuracy=0.9)
        save_network(simple_network, "net2", model_dir=temp_db_dir, trained=False)

        networks = list_saved_networks(temp_db_dir)

        assert len(networks) == 2
        assert any(net['network_id'] == "net1" for net in networks)
        assert any(net['network_id'] == "net2" for net in networks)

    def test_list_saved_networks_includes_metadata(self, simple_network, temp_db_dir):
        """Test that listed networks include all expected metadata fields."""
        network_id = "metadata_test"
        accuracy = 0.75

        save_network(
            simple_network,
            network_id,
            model_dir=temp_db_dir,
            trained=True,
            accuracy=accuracy
        )

        networks = list_saved_networks(temp_db_dir)
        network = networks[0]

        assert network['network_id'] == network_id
        assert network['architecture'] == [3, 4, 2]
        assert network['trained'] is True
        assert network['accuracy'] == accuracy
        assert network['final_error'] is None
        assert 'created_at' in network
        assert 'updated_at' in network
        assert 'num_units' in network
        assert 'num_connections' in network

    def test_delete_network_success(self, simple_network, temp_db_dir):
        """Test successful network deletion."""
        network_id = "delete_test"

        save_network(simple_network, network_id, model_dir=temp_db_dir)
        assert load_network(network_id, temp_db_dir) is not None

        success = delete_network(network_id, temp_db_dir)
        assert success is True

        assert load_network(network_id, temp_db_dir) is None

    def test_delete_nonexistent_network(self, temp_db_dir):
        """Test that deleting a non-existent network returns False."""
        ModelDatabase(db_path=f'{temp_db_dir}/networks.db')

        success = delete_network("nonexistent", temp_db_dir)
        assert success is False

    def test_save_untrained_network(self, simple_network, temp_db_dir):
        """Test saving a network that hasn't been trained."""
        network_id = "untrained_test"

        success = save_network(
            simple_network,
            network_id,
            model_dir=temp_db_dir,
            trained=False,
            accuracy=None
        )

        assert success is True

        metadata = get_network_metadata(network_id, temp_db_dir)
        assert metadata['trained'] is False
        assert metadata['accuracy'] is None

    def test_update_network(self, simple_network, temp_db_dir):
        """Test that saving a network with the same ID updates it."""
        network_id = "update_test"

        save_network(
            simple_network,
            network_id,
            model_dir=temp_db_dir,
            trained=False
        )

        metadata1 = get_network_metadata(network_id, temp_db_dir)
        assert metadata1['trained'] is False

        save_network(
            simple_network,
            network_id,
            model_dir=temp_db_dir,
            trained=True,
            accuracy=0.88
        )

        metadata2 = get_network_metadata(network_id, temp_db_dir)
        assert metadata2['trained'] is True
        assert metadata2['accuracy'] == 0.88
        assert metadata2['created_at'] == metadata1['created_at']

        networks = list_saved_networks(temp_db_dir)
        assert len(networks) == 1


@pytest.mark.integration
class TestPersistenceIntegration:
    """Integration tests for model persistence."""

    def test_save_load_train_cycle(self, simple_network, training_patterns, temp_db_dir):
        """Test complete cycle: save, load, train, save again."""
        network_id = "cycle_test"

        save_network(
            simple_network,
            network_id,
            model_dir=temp_db_dir,
            trained=False
        )

        loaded_network = load_network(network_id, temp_db_dir)
        result = train(loaded_network, training_patterns, epochs=3)

        save_network(
            loaded_network,
            network_id,
            model_dir=temp_db_dir,
            trained=True,
            final_error=result['errors'][-1],
            accuracy=0.85
        )

        final_network = load_network(network_id, temp_db_dir)
        metadata = get_network_metadata(network_id, temp_db_dir)

        assert final_network is not None
        assert metadata['trained'] is True
        assert metadata['accuracy'] == 0.85
        assert metadata['final_error'] == result['errors'][-1]
        assert final_network.feedforward([0.5, 1.0, 1.0]) == (
            loaded_network.feedforward([0.5, 1.0, 1.0])
        )

    def test_loaded_network_keeps_training_identically(self, temp_db_dir):
        """Test that momentum state survives so training resumes unchanged."""
        patterns = xor_patterns()
        original = Network([3, 3, 1], learning_rate=0.5, momentum=0.9, seed=8)
        train(original, patterns, epochs=20)

        save_network(original, "resume", model_dir=temp_db_dir)
        restored = load_network("resume", temp_db_dir)

        errors_original = train(original, patterns, epochs=10)['errors']
        errors_restored = train(restored, patterns, epochs=10)['errors']

        assert errors_restored == errors_original

    def test_multiple_networks_coexist(self, temp_db_dir):
        """Test that multiple networks can coexist in the database."""
        networks_to_create = [
            ([16, 30, 10], "wide_network"),
            ([3, 4, 2], "simple_network"),
            ([10, 20, 20, 10], "deep_network")
        ]

        for architecture, network_id in networks_to_create:
            net = Network(architecture)
            save_network(net, network_id, model_dir=temp_db_dir)

        networks = list_saved_networks(temp_db_dir)
        assert len(networks) == len(networks_to_create)

        for architecture, network_id in networks_to_create:
            loaded = load_network(network_id, temp_db_dir)
            assert loaded is not None
            assert loaded.sizes == architecture

    def test_concurrent_access_safe(self, simple_network, temp_db_dir):
        """Test that database handles multiple operations safely."""
        network_ids = [f"concurrent_{i}" for i in range(5)]

        for network_id in network_ids:
            save_network(simple_network, network_id, model_dir=temp_db_dir)

        loaded_networks = []
        for network_id in network_ids:
            net = load_network(network_id, temp_db_dir)
            loaded_networks.append(net)

        assert len(loaded_networks) == 5
        assert all(net is not None for net in loaded_networks)

        for network_id in network_ids:
            assert delete_network(network_id, temp_db_dir) is True

        networks = list_saved_networks(temp_db_dir)
        assert len(networks) == 0


class TestDeleteOldNetworks:
    """Tests for automatic cleanup of old networks."""

    def test_delete_old_networks_basic(self, simple_network, temp_db_dir):
        """Test basic delete_old_networks functionality."""
        network_id = "test_network"
        save_network(simple_network, network_id, model_dir=temp_db_dir)
        age_network(temp_db_dir, network_id, 3)

        deleted_count = delete_old_networks(days=2, model_dir=temp_db_dir)

        assert deleted_count == 1
        assert load_network(network_id, temp_db_dir) is None

    def test_delete_old_networks_preserves_recent(
        self,
        simple_network,
        temp_db_dir
    ):
        """Test that recent networks are not deleted."""
        network_id = "recent_network"
        save_network(simple_network, network_id, model_dir=temp_db_dir)

        deleted_count = delete_old_networks(days=2, model_dir=temp_db_dir)

        assert deleted_count == 0
        assert load_network(network_id, temp_db_dir) is not None

    def test_delete_old_networks_mixed_ages(
        self,
        simple_network,
        temp_db_dir
    ):
        """Test with a mix of old and recent networks."""
        for network_id in ("old_1", "old_2", "recent_1"):
            save_network(simple_network, network_id, model_dir=temp_db_dir)
        age_network(temp_db_dir, "old_1", 5)
        age_network(temp_db_dir, "old_2", 3)

        deleted_count = delete_old_networks(days=2, model_dir=temp_db_dir)

        assert deleted_count == 2
        remaining = [n['network_id'] for n in list_saved_networks(temp_db_dir)]
        assert remaining == ["recent_1"]

    def test_delete_old_networks_empty_database(self, temp_db_dir):
        """Test cleanup on an empty database."""
        assert delete_old_networks(days=2, model_dir=temp_db_dir) == 0

    def test_delete_old_networks_negative_days(self, temp_db_dir):
        """Test that a negative age threshold is rejected."""
        with pytest.raises(ValueError):
            delete_old_networks(days=-1, model_dir=temp_db_dir)
