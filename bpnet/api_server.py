"""
api_server.py
~~~~~~~~~~~~~

Flask-based REST API server with WebSocket support for backpropagation
networks.

This module provides endpoints for:
- Creating, inspecting and deleting networks
- Training networks in the background with real-time progress updates
- Running the forward pass on caller-supplied inputs
- Exporting and importing networks in the bpnet text format
- Persisting networks to/from SQLite database

The server uses:
- Flask for REST API endpoints
- Flask-SocketIO for WebSocket communication
- Gevent for async background training tasks
- Matplotlib for training error plots
- SQLite for network persistence
"""

import os
import sys
import uuid
import base64
import logging
from io import BytesIO
from typing import Dict, Any, List, Optional, Tuple

import gevent
from flask import Flask, Response, request, jsonify
from flask_cors import CORS
from flask_socketio import SocketIO

# Use non-GUI backend for matplotlib (required for server environments)
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from bpnet import trainer
from bpnet.datasets import UnknownDatasetError, get_dataset
from bpnet.exceptions import BPNetError, NetworkFormatError
from bpnet.network import Network
from bpnet.pattern import Pattern
from bpnet.unit import DEFAULT_LEARNING_RATE, DEFAULT_MOMENTUM
from bpnet.model_persistence import (
    save_network,
    load_network,
    list_saved_networks,
    delete_network,
    delete_old_networks
)

# ============================================================================
# LOGGING SETUP
# ============================================================================

def configure_logging() -> None:
    """
    Set up logging based on environment.

    - In production: Show fewer logs (less noise) but keep important logs
    - In development: Show more detailed logs for debugging
    """
    log_level_str = os.getenv('LOG_LEVEL', 'INFO').upper()
    log_level = getattr(logging, log_level_str, logging.INFO)
    is_production = os.getenv('FLASK_ENV') == 'production'

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if is_production:
        for logger_name in ['socketio', 'engineio', 'engineio.server',
                            'socketio.server', 'werkzeug']:
            logging.getLogger(logger_name).setLevel(logging.WARNING)
        logging.getLogger('bpnet').setLevel(logging.INFO)
    else:
        logging.getLogger('socketio').setLevel(logging.INFO)
        logging.getLogger('engineio').setLevel(logging.INFO)


configure_logging()
logger = logging.getLogger(__name__)

# ============================================================================
# CONFIGURATION
# ============================================================================

MODEL_DIR = os.getenv('BPNET_MODEL_DIR', 'models')
CLEANUP_DAYS = float(os.getenv('BPNET_CLEANUP_DAYS', '2'))
DEFAULT_EPOCHS = 1000
MAX_EPOCHS = 1000000

# ============================================================================
# FLASK APP SETUP
# ============================================================================

app = Flask(__name__)
CORS(app, resources={r"/*": {"origins": "*"}})

is_production = os.getenv('FLASK_ENV') == 'production'

# SocketIO enables real-time communication (WebSockets) for training updates
socketio = SocketIO(
    app,
    cors_allowed_origins="*",
    async_mode='gevent',
    logger=not is_production,
    engineio_logger=not is_production,
    ping_timeout=60,
    ping_interval=25
)

# ============================================================================
# GLOBAL STATE
# ============================================================================

# Networks currently loaded in memory: {network_id: network_info}
active_networks: Dict[str, Dict[str, Any]] = {}

# Training jobs being tracked: {job_id: job_info}
training_jobs: Dict[str, Dict[str, Any]] = {}


def network_info(
    net: Network,
    trained: bool = False,
    final_error: Optional[float] = None,
    accuracy: Optional[float] = None
) -> Dict[str, Any]:
    """Build the in-memory record kept for each active network."""
    return {
        'network': net,
        'architecture': list(net.sizes),
        'trained': trained,
        'final_error': final_error,
        'accuracy': accuracy,
        'error_history': []
    }


def reload_saved_networks() -> None:
    """
    Reload all saved networks from the database into memory.

    Called at startup to restore networks that were saved before the
    application was restarted.
    """
    saved_networks = list_saved_networks(MODEL_DIR)

    if not saved_networks:
        logger.info("No saved networks to reload")
        return

    loaded_count = 0
    for net_info in saved_networks:
        network_id = net_info['network_id']
        net = load_network(network_id, MODEL_DIR)
        if net is None:
            logger.warning(f"Failed to load network {network_id}")
            continue

        active_networks[network_id] = network_info(
            net,
            trained=net_info['trained'],
            final_error=net_info['final_error'],
            accuracy=net_info['accuracy']
        )
        loaded_count += 1

    logger.info(f"Reloaded {loaded_count} network(s) from database")


reload_saved_networks()

# ============================================================================
# BACKGROUND TASKS
# ============================================================================

# Flag to ensure cleanup task only starts once
_cleanup_task_started = False


def cleanup_old_networks_task() -> None:
    """
    Background task that runs on startup, then every 24 hours to:
    - Delete networks older than CLEANUP_DAYS from the database
    - Sync in-memory networks with the database
    - Remove completed/failed training jobs from memory
    """
    while True:
        try:
            logger.info("Starting automatic cleanup of old networks...")
            deleted_count = delete_old_networks(days=CLEANUP_DAYS, model_dir=MODEL_DIR)

            if deleted_count > 0:
                logger.info(f"Cleanup completed: deleted {deleted_count} network(s)")
                sync_active_networks()
            elif deleted_count == 0:
                logger.info("Cleanup completed: no old networks found to delete")
            else:
                logger.error("Cleanup returned error code")

            cleanup_finished_training_jobs()

            logger.info("Next cleanup scheduled in 24 hours")
            gevent.sleep(86400)

        except Exception as e:
            logger.exception(f"Error during network cleanup: {e}")
            gevent.sleep(3600)


def sync_active_networks() -> None:
    """Drop in-memory networks that were saved but no longer exist on disk."""
    saved_ids = {net['network_id'] for net in list_saved_networks(MODEL_DIR)}
    networks_to_remove = [
        nid for nid, info in active_networks.items()
        if info['trained'] and nid not in saved_ids
    ]
    for nid in networks_to_remove:
        del active_networks[nid]
        logger.info(f"Removed network {nid} from memory (deleted from database)")


def cleanup_finished_training_jobs() -> None:
    """
    Remove completed or failed training jobs from memory.

    Only removes jobs that are no longer active.
    """
    finished_statuses = {'completed', 'failed'}
    jobs_to_remove = [
        job_id for job_id, job_info in training_jobs.items()
        if job_info.get('status') in finished_statuses
    ]

    for job_id in jobs_to_remove:
        del training_jobs[job_id]

    if jobs_to_remove:
        logger.info(f"Cleaned up {len(jobs_to_remove)} finished training job(s)")


def start_cleanup_task() -> None:
    """
    Start the background cleanup task.

    Uses gevent.spawn() directly so it works both when running directly
    and under gunicorn. Calling it more than once has no effect.
    """
    global _cleanup_task_started

    if _cleanup_task_started:
        logger.debug("Cleanup task already started, skipping")
        return

    _cleanup_task_started = True
    logger.info("Starting cleanup task (runs immediately, then every 24 hours)")
    gevent.spawn(cleanup_old_networks_task)


start_cleanup_task()

# ============================================================================
# REQUEST VALIDATION HELPERS
# ============================================================================

def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_number_list(values: Any) -> bool:
    return isinstance(values, list) and all(_is_number(v) for v in values)


def _job_running(network_id: str) -> bool:
    return any(
        job['network_id'] == network_id and job['status'] in ('pending', 'training')
        for job in training_jobs.values()
    )


def parse_patterns(
    data: Dict[str, Any],
    net: Network
) -> Tuple[Optional[List[Pattern]], Optional[str]]:
    """
    Build the training patterns of a train request.

    Either ``dataset`` names a built-in set or ``patterns`` lists
    ``{'inputs': [...], 'outputs': [...]}`` objects.

    Returns:
        (patterns, None) on success, (None, error message) otherwise
    """
    if 'patterns' in data:
        raw = data['patterns']
        if not isinstance(raw, list) or not raw:
            return None, 'patterns must be a non-empty list'

        patterns = []
        for i, item in enumerate(raw):
            if not isinstance(item, dict):
                return None, f'pattern {i} must be an object'
            inputs = item.get('inputs')
            outputs = item.get('outputs')
            if not _is_number_list(inputs) or not _is_number_list(outputs):
                return None, f'pattern {i} needs numeric inputs and outputs lists'
            if len(inputs) != net.sizes[0] or len(outputs) != net.sizes[-1]:
                return None, (
                    f'pattern {i} has {len(inputs)} inputs and {len(outputs)} '
                    f'outputs, network expects {net.sizes[0]} and {net.sizes[-1]}'
                )
            pattern_id = item.get('id', i)
            if not isinstance(pattern_id, int) or isinstance(pattern_id, bool):
                return None, f'pattern {i} id must be an integer'
            patterns.append(Pattern.from_values(pattern_id, inputs, outputs))
        return patterns, None

    dataset = data.get('dataset', 'xor')
    if not isinstance(dataset, str):
        return None, 'dataset must be a string'
    try:
        patterns = get_dataset(dataset)
    except UnknownDatasetError as e:
        return None, str(e.args[0])

    if patterns[0].in_size != net.sizes[0] or patterns[0].out_size != net.sizes[-1]:
        return None, (
            f"dataset '{dataset}' has {patterns[0].in_size} inputs and "
            f"{patterns[0].out_size} outputs, network expects "
            f"{net.sizes[0]} and {net.sizes[-1]}"
        )
    return patterns, None

# ============================================================================
# API ENDPOINTS
# ============================================================================

@app.route('/api/status', methods=['GET'])
def get_status():
    """
    Return server status and statistics.

    Counts active networks and training jobs that are pending or training.
    """
    active_statuses = ('pending', 'training')
    active_training = sum(
        1 for job in training_jobs.values()
        if job.get('status') in active_statuses
    )

    return jsonify({
        'status': 'online',
        'active_networks': len(active_networks),
        'training_jobs': active_training
    }), 200


@app.route('/api/networks', methods=['POST'])
def create_network():
    """
    Create a new neural network.

    Request body (all optional):
        {
            'layer_sizes': [3, 4, 1],
            'learning_rate': 0.3,
            'momentum': 0.5,
            'seed': 42
        }

    Returns:
        JSON with network_id, architecture, and status
    """
    data = request.get_json(silent=True) or {}
    layer_sizes = data.get('layer_sizes', [3, 4, 1])
    learning_rate = data.get('learning_rate', DEFAULT_LEARNING_RATE)
    momentum = data.get('momentum', DEFAULT_MOMENTUM)
    seed = data.get('seed')

    if (not isinstance(layer_sizes, list) or len(layer_sizes) < 2
            or not all(isinstance(s, int) and not isinstance(s, bool) and s > 0
                       for s in layer_sizes)):
        logger.warning(f"Invalid architecture requested: {layer_sizes}")
        return jsonify({
            'error': 'Invalid architecture. Must have at least 2 layers of positive size.'
        }), 400
    if not _is_number(learning_rate) or learning_rate <= 0:
        return jsonify({'error': 'learning_rate must be a positive number'}), 400
    if not _is_number(momentum) or momentum < 0:
        return jsonify({'error': 'momentum must be a non-negative number'}), 400
    if seed is not None and (not isinstance(seed, int) or isinstance(seed, bool) or seed < 0):
        return jsonify({'error': 'seed must be a non-negative integer'}), 400

    network_id = str(uuid.uuid4())

    try:
        net = Network(layer_sizes, learning_rate, momentum, seed=seed)
    except BPNetError as e:
        logger.exception(f"Error creating network: {e}")
        return jsonify({'error': f'Failed to create network: {str(e)}'}), 500

    active_networks[network_id] = network_info(net)

    logger.info(f"Created network {network_id} with architecture {layer_sizes}")

    return jsonify({
        'network_id': network_id,
        'architecture': layer_sizes,
        'num_units': len(net.units),
        'num_connections': len(net.connections),
        'status': 'created'
    }), 201


@app.route('/api/networks/import', methods=['POST'])
def import_network():
    """
    Create a network from the bpnet text format sent as the request body.

    Returns:
        JSON with network_id and architecture
    """
    text = request.get_data(as_text=True)
    if not text.strip():
        return jsonify({'error': 'Request body must contain network data'}), 400

    try:
        net = Network.loads(text, verify_endpoints=True)
    except NetworkFormatError as e:
        logger.warning(f"Rejected network import: {e}")
        return jsonify({'error': f'Invalid network data: {e}'}), 400

    if not net.sizes:
        return jsonify({'error': 'Imported network has no layers'}), 400

    network_id = str(uuid.uuid4())
    active_networks[network_id] = network_info(net, trained=True)
    save_network(net, network_id, model_dir=MODEL_DIR, trained=True)

    logger.info(f"Imported network {network_id} with architecture {net.sizes}")

    return jsonify({
        'network_id': network_id,
        'architecture': net.sizes,
        'status': 'imported'
    }), 201


@app.route('/api/networks/<network_id>', methods=['GET'])
def get_network(network_id: str):
    """Return the architecture and training metadata of a network."""
    if network_id not in active_networks:
        return jsonify({'error': 'Network not found'}), 404

    info = active_networks[network_id]
    net = info['network']

    return jsonify({
        'network_id': network_id,
        'architecture': info['architecture'],
        'num_units': len(net.units),
        'num_connections': len(net.connections),
        'learning_rate': net.get_learning_rate(),
        'momentum': net.get_momentum(),
        'trained': info['trained'],
        'final_error': info['final_error'],
        'accuracy': info['accuracy'],
        'epochs_trained': len(info['error_history'])
    }), 200


@app.route('/api/networks/<network_id>/run', methods=['POST'])
def run_network(network_id: str):
    """
    Run the forward pass.

    Request body:
        {'inputs': [0.0, 1.0, 1.0]}

    Returns:
        JSON with the output unit values
    """
    if network_id not in active_networks:
        return jsonify({'error': 'Network not found'}), 404

    net = active_networks[network_id]['network']
    data = request.get_json(silent=True) or {}
    inputs = data.get('inputs')

    if not _is_number_list(inputs) or len(inputs) != net.sizes[0]:
        return jsonify({
            'error': f'inputs must be a list of {net.sizes[0]} numbers'
        }), 400

    if _job_running(network_id):
        return jsonify({'error': 'Network is currently training'}), 409

    outputs = net.feedforward(inputs)

    return jsonify({
        'network_id': network_id,
        'inputs': inputs,
        'outputs': outputs
    }), 200


@app.route('/api/networks/<network_id>/train', methods=['POST'])
def train_network(network_id: str):
    """
    Start training a network in the background.

    Request body (all optional):
        {
            'dataset': 'xor',          # or 'patterns': [{'inputs': [...], 'outputs': [...]}]
            'epochs': 1000,
            'learning_rate': 0.5,
            'momentum': 0.9,
            'tolerance': 0.1,
            'shuffle': false
        }

    Returns:
        JSON with job_id, network_id, and status
    """
    if network_id not in active_networks:
        logger.warning(f"Training requested for non-existent network: {network_id}")
        return jsonify({'error': 'Network not found'}), 404

    if _job_running(network_id):
        return jsonify({'error': 'Network is already training'}), 409

    net = active_networks[network_id]['network']
    data = request.get_json(silent=True) or {}
    epochs = data.get('epochs', DEFAULT_EPOCHS)
    learning_rate = data.get('learning_rate')
    momentum = data.get('momentum')
    tolerance = data.get('tolerance')
    shuffle = data.get('shuffle', False)

    if not isinstance(epochs, int) or isinstance(epochs, bool) or not 1 <= epochs <= MAX_EPOCHS:
        return jsonify({'error': f'epochs must be an integer between 1 and {MAX_EPOCHS}'}), 400
    if learning_rate is not None and (not _is_number(learning_rate) or learning_rate <= 0):
        return jsonify({'error': 'learning_rate must be a positive number'}), 400
    if momentum is not None and (not _is_number(momentum) or momentum < 0):
        return jsonify({'error': 'momentum must be a non-negative number'}), 400
    if tolerance is not None and (not _is_number(tolerance) or tolerance <= 0):
        return jsonify({'error': 'tolerance must be a positive number'}), 400
    if not isinstance(shuffle, bool):
        return jsonify({'error': 'shuffle must be a boolean'}), 400

    patterns, error = parse_patterns(data, net)
    if error is not None:
        return jsonify({'error': error}), 400

    if learning_rate is not None:
        net.set_learning_rate(learning_rate)
    if momentum is not None:
        net.set_momentum(momentum)

    job_id = str(uuid.uuid4())

    training_jobs[job_id] = {
        'network_id': network_id,
        'status': 'pending',
        'progress': 0,
        'epochs': epochs
    }

    logger.info(
        f"Created training job {job_id} for network {network_id}: "
        f"epochs={epochs}, patterns={len(patterns)}, tolerance={tolerance}"
    )

    socketio.start_background_task(
        train_network_task,
        network_id, job_id, patterns, epochs, shuffle, tolerance
    )

    return jsonify({
        'job_id': job_id,
        'network_id': network_id,
        'status': 'training_started'
    }), 202


def train_network_task(
    network_id: str,
    job_id: str,
    patterns: List[Pattern],
    epochs: int,
    shuffle: bool = False,
    tolerance: Optional[float] = None
) -> None:
    """
    Background task that trains a network.

    Sends progress updates via WebSocket after every epoch. The trained
    network is only saved if it is still active when training ends.
    """
    info = active_networks.get(network_id)
    if info is None:
        message = f'Network {network_id} no longer exists'
        logger.error(f"Training failed for job {job_id}: {message}")

        training_jobs[job_id]['status'] = 'failed'
        training_jobs[job_id]['message'] = message

        socketio.emit('training_error', {
            'job_id': job_id,
            'network_id': network_id,
            'status': 'failed',
            'error': message
        })
        return

    net = info['network']
    history = info['error_history']

    def on_epoch_complete(data: Dict[str, Any]) -> None:
        """Called after each training epoch to send progress updates."""
        progress = (data['epoch'] / data['total_epochs']) * 100
        history.append(data['error'])

        training_jobs[job_id]['status'] = 'training'
        training_jobs[job_id]['progress'] = progress
        training_jobs[job_id]['error'] = data['error']

        socketio.emit('training_update', {
            'job_id': job_id,
            'network_id': network_id,
            'epoch': data['epoch'],
            'total_epochs': data['total_epochs'],
            'error': data['error'],
            'correct': data['correct'],
            'total': data['total'],
            'elapsed_time': data['elapsed_time'],
            'progress': progress
        })

    def yield_to_other_tasks() -> None:
        gevent.sleep(0)

    try:
        logger.info(f"Starting training for job {job_id}")

        result = trainer.train(
            net,
            patterns,
            epochs,
            shuffle=shuffle,
            tolerance=tolerance,
            callback=on_epoch_complete,
            yield_func=yield_to_other_tasks
        )

        final_error = result['errors'][-1]
        accuracy = result['correct'] / result['total']

        info['trained'] = True
        info['final_error'] = final_error
        info['accuracy'] = accuracy

        training_jobs[job_id].update({
            'status': 'completed',
            'progress': 100,
            'error': final_error,
            'accuracy': accuracy,
            'epochs_run': result['epochs'],
            'converged': result['converged']
        })

        if active_networks.get(network_id) is info:
            save_network(
                net, network_id, model_dir=MODEL_DIR,
                trained=True, final_error=final_error, accuracy=accuracy
            )
        else:
            logger.warning(
                f"Network {network_id} was removed during job {job_id}, not saving"
            )

        logger.info(
            f"Training completed for job {job_id}: error {final_error:.6f}, "
            f"accuracy {accuracy:.2%}"
        )

        socketio.emit('training_complete', {
            'job_id': job_id,
            'network_id': network_id,
            'status': 'completed',
            'error': final_error,
            'accuracy': accuracy,
            'epochs_run': result['epochs'],
            'converged': result['converged'],
            'progress': 100
        })
        gevent.sleep(0)

    except Exception as e:
        logger.exception(f"Training failed for job {job_id}: {e}")

        training_jobs[job_id]['status'] = 'failed'
        training_jobs[job_id]['message'] = str(e)

        socketio.emit('training_error', {
            'job_id': job_id,
            'network_id': network_id,
            'status': 'failed',
            'error': str(e)
        })
        gevent.sleep(0)


@app.route('/api/training/<job_id>', methods=['GET'])
def get_training_status(job_id: str):
    """Get the current status of a training job."""
    if job_id in training_jobs:
        return jsonify(training_jobs[job_id]), 200

    logger.warning(f"Status requested for non-existent job: {job_id}")
    return jsonify({'error': 'Training job not found'}), 404


@app.route('/api/networks', methods=['GET'])
def list_networks():
    """List all available networks (both in-memory and saved to disk)."""
    in_memory = [
        {
            'network_id': nid,
            'architecture': info['architecture'],
            'trained': info['trained'],
            'final_error': info['final_error'],
            'accuracy': info['accuracy'],
            'status': 'in_memory'
        }
        for nid, info in active_networks.items()
    ]

    in_memory_ids = set(active_networks.keys())
    saved_only = []
    for net in list_saved_networks(MODEL_DIR):
        if net['network_id'] not in in_memory_ids:
            net['status'] = 'saved'
            saved_only.append(net)

    logger.debug(f"Listing networks: {len(in_memory)} in memory, {len(saved_only)} saved")

    return jsonify({'networks': in_memory + saved_only}), 200


@app.route('/api/networks/<network_id>/export', methods=['GET'])
def export_network(network_id: str):
    """Return the network in the bpnet text format."""
    if network_id not in active_networks:
        return jsonify({'error': 'Network not found'}), 404

    net = active_networks[network_id]['network']
    return Response(
        net.dumps(),
        mimetype='text/plain',
        headers={'Content-Disposition': f'attachment; filename={network_id}.net'}
    )


@app.route('/api/networks/<network_id>', methods=['DELETE'])
def delete_network_endpoint(network_id: str):
    """Delete a network from both memory and disk."""
    if _job_running(network_id):
        return jsonify({'error': 'Network is currently training'}), 409

    deleted_from_memory = False
    if network_id in active_networks:
        del active_networks[network_id]
        deleted_from_memory = True

    deleted_from_disk = delete_network(network_id, MODEL_DIR)

    if not deleted_from_memory and not deleted_from_disk:
        logger.warning(f"Delete attempted for non-existent network: {network_id}")
        return jsonify({'error': 'Network not found'}), 404

    logger.info(f"Deleted network {network_id}: memory={deleted_from_memory}, disk={deleted_from_disk}")

    return jsonify({
        'network_id': network_id,
        'deleted_from_memory': deleted_from_memory,
        'deleted_from_disk': deleted_from_disk
    }), 200


@app.route('/api/networks', methods=['DELETE'])
def delete_all_networks():
    """
    Delete all networks from both memory and disk.

    Refused while any network is training.
    """
    busy_ids = sorted({
        job['network_id'] for job in training_jobs.values()
        if job.get('status') in ('pending', 'training')
    })
    if busy_ids:
        return jsonify({
            'error': 'Networks are currently training',
            'network_ids': busy_ids
        }), 409

    in_memory_ids = list(active_networks.keys())
    saved_ids = [net['network_id'] for net in list_saved_networks(MODEL_DIR)]
    all_network_ids = list(set(in_memory_ids + saved_ids))

    deleted_from_memory_count = 0
    deleted_from_disk_count = 0

    for network_id in all_network_ids:
        if network_id in active_networks:
            del active_networks[network_id]
            deleted_from_memory_count += 1

        if delete_network(network_id, MODEL_DIR):
            deleted_from_disk_count += 1

    logger.info(
        f"Deleted all networks: {len(all_network_ids)} total, "
        f"{deleted_from_memory_count} from memory, {deleted_from_disk_count} from disk"
    )

    return jsonify({
        'deleted_count': len(all_network_ids),
        'deleted_from_memory': deleted_from_memory_count,
        'deleted_from_disk': deleted_from_disk_count,
        'message': f'Successfully deleted {len(all_network_ids)} network(s)'
    }), 200


@app.route('/api/networks/cleanup', methods=['POST'])
def cleanup_old_networks_endpoint():
    """
    Manually trigger cleanup of networks older than specified days.

    Request body (optional):
        {'days': 2}  # defaults to 2

    Returns:
        JSON with deleted_count, days, and message
    """
    data = request.get_json(silent=True) or {}
    days = data.get('days', 2)

    if not _is_number(days) or days < 0:
        return jsonify({'error': 'days must be a non-negative number'}), 400

    deleted_count = delete_old_networks(days=days, model_dir=MODEL_DIR)

    if deleted_count == -1:
        return jsonify({'error': 'Error occurred during cleanup'}), 500

    if deleted_count > 0:
        sync_active_networks()

    logger.info(f"Manual cleanup: deleted {deleted_count} network(s) older than {days} day(s)")

    return jsonify({
        'deleted_count': deleted_count,
        'days': days,
        'message': f'Successfully deleted {deleted_count} network(s) older than {days} day(s)'
    }), 200

# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def create_error_plot(errors: List[float], title: str) -> str:
    """
    Create a base64-encoded PNG of a training error curve.

    Args:
        errors: Total squared error of each epoch
        title: Plot title

    Returns:
        Base64-encoded PNG image string
    """
    plt.figure(figsize=(5, 3))
    plt.plot(range(1, len(errors) + 1), errors)
    plt.xlabel('Epoch')
    plt.ylabel('Total squared error')
    plt.title(title)
    plt.grid(True, alpha=0.3)

    buffer = BytesIO()
    plt.savefig(buffer, format='png', bbox_inches='tight')
    buffer.seek(0)
    img_base64 = base64.b64encode(buffer.getvalue()).decode('utf-8')
    plt.close()

    return img_base64


@app.route('/api/networks/<network_id>/error_plot', methods=['GET'])
def get_error_plot(network_id: str):
    """Return the training error curve of a network as a base64 PNG."""
    if network_id not in active_networks:
        return jsonify({'error': 'Network not found'}), 404

    history = active_networks[network_id]['error_history']
    if not history:
        return jsonify({'error': 'Network has no training history'}), 404

    return jsonify({
        'network_id': network_id,
        'epochs': len(history),
        'final_error': history[-1],
        'image_data': create_error_plot(
            history, f"Network {network_id[:8]}: {len(history)} epochs"
        )
    }), 200

# ============================================================================
# SERVER STARTUP
# ============================================================================

def main() -> None:
    """Start the server with WebSocket support."""
    is_cloud = bool(os.environ.get('RAILWAY_STATIC_URL') or os.environ.get('PORT'))
    port = int(os.environ.get('PORT', 8000))

    if is_cloud:
        logger.info(f"Starting server in production mode on port {port}")
    else:
        logger.info(f"Starting server at http://localhost:{port}/")

    start_cleanup_task()

    try:
        socketio.run(
            app,
            host='0.0.0.0',
            port=port,
            debug=not is_cloud,
            use_reloader=False,
            allow_unsafe_werkzeug=True
        )
    except OSError as e:
        if "Address already in use" in str(e):
            logger.error(f"Port {port} is already in use.")
            sys.exit(1)
        else:
            raise


if __name__ == '__main__':
    main()
