"""
Test configuration and fixtures for llama supervisor tests.
"""
import json
import shutil
import tempfile
from pathlib import Path

import pytest

from llama_supervisor.entities.device import Device
from llama_supervisor.entities.device_inventory import DeviceInventory
from llama_supervisor.entities.launch_config import LaunchConfig
from llama_supervisor.frameworks_drivers.config import LlamaServerConfig, TimingConfig
from llama_supervisor.shared.memory_utils import GIB, MIB


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path)


@pytest.fixture
def sample_config_data():
    """Sample configuration data for testing."""
    return {
        "server": {"host": "127.0.0.1", "port": 9000},
        "llama_server": {
            "working_dir": "llama_cpp",
            "host": "127.0.0.1",
            "port": 8081,
            "model_path": "models/test-model.gguf",
            "ctx_size": 2048,
        },
        "devices": {"use_gpu": True, "cuda_devices": [0, 1], "main_gpu": 1, "strict": False},
        "timing": {"startup_check_time": 10.0, "settle_delay": 0.5},
    }


@pytest.fixture
def config_file(temp_dir, sample_config_data):
    """Create a temporary config file."""
    config_path = temp_dir / "config.json"
    with open(config_path, "w") as f:
        json.dump(sample_config_data, f, indent=2)
    return str(config_path)


@pytest.fixture
def llama_config():
    return LlamaServerConfig(working_dir="llama_cpp", host="127.0.0.1", port=8081, model_path="models/test-model.gguf")


@pytest.fixture
def fast_timing():
    """Short budgets so supervisor tests finish quickly."""
    return TimingConfig(
        status_check_time=0.05,
        status_retry_interval=0.01,
        startup_check_time=0.2,
        startup_retry_interval=0.02,
        identity_attempts=3,
        settle_delay=0.0,
        terminate_timeout=1.0,
    )


@pytest.fixture
def launch_config():
    return LaunchConfig(model_path="models/test-model.gguf", ctx_size=2048, host="127.0.0.1", port=8081)


@pytest.fixture
def two_device_inventory():
    """24 GiB primary device and an 8 GiB secondary with the default 512 MiB overhead."""
    devices = [
        Device(ordinal=0, total_memory_bytes=24 * GIB, name="Test GPU 0"),
        Device(ordinal=1, total_memory_bytes=8 * GIB, name="Test GPU 1"),
    ]
    return DeviceInventory.from_devices(devices)


@pytest.fixture
def overhead_bytes():
    return 512 * MIB
