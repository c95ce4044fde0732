"""
Unit tests for the supervisor configuration models.
"""

import json

import pytest
from pydantic import ValidationError

from llama_supervisor.frameworks_drivers.config import (
    Config,
    DeviceConfig,
    LlamaServerConfig,
    ServerConfig,
    TimingConfig,
)
from llama_supervisor.shared.errors import ConfigurationError
from llama_supervisor.shared.memory_utils import MIB


class TestLlamaServerConfig:
    """Test LlamaServerConfig model."""

    def test_default_values(self):
        """Test defaults match the llama-server invocation."""
        config = LlamaServerConfig(model_path="models/test-model.gguf")
        assert config.binary == "./llama-server"
        assert config.working_dir == "llama_cpp"
        assert config.host == "localhost"
        assert config.port is None
        assert config.ctx_size == 4096
        assert config.request_timeout == 600
        assert config.verbose is True
        assert config.process_pattern == "^./llama-server"

    def test_model_path_required(self):
        with pytest.raises(ValidationError):
            LlamaServerConfig()

    def test_invalid_port(self):
        with pytest.raises(ValidationError):
            LlamaServerConfig(model_path="models/test-model.gguf", port=0)

    def test_to_launch_config(self):
        config = LlamaServerConfig(model_path="models/test-model.gguf", host="127.0.0.1", port=8081, ctx_size=2048)

        launch_config = config.to_launch_config()

        assert launch_config.model_path == "models/test-model.gguf"
        assert launch_config.ctx_size == 2048
        assert launch_config.endpoint.address == "127.0.0.1:8081"


class TestDeviceConfig:
    """Test DeviceConfig model."""

    def test_default_values(self):
        config = DeviceConfig()
        assert config.use_gpu is True
        assert config.cuda_devices == []
        assert config.main_gpu is None
        assert config.strict is True
        assert config.memory_overhead_bytes == 512 * MIB

    def test_negative_main_gpu(self):
        with pytest.raises(ValidationError):
            DeviceConfig(main_gpu=-1)


class TestTimingConfig:
    """Test TimingConfig model."""

    def test_default_values(self):
        config = TimingConfig()
        assert config.status_check_time == 0.65
        assert config.status_retry_interval == 0.2
        assert config.startup_check_time == 30.0
        assert config.startup_retry_interval == 5.0
        assert config.identity_attempts == 3
        assert config.settle_delay == 1.0

    def test_non_positive_budget(self):
        with pytest.raises(ValidationError):
            TimingConfig(startup_check_time=0)

        with pytest.raises(ValidationError):
            TimingConfig(identity_attempts=0)


class TestConfig:
    """Test Config model."""

    def test_valid_config(self, sample_config_data):
        config = Config(**sample_config_data)
        assert config.server.port == 9000
        assert config.llama_server.port == 8081
        assert config.llama_server.ctx_size == 2048
        assert config.devices.cuda_devices == [0, 1]
        assert config.devices.main_gpu == 1
        assert config.devices.strict is False
        assert config.timing.startup_check_time == 10.0
        assert config.timing.startup_retry_interval == 5.0

    def test_minimal_config(self):
        config = Config(llama_server={"model_path": "models/test-model.gguf"})
        assert config.server == ServerConfig()
        assert config.devices == DeviceConfig()
        assert config.timing == TimingConfig()

    def test_load_from_file(self, config_file):
        config = Config.load(config_file)
        assert config.llama_server.model_path == "models/test-model.gguf"
        assert config.timing.settle_delay == 0.5

    def test_load_file_not_found(self, temp_dir):
        with pytest.raises(ConfigurationError, match="not found"):
            Config.load(str(temp_dir / "missing.json"))

    def test_load_invalid_json(self, temp_dir):
        path = temp_dir / "config.json"
        path.write_text("{not json")

        with pytest.raises(ConfigurationError):
            Config.load(str(path))

    def test_load_invalid_values(self, temp_dir, sample_config_data):
        sample_config_data["llama_server"]["ctx_size"] = -1
        path = temp_dir / "config.json"
        path.write_text(json.dumps(sample_config_data))

        with pytest.raises(ConfigurationError) as exc_info:
            Config.load(str(path))

        assert exc_info.value.error_type == "configuration_error"
