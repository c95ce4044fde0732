import json
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from llama_supervisor.entities.device import DEFAULT_MEMORY_OVERHEAD_BYTES
from llama_supervisor.entities.launch_config import LaunchConfig
from llama_supervisor.shared.errors import ConfigurationError


class ServerConfig(BaseModel):
    """Configuration for the supervisor's own HTTP API.

    Attributes:
        host: Host for the API server.
        port: Port for the API server.
    """

    host: str = Field("0.0.0.0", description="Host for the API server")
    port: int = Field(8000, description="Port for the API server")


class LlamaServerConfig(BaseModel):
    """Configuration for the managed llama-server process.

    Attributes:
        binary: Executable invoked relative to working_dir.
        working_dir: Directory the binary is started from.
        host: Host llama-server binds to.
        port: Port llama-server binds to (llama-server default when unset).
        model_path: Path of the GGUF model to serve.
        ctx_size: Context size passed with --ctx-size.
        request_timeout: Value passed with --timeout, in seconds.
        verbose: Whether --verbose is passed.
        gpu_layers: Layers offloaded with --n-gpu-layers when GPUs are used.
        process_pattern: Regex matched against process command lines during the orphan sweep.
    """
    model_config = ConfigDict(protected_namespaces=())

    binary: str = Field("./llama-server", description="Executable invoked relative to working_dir")
    working_dir: str = Field("llama_cpp", description="Directory the binary is started from")
    host: str = Field("localhost", description="Host llama-server binds to")
    port: Optional[int] = Field(None, ge=1, le=65535, description="Port llama-server binds to")
    model_path: str = Field(..., description="Path of the GGUF model to serve")
    ctx_size: int = Field(4096, gt=0, description="Context size passed with --ctx-size")
    request_timeout: int = Field(600, gt=0, description="Value passed with --timeout, in seconds")
    verbose: bool = Field(True, description="Whether --verbose is passed")
    gpu_layers: int = Field(999, ge=0, description="Layers offloaded with --n-gpu-layers")
    process_pattern: str = Field("^./llama-server", description="Regex for the orphan sweep")

    def to_launch_config(self) -> LaunchConfig:
        return LaunchConfig(
            model_path=self.model_path,
            ctx_size=self.ctx_size,
            request_timeout=self.request_timeout,
            host=self.host,
            port=self.port,
            verbose=self.verbose,
            gpu_layers=self.gpu_layers,
        )


class DeviceConfig(BaseModel):
    """Configuration for accelerator discovery.

    Attributes:
        use_gpu: Whether llama-server may use GPUs at all.
        cuda_devices: Ordinals to use; empty means every discoverable device.
        main_gpu: Explicit primary device ordinal; None selects automatically.
        strict: Whether a missing requested ordinal is fatal.
        memory_overhead_bytes: Memory reserved per device.
    """

    use_gpu: bool = Field(True, description="Whether llama-server may use GPUs")
    cuda_devices: List[int] = Field(default_factory=list, description="Ordinals to use; empty means all")
    main_gpu: Optional[int] = Field(None, ge=0, description="Explicit primary device ordinal")
    strict: bool = Field(True, description="Whether a missing requested ordinal is fatal")
    memory_overhead_bytes: int = Field(DEFAULT_MEMORY_OVERHEAD_BYTES, ge=0, description="Memory reserved per device")


class TimingConfig(BaseModel):
    """Budgets and intervals for probing and teardown, in seconds.

    Attributes:
        status_check_time: Transport budget for the initial status check.
        status_retry_interval: Sleep between status check attempts.
        startup_check_time: Budget for a freshly spawned server to serve the model.
        startup_retry_interval: Sleep between startup check attempts.
        identity_attempts: Completion attempts per identity check.
        settle_delay: Wait after kills so the port is released.
        terminate_timeout: Wait for a signalled process before killing it.
    """

    status_check_time: float = Field(0.65, gt=0)
    status_retry_interval: float = Field(0.2, gt=0)
    startup_check_time: float = Field(30.0, gt=0)
    startup_retry_interval: float = Field(5.0, gt=0)
    identity_attempts: int = Field(3, gt=0)
    settle_delay: float = Field(1.0, ge=0)
    terminate_timeout: float = Field(5.0, gt=0)


class Config(BaseModel):
    """Main configuration class.

    Attributes:
        server: Configuration for the API server.
        llama_server: Configuration for the managed llama-server.
        devices: Accelerator discovery settings.
        timing: Probe and teardown budgets.
    """

    server: ServerConfig = Field(default_factory=ServerConfig)
    llama_server: LlamaServerConfig
    devices: DeviceConfig = Field(default_factory=DeviceConfig)
    timing: TimingConfig = Field(default_factory=TimingConfig)

    @classmethod
    def load(cls, config_path: str = "config.json") -> "Config":
        """Load and validate configuration from JSON file."""
        path = Path(config_path)
        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(path) as f:
                data = json.load(f)
            return cls(**data)
        except (json.JSONDecodeError, ValidationError) as e:
            raise ConfigurationError(f"Invalid configuration in {config_path}: {e}") from e
