from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from llama_supervisor.entities.endpoint import Endpoint


class LaunchConfig(BaseModel):
    """Per-launch settings for a llama-server process."""
    model_config = ConfigDict(protected_namespaces=())

    model_path: str = Field(..., min_length=1)
    ctx_size: int = Field(4096, gt=0)
    request_timeout: int = Field(600, gt=0)  # llama-server --timeout, seconds
    host: str = "localhost"
    port: Optional[int] = Field(None, ge=1, le=65535)
    verbose: bool = True
    gpu_layers: int = Field(999, ge=0)  # Layers offloaded when running on GPU

    @property
    def endpoint(self) -> Endpoint:
        return Endpoint(host=self.host, port=self.port)
