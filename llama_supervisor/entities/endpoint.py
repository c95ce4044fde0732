from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# llama-server listens here when started without --port
DEFAULT_LLAMA_SERVER_PORT = 8080


class Endpoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str = Field(min_length=1)
    port: Optional[int] = Field(None, ge=1, le=65535)

    @property
    def address(self) -> str:
        if self.port is not None:
            return f"{self.host}:{self.port}"
        return self.host

    @property
    def effective_port(self) -> int:
        return self.port if self.port is not None else DEFAULT_LLAMA_SERVER_PORT

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.effective_port}"
