from typing import Optional, Protocol, TypedDict, TYPE_CHECKING

if TYPE_CHECKING:
    from llama_supervisor.entities.completion import CompletionRequest, CompletionResponse
    from llama_supervisor.entities.endpoint import Endpoint
    from llama_supervisor.entities.launch_config import LaunchConfig
    from llama_supervisor.entities.server_state import ServerState


class DeviceDTO(TypedDict):
    ordinal: int
    name: Optional[str]
    total_memory_bytes: int
    available_memory_bytes: int
    compute_capability: Optional[str]
    power_limit_mw: Optional[int]
    is_primary: bool


class ServerDTO(TypedDict):
    model_id: str
    address: str
    status: str
    process: Optional[int]
    healthy: bool


class SupervisorProtocol(Protocol):
    @property
    def pid(self) -> Optional[int]: ...

    async def ensure_running(self, model_identifier: str, launch_config: 'LaunchConfig') -> 'ServerState': ...

    async def status(self, model_identifier: str, endpoint: 'Endpoint') -> 'ServerState': ...

    async def terminate(self) -> None: ...


class CompletionClientProtocol(Protocol):
    async def completion(self, request: 'CompletionRequest') -> 'CompletionResponse': ...
