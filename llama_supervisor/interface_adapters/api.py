from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI

from llama_supervisor.entities.device_inventory import DeviceInventory
from llama_supervisor.entities.launch_config import LaunchConfig
from llama_supervisor.frameworks_drivers.llama_cpp_client import LlamaCppClient
from llama_supervisor.frameworks_drivers.server_supervisor import LlamaServerSupervisor
from llama_supervisor.interface_adapters.completion_controller import CompletionController
from llama_supervisor.interface_adapters.health_controller import HealthController
from llama_supervisor.shared.logger import Logger

logger = Logger.get(__name__)


class API:
    def __init__(self, supervisor: LlamaServerSupervisor, launch_config: LaunchConfig,
                 inventory: Optional[DeviceInventory] = None, request_timeout: float = 600.0,
                 start_on_startup: bool = True):
        self.supervisor = supervisor
        self.launch_config = launch_config
        self.model_identifier = launch_config.model_path
        self.inventory = inventory
        self.request_timeout = request_timeout
        self.start_on_startup = start_on_startup
        self.app = FastAPI(title="Llama Supervisor", version="0.1.0", lifespan=self._lifespan)

        # Dependency functions for per-request instances
        self.get_completion_controller = lambda: self._create_completion_controller()
        self.get_health_controller = lambda: self._create_health_controller()

        self._register_routes()

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        # Leaving the supervisor's scope terminates llama-server
        async with self.supervisor:
            if self.start_on_startup:
                await self.supervisor.ensure_running(self.model_identifier, self.launch_config)
            yield
        logger.info("llama-server supervisor shut down")

    def _register_routes(self):
        async def completion_handler(request: dict, controller=Depends(self.get_completion_controller)) -> dict:
            return await controller.completion(request)

        async def health_handler(controller=Depends(self.get_health_controller)):
            return await controller.health()

        self.app.post("/completion")(completion_handler)
        self.app.get("/health")(health_handler)

    def _create_completion_controller(self):
        from llama_supervisor.use_cases.process_completion import ProcessCompletion

        client = LlamaCppClient(self.launch_config.endpoint, timeout=self.request_timeout)
        process_completion = ProcessCompletion(self.supervisor, client, self.model_identifier, self.launch_config)
        return CompletionController(process_completion)

    def _create_health_controller(self):
        from llama_supervisor.use_cases.get_health import GetHealth

        get_health = GetHealth(self.supervisor, self.model_identifier, self.launch_config, self.inventory)
        return HealthController(get_health)
