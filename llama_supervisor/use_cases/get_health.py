from typing import Any, List, Optional

from llama_supervisor.entities.device_inventory import DeviceInventory
from llama_supervisor.entities.launch_config import LaunchConfig
from llama_supervisor.entities.server_state import ServerState
from llama_supervisor.shared.health_checker import HealthChecker
from llama_supervisor.shared.protocols import DeviceDTO, ServerDTO, SupervisorProtocol


class GetHealth:
    def __init__(self, supervisor: SupervisorProtocol, model_identifier: str, launch_config: LaunchConfig,
                 inventory: Optional[DeviceInventory] = None):
        self.supervisor = supervisor
        self.model_identifier = model_identifier
        self.launch_config = launch_config
        self.inventory = inventory

    async def execute(self) -> dict[str, Any]:
        endpoint = self.launch_config.endpoint
        state = await self.supervisor.status(self.model_identifier, endpoint)

        healthy = False
        if state is not ServerState.STOPPED:
            healthy = await HealthChecker.check_http_endpoint(endpoint.host, endpoint.effective_port, "/health", 1.0)

        server: ServerDTO = {
            "model_id": self.model_identifier,
            "address": endpoint.address,
            "status": state.value,
            "process": self.supervisor.pid,
            "healthy": healthy,
        }

        response: dict[str, Any] = {"server": server}
        if self.inventory is None:
            response["devices"] = {"gpu_available": False, "devices": []}
            return response

        devices: List[DeviceDTO] = [
            {
                "ordinal": device.ordinal,
                "name": device.name,
                "total_memory_bytes": device.total_memory_bytes,
                "available_memory_bytes": device.available_memory_bytes,
                "compute_capability": device.compute_capability,
                "power_limit_mw": device.power_limit_mw,
                "is_primary": device.ordinal == self.inventory.primary_ordinal,
            }
            for device in self.inventory.devices
        ]
        response["devices"] = {
            "gpu_available": True,
            "primary_ordinal": self.inventory.primary_ordinal,
            "aggregate_available_memory_bytes": self.inventory.aggregate_available_memory(),
            "devices": devices,
        }
        return response
