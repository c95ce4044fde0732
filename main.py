import os

import uvicorn

from llama_supervisor.frameworks_drivers.config import Config
from llama_supervisor.frameworks_drivers.device_detector import build_inventory
from llama_supervisor.frameworks_drivers.server_supervisor import LlamaServerSupervisor
from llama_supervisor.interface_adapters.api import API
from llama_supervisor.shared.logger import Logger

if __name__ == "__main__":
    logger = Logger.get(__name__)

    try:
        config = Config.load(os.environ.get("LLAMA_SUPERVISOR_CONFIG", "config.json"))

        # Discover devices once; the inventory is read-only from here on
        inventory = build_inventory(config.devices)

        supervisor = LlamaServerSupervisor(config.llama_server, config.timing, inventory)
        api = API(
            supervisor,
            config.llama_server.to_launch_config(),
            inventory,
            request_timeout=float(config.llama_server.request_timeout),
        )

        logger.info("Starting Llama Supervisor...")
        # The API lifespan starts llama-server and terminates it on shutdown
        uvicorn.run(api.app, host=config.server.host, port=config.server.port)
    except Exception as e:
        logger.error(f"Failed to start supervisor: {e}")
        raise
