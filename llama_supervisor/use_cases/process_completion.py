from llama_supervisor.entities.completion import CompletionRequest
from llama_supervisor.entities.launch_config import LaunchConfig
from llama_supervisor.shared.errors import ServerUnreachable
from llama_supervisor.shared.logger import Logger
from llama_supervisor.shared.protocols import CompletionClientProtocol, SupervisorProtocol

logger = Logger.get(__name__)


class ProcessCompletion:
    def __init__(self, supervisor: SupervisorProtocol, client: CompletionClientProtocol,
                 model_identifier: str, launch_config: LaunchConfig):
        self.supervisor = supervisor
        self.client = client
        self.model_identifier = model_identifier
        self.launch_config = launch_config

    async def execute(self, request: dict) -> dict:
        completion_request = CompletionRequest.model_validate(request)
        try:
            response = await self.client.completion(completion_request)
        except ServerUnreachable as e:
            # Only a refused connection triggers a restart; a busy server is left alone
            logger.warning(f"llama-server unreachable, restarting it: {e}")
            await self.supervisor.ensure_running(self.model_identifier, self.launch_config)
            response = await self.client.completion(completion_request)
        return response.model_dump()
