import asyncio
import time
from typing import Callable

from llama_supervisor.entities.completion import CompletionRequest
from llama_supervisor.entities.endpoint import Endpoint
from llama_supervisor.entities.server_state import ServerState
from llama_supervisor.frameworks_drivers.llama_cpp_client import LlamaCppClient
from llama_supervisor.shared.errors import ProbeTransientError
from llama_supervisor.shared.health_checker import HealthChecker
from llama_supervisor.shared.logger import Logger

logger = Logger.get(__name__)

DEFAULT_IDENTITY_ATTEMPTS = 3


class ServerProbe:
    """
    Two-stage check of a llama-server endpoint.

    Stage 1 polls for a TCP connection within a time budget. Stage 2, only reached
    when stage 1 succeeds, sends a zero-token completion and compares the served
    model with the requested one. Nothing is cached between calls.
    """

    def __init__(self, identity_attempts: int = DEFAULT_IDENTITY_ATTEMPTS,
                 client_factory: Callable[..., LlamaCppClient] = LlamaCppClient):
        self.identity_attempts = identity_attempts
        self.client_factory = client_factory

    async def probe(self, endpoint: Endpoint, model_identifier: str, test_duration: float,
                    retry_interval: float) -> ServerState:
        if not await self.test_connection(endpoint, test_duration, retry_interval):
            return ServerState.STOPPED

        logger.info(f"Server is reachable at {endpoint.address}")
        attempt_timeout = min(test_duration, retry_interval)
        state = await self.check_model(endpoint, model_identifier, retry_interval, attempt_timeout)
        if state is ServerState.RUNNING_CORRECT_MODEL:
            logger.info(f"Server is running with the correct model: {model_identifier}")
        return state

    async def test_connection(self, endpoint: Endpoint, test_duration: float, retry_interval: float) -> bool:
        """Retry TCP connects until one succeeds or test_duration elapses."""
        deadline = time.monotonic() + test_duration
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            timeout = min(retry_interval, remaining)
            if await HealthChecker.check_tcp_connection(endpoint.host, endpoint.effective_port, timeout=timeout):
                return True

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            await asyncio.sleep(min(retry_interval, remaining))

    async def check_model(self, endpoint: Endpoint, model_identifier: str, retry_interval: float,
                          attempt_timeout: float) -> ServerState:
        """
        Ask the server which model it serves, up to identity_attempts times.

        Each attempt is bounded by attempt_timeout. A server busy with a long
        generation queues the request, so it reads as STOPPED once every attempt
        has timed out.
        """
        client = self.client_factory(endpoint, timeout=attempt_timeout)
        request = CompletionRequest(prompt=[0], n_predict=0)
        for attempt in range(self.identity_attempts):
            try:
                response = await client.completion(request)
            except ProbeTransientError as e:
                logger.info(f"Identity check attempt {attempt + 1}/{self.identity_attempts} failed: {e}")
                if attempt + 1 < self.identity_attempts:
                    await asyncio.sleep(retry_interval)
                continue

            if response.model == model_identifier:
                return ServerState.RUNNING_CORRECT_MODEL
            logger.info(f"Server at {endpoint.address} is running model {response.model}, requested {model_identifier}")
            return ServerState.RUNNING_WRONG_MODEL

        return ServerState.STOPPED
