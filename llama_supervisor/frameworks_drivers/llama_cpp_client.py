import httpx
from pydantic import ValidationError

from llama_supervisor.entities.completion import CompletionRequest, CompletionResponse
from llama_supervisor.entities.endpoint import Endpoint
from llama_supervisor.shared.errors import ProbeTransientError, ServerUnreachable
from llama_supervisor.shared.logger import Logger

logger = Logger.get(__name__)


class LlamaCppClient:
    """Minimal async client for the llama-server /completion endpoint."""

    def __init__(self, endpoint: Endpoint, timeout: float = 30.0):
        self.endpoint = endpoint
        self.timeout = timeout

    async def completion(self, request: CompletionRequest) -> CompletionResponse:
        """
        Submit a completion request.

        Raises:
            ServerUnreachable: If no connection could be opened.
            ProbeTransientError: On other transport errors, non-2xx status or a malformed body.
        """
        url = f"{self.endpoint.base_url}/completion"
        logger.debug(f"Sending request to llama.cpp: URL={url}")
        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(url, json=request.to_payload(), timeout=self.timeout)
                response.raise_for_status()
                return CompletionResponse.model_validate(response.json())
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            raise ServerUnreachable(f"Could not connect to {url}: {e}") from e
        except (httpx.HTTPError, ValueError, ValidationError) as e:
            raise ProbeTransientError(f"Completion request to {url} failed: {e}") from e
