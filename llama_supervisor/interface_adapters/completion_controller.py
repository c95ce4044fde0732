from fastapi import HTTPException

from llama_supervisor.shared.error_utils import ErrorUtils
from llama_supervisor.shared.logger import Logger
from llama_supervisor.use_cases.process_completion import ProcessCompletion

logger = Logger.get(__name__)


class CompletionController:
    def __init__(self, process_completion_use_case: ProcessCompletion):
        self.process_completion_use_case = process_completion_use_case

    async def completion(self, request: dict) -> dict:
        self._validate_completion_request(request)

        try:
            return await self.process_completion_use_case.execute(request)
        except Exception as e:
            logger.error(f"Completion failed: {e}")
            return ErrorUtils.format_error_response(f"Completion failed: {str(e)}", ErrorUtils.error_type_for(e))

    def _validate_completion_request(self, request: dict) -> None:
        """Validate the completion request."""
        if not isinstance(request, dict):
            raise HTTPException(status_code=400, detail="Request must be a JSON object")

        prompt = request.get("prompt")
        if isinstance(prompt, str):
            if not prompt:
                raise HTTPException(status_code=400, detail="Prompt must not be empty")
        elif isinstance(prompt, list):
            if not all(isinstance(token, int) and not isinstance(token, bool) for token in prompt):
                raise HTTPException(status_code=400, detail="Prompt token list must contain only integers")
        else:
            raise HTTPException(status_code=400, detail="Prompt must be a string or a list of token ids")

        n_predict = request.get("n_predict")
        if n_predict is not None and (not isinstance(n_predict, int) or n_predict < -1):
            raise HTTPException(status_code=400, detail="n_predict must be an integer >= -1")
