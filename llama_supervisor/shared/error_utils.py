from llama_supervisor.shared.errors import SupervisorError


class ErrorUtils:
    @staticmethod
    def format_error_response(message: str, error_type: str) -> dict:
        """
        Formats a consistent error response dictionary.

        Args:
            message: The error message to include in the response.
            error_type: The type of error (e.g., "startup_timeout", "health_check_error").

        Returns:
            A dictionary with the error details.
        """
        return {
            "error": {
                "message": message,
                "type": error_type
            }
        }

    @staticmethod
    def error_type_for(error: Exception) -> str:
        """Map an exception to the snake_case error type used in responses."""
        if isinstance(error, SupervisorError):
            return error.error_type
        return "internal_error"
