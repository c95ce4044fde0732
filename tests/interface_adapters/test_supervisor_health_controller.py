from unittest.mock import AsyncMock, MagicMock

import pytest

from llama_supervisor.interface_adapters.health_controller import HealthController


class TestHealthController:
    @pytest.fixture
    def mock_use_case(self):
        use_case = MagicMock()
        use_case.execute = AsyncMock()
        return use_case

    @pytest.fixture
    def controller(self, mock_use_case):
        return HealthController(mock_use_case)

    @pytest.mark.asyncio
    async def test_health_calls_use_case_and_returns_response(self, controller, mock_use_case):
        # Arrange
        expected_response = {"server": {"status": "running_correct_model"}, "devices": {"gpu_available": False}}
        mock_use_case.execute.return_value = expected_response

        # Act
        result = await controller.health()

        # Assert
        mock_use_case.execute.assert_awaited_once()
        assert result == expected_response

    @pytest.mark.asyncio
    async def test_health_error_formatted(self, controller, mock_use_case):
        mock_use_case.execute.side_effect = RuntimeError("probe failed")

        result = await controller.health()

        assert result == {"error": {"message": "Health check failed: probe failed", "type": "health_check_error"}}
