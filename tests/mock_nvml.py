"""
MagicMock stand-ins for the pynvml module used by device discovery tests.
"""
from unittest.mock import MagicMock, Mock


class FakeNVMLError(Exception):
    """Stands in for pynvml.NVMLError in mocked NVML modules."""


def make_mock_pynvml(memory_by_ordinal: dict, device_count: int | None = None) -> MagicMock:
    """
    Build a MagicMock shaped like the pynvml module.

    memory_by_ordinal maps NVML index to total bytes; indexes not in the map raise
    FakeNVMLError from nvmlDeviceGetHandleByIndex.
    """
    mock_pynvml = MagicMock()
    mock_pynvml.NVMLError = FakeNVMLError
    mock_pynvml.nvmlInit = Mock()
    mock_pynvml.nvmlShutdown = Mock()
    mock_pynvml.nvmlDeviceGetCount = Mock(
        return_value=len(memory_by_ordinal) if device_count is None else device_count
    )

    def get_handle(index):
        if index not in memory_by_ordinal:
            raise FakeNVMLError(f"Invalid index {index}")
        return index

    mock_pynvml.nvmlDeviceGetHandleByIndex = Mock(side_effect=get_handle)
    mock_pynvml.nvmlDeviceGetMemoryInfo = Mock(
        side_effect=lambda handle: Mock(total=memory_by_ordinal[handle], used=0, free=memory_by_ordinal[handle])
    )
    mock_pynvml.nvmlDeviceGetName = Mock(side_effect=lambda handle: f"Test GPU {handle}".encode())
    mock_pynvml.nvmlDeviceGetEnforcedPowerLimit = Mock(return_value=250000)
    mock_pynvml.nvmlDeviceGetCudaComputeCapability = Mock(return_value=(8, 6))
    return mock_pynvml
