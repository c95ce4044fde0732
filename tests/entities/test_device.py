import pytest
from pydantic import ValidationError

from llama_supervisor.entities.device import DEFAULT_MEMORY_OVERHEAD_BYTES, Device
from llama_supervisor.shared.memory_utils import GIB, MIB


class TestDevice:
    """Test cases for the Device entity."""

    def test_available_memory_subtracts_overhead(self):
        device = Device(ordinal=0, total_memory_bytes=24 * GIB)

        assert device.overhead_bytes == DEFAULT_MEMORY_OVERHEAD_BYTES == 512 * MIB
        assert device.available_memory_bytes == 24 * GIB - 512 * MIB

    def test_custom_overhead(self):
        device = Device(ordinal=3, total_memory_bytes=8 * GIB, overhead_bytes=500 * MIB)

        assert device.available_memory_bytes == 8 * GIB - 500 * MIB

    def test_memory_equal_to_overhead_gives_zero_budget(self):
        device = Device(ordinal=0, total_memory_bytes=512 * MIB)

        assert device.available_memory_bytes == 0

    def test_memory_below_overhead_is_rejected(self):
        with pytest.raises(ValidationError):
            Device(ordinal=0, total_memory_bytes=256 * MIB)

    def test_zero_memory_is_rejected(self):
        with pytest.raises(ValidationError):
            Device(ordinal=0, total_memory_bytes=0)

    def test_negative_ordinal_is_rejected(self):
        with pytest.raises(ValidationError):
            Device(ordinal=-1, total_memory_bytes=8 * GIB)

    def test_device_is_immutable(self):
        device = Device(ordinal=0, total_memory_bytes=8 * GIB)

        with pytest.raises(ValidationError):
            device.total_memory_bytes = 16 * GIB

    def test_optional_metadata(self):
        device = Device(ordinal=1, total_memory_bytes=8 * GIB, name="RTX 4090", power_limit_mw=450000,
                        compute_capability="8.9")

        assert device.name == "RTX 4090"
        assert device.power_limit_mw == 450000
        assert device.compute_capability == "8.9"
        assert device.model_dump()["available_memory_bytes"] == 8 * GIB - 512 * MIB
