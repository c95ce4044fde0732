from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from llama_supervisor.shared.memory_utils import MIB

# Reserved per device for the CUDA context and driver allocations
DEFAULT_MEMORY_OVERHEAD_BYTES = 512 * MIB


class Device(BaseModel):
    """Represents one accelerator and its usable memory budget."""
    model_config = ConfigDict(frozen=True)

    ordinal: int = Field(ge=0)  # NVML device index
    total_memory_bytes: int = Field(gt=0)  # Raw memory reported by the driver
    overhead_bytes: int = Field(DEFAULT_MEMORY_OVERHEAD_BYTES, ge=0)  # Fixed reserve subtracted from total
    name: Optional[str] = None
    power_limit_mw: Optional[int] = None  # Enforced power limit in milliwatts
    compute_capability: Optional[str] = None  # CUDA compute capability, e.g. "8.6"

    @model_validator(mode="after")
    def _check_budget(self) -> "Device":
        if self.total_memory_bytes < self.overhead_bytes:
            raise ValueError(
                f"Device {self.ordinal} reports {self.total_memory_bytes} bytes, "
                f"less than the {self.overhead_bytes} byte overhead"
            )
        return self

    @computed_field
    @property
    def available_memory_bytes(self) -> int:
        return self.total_memory_bytes - self.overhead_bytes
