from typing import Iterable, Optional, Tuple

from pydantic import BaseModel, ConfigDict, model_validator

from llama_supervisor.entities.device import Device
from llama_supervisor.shared.errors import NoDevicesFound, RequestedDeviceNotFound
from llama_supervisor.shared.logger import Logger

logger = Logger.get(__name__)


class DeviceInventory(BaseModel):
    """
    Immutable set of discovered devices with a resolved primary device.

    Built once at startup by the device detector and shared read-only with the
    supervisor, which turns it into launch arguments.
    """
    model_config = ConfigDict(frozen=True)

    devices: Tuple[Device, ...]
    primary_ordinal: int

    @model_validator(mode="after")
    def _check_devices(self) -> "DeviceInventory":
        if not self.devices:
            raise ValueError("Inventory must contain at least one device")
        ordinals = [device.ordinal for device in self.devices]
        if len(set(ordinals)) != len(ordinals):
            raise ValueError(f"Duplicate device ordinals in inventory: {ordinals}")
        if self.primary_ordinal not in ordinals:
            raise ValueError(f"Primary device {self.primary_ordinal} is not in the inventory {ordinals}")
        return self

    @classmethod
    def from_devices(cls, devices: Iterable[Device], explicit_primary: Optional[int] = None,
                     strict: bool = True) -> "DeviceInventory":
        devices = tuple(devices)
        if not devices:
            raise NoDevicesFound("No CUDA devices found")
        primary = cls.resolve_primary(devices, explicit_primary, strict)
        return cls(devices=devices, primary_ordinal=primary)

    @staticmethod
    def resolve_primary(devices: Iterable[Device], explicit_ordinal: Optional[int] = None,
                        strict: bool = True) -> int:
        """
        Resolve the primary device ordinal.

        An explicit ordinal must be one of the devices. When it is not, strict mode
        raises RequestedDeviceNotFound and lenient mode falls back to automatic
        selection: the device with the most available memory, lowest ordinal on ties.
        """
        devices = list(devices)
        if not devices:
            raise NoDevicesFound("No devices found when setting primary device")

        if explicit_ordinal is not None:
            if any(device.ordinal == explicit_ordinal for device in devices):
                return explicit_ordinal
            if strict:
                raise RequestedDeviceNotFound(
                    explicit_ordinal, f"Primary device {explicit_ordinal} set by user not found in CUDA devices"
                )
            logger.warning(f"Primary device {explicit_ordinal} not found, selecting automatically")

        best = min(devices, key=lambda d: (-d.available_memory_bytes, d.ordinal))
        return best.ordinal

    @property
    def ordinals(self) -> list[int]:
        return [device.ordinal for device in self.devices]

    @property
    def primary(self) -> Device:
        return self.get(self.primary_ordinal)

    def get(self, ordinal: int) -> Device:
        for device in self.devices:
            if device.ordinal == ordinal:
                return device
        raise RequestedDeviceNotFound(ordinal)

    def aggregate_available_memory(self) -> int:
        return sum(device.available_memory_bytes for device in self.devices)

    def tensor_split(self) -> list[float]:
        """Per-device share of the aggregate budget, in inventory order."""
        total = self.aggregate_available_memory()
        return [round(device.available_memory_bytes / total, 4) for device in self.devices]
