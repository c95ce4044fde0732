"""
Accelerator discovery using nvidia-ml-py (preferred) or pynvml library.
The nvidia-ml-py library is the new official NVIDIA library that replaces the deprecated pynvml package.
Both libraries have the same API and the same import name.
"""
import ctypes
from typing import Iterable, List, Optional

try:
    import pynvml  # This will import either nvidia-ml-py or pynvml (both use same import)
except ImportError:
    pynvml = None

from llama_supervisor.entities.device import DEFAULT_MEMORY_OVERHEAD_BYTES, Device
from llama_supervisor.entities.device_inventory import DeviceInventory
from llama_supervisor.frameworks_drivers.config import DeviceConfig
from llama_supervisor.shared.errors import InitializationError, NoDevicesFound, RequestedDeviceNotFound
from llama_supervisor.shared.logger import Logger
from llama_supervisor.shared.memory_utils import MemoryUtils

logger = Logger.get(__name__)

NVML_LIBRARY_NAMES = (
    "libnvidia-ml.so",  # Linux
    "libnvidia-ml.so.1",  # Linux packages without the dev symlink, WSL
    "nvml.dll",  # Windows
)

# Upper bound on ordinals tried when the driver's device count never converges
MAX_ORDINAL_PROBE = 100


def init_nvml():
    """
    Load the NVML shared library and initialize pynvml.

    Candidate library names are tried in order; the first one that loads is handed
    to pynvml before nvmlInit() so pynvml does not search on its own.

    Raises:
        InitializationError: If pynvml is missing or no candidate library initializes.
    """
    if pynvml is None:
        raise InitializationError("pynvml/nvidia-ml-py not available")

    for library_name in NVML_LIBRARY_NAMES:
        try:
            # pynvml has no library-path API; a preset nvmlLib makes nvmlInit() skip its own search
            # libLoadLock keeps another thread's nvmlInit() from seeing a half-swapped nvmlLib
            with pynvml.libLoadLock:
                pynvml.nvmlLib = ctypes.CDLL(library_name)
            # nvmlInit() takes libLoadLock itself
            pynvml.nvmlInit()
            logger.debug(f"Initialized NVML from {library_name}")
            return pynvml
        except (OSError, pynvml.NVMLError) as e:
            logger.debug(f"Could not initialize NVML from {library_name}: {e}")
            with pynvml.libLoadLock:
                pynvml.nvmlLib = None
            continue

    raise InitializationError("Failed to initialize NVML from any of: " + ", ".join(NVML_LIBRARY_NAMES))


class DeviceDetector:
    """Discovers CUDA devices and builds the device inventory."""

    def __init__(self, overhead_bytes: int = DEFAULT_MEMORY_OVERHEAD_BYTES):
        self.overhead_bytes = overhead_bytes
        self.initialized = False

    def _initialize(self) -> None:
        if not self.initialized:
            init_nvml()
            self.initialized = True

    def shutdown(self) -> None:
        """Release NVML. Safe to call when not initialized."""
        if self.initialized and pynvml is not None:
            try:
                pynvml.nvmlShutdown()
            except pynvml.NVMLError as e:
                logger.error(f"Error shutting down NVML: {e}")
            finally:
                self.initialized = False

    def query_device(self, ordinal: int) -> Device:
        """
        Query one device by ordinal.

        Raises:
            InitializationError: If NVML cannot be initialized.
            RequestedDeviceNotFound: If the index is invalid or the device has no usable memory.
        """
        self._initialize()
        try:
            handle = pynvml.nvmlDeviceGetHandleByIndex(ordinal)
            memory_info = pynvml.nvmlDeviceGetMemoryInfo(handle)
        except pynvml.NVMLError as e:
            raise RequestedDeviceNotFound(ordinal, f"Failed to get device {ordinal}: {e}") from e

        total_bytes = int(memory_info.total)
        if total_bytes == 0:
            raise RequestedDeviceNotFound(ordinal, f"Device {ordinal} has 0 bytes of VRAM. Skipping device.")
        if total_bytes < self.overhead_bytes:
            raise RequestedDeviceNotFound(
                ordinal, f"Device {ordinal} has {total_bytes} bytes of VRAM, below the reserved overhead"
            )

        # Metadata is optional; some devices don't report it
        name = None
        try:
            raw_name = pynvml.nvmlDeviceGetName(handle)
            name = raw_name.decode("utf-8") if isinstance(raw_name, bytes) else raw_name
        except pynvml.NVMLError:
            pass

        power_limit = None
        try:
            power_limit = int(pynvml.nvmlDeviceGetEnforcedPowerLimit(handle))
        except pynvml.NVMLError:
            pass

        compute_capability = None
        try:
            major, minor = pynvml.nvmlDeviceGetCudaComputeCapability(handle)
            compute_capability = f"{major}.{minor}"
        except pynvml.NVMLError:
            pass

        device = Device(
            ordinal=ordinal,
            total_memory_bytes=total_bytes,
            overhead_bytes=self.overhead_bytes,
            name=name,
            power_limit_mw=power_limit,
            compute_capability=compute_capability,
        )
        logger.debug(f"Queried {device!r}")
        return device

    def discover_all(self) -> List[Device]:
        """Probe ordinals from 0 until the driver-reported device count is reached."""
        self._initialize()
        try:
            device_count = pynvml.nvmlDeviceGetCount()
        except pynvml.NVMLError as e:
            raise InitializationError(f"Failed to get CUDA device count: {e}") from e

        devices: List[Device] = []
        ordinal = 0
        while len(devices) < device_count:
            if ordinal >= MAX_ORDINAL_PROBE:
                logger.warning(
                    f"NVML reported {device_count} devices, but only {len(devices)} could be queried "
                    f"within the first {MAX_ORDINAL_PROBE} ordinals"
                )
                break
            try:
                devices.append(self.query_device(ordinal))
            except RequestedDeviceNotFound as e:
                logger.debug(str(e))
            ordinal += 1
        return devices

    def discover(self, requested_ordinals: Iterable[int] = (), strict: bool = True) -> List[Device]:
        """
        Discover devices.

        Args:
            requested_ordinals: Ordinals to query; empty enumerates every device.
            strict: Whether a requested ordinal that cannot be queried aborts discovery.

        Returns:
            The discovered devices, in query order.

        Raises:
            InitializationError: If NVML is unavailable.
            RequestedDeviceNotFound: In strict mode, if a requested ordinal fails.
            NoDevicesFound: If no device was discovered.
        """
        requested = list(dict.fromkeys(requested_ordinals))
        if not requested:
            devices = self.discover_all()
        else:
            devices = []
            for ordinal in requested:
                try:
                    devices.append(self.query_device(ordinal))
                except RequestedDeviceNotFound as e:
                    logger.warning(str(e))
                    if strict:
                        raise
            if not devices and not strict:
                logger.warning(f"None of the requested devices {requested} are available, using all devices")
                devices = self.discover_all()

        if not devices:
            raise NoDevicesFound("No CUDA devices found")

        for device in devices:
            logger.info(f"Device {device.ordinal}: {MemoryUtils.format_gib(device.available_memory_bytes)} available")
        return devices

    def build_inventory(self, config: DeviceConfig) -> DeviceInventory:
        """Discover devices per config and resolve the primary device. NVML is released afterwards."""
        try:
            devices = self.discover(config.cuda_devices, config.strict)
            inventory = DeviceInventory.from_devices(devices, config.main_gpu, config.strict)
        finally:
            self.shutdown()
        logger.info(
            f"Device inventory: {len(inventory.devices)} device(s), primary {inventory.primary_ordinal}, "
            f"{MemoryUtils.format_gib(inventory.aggregate_available_memory())} available in total"
        )
        return inventory

    @staticmethod
    def for_config(config: DeviceConfig) -> "DeviceDetector":
        return DeviceDetector(overhead_bytes=config.memory_overhead_bytes)


def build_inventory(config: DeviceConfig) -> Optional[DeviceInventory]:
    """Build the inventory for config, or None when GPU use is disabled."""
    if not config.use_gpu:
        logger.info("GPU use disabled by configuration, llama-server will run on CPU")
        return None
    return DeviceDetector.for_config(config).build_inventory(config)
