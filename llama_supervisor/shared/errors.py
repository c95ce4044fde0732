"""
Exception hierarchy for device discovery and server supervision.
"""


class SupervisorError(Exception):
    """Base class for all errors raised by the supervisor."""

    error_type = "supervisor_error"


class ConfigurationError(SupervisorError):
    """Configuration file is missing or invalid."""

    error_type = "configuration_error"


class InitializationError(SupervisorError):
    """The NVML driver library could not be loaded under any candidate name."""

    error_type = "initialization_error"


class NoDevicesFound(SupervisorError):
    """Device discovery finished with an empty inventory."""

    error_type = "no_devices_found"


class RequestedDeviceNotFound(SupervisorError):
    """An explicitly requested device ordinal is not among the discovered devices."""

    error_type = "requested_device_not_found"

    def __init__(self, ordinal: int, message: str | None = None):
        self.ordinal = ordinal
        super().__init__(message or f"Requested device {ordinal} not found")


class ProbeTransientError(SupervisorError):
    """A single reachability or identity attempt failed. Retried inside the probe."""

    error_type = "probe_transient_error"


class ServerUnreachable(ProbeTransientError):
    """No connection could be opened to the server. Nothing was sent."""

    error_type = "server_unreachable"


class StartupTimeout(SupervisorError):
    """The server never served the requested model within the startup budget."""

    error_type = "startup_timeout"


class TerminationError(SupervisorError):
    """The operating system refused to terminate a server process."""

    error_type = "termination_error"

    def __init__(self, pid: int, message: str | None = None):
        self.pid = pid
        super().__init__(message or f"Failed to terminate process {pid}")
