"""
Exceptions surfaced by the device server and its clients
"""


class DeviceServerError(Exception):
    """Base error for the local device server"""


class RelayUnavailableError(DeviceServerError):
    """The backend relay (privileged scanning/control service) could not be reached"""

    def __init__(self, operation: str, cause: Exception = None):
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Backend relay unavailable for {operation}{detail}")


class DiscoveryUnavailableError(DeviceServerError):
    """Every discovery path failed and no cached devices exist"""


class AdoptionError(DeviceServerError):
    """A discovered device could not be copied into durable storage"""


# User-facing messages, shown instead of raw error text
NO_DEVICES_MESSAGE = (
    "No devices found. Make sure your devices are powered on and connected "
    "to the same network as this server, then scan again."
)


def control_failure_message(device_name: str) -> str:
    return f"Could not reach {device_name}. Check that it is powered on and connected to your network."
