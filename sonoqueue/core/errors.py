"""
Error types raised while discovering and controlling Sonos devices.

ParseError is absorbed wherever a single datagram, URL or descriptor is being
processed. Everything else propagates up to the CLI and ends the run.
"""
from typing import Optional

from sonoqueue.config import sonos_config as config


class SonoqueueError(Exception):
    """Base class for all sonoqueue errors."""


class ConfigurationError(SonoqueueError):
    """Required input is missing or invalid."""


class TransportError(SonoqueueError):
    """The discovery socket could not be set up or the search could not be sent."""


class ParseError(SonoqueueError):
    """A datagram, endpoint reference or descriptor document is malformed."""


class NoDevicesFoundError(SonoqueueError):
    def __init__(self):
        super().__init__(config.ERROR_MESSAGES['no_devices'])


class DeviceNotFoundError(SonoqueueError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(config.ERROR_MESSAGES['device_not_found'].format(name))


class CommandError(SonoqueueError):
    """
    A control call failed. status is the HTTP status code, or None when the
    request never got a response. context names the step that failed.
    """
    def __init__(self, path: str, status: Optional[int], reason: Optional[str] = None,
                 context: Optional[str] = None):
        self.path = path
        self.status = status
        self.reason = reason
        self.context = context
        if status is None:
            message = f"{path}: {reason}"
        else:
            message = f"{path}: {status}"
        if context:
            message = f"{context}: {message}"
        super().__init__(message)
