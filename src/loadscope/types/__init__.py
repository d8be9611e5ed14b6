# -*- coding: utf-8 -*-
"""
Types shared across loadscope: notifications, test metadata and exceptions.

See Also
--------
loadscope.types.messages : Notification definitions
loadscope.types.metadata : Calibration/equipment records
"""

from .messages import (
    STATUS_LEVEL,
    ControlsState,
    Message,
    Notification,
    StatusUpdate,
)
from .metadata import (
    DATE_FORMAT,
    CalibrationData,
    EquipmentData,
    TestMetadata,
    today_string,
)


# Exceptions
class DeviceConnectionError(ConnectionError):
    """The transport to the device could not be opened, or failed mid-read."""

    pass


class ConnectionRequired(DeviceConnectionError):
    """An operation needs a connected device, and there is none."""

    pass


class ConfigurationIncomplete(Exception):
    """Calibration or equipment metadata is incomplete (user-fixable)."""

    def __init__(self, message, missing_fields=()):
        super().__init__(message)
        self.missing_fields = list(missing_fields)


class ConcurrentOperation(Exception):
    """A start/connect was attempted while another one is in progress."""

    pass


class RenderTransient(Exception):
    """The rendering surface is not available yet. Retry shortly."""

    pass


__all__ = [
    "STATUS_LEVEL",
    "ControlsState",
    "Message",
    "Notification",
    "StatusUpdate",
    "DATE_FORMAT",
    "CalibrationData",
    "EquipmentData",
    "TestMetadata",
    "today_string",
    "DeviceConnectionError",
    "ConnectionRequired",
    "ConfigurationIncomplete",
    "ConcurrentOperation",
    "RenderTransient",
]
