"""Device base class.

All load cell transports inherit from `Device`. A device is constructed from
keyword configuration (validated against `required_config`), opened once,
read repeatedly and closed. Opening and reading are coroutines: they suspend
on transport I/O so the session event loop stays responsive.

Required Methods
--------------
- open(): Connect to the hardware, returns (success, message)
- close(): Disconnect from the hardware, must be idempotent
- is_connected(): Check connection status
- read_registers(address, count): Read holding registers
"""

from __future__ import annotations

from typing import Type

from loguru import logger


class Device:
    """Base class for all load cell devices.

    Attributes
    ----------
    required_config : dict[str, Type]
        Required configuration parameters and their types
    """

    required_config: dict[str, Type] = {}  # Required configuration keys

    def __init__(self, **config_kwargs):
        for key, value in config_kwargs.items():
            setattr(self, key, value)
        for key, value in self.required_config.items():
            if not hasattr(self, key):
                logger.error(
                    f"Device {self.__class__.__name__} missing required config key: "
                    + f"{key}"
                )
                raise ValueError(
                    f"Device {self.__class__.__name__} missing required config "
                    + f"key: {key}"
                )
            if not isinstance(getattr(self, key), value):
                logger.error(
                    f"Device {self.__class__.__name__} config key {key} "
                    + f"has wrong type: {type(getattr(self, key))} (expected {value})"
                )
                raise ValueError(
                    f"Device {self.__class__.__name__} config key {key} has "
                    + f"wrong type: {type(getattr(self, key))} (expected {value})"
                )

    async def open(self) -> tuple[bool, str]:
        raise NotImplementedError()

    def close(self):
        raise NotImplementedError()

    def is_connected(self) -> bool:
        raise NotImplementedError()

    async def read_registers(self, address: int, count: int) -> list[int]:
        raise NotImplementedError()

    def __repr__(self):
        return f"{self.__class__.__name__}({getattr(self, 'address', '')!r})"
