from __future__ import annotations

import asyncio
from collections import deque
from typing import Iterable

from loguru import logger

from loadscope.device.device import Device
from loadscope.device.mock.simulator import LoadSimulator
from loadscope.types import DeviceConnectionError


class MockLoadCell(Device):
    """In-process load cell.

    Returns queued raw values first (see `queue`), then values from a
    `LoadSimulator`. `fail_open` makes `open` fail; `fail_reads` is the number
    of upcoming reads that fail with a transport error.
    """

    def __init__(self, **config):
        super().__init__(**config)
        self.address = getattr(self, "address", "mock")
        self.fail_open = bool(getattr(self, "fail_open", False))
        self.fail_reads = int(getattr(self, "fail_reads", 0))
        self._values = deque(getattr(self, "values", None) or ())
        self._simulator = LoadSimulator(getattr(self, "seed", None))
        self._connected = False
        self.open_count = 0
        self.close_count = 0
        self.read_count = 0

    def queue(self, *raw_values: int):
        self._values.extend(raw_values)

    def extend(self, raw_values: Iterable[int]):
        self._values.extend(raw_values)

    async def open(self) -> tuple[bool, str]:
        self.open_count += 1
        await asyncio.sleep(0)
        if self.fail_open:
            raise DeviceConnectionError(f"MockLoadCell at {self.address} unavailable")
        self._connected = True
        logger.info("Connected to MockLoadCell ({})", self.address)
        return True, "MockLoadCell opened"

    def close(self):
        if self._connected:
            logger.info("Disconnected from MockLoadCell ({})", self.address)
        self._connected = False
        self.close_count += 1

    def is_connected(self) -> bool:
        return self._connected

    async def read_registers(self, address: int = 0, count: int = 2) -> list[int]:
        await asyncio.sleep(0)
        if not self._connected:
            raise DeviceConnectionError("MockLoadCell is closed")
        self.read_count += 1
        if self.fail_reads > 0:
            self.fail_reads -= 1
            raise DeviceConnectionError("Simulated transport failure")
        if self._values:
            raw = self._values.popleft()
        else:
            self._simulator.step()
            raw = self._simulator.raw
        words = [(raw >> 16) & 0xFFFF, raw & 0xFFFF, 0, 0]
        return words[address : address + count]
