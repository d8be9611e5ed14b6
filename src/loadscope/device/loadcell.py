"""Modbus load cell transducer (register read only).

The load is exposed as a 32-bit unsigned value split over holding registers
0 (high word) and 1 (low word), unit id 0. The link is either Modbus TCP or
Modbus RTU over a serial port (9600 8N1), chosen from the address string.
"""

from __future__ import annotations

import asyncio
import types
from dataclasses import dataclass

from loguru import logger
from pymodbus.client import AsyncModbusSerialClient, AsyncModbusTcpClient
from pymodbus.exceptions import ModbusException

from loadscope.device.device import Device
from loadscope.device.mock import MockLoadCell
from loadscope.types import DeviceConnectionError
from loadscope.util.defaults import DEFAULT_BAUDRATE, DEFAULT_TIMEOUT, DEFAULT_UNIT_ID

LOAD_REGISTER_ADDRESS = 0
LOAD_REGISTER_COUNT = 2
DEFAULT_TCP_PORT = 502

TRANSPORT = types.SimpleNamespace()
TRANSPORT.TCP = "tcp"
TRANSPORT.SERIAL = "serial"


@dataclass(frozen=True)
class DeviceAddress:
    transport: str
    host: str = ""
    port: int = DEFAULT_TCP_PORT
    serial_port: str = ""

    def __str__(self):
        if self.transport == TRANSPORT.TCP:
            return f"{self.host}:{self.port}"
        return self.serial_port


def parse_address(address: str) -> DeviceAddress:
    """Parse `tcp://host:port`, `host:port` or a serial port name.

    Anything that is not a `host:port` pair (`COM4`, `/dev/ttyUSB0`) is
    treated as a serial port.
    """
    address = address.strip()
    if not address:
        raise ValueError("Empty device address")
    if address.lower().startswith("tcp://"):
        host, _, port = address[len("tcp://") :].partition(":")
        return DeviceAddress(TRANSPORT.TCP, host=host, port=int(port or DEFAULT_TCP_PORT))
    host, sep, port = address.rpartition(":")
    if sep and host and port.isdigit() and "/" not in host:
        return DeviceAddress(TRANSPORT.TCP, host=host, port=int(port))
    return DeviceAddress(TRANSPORT.SERIAL, serial_port=address)


class ModbusLoadCell(Device):
    required_config = {"address": str}

    unit_id: int = DEFAULT_UNIT_ID
    baudrate: int = DEFAULT_BAUDRATE
    timeout_s: float = DEFAULT_TIMEOUT

    def __init__(self, **config):
        super().__init__(**config)
        self.target = parse_address(self.address)
        self._client: AsyncModbusTcpClient | AsyncModbusSerialClient | None = None

    def _make_client(self):
        if self.target.transport == TRANSPORT.TCP:
            return AsyncModbusTcpClient(
                self.target.host, port=self.target.port, timeout=self.timeout_s
            )
        return AsyncModbusSerialClient(
            self.target.serial_port,
            baudrate=self.baudrate,
            bytesize=8,
            parity="N",
            stopbits=1,
            timeout=self.timeout_s,
        )

    async def open(self) -> tuple[bool, str]:
        client = self._make_client()
        try:
            connected = await client.connect()
        except (ModbusException, OSError, asyncio.TimeoutError) as e:
            client.close()
            raise DeviceConnectionError(f"Could not open {self.target}: {e}") from e
        if not connected:
            client.close()
            raise DeviceConnectionError(
                f"Could not open {self.target} (device absent, wrong address or in use)"
            )
        self._client = client
        logger.info("Modbus link open on {}", self.target)
        return True, f"Connected to {self.target}"

    def close(self):
        if self._client is None:
            return
        try:
            self._client.close()
        except (ModbusException, OSError) as e:
            logger.warning("Error closing Modbus link on {}: {}", self.target, e)
        finally:
            self._client = None
            logger.info("Modbus link on {} closed", self.target)

    def is_connected(self) -> bool:
        return self._client is not None and bool(self._client.connected)

    async def read_registers(
        self, address: int = LOAD_REGISTER_ADDRESS, count: int = LOAD_REGISTER_COUNT
    ) -> list[int]:
        if self._client is None:
            raise DeviceConnectionError(f"Modbus link on {self.target} is not open")
        try:
            response = await self._client.read_holding_registers(
                address, count=count, device_id=self.unit_id
            )
        except (ModbusException, OSError, asyncio.TimeoutError) as e:
            raise DeviceConnectionError(f"Read failed on {self.target}: {e}") from e
        if response.isError():
            raise DeviceConnectionError(f"Modbus error from {self.target}: {response}")
        return list(response.registers)


def create_device(address: str, **kwargs) -> Device:
    """Build the device for `address`.

    `mock` or `mock:<seed>` gives an in-process `MockLoadCell` (transport
    options are ignored); anything else a `ModbusLoadCell`.
    """
    if address == "mock" or address.startswith("mock:"):
        _, _, seed = address.partition(":")
        return MockLoadCell(address=address, seed=int(seed) if seed else None)
    return ModbusLoadCell(address=address, **kwargs)
