"""Simulated lift: a load cell whose reading climbs towards a maximum.

`serve_simulator` exposes the simulated load on a Modbus TCP server, with the
same register layout as the real transducer, so the whole stack can be run
without hardware (`loadscope simulate`).
"""

from __future__ import annotations

import asyncio

import numpy.random
from loguru import logger
from pymodbus.datastore import (
    ModbusDeviceContext,
    ModbusSequentialDataBlock,
    ModbusServerContext,
)
from pymodbus.server import StartAsyncTcpServer

MAX_LOAD_KG = 100_000.0  # 100 t
MIN_STEP_KG = 50.0
MAX_STEP_KG = 150.0
COUNTS_PER_KG = 1 / 10
HOLDING_REGISTERS = 3  # modbus function code


class LoadSimulator:
    def __init__(
        self,
        seed: int | None = None,
        max_load_kg: float = MAX_LOAD_KG,
        min_step_kg: float = MIN_STEP_KG,
        max_step_kg: float = MAX_STEP_KG,
    ):
        self.max_load_kg = max_load_kg
        self.min_step_kg = min_step_kg
        self.max_step_kg = max_step_kg
        self.load_kg = 0.0
        self._rng = numpy.random.default_rng(seed)

    def step(self) -> float:
        """Add one random increment (clamped to the maximum). Returns kg."""
        if self.load_kg < self.max_load_kg:
            increment = self._rng.uniform(self.min_step_kg, self.max_step_kg)
            self.load_kg = min(self.load_kg + increment, self.max_load_kg)
        return self.load_kg

    @property
    def raw(self) -> int:
        return int(round(self.load_kg * COUNTS_PER_KG))

    def registers(self) -> list[int]:
        """(high, low) words of the current raw value."""
        raw = self.raw
        return [(raw >> 16) & 0xFFFF, raw & 0xFFFF]


async def _update_registers(context, simulator: LoadSimulator, interval_s: float):
    while True:
        simulator.step()
        context.setValues(HOLDING_REGISTERS, 0, simulator.registers())
        logger.info(
            "Simulated load: {:.2f} kg ({:.2f} t) | raw {}",
            simulator.load_kg,
            simulator.load_kg / 1000,
            simulator.raw,
        )
        await asyncio.sleep(interval_s)


async def serve_simulator(
    host: str = "127.0.0.1",
    port: int = 8502,
    interval_s: float = 1.0,
    seed: int | None = None,
    simulator: LoadSimulator | None = None,
):
    """Serve a `LoadSimulator` over Modbus TCP until cancelled."""
    simulator = simulator or LoadSimulator(seed)
    device_context = ModbusDeviceContext(hr=ModbusSequentialDataBlock(0, [0] * 4))
    server_context = ModbusServerContext(device_context, single=True)
    updater = asyncio.create_task(
        _update_registers(device_context, simulator, interval_s)
    )
    logger.info("Load cell simulator listening on {}:{}", host, port)
    try:
        await StartAsyncTcpServer(context=server_context, address=(host, port))
    finally:
        updater.cancel()
        logger.info("Load cell simulator stopped.")
