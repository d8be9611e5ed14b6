# -*- coding: utf-8 -*-
"""
Load cell devices.

- `ModbusLoadCell`: a transducer over Modbus TCP or Modbus RTU (serial)
- `MockLoadCell`: an in-process stand-in, scripted or simulated
- `LoadSimulator`/`serve_simulator`: a simulated lift, optionally served over
  Modbus TCP

Examples
--------
```python
from loadscope.device import create_device
cell = create_device("COM4", baudrate=9600)
ok, msg = await cell.open()
high, low = await cell.read_registers(0, 2)
```

See Also
--------
loadscope.session.connection_manager : Owner of the device connection
"""

from .device import Device
from .loadcell import (
    TRANSPORT,
    DeviceAddress,
    ModbusLoadCell,
    create_device,
    parse_address,
)
from .mock import LoadSimulator, MockLoadCell, serve_simulator

__all__ = [
    "Device",
    "TRANSPORT",
    "DeviceAddress",
    "ModbusLoadCell",
    "create_device",
    "parse_address",
    "LoadSimulator",
    "MockLoadCell",
    "serve_simulator",
]
