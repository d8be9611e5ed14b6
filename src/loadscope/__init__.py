# -*- coding: utf-8 -*-
"""# loadscope

Load test monitor for Modbus load cells.

- `loadscope.session`: the polling and connection lifecycle core
- `loadscope.device`: Modbus load cell, mock and simulator
- `loadscope.system`: monitor configurations
- `loadscope.types`: notifications, test metadata and exceptions
- `loadscope.util`: logging, saving and port discovery
- `loadscope.cli`: the `loadscope` command
"""

from ._version import __version__
