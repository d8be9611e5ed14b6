"""Monitor configuration.

See Also
--------
loadscope.system.base_config : MonitorConfig dataclass
loadscope.system.sysconfig : INI loading and validation
"""

from .base_config import MonitorConfig
from .sysconfig import (
    create_default_config_file,
    default_config_path,
    list_available_configs,
    load_monitor_config,
    validate_monitor_config,
)

__all__ = [
    "MonitorConfig",
    "create_default_config_file",
    "default_config_path",
    "list_available_configs",
    "load_monitor_config",
    "validate_monitor_config",
]
