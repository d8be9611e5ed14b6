import serial.tools.list_ports


def get_hw_ports(include_virtual: bool = False) -> dict[str, tuple[str, str]]:
    """Map serial port device names to (description, hwid)."""
    port_dict = dict()
    for p in list(serial.tools.list_ports.comports()):
        # Only include if there's actual hardware info
        if p.hwid != "n/a" or include_virtual:
            port_dict[p.device] = tuple(p)[1:]
    return port_dict
