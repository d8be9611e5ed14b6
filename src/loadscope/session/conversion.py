"""Raw register words to physical load."""

from __future__ import annotations

from dataclasses import dataclass

DEVICE_SCALE_KG = 10  # kg per count
STANDARD_GRAVITY = 9.80665  # m/s^2

_WORD_MAX = 0xFFFF


@dataclass(frozen=True)
class LoadReading:
    raw: int
    load_kg: float
    load_tons: float
    load_kn: float


def combine_registers(high: int, low: int) -> int:
    """Combine two 16-bit words (high word first) into a 32-bit unsigned int."""
    for word in (high, low):
        if not 0 <= word <= _WORD_MAX:
            raise ValueError(f"Register word out of range: {word}")
    return (high << 16) | low


def convert_raw(combined: int) -> LoadReading:
    """Convert a combined register value into kg, metric tons and kN.

    No plausibility bound is applied: any 32-bit value converts.
    """
    load_kg = combined * DEVICE_SCALE_KG
    return LoadReading(
        raw=combined,
        load_kg=load_kg,
        load_tons=load_kg / 1000,
        load_kn=load_kg * STANDARD_GRAVITY / 1000,
    )
