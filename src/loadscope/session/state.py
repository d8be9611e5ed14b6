"""Session telemetry state.

One `SessionState` is created per session controller and handed by reference
to the components that need it. Fields are fixed (slotted), and every
assignment is pushed to subscribers as a `StateChange`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from loguru import logger

from loadscope.session.conversion import STANDARD_GRAVITY
from loadscope.types import TestMetadata


@dataclass(frozen=True)
class Sample:
    """A retained reading. `timestamp` is wall-clock HH:MM:SS."""

    timestamp: str
    load_tons: float

    @property
    def load_kg(self) -> float:
        return self.load_tons * 1000

    @property
    def load_kn(self) -> float:
        return self.load_kg * STANDARD_GRAVITY / 1000


@dataclass(frozen=True)
class StateChange:
    name: str
    value: Any


@dataclass(slots=True)
class SessionState:
    """Mutable telemetry of one monitoring session.

    Invariants
    ----------
    - `is_polling` implies `is_connected`; violating assignments raise
      ValueError and leave the state untouched.
    - `peak_value` is at least every retained `load_tons`, and only ever
      decreases through `clear_telemetry`.
    """

    is_connected: bool = False
    is_polling: bool = False
    connect_in_progress: bool = False
    peak_value: float = 0.0
    last_sample_value: float = 0.0
    last_sample_time: datetime | None = None
    last_retained_load_tons: float | None = None
    last_retained_at: float | None = None  # monotonic seconds
    samples: list[Sample] = field(default_factory=list)
    metadata: TestMetadata = field(default_factory=TestMetadata)
    _observers: list[Callable[[StateChange], None]] = field(
        default_factory=list, init=False, repr=False, compare=False
    )

    def __setattr__(self, name, value):
        if name == "is_polling" and value and not getattr(self, "is_connected", False):
            raise ValueError("Cannot poll without a connection.")
        if name == "is_connected" and not value and getattr(self, "is_polling", False):
            raise ValueError("Cannot drop the connection while polling.")
        object.__setattr__(self, name, value)
        if not name.startswith("_"):
            self._notify(StateChange(name, value))

    def _notify(self, change: StateChange):
        for callback in list(getattr(self, "_observers", None) or ()):
            try:
                callback(change)
            except Exception:
                logger.exception("State observer failed on {}.", change.name)

    def subscribe(self, callback: Callable[[StateChange], None]) -> Callable[[], None]:
        """Register `callback`; returns a function that unregisters it."""
        self._observers.append(callback)

        def unsubscribe():
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    def append_sample(self, sample: Sample):
        self.samples.append(sample)
        self._notify(StateChange("samples", self.samples))

    def update_peak(self, value: float) -> bool:
        """Raise the peak to `value` if higher. Returns True if it changed."""
        if value > self.peak_value:
            self.peak_value = value
            return True
        return False

    def clear_telemetry(self):
        self.samples = []
        self.peak_value = 0.0
        self.last_sample_value = 0.0
        self.last_sample_time = None
        self.last_retained_load_tons = None
        self.last_retained_at = None

    def reset_connection_flags(self):
        """Drop the polling and connected flags.

        `connect_in_progress` is left alone: it belongs to the connect in flight,
        which always releases it.
        """
        # order matters: polling must drop before the connection does
        self.is_polling = False
        self.is_connected = False
