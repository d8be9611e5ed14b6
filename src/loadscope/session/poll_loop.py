"""Finish-then-wait polling of the load register pair.

Each cycle reads, converts and filters one reading, then schedules the next
cycle `poll_interval_s` after it has finished. A cycle first checks that it
belongs to the current generation (one generation per `start()`) and that
polling is still enabled; otherwise it exits and the loop ends. A read that
is in flight is never aborted.
"""

from __future__ import annotations

import time
from datetime import datetime
from typing import Callable

from loguru import logger

from loadscope.session.connection_manager import ConnectionManager
from loadscope.session.conversion import LoadReading, combine_registers, convert_raw
from loadscope.session.sampling import SamplingPolicy
from loadscope.session.scheduler import ScheduledTask
from loadscope.session.state import Sample, SessionState
from loadscope.types import DeviceConnectionError
from loadscope.util.defaults import POLL_INTERVAL

TIMESTAMP_FORMAT = "%H:%M:%S"


class PollLoop:
    def __init__(
        self,
        state: SessionState,
        connection: ConnectionManager,
        scheduler,
        policy: SamplingPolicy | None = None,
        on_retained: Callable[[Sample, LoadReading], None] | None = None,
        on_failure: Callable[[DeviceConnectionError], None] | None = None,
        poll_interval_s: float = POLL_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.state = state
        self.connection = connection
        self.scheduler = scheduler
        self.policy = policy or SamplingPolicy()
        self.on_retained = on_retained
        self.on_failure = on_failure
        self.poll_interval_s = poll_interval_s
        self.clock = clock
        self.now = now
        self.generation = 0
        self._pending: ScheduledTask | None = None

    def start(self):
        """Begin a new generation of cycles; the first runs immediately."""
        self.generation += 1
        self._cancel_pending()
        logger.info("Poll loop started (generation {}).", self.generation)
        self._schedule(0.0, self.generation)

    def stop(self):
        """Cancel the next cycle if it has not started. An in-flight read finishes."""
        self._cancel_pending()

    def reset(self):
        """Stop, and discard whatever the in-flight cycle reads."""
        self.generation += 1
        self._cancel_pending()

    def _cancel_pending(self):
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _schedule(self, delay: float, generation: int):
        self._pending = self.scheduler.call_later(
            delay, lambda: self._cycle(generation), name=f"poll-{generation}"
        )

    def _is_current(self, generation: int) -> bool:
        return generation == self.generation

    async def _cycle(self, generation: int):
        if not self._is_current(generation) or not self.state.is_polling:
            logger.debug("Poll cycle of generation {} exiting.", generation)
            return

        try:
            high, low = await self.connection.read_registers()
        except DeviceConnectionError as e:
            if not self._is_current(generation):
                logger.debug("Ignoring read failure from stale generation {}.", generation)
                return
            logger.warning("Poll read failed: {}", e)
            if self.on_failure is not None:
                self.on_failure(e)
            return

        if not self._is_current(generation):
            logger.debug("Discarding reading from stale generation {}.", generation)
            return

        try:
            self.ingest(convert_raw(combine_registers(high, low)))
        except ValueError:
            logger.exception("Invalid register pair ({}, {}).", high, low)

        if self.state.is_polling:
            self._schedule(self.poll_interval_s, generation)
        else:
            logger.debug("Polling disabled during cycle, loop ends.")

    def ingest(self, reading: LoadReading) -> Sample | None:
        """Track peak and last value, then keep the reading if the policy says so.

        Returns the retained sample, or None if the reading was dropped.
        """
        mono = self.clock()
        wall = self.now()
        self.state.last_sample_value = reading.load_tons
        self.state.last_sample_time = wall
        self.state.update_peak(reading.load_tons)

        if not self.policy.should_retain(
            reading.load_tons,
            mono,
            self.state.last_retained_load_tons,
            self.state.last_retained_at,
        ):
            logger.trace("Reading {:.3f} t not retained.", reading.load_tons)
            return None

        sample = Sample(wall.strftime(TIMESTAMP_FORMAT), reading.load_tons)
        self.state.last_retained_load_tons = reading.load_tons
        self.state.last_retained_at = mono
        self.state.append_sample(sample)
        logger.trace("Retained {} (peak {:.3f} t).", sample, self.state.peak_value)
        if self.on_retained is not None:
            try:
                self.on_retained(sample, reading)
            except Exception:
                logger.exception("Sample consumer failed.")
        return sample
