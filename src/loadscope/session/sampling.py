"""Change/time based sampling policy."""

from __future__ import annotations

from loadscope.util.defaults import CHANGE_THRESHOLD_T, STALE_AFTER


class SamplingPolicy:
    """Keep a reading if it changed enough, or if the last kept one is stale.

    Parameters
    ----------
    change_threshold_t : float
        Minimum absolute change (tons) from the last retained reading.
    stale_after_s : float
        Maximum time (seconds) between retained readings.
    """

    def __init__(
        self,
        change_threshold_t: float = CHANGE_THRESHOLD_T,
        stale_after_s: float = STALE_AFTER,
    ):
        self.change_threshold_t = change_threshold_t
        self.stale_after_s = stale_after_s

    def should_retain(
        self,
        load_tons: float,
        now: float,
        last_load_tons: float | None,
        last_at: float | None,
    ) -> bool:
        if last_load_tons is None or last_at is None:
            return True
        if abs(load_tons - last_load_tons) > self.change_threshold_t:
            return True
        return now - last_at > self.stale_after_s

    def __repr__(self):
        return (
            f"SamplingPolicy(change_threshold_t={self.change_threshold_t}, "
            f"stale_after_s={self.stale_after_s})"
        )
