"""Interfaces towards chart, table and form consumers of a session.

Observers are plain objects; override only the hooks you need. Exceptions
raised by an observer are logged and never reach the session core.
"""

from __future__ import annotations

import typing
from typing import Protocol, Sequence, runtime_checkable

from loguru import logger

from loadscope.session.scheduler import ScheduledTask
from loadscope.types import RenderTransient
from loadscope.util.defaults import RENDER_MAX_ATTEMPTS, RENDER_RETRY_DELAY
from loadscope.util.logging import log_error

if typing.TYPE_CHECKING:
    from loadscope.session.state import Sample
    from loadscope.types import ControlsState, StatusUpdate, TestMetadata


class SessionObserver:
    def on_sample_retained(self, sample: Sample, peak: float):
        pass

    def on_status(self, status: StatusUpdate):
        pass

    def on_controls(self, controls: ControlsState):
        pass

    def on_clear(self):
        pass

    def on_metadata_changed(self, metadata: TestMetadata):
        pass


@runtime_checkable
class ChartRenderer(Protocol):
    """Draws the sample buffer. Raises `RenderTransient` when the surface is not ready."""

    def render(self, samples: Sequence[Sample], peak: float) -> None: ...

    def clear(self) -> None: ...


class RenderRetry:
    """Bounded retry around a `ChartRenderer`.

    A render raising `RenderTransient` is retried every `retry_delay_s`, up to
    `max_attempts` attempts in total. A newer request replaces a pending retry.
    Giving up is logged, not raised.
    """

    def __init__(
        self,
        renderer: ChartRenderer,
        scheduler,
        max_attempts: int = RENDER_MAX_ATTEMPTS,
        retry_delay_s: float = RENDER_RETRY_DELAY,
    ):
        self.renderer = renderer
        self.scheduler = scheduler
        self.max_attempts = max_attempts
        self.retry_delay_s = retry_delay_s
        self._request_id = 0
        self._pending: ScheduledTask | None = None

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def request(self, samples: Sequence[Sample], peak: float) -> bool:
        """Render now, retrying later if the surface is not ready.

        Returns True if the first attempt succeeded.
        """
        self.cancel()
        self._request_id += 1
        return self._attempt(self._request_id, tuple(samples), peak, 1)

    def _attempt(self, request_id: int, samples: tuple, peak: float, attempt: int) -> bool:
        self._pending = None
        if request_id != self._request_id:
            return False
        try:
            self.renderer.render(samples, peak)
        except RenderTransient as e:
            if attempt >= self.max_attempts:
                log_error(f"Chart render gave up after {attempt} attempts:", e)
                return False
            logger.debug("Chart not ready (attempt {}), retrying.", attempt)
            self._pending = self.scheduler.call_later(
                self.retry_delay_s,
                lambda: self._attempt(request_id, samples, peak, attempt + 1),
                name="render-retry",
            )
            return False
        except Exception:
            logger.exception("Chart render failed.")
            return False
        return True

    def clear(self):
        self.cancel()
        self._request_id += 1
        try:
            self.renderer.clear()
        except RenderTransient as e:
            logger.warning("Chart not ready to clear: {}", e)
        except Exception:
            logger.exception("Chart clear failed.")

    def cancel(self):
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
