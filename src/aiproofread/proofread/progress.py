"""Debounced "please wait" indicator for slow completion calls."""

from __future__ import annotations

import asyncio
import logging

from ..host.protocol import HostCapabilities
from .context import RequestContext, RequestState

__all__ = ["ProgressScheduler", "DEFAULT_PROGRESS_DELAY", "progress_message"]

LOGGER = logging.getLogger(__name__)

DEFAULT_PROGRESS_DELAY = 0.8


def progress_message(model: str) -> str:
    return f"Proofreading with {model} may take a little longer. Please wait..."


class ProgressScheduler:
    """Shows the host's progress indicator only when a request outlives ``delay``.

    Timer and indicator handles live on the :class:`RequestContext`, so at most
    one indicator can ever belong to a context.
    """

    def __init__(
        self,
        host: HostCapabilities,
        delay: float = DEFAULT_PROGRESS_DELAY,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        if delay < 0:
            raise ValueError("Progress delay must be non-negative")
        self._host = host
        self._delay = delay
        self._loop = loop

    @property
    def delay(self) -> float:
        return self._delay

    def arm(self, context: RequestContext) -> None:
        """Schedule the indicator; no-op if already armed, shown or terminated."""

        if context.is_terminated or context.progress_timer is not None or context.progress_shown:
            return
        loop = self._loop or asyncio.get_running_loop()
        context.progress_timer = loop.call_later(self._delay, self._fire, context)

    def disarm(self, context: RequestContext) -> None:
        """Cancel a pending timer or close the visible indicator. Idempotent."""

        timer = context.progress_timer
        if timer is not None:
            context.progress_timer = None
            timer.cancel()
        handle = context.progress_handle
        if handle is not None:
            context.progress_handle = None
            LOGGER.debug("Request %d: closing progress indicator", context.request_id)
            self._host.close_progress(handle)

    def _fire(self, context: RequestContext) -> None:
        context.progress_timer = None
        if context.state is not RequestState.AWAITING_COMPLETION:
            return
        LOGGER.debug("Request %d: showing progress indicator", context.request_id)
        context.progress_shown = True
        try:
            context.progress_handle = self._host.show_progress(
                context.window, progress_message(context.model)
            )
        except Exception:
            LOGGER.exception("Unable to show progress indicator for request %d", context.request_id)
