"""Lifecycle state of a single proofreading request."""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from ..commands.models import PromptList
from ..errors import ApiError, RequestStateError

__all__ = [
    "RequestState",
    "RequestOutcome",
    "ConfigSnapshot",
    "CompletionResult",
    "RequestContext",
]

LOGGER = logging.getLogger(__name__)

_REQUEST_IDS = itertools.count(1)


class RequestState(str, Enum):
    """Pipeline stages; an idle editor simply has no context."""

    FETCHING_CONTENT = "fetching-content"
    AWAITING_COMPLETION = "awaiting-completion"
    DISPATCHING = "dispatching"
    TERMINATED = "terminated"


_TRANSITIONS: dict[RequestState, frozenset[RequestState]] = {
    RequestState.FETCHING_CONTENT: frozenset(
        {RequestState.AWAITING_COMPLETION, RequestState.TERMINATED}
    ),
    RequestState.AWAITING_COMPLETION: frozenset(
        {RequestState.DISPATCHING, RequestState.TERMINATED}
    ),
    RequestState.DISPATCHING: frozenset({RequestState.TERMINATED}),
    RequestState.TERMINATED: frozenset(),
}


class RequestOutcome(str, Enum):
    """How a request ended; returned by the orchestrator for every run."""

    INSERTED = "inserted"
    EMPTY_RESPONSE = "empty-response"
    API_FAILED = "api-failed"
    FETCH_FAILED = "fetch-failed"
    NO_CONTENT = "no-content"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class ConfigSnapshot:
    """Configuration captured when a command is activated.

    Later model switches or prompt reloads never affect a request that
    already holds a snapshot.
    """

    prompts: PromptList
    api_key: str | None
    model: str


@dataclass(frozen=True, slots=True)
class CompletionResult:
    """Terminal signal of the completion call: text, nothing, or an error."""

    text: str | None = None
    error: ApiError | None = None

    @property
    def outcome(self) -> RequestOutcome:
        if self.error is not None:
            return RequestOutcome.API_FAILED
        if not self.text:
            return RequestOutcome.EMPTY_RESPONSE
        return RequestOutcome.INSERTED


@dataclass(slots=True, eq=False)
class RequestContext:
    """Owns everything one in-flight request needs.

    The context moves forward through :class:`RequestState` only; any other
    move, a second :meth:`deliver` or a second :meth:`terminate` raises
    :class:`RequestStateError`.
    """

    editor: Any
    window: Any
    prompt_id: str
    prompts: PromptList
    api_key: str | None
    model: str
    request_id: int = field(default_factory=lambda: next(_REQUEST_IDS))
    state: RequestState = RequestState.FETCHING_CONTENT
    content: str | None = None
    result: CompletionResult | None = None
    outcome: RequestOutcome | None = None
    progress_timer: asyncio.TimerHandle | None = None
    progress_handle: Any = None
    progress_shown: bool = False
    teardown_count: int = 0
    _teardown_listeners: list[Callable[["RequestContext"], Any]] = field(default_factory=list)

    @classmethod
    def from_snapshot(
        cls, *, editor: Any, window: Any, prompt_id: str, snapshot: ConfigSnapshot
    ) -> "RequestContext":
        return cls(
            editor=editor,
            window=window,
            prompt_id=prompt_id,
            prompts=snapshot.prompts,
            api_key=snapshot.api_key,
            model=snapshot.model,
        )

    @property
    def is_terminated(self) -> bool:
        return self.state is RequestState.TERMINATED

    def advance(self, target: RequestState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise RequestStateError(
                f"Request {self.request_id}: illegal transition {self.state.value} -> {target.value}"
            )
        LOGGER.debug("Request %d: %s -> %s", self.request_id, self.state.value, target.value)
        self.state = target

    def deliver(self, result: CompletionResult) -> None:
        """Record the completion call's single terminal signal."""

        if self.result is not None:
            raise RequestStateError(f"Request {self.request_id}: result delivered twice")
        if self.state is not RequestState.AWAITING_COMPLETION:
            raise RequestStateError(
                f"Request {self.request_id}: result delivered while {self.state.value}"
            )
        self.result = result
        self.advance(RequestState.DISPATCHING)

    def add_teardown_listener(self, listener: Callable[["RequestContext"], Any]) -> None:
        self._teardown_listeners.append(listener)

    def terminate(self) -> None:
        """Tear the context down; valid exactly once from any live state."""

        if self.teardown_count:
            raise RequestStateError(f"Request {self.request_id}: torn down twice")
        if not self.is_terminated:
            self.advance(RequestState.TERMINATED)
        self.teardown_count += 1
        listeners, self._teardown_listeners = self._teardown_listeners, []
        for listener in listeners:
            try:
                listener(self)
            except Exception:  # pragma: no cover - listeners must not break teardown
                LOGGER.exception("Teardown listener failed for request %d", self.request_id)
