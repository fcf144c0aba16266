"""Tests for the request context state machine."""

from __future__ import annotations

import pytest

from aiproofread.errors import ApiError, RequestStateError
from aiproofread.proofread.context import (
    CompletionResult,
    ConfigSnapshot,
    RequestContext,
    RequestOutcome,
    RequestState,
)
from tests.helpers import FIX_GRAMMAR


def _context() -> RequestContext:
    snapshot = ConfigSnapshot(prompts=(FIX_GRAMMAR,), api_key="sk-test", model="gpt-4o")
    return RequestContext.from_snapshot(editor="editor", window="window", prompt_id="fix-grammar", snapshot=snapshot)


def test_context_copies_snapshot_values() -> None:
    context = _context()

    assert context.state is RequestState.FETCHING_CONTENT
    assert context.prompts == (FIX_GRAMMAR,)
    assert context.model == "gpt-4o"
    assert context.api_key == "sk-test"


def test_contexts_get_distinct_request_ids() -> None:
    assert _context().request_id != _context().request_id


def test_happy_path_transitions() -> None:
    context = _context()

    context.advance(RequestState.AWAITING_COMPLETION)
    context.deliver(CompletionResult(text="done"))
    context.terminate()

    assert context.state is RequestState.TERMINATED
    assert context.teardown_count == 1


def test_illegal_transition_raises() -> None:
    context = _context()

    with pytest.raises(RequestStateError):
        context.advance(RequestState.DISPATCHING)


def test_second_delivery_raises() -> None:
    context = _context()
    context.advance(RequestState.AWAITING_COMPLETION)
    context.deliver(CompletionResult(text="one"))

    with pytest.raises(RequestStateError):
        context.deliver(CompletionResult(text="two"))
    assert context.result == CompletionResult(text="one")


def test_delivery_before_awaiting_completion_raises() -> None:
    with pytest.raises(RequestStateError):
        _context().deliver(CompletionResult(text="early"))


def test_second_teardown_raises_and_listeners_run_once() -> None:
    context = _context()
    calls: list[int] = []
    context.add_teardown_listener(lambda ctx: calls.append(ctx.request_id))

    context.terminate()
    with pytest.raises(RequestStateError):
        context.terminate()

    assert calls == [context.request_id]
    assert context.teardown_count == 1


@pytest.mark.parametrize(
    ("result", "expected"),
    [
        (CompletionResult(text="fixed"), RequestOutcome.INSERTED),
        (CompletionResult(text=None), RequestOutcome.EMPTY_RESPONSE),
        (CompletionResult(text=""), RequestOutcome.EMPTY_RESPONSE),
        (CompletionResult(error=ApiError("HTTP 500")), RequestOutcome.API_FAILED),
    ],
)
def test_completion_result_outcome(result: CompletionResult, expected: RequestOutcome) -> None:
    assert result.outcome is expected
