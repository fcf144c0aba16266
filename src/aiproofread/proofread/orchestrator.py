"""Async pipeline that turns a prompt activation into one document edit."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional

from ..commands.models import PromptList
from ..errors import ApiError, HostError
from ..host.protocol import ERROR_ALERT_CATEGORY, ContentMode, HostCapabilities, InsertMode
from .context import (
    CompletionResult,
    ConfigSnapshot,
    RequestContext,
    RequestOutcome,
    RequestState,
)
from .progress import ProgressScheduler

__all__ = ["ProofreadOrchestrator", "CompleteText", "EMPTY_RESPONSE_NOTICE", "UNEXPECTED_FAILURE_PREFIX"]

LOGGER = logging.getLogger(__name__)

EMPTY_RESPONSE_NOTICE = "No response received from proofreading service"
UNEXPECTED_FAILURE_PREFIX = "Proofreading failed"

CompleteText = Callable[[str, str, PromptList, Optional[str], str], Optional[str]]
"""Blocking ``(content, prompt_id, prompts, api_key, model) -> text | None``."""


class ProofreadOrchestrator:
    """Runs fetch, completion, dispatch and teardown for each request.

    Every request gets its own :class:`RequestContext`; the pipeline is a single
    coroutine whose ``finally`` block is the only place a context is torn down.
    """

    def __init__(
        self,
        host: HostCapabilities,
        complete_text: CompleteText,
        *,
        scheduler: ProgressScheduler | None = None,
        insert_mode: InsertMode = InsertMode.REPLACE_DOCUMENT,
        content_mode: ContentMode = ContentMode.PLAIN_TEXT,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._host = host
        self._complete_text = complete_text
        self._scheduler = scheduler or ProgressScheduler(host)
        self._insert_mode = insert_mode
        self._content_mode = content_mode
        self._loop = loop
        self._tasks: set[asyncio.Task[RequestOutcome]] = set()

    @property
    def scheduler(self) -> ProgressScheduler:
        return self._scheduler

    @property
    def insert_mode(self) -> InsertMode:
        return self._insert_mode

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def start(
        self, editor: Any, window: Any, prompt_id: str, snapshot: ConfigSnapshot
    ) -> asyncio.Task[RequestOutcome]:
        """Create a context for ``prompt_id`` and schedule its pipeline."""

        context = RequestContext.from_snapshot(
            editor=editor, window=window, prompt_id=prompt_id, snapshot=snapshot
        )
        LOGGER.info(
            "Request %d: proofreading with prompt '%s' on %s",
            context.request_id,
            prompt_id,
            context.model,
        )
        loop = self._get_event_loop()
        task = loop.create_task(self.run(context), name=f"proofread-{context.request_id}")
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    async def run(self, context: RequestContext) -> RequestOutcome:
        """Drive ``context`` to termination and return how it ended."""

        try:
            context.outcome = await self._run_pipeline(context)
        except asyncio.CancelledError:
            LOGGER.info("Request %d cancelled", context.request_id)
            raise
        except Exception as exc:
            LOGGER.exception("Request %d failed unexpectedly", context.request_id)
            context.outcome = RequestOutcome.FAILED
            self._report_failure(context, exc)
        finally:
            self._scheduler.disarm(context)
            if context.outcome is None:
                context.outcome = RequestOutcome.CANCELLED
            context.terminate()
            LOGGER.debug("Request %d finished: %s", context.request_id, context.outcome.value)
        return context.outcome

    async def aclose(self) -> None:
        """Cancel every in-flight request and wait for their teardown."""

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    async def _run_pipeline(self, context: RequestContext) -> RequestOutcome:
        try:
            content = await self._host.fetch_content(context.editor, self._content_mode)
        except HostError as exc:
            LOGGER.warning("Request %d: error getting content: %s", context.request_id, exc)
            return RequestOutcome.FETCH_FAILED
        if not content:
            LOGGER.info("Request %d: no content to proofread", context.request_id)
            return RequestOutcome.NO_CONTENT

        context.content = content
        context.advance(RequestState.AWAITING_COMPLETION)
        self._scheduler.arm(context)
        context.deliver(await self._complete(context))
        self._scheduler.disarm(context)
        return self._dispatch(context)

    async def _complete(self, context: RequestContext) -> CompletionResult:
        try:
            text = await asyncio.to_thread(
                self._complete_text,
                context.content or "",
                context.prompt_id,
                context.prompts,
                context.api_key,
                context.model,
            )
        except ApiError as exc:
            LOGGER.warning("Request %d: completion failed: %s", context.request_id, exc.message)
            return CompletionResult(error=exc)
        return CompletionResult(text=text)

    def _dispatch(self, context: RequestContext) -> RequestOutcome:
        result = context.result
        assert result is not None
        outcome = result.outcome
        if outcome is RequestOutcome.API_FAILED:
            assert result.error is not None
            self._host.show_alert(context.window, ERROR_ALERT_CATEGORY, result.error.message)
        elif outcome is RequestOutcome.EMPTY_RESPONSE:
            self._host.show_modal_notice(context.window, EMPTY_RESPONSE_NOTICE)
        else:
            self._host.insert_content(context.editor, result.text or "", self._insert_mode)
        return outcome

    def _report_failure(self, context: RequestContext, error: Exception) -> None:
        message = f"{UNEXPECTED_FAILURE_PREFIX}: {str(error) or error.__class__.__name__}"
        try:
            self._host.show_alert(context.window, ERROR_ALERT_CATEGORY, message)
        except Exception:
            LOGGER.exception("Unable to report failure of request %d", context.request_id)

    def _get_event_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            try:
                return asyncio.get_running_loop()
            except RuntimeError:
                self._loop = asyncio.get_event_loop()
        return self._loop

    def _on_task_done(self, task: asyncio.Task[RequestOutcome]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            LOGGER.error("Proofreading task %s failed", task.get_name(), exc_info=error)
