"""Shared test helpers and stub classes.

Import from here instead of duplicating these classes in individual test files.
"""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Sequence

from aiproofread.commands.models import DEFAULT_MODEL, ActionTable, LayoutDocument, Prompt, PromptList
from aiproofread.errors import ApiError, HostError
from aiproofread.host.protocol import ContentMode, InsertMode
from aiproofread.services.config import ProofreadSettings

FIX_GRAMMAR = Prompt(id="fix-grammar", display_name="Fix Grammar", instruction_text="Correct grammar")


@dataclass
class RecordingHost:
    """In-memory host that records every capability call in ``events``.

    ``content`` is what :meth:`fetch_content` returns; set ``fetch_error`` to
    make it raise :class:`HostError` instead.
    """

    content: str = ""
    fetch_error: str | None = None
    events: list[tuple[str, Any]] = field(default_factory=list)
    inserted: list[tuple[Any, str, InsertMode]] = field(default_factory=list)
    alerts: list[tuple[Any, str, str]] = field(default_factory=list)
    notices: list[tuple[Any, str]] = field(default_factory=list)
    progress_shown: list[tuple[Any, str]] = field(default_factory=list)
    progress_closed: list[Any] = field(default_factory=list)
    choice_menus: list[tuple[Any, list[tuple[str, str]], Callable[[str], Any]]] = field(default_factory=list)
    renders: list[tuple[Any, ActionTable, LayoutDocument, Callable[[str], Any]]] = field(default_factory=list)
    clears: int = 0

    async def fetch_content(self, editor: Any, mode: ContentMode) -> str:
        self.events.append(("fetch", mode))
        await asyncio.sleep(0)
        if self.fetch_error is not None:
            raise HostError(self.fetch_error)
        return self.content

    def insert_content(self, editor: Any, text: str, mode: InsertMode) -> None:
        self.events.append(("insert", text))
        self.inserted.append((editor, text, mode))

    def show_alert(self, window: Any, category: str, message: str) -> None:
        self.events.append(("alert", category))
        self.alerts.append((window, category, message))

    def show_modal_notice(self, window: Any, message: str) -> None:
        self.events.append(("notice", message))
        self.notices.append((window, message))

    def show_progress(self, window: Any, message: str) -> str:
        handle = f"progress-{len(self.progress_shown) + 1}"
        self.events.append(("progress-show", handle))
        self.progress_shown.append((window, message))
        return handle

    def close_progress(self, handle: Any) -> None:
        self.events.append(("progress-close", handle))
        self.progress_closed.append(handle)

    def present_choice_menu(
        self, window: Any, choices: Sequence[tuple[str, str]], on_select: Callable[[str], Any]
    ) -> None:
        self.events.append(("choice-menu", len(choices)))
        self.choice_menus.append((window, list(choices), on_select))

    def render_layout(
        self, window: Any, table: ActionTable, layout: LayoutDocument, on_activate: Callable[[str], Any]
    ) -> None:
        self.events.append(("render", len(table)))
        self.renders.append((window, table, layout, on_activate))

    def clear_layout(self, window: Any) -> None:
        self.events.append(("clear", None))
        self.clears += 1

    def event_names(self) -> list[str]:
        return [name for name, _ in self.events]


class StubCompletion:
    """Blocking completion stub; optionally waits on ``gate`` before replying."""

    def __init__(
        self,
        reply: str | None = "",
        *,
        error: Exception | None = None,
        models: Sequence[str] = (),
        models_error: ApiError | None = None,
        gate: threading.Event | None = None,
    ) -> None:
        self.reply = reply
        self.error = error
        self.models = list(models)
        self.models_error = models_error
        self.gate = gate
        self.calls: list[tuple[str, str, PromptList, str | None, str]] = []
        self.list_calls: list[tuple[str | None, bool]] = []
        self.thread_ids: list[int] = []

    def complete_text(
        self, content: str, prompt_id: str, prompts: PromptList, api_key: str | None, model: str
    ) -> str | None:
        self.thread_ids.append(threading.get_ident())
        self.calls.append((content, prompt_id, prompts, api_key, model))
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.error is not None:
            raise self.error
        return self.reply

    def list_models(self, api_key: str | None, *, force_refresh: bool = False) -> list[str]:
        self.list_calls.append((api_key, force_refresh))
        if self.models_error is not None:
            raise self.models_error
        return list(self.models)


class MemoryConfig:
    """Configuration collaborator that keeps everything in memory."""

    def __init__(
        self,
        prompts: PromptList = (FIX_GRAMMAR,),
        *,
        api_key: str | None = "sk-test",
        model: str = DEFAULT_MODEL,
        save_ok: bool = True,
    ) -> None:
        self.prompts = tuple(prompts)
        self.api_key = api_key
        self.model = model
        self.save_ok = save_ok
        self.saved: list[str] = []
        self.prompts_path = Path("prompts.json")

    def load_prompts(self) -> PromptList:
        return self.prompts

    def load_api_key(self) -> str | None:
        return self.api_key

    def load_model(self) -> str:
        return self.model

    def save_model(self, model: str) -> bool:
        self.saved.append(model)
        if self.save_ok:
            self.model = model
        return self.save_ok

    def load_settings(self) -> ProofreadSettings:
        return ProofreadSettings(model=self.model, progress_delay=0.05)


async def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll ``predicate`` on the running loop until it holds."""

    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.01)
