"""Wires configuration, completion service, host and core together."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine, Protocol, Sequence

from .commands.dispatch import CommandBindings, CommandDispatcher
from .commands.models import ModelState, PromptList
from .commands.registry import RegistryBuild, build_registry
from .errors import ApiError, ConfigError, EmptyConfiguration
from .host.protocol import HostCapabilities, InsertMode
from .proofread.context import ConfigSnapshot, RequestOutcome
from .proofread.model_selection import ModelSelectionController
from .proofread.orchestrator import ProofreadOrchestrator
from .proofread.progress import ProgressScheduler
from .services.config import ConfigStore, ProofreadSettings

__all__ = ["ProofreadExtension", "CompletionBackend", "MODEL_ALERT_CATEGORY"]

LOGGER = logging.getLogger(__name__)

MODEL_ALERT_CATEGORY = "ai:error-saving-model"


class CompletionBackend(Protocol):
    def complete_text(
        self, content: str, prompt_id: str, prompts: PromptList, api_key: str | None, model: str
    ) -> str | None: ...

    def list_models(self, api_key: str | None, *, force_refresh: bool = False) -> list[str]: ...


class ProofreadExtension:
    """Owns the live prompt list and model state for one composer window.

    Every registry build is rendered together with a fresh
    :class:`CommandDispatcher`, so activations always resolve against the
    table that produced the visible menu.
    """

    def __init__(
        self,
        host: HostCapabilities,
        window: Any,
        editor: Any,
        config: ConfigStore,
        completion: CompletionBackend,
        settings: ProofreadSettings | None = None,
        *,
        orchestrator: ProofreadOrchestrator | None = None,
    ) -> None:
        self._host = host
        self._window = window
        self._editor = editor
        self._config = config
        self._completion = completion
        self._settings = settings or config.load_settings()
        self._orchestrator = orchestrator or ProofreadOrchestrator(
            host,
            completion.complete_text,
            scheduler=ProgressScheduler(host, delay=self._settings.progress_delay),
            insert_mode=_resolve_insert_mode(self._settings.insert_mode),
        )
        self._prompts: PromptList = ()
        self._api_key: str | None = None
        self._models = ModelSelectionController(
            ModelState(selected=self._settings.model), config.save_model, self._on_model_state
        )
        self._build: RegistryBuild | None = None
        self._dispatcher: CommandDispatcher | None = None
        self._background: set[asyncio.Task[Any]] = set()

    @property
    def prompts(self) -> PromptList:
        return self._prompts

    @property
    def api_key(self) -> str | None:
        return self._api_key

    @property
    def model_state(self) -> ModelState:
        return self._models.state

    @property
    def registry(self) -> RegistryBuild | None:
        return self._build

    @property
    def dispatcher(self) -> CommandDispatcher | None:
        return self._dispatcher

    @property
    def orchestrator(self) -> ProofreadOrchestrator:
        return self._orchestrator

    async def start(self) -> bool:
        """Load configuration and render the AI commands.

        Returns ``False`` without rendering anything when there are no prompts
        or no API key.
        """

        self._prompts = self._config.load_prompts()
        self._api_key = self._config.load_api_key()
        selected = self._config.load_model()
        LOGGER.info("Starting with %d prompt(s), model %s", len(self._prompts), selected)
        if not self._prompts:
            LOGGER.warning("No prompts configured in %s; AI menu not created", self._config.prompts_path)
            return False
        if not self._api_key:
            LOGGER.warning("No API key found; AI menu not created")
            return False

        available = await self._fetch_models(force_refresh=False)
        self._models = ModelSelectionController(
            ModelState(selected=selected, available=tuple(available)),
            self._config.save_model,
            self._on_model_state,
        )
        return self.rebuild() is not None

    def rebuild(self) -> RegistryBuild | None:
        """Rebuild the registry from live state and hand it to the host."""

        try:
            build = build_registry(self._prompts, self._models.state)
        except EmptyConfiguration:
            LOGGER.info("No prompts available; removing AI commands")
            self._build = None
            self._dispatcher = None
            self._host.clear_layout(self._window)
            return None
        dispatcher = CommandDispatcher(
            build.table,
            CommandBindings(
                start_proofread=self.start_proofread,
                select_model=self.select_model,
                present_prompt_menu=self._present_prompt_menu,
            ),
        )
        self._build = build
        self._dispatcher = dispatcher
        self._host.render_layout(self._window, build.table, build.layout, dispatcher.activate)
        return build

    async def reload_prompts(self) -> PromptList:
        self._prompts = await asyncio.to_thread(self._config.load_prompts)
        LOGGER.info("Reloaded %d prompt(s)", len(self._prompts))
        self.rebuild()
        return self._prompts

    async def refresh_models(self) -> ModelState:
        if not self._api_key:
            LOGGER.warning("No API key found; model list not refreshed")
            return self._models.state
        available = await self._fetch_models(force_refresh=True)
        return self._models.update_available(available)

    def request_reload(self) -> asyncio.Task[PromptList]:
        """Schedule :meth:`reload_prompts` from synchronous UI callbacks."""

        return self._spawn(self.reload_prompts())

    def request_model_refresh(self) -> asyncio.Task[ModelState]:
        return self._spawn(self.refresh_models())

    def snapshot(self) -> ConfigSnapshot:
        return ConfigSnapshot(
            prompts=self._prompts,
            api_key=self._api_key,
            model=self._models.state.selected,
        )

    def start_proofread(self, prompt_id: str) -> asyncio.Task[RequestOutcome]:
        return self._orchestrator.start(self._editor, self._window, prompt_id, self.snapshot())

    def select_model(self, model_id: str) -> ModelState:
        try:
            return self._models.select_model(model_id)
        except ConfigError as exc:
            LOGGER.error("%s", exc)
            self._host.show_alert(self._window, MODEL_ALERT_CATEGORY, str(exc))
        return self._models.state

    async def aclose(self) -> None:
        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        self._background.clear()
        await self._orchestrator.aclose()

    async def _fetch_models(self, *, force_refresh: bool) -> list[str]:
        try:
            return await asyncio.to_thread(
                self._completion.list_models, self._api_key, force_refresh=force_refresh
            )
        except ApiError as exc:
            LOGGER.warning("Failed to list models: %s", exc.message)
            return []

    def _present_prompt_menu(
        self, choices: Sequence[tuple[str, str]], on_select: Callable[[str], Any]
    ) -> None:
        self._host.present_choice_menu(self._window, choices, on_select)

    def _on_model_state(self, state: ModelState) -> None:
        LOGGER.debug("Model state changed (selected=%s); rebuilding", state.selected)
        self.rebuild()

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = asyncio.get_event_loop()
        task = loop.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task


def _resolve_insert_mode(value: str) -> InsertMode:
    try:
        return InsertMode(value)
    except ValueError:
        LOGGER.warning("Unknown insert_mode '%s'; using %s", value, InsertMode.REPLACE_DOCUMENT.value)
        return InsertMode.REPLACE_DOCUMENT
