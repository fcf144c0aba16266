"""Integration tests for the extension wiring."""

from __future__ import annotations

import threading

import pytest

from aiproofread.commands.models import ActionKind, Prompt
from aiproofread.errors import ApiError
from aiproofread.extension import MODEL_ALERT_CATEGORY, ProofreadExtension
from aiproofread.proofread.context import RequestOutcome
from tests.helpers import FIX_GRAMMAR, MemoryConfig, RecordingHost, StubCompletion, wait_for

MODELS = ("gpt-4o", "gpt-4o-mini")


def _extension(
    config: MemoryConfig | None = None,
    completion: StubCompletion | None = None,
    host: RecordingHost | None = None,
) -> tuple[ProofreadExtension, RecordingHost, MemoryConfig, StubCompletion]:
    host = host or RecordingHost(content="teh cat sat")
    config = config or MemoryConfig(model="gpt-4o")
    completion = completion or StubCompletion("The cat sat.", models=MODELS)
    extension = ProofreadExtension(host, "window", "editor", config, completion)
    return extension, host, config, completion


def _label(extension: ProofreadExtension, command_id: str) -> str:
    assert extension.registry is not None
    descriptor = extension.registry.table.get(command_id)
    assert descriptor is not None
    return descriptor.label


@pytest.mark.asyncio
async def test_start_renders_registry_with_models() -> None:
    extension, host, _config, completion = _extension()

    assert await extension.start() is True

    assert len(host.renders) == 1
    _window, table, layout, _on_activate = host.renders[0]
    assert table.command_ids() == (
        "ai-proofread-fix-grammar",
        "ai-menu",
        "ai-proofread-dropdown",
        "ai-model-menu",
        "ai-model-gpt-4o",
        "ai-model-gpt-4o-mini",
    )
    assert set(layout.referenced_command_ids()) <= set(table.command_ids())
    assert extension.model_state.available == MODELS
    assert completion.list_calls == [("sk-test", False)]


@pytest.mark.asyncio
async def test_start_without_prompts_renders_nothing() -> None:
    extension, host, _config, completion = _extension(config=MemoryConfig(prompts=()))

    assert await extension.start() is False

    assert host.events == []
    assert completion.list_calls == []


@pytest.mark.asyncio
async def test_start_without_api_key_renders_nothing() -> None:
    extension, host, _config, _completion = _extension(config=MemoryConfig(api_key=None))

    assert await extension.start() is False

    assert host.renders == []
    assert extension.registry is None


@pytest.mark.asyncio
async def test_model_list_failure_leaves_empty_submenu() -> None:
    completion = StubCompletion("x", models_error=ApiError("Invalid API key", status_code=401))
    extension, host, _config, _ = _extension(completion=completion)

    assert await extension.start() is True

    assert extension.model_state.available == ()
    assert extension.registry is not None
    assert extension.registry.table.of_kind(ActionKind.MODEL) == ()
    assert len(host.renders) == 1


@pytest.mark.asyncio
async def test_selecting_model_moves_marker_and_persists() -> None:
    extension, host, config, _completion = _extension()
    await extension.start()
    _window, _table, _layout, on_activate = host.renders[-1]

    on_activate("ai-model-gpt-4o-mini")

    assert config.saved == ["gpt-4o-mini"]
    assert extension.model_state.selected == "gpt-4o-mini"
    assert len(host.renders) == 2
    assert _label(extension, "ai-model-gpt-4o-mini") == "✓ gpt-4o-mini"
    assert _label(extension, "ai-model-gpt-4o") == "gpt-4o"
    assert _label(extension, "ai-model-menu") == "Model (gpt-4o-mini)"
    assert extension.snapshot().model == "gpt-4o-mini"


@pytest.mark.asyncio
async def test_failed_model_save_alerts_and_keeps_selection() -> None:
    extension, host, config, _completion = _extension(config=MemoryConfig(model="gpt-4o", save_ok=False))
    await extension.start()

    state = extension.select_model("gpt-4o-mini")

    assert state.selected == "gpt-4o-mini"
    assert config.saved == ["gpt-4o-mini"]
    assert [(category, "gpt-4o-mini" in message) for _w, category, message in host.alerts] == [
        (MODEL_ALERT_CATEGORY, True)
    ]


@pytest.mark.asyncio
async def test_prompt_command_runs_request_end_to_end() -> None:
    extension, host, _config, completion = _extension()
    await extension.start()
    dispatcher = extension.dispatcher
    assert dispatcher is not None

    task = dispatcher.activate("ai-proofread-fix-grammar")
    outcome = await task

    assert outcome is RequestOutcome.INSERTED
    assert host.inserted == [("editor", "The cat sat.", extension.orchestrator.insert_mode)]
    assert completion.calls[0][:2] == ("teh cat sat", "fix-grammar")


@pytest.mark.asyncio
async def test_in_flight_request_keeps_its_configuration() -> None:
    gate = threading.Event()
    completion = StubCompletion("The cat sat.", models=MODELS, gate=gate)
    extension, host, config, _ = _extension(completion=completion)
    await extension.start()

    task = extension.start_proofread("fix-grammar")
    await wait_for(lambda: bool(completion.calls))
    extension.select_model("gpt-4o-mini")
    config.prompts = (Prompt(id="fix-grammar", display_name="Fix Grammar", instruction_text="Rewrite as a pirate"),)
    await extension.reload_prompts()
    gate.set()
    outcome = await task

    assert outcome is RequestOutcome.INSERTED
    _content, prompt_id, prompts, api_key, model = completion.calls[0]
    assert (prompt_id, prompts, api_key, model) == ("fix-grammar", (FIX_GRAMMAR,), "sk-test", "gpt-4o")
    assert extension.snapshot().model == "gpt-4o-mini"
    assert extension.snapshot().prompts[0].instruction_text == "Rewrite as a pirate"
    assert host.inserted == [("editor", "The cat sat.", extension.orchestrator.insert_mode)]


@pytest.mark.asyncio
async def test_dropdown_choice_starts_selected_prompt() -> None:
    formal = Prompt(id="make-formal", display_name="Make Formal", instruction_text="Rewrite formally")
    extension, host, _config, completion = _extension(config=MemoryConfig(prompts=(FIX_GRAMMAR, formal)))
    await extension.start()
    _window, _table, _layout, on_activate = host.renders[-1]

    on_activate("ai-proofread-dropdown")
    _menu_window, choices, on_select = host.choice_menus[-1]
    on_select("ai-proofread-make-formal")
    await wait_for(lambda: bool(host.inserted))

    assert choices == [("ai-proofread-fix-grammar", "Fix Grammar"), ("ai-proofread-make-formal", "Make Formal")]
    assert completion.calls[0][1] == "make-formal"


@pytest.mark.asyncio
async def test_reload_to_empty_prompts_clears_layout() -> None:
    extension, host, config, _completion = _extension()
    await extension.start()
    config.prompts = ()

    await extension.request_reload()

    assert host.clears == 1
    assert extension.registry is None
    assert extension.dispatcher is None


@pytest.mark.asyncio
async def test_reload_picks_up_new_prompts() -> None:
    extension, host, config, _completion = _extension()
    await extension.start()
    config.prompts = (FIX_GRAMMAR, Prompt(id="shorten", display_name="Shorten", instruction_text="Be brief"))

    prompts = await extension.reload_prompts()

    assert [p.id for p in prompts] == ["fix-grammar", "shorten"]
    assert "ai-proofread-shorten" in host.renders[-1][1].command_ids()


@pytest.mark.asyncio
async def test_refresh_models_rebuilds_with_new_list() -> None:
    completion = StubCompletion("x", models=MODELS)
    extension, host, _config, _ = _extension(completion=completion)
    await extension.start()
    completion.models = ["gpt-4.1", "gpt-4o"]

    state = await extension.refresh_models()

    assert state.available == ("gpt-4.1", "gpt-4o")
    assert completion.list_calls[-1] == ("sk-test", True)
    assert "ai-model-gpt-4.1" in host.renders[-1][1].command_ids()


@pytest.mark.asyncio
async def test_aclose_cancels_background_reload() -> None:
    extension, _host, _config, _completion = _extension()
    await extension.start()

    task = extension.request_reload()
    await extension.aclose()

    assert task.done()


@pytest.mark.asyncio
async def test_requested_model_refresh_updates_menu() -> None:
    completion = StubCompletion("x", models=MODELS)
    extension, host, _config, _ = _extension(completion=completion)
    await extension.start()
    completion.models = ["gpt-4o", "gpt-5"]

    state = await extension.request_model_refresh()

    assert state.available == ("gpt-4o", "gpt-5")
    assert "ai-model-gpt-5" in host.renders[-1][1].command_ids()


@pytest.mark.asyncio
async def test_model_refresh_without_api_key_renders_nothing() -> None:
    extension, host, _config, completion = _extension(config=MemoryConfig(api_key=None))
    await extension.start()

    await extension.refresh_models()

    assert completion.list_calls == []
    assert host.renders == []
