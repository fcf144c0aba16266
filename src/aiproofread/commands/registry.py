"""Builds the command table and menu/toolbar layout from configuration.

The builder is a pure function of ``(PromptList, ModelState)``: identical
inputs always produce identical command ids and layouts, so a host can
replace a previously rendered registry wholesale without diffing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable

from ..errors import EmptyConfiguration
from .models import (
    ActionDescriptor,
    ActionKind,
    ActionTable,
    LayoutDocument,
    LayoutKind,
    LayoutNode,
    ModelState,
    Prompt,
    PromptList,
)

__all__ = [
    "RegistryBuild",
    "build_registry",
    "validate_descriptors",
    "prompt_command_id",
    "model_command_id",
    "MENU_COMMAND_ID",
    "DROPDOWN_COMMAND_ID",
    "MODEL_MENU_COMMAND_ID",
    "PROMPT_COMMAND_PREFIX",
    "MODEL_COMMAND_PREFIX",
    "MAIN_TOOLBAR_ID",
]

LOGGER = logging.getLogger(__name__)

PROMPT_COMMAND_PREFIX = "ai-proofread-"
MODEL_COMMAND_PREFIX = "ai-model-"
MENU_COMMAND_ID = "ai-menu"
DROPDOWN_COMMAND_ID = "ai-proofread-dropdown"
MODEL_MENU_COMMAND_ID = "ai-model-menu"
MAIN_TOOLBAR_ID = "main-toolbar"
_RESERVED_IDS = frozenset({MENU_COMMAND_ID, DROPDOWN_COMMAND_ID, MODEL_MENU_COMMAND_ID})
_PROMPT_ICON = "tools-check-spelling"
_MISSING_LABEL = "(no label)"
_CURRENT_MARK = "✓ "


@dataclass(frozen=True, slots=True)
class RegistryBuild:
    """Result of one registry build: the command table plus its layout."""

    table: ActionTable
    layout: LayoutDocument


def prompt_command_id(prompt_id: str) -> str | None:
    return f"{PROMPT_COMMAND_PREFIX}{prompt_id}" if prompt_id else None


def model_command_id(model_id: str) -> str:
    return f"{MODEL_COMMAND_PREFIX}{model_id}"


def build_registry(prompts: PromptList, model_state: ModelState) -> RegistryBuild:
    """Return the action table and layout for ``prompts`` and ``model_state``.

    Raises:
        EmptyConfiguration: ``prompts`` is empty; there is nothing to render.
    """

    if not prompts:
        raise EmptyConfiguration("No prompts configured")

    builder = _RegistryBuilder()

    prompt_items = tuple(builder.add(_prompt_descriptor(prompt)) for prompt in prompts)
    builder.add(
        ActionDescriptor(
            command_id=MENU_COMMAND_ID,
            label="AI",
            tooltip="AI tools",
            kind=ActionKind.MENU_HEADER,
        )
    )
    dropdown_item = builder.add(
        ActionDescriptor(
            command_id=DROPDOWN_COMMAND_ID,
            label="AI _Proofread",
            tooltip="AI Proofread",
            kind=ActionKind.DROPDOWN,
            icon_hint=_PROMPT_ICON,
        )
    )
    builder.add(
        ActionDescriptor(
            command_id=MODEL_MENU_COMMAND_ID,
            label=f"Model ({model_state.selected})",
            tooltip="Select AI model",
            kind=ActionKind.MENU_HEADER,
        )
    )
    model_items = tuple(
        builder.add(_model_descriptor(model_id, model_id == model_state.selected))
        for model_id in model_state.available
    )

    ai_submenu = LayoutNode(
        LayoutKind.SUBMENU,
        action=MENU_COMMAND_ID,
        children=(
            LayoutNode(
                LayoutKind.PLACEHOLDER,
                node_id="ai-menu-holder",
                children=(
                    *prompt_items,
                    LayoutNode(LayoutKind.SEPARATOR),
                    LayoutNode(LayoutKind.SUBMENU, action=MODEL_MENU_COMMAND_ID, children=model_items),
                ),
            ),
        ),
    )
    root = LayoutNode(
        LayoutKind.ROOT,
        children=(
            LayoutNode(
                LayoutKind.MENU,
                node_id="main-menu",
                children=(
                    LayoutNode(LayoutKind.PLACEHOLDER, node_id="custom-menus", children=(ai_submenu,)),
                ),
            ),
            LayoutNode(LayoutKind.TOOLBAR, node_id=MAIN_TOOLBAR_ID, children=(dropdown_item,)),
        ),
    )

    table = ActionTable(validate_descriptors(builder.descriptors))
    LOGGER.debug(
        "Built command registry: %d prompt(s), %d model(s), selected=%s",
        len(prompts),
        len(model_state.available),
        model_state.selected,
    )
    return RegistryBuild(table=table, layout=LayoutDocument(root=root))


def validate_descriptors(descriptors: Iterable[ActionDescriptor]) -> list[ActionDescriptor]:
    """Repair missing command ids, labels and tooltips.

    Never fails: a descriptor without a command id gets
    ``ai-proofread-missing-<index>``, a missing or blank label becomes
    ``(no label)`` and a missing tooltip becomes the empty string.
    """

    repaired: list[ActionDescriptor] = []
    for index, descriptor in enumerate(descriptors):
        updates: dict[str, object] = {}
        if not descriptor.command_id:
            fallback = _missing_id(index)
            LOGGER.warning(
                "Found null action name for entry %d, using fallback '%s'", index, fallback
            )
            updates["command_id"] = fallback
        if not descriptor.label:
            updates["label"] = _MISSING_LABEL
        if descriptor.tooltip is None:
            updates["tooltip"] = ""
        repaired.append(replace(descriptor, **updates) if updates else descriptor)
    return repaired


class _RegistryBuilder:
    """Collects descriptors and returns the layout item referencing each one.

    Every descriptor leaves with a unique command id: the fixed header and
    dropdown ids are reserved for their own descriptors, and any other repeat
    gets ``-2``, ``-3``... appended.
    """

    def __init__(self) -> None:
        self.descriptors: list[ActionDescriptor] = []
        self._issued: set[str] = set()

    def add(self, descriptor: ActionDescriptor) -> LayoutNode:
        requested = descriptor.command_id or _missing_id(len(self.descriptors))
        fixed = descriptor.kind in (ActionKind.MENU_HEADER, ActionKind.DROPDOWN)
        command_id = self._unique(requested, fixed=fixed)
        if command_id != descriptor.command_id:
            LOGGER.debug("Command id %r issued as %r", descriptor.command_id, command_id)
            descriptor = replace(descriptor, command_id=command_id)
        self.descriptors.append(descriptor)
        return LayoutNode(LayoutKind.ITEM, action=command_id)

    def _unique(self, command_id: str, *, fixed: bool) -> str:
        candidate = command_id
        suffix = 2
        while candidate in self._issued or (candidate in _RESERVED_IDS and not fixed):
            candidate = f"{command_id}-{suffix}"
            suffix += 1
        self._issued.add(candidate)
        return candidate


def _missing_id(index: int) -> str:
    return f"{PROMPT_COMMAND_PREFIX}missing-{index}"


def _prompt_descriptor(prompt: Prompt) -> ActionDescriptor:
    return ActionDescriptor(
        command_id=prompt_command_id(prompt.id),
        label=prompt.display_name,
        tooltip=prompt.instruction_text,
        kind=ActionKind.PROMPT,
        payload=prompt.id,
        icon_hint=_PROMPT_ICON,
    )


def _model_descriptor(model_id: str, is_current: bool) -> ActionDescriptor:
    label = f"{_CURRENT_MARK}{model_id}" if is_current else model_id
    return ActionDescriptor(
        command_id=model_command_id(model_id),
        label=label,
        tooltip=f"Use {model_id} model",
        kind=ActionKind.MODEL,
        payload=model_id,
        is_current=is_current,
    )
