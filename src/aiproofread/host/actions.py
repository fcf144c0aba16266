"""Declarative actions and menus of the composer window."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable


@dataclass(slots=True)
class WindowAction:
    """A window-level command exposed through the menu bar."""

    name: str
    text: str
    shortcut: str | None = None
    status_tip: str | None = None
    callback: Callable[[], Any] | None = None

    def trigger(self) -> None:
        """Invoke the registered callback, if available."""

        if self.callback is not None:
            self.callback()


@dataclass(slots=True)
class MenuSpec:
    """Menu title plus the names of the actions it lists, in order."""

    name: str
    title: str
    actions: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ActionDefinition:
    name: str
    text: str
    shortcut: str | None
    status_tip: str | None


COMPOSER_ACTIONS: tuple[ActionDefinition, ...] = (
    ActionDefinition(
        name="file_open",
        text="Open…",
        shortcut="Ctrl+O",
        status_tip="Open a document from disk",
    ),
    ActionDefinition(
        name="file_save_as",
        text="Save As…",
        shortcut="Ctrl+Shift+S",
        status_tip="Save the document to a new location",
    ),
    ActionDefinition(
        name="prompts_reload",
        text="Reload Prompts",
        shortcut="Ctrl+Shift+R",
        status_tip="Re-read prompts.json and rebuild the AI menu",
    ),
    ActionDefinition(
        name="models_refresh",
        text="Refresh Models",
        shortcut="Ctrl+Shift+M",
        status_tip="Ask the completion service for its current model list",
    ),
    ActionDefinition(
        name="file_quit",
        text="Quit",
        shortcut="Ctrl+Q",
        status_tip="Close the composer",
    ),
)

COMPOSER_MENUS: tuple[MenuSpec, ...] = (
    MenuSpec(
        name="file",
        title="&File",
        actions=("file_open", "file_save_as", "prompts_reload", "models_refresh", "file_quit"),
    ),
)


def build_window_actions(
    callbacks: dict[str, Callable[[], Any]],
    definitions: tuple[ActionDefinition, ...] = COMPOSER_ACTIONS,
) -> dict[str, WindowAction]:
    """Pair every definition with its callback.

    Raises:
        KeyError: a definition has no callback.
    """

    actions: dict[str, WindowAction] = {}
    for definition in definitions:
        callback = callbacks.get(definition.name)
        if callback is None:
            raise KeyError(f"Missing callback for action '{definition.name}'")
        actions[definition.name] = WindowAction(
            name=definition.name,
            text=definition.text,
            shortcut=definition.shortcut,
            status_tip=definition.status_tip,
            callback=callback,
        )
    return actions


__all__ = [
    "WindowAction",
    "MenuSpec",
    "ActionDefinition",
    "COMPOSER_ACTIONS",
    "COMPOSER_MENUS",
    "build_window_actions",
]
