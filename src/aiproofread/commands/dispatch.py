"""Routes activated command ids to the behavior bound for one registry build."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Sequence

from .models import ActionDescriptor, ActionKind, ActionTable

__all__ = ["Choice", "CommandBindings", "CommandDispatcher"]

LOGGER = logging.getLogger(__name__)

Choice = tuple[str, str]
"""``(command_id, label)`` pair offered by the dropdown menu."""


@dataclass(slots=True)
class CommandBindings:
    """Callables a dispatcher invokes; supplied by whoever renders the build."""

    start_proofread: Callable[[str], Any]
    select_model: Callable[[str], Any]
    present_prompt_menu: Callable[[Sequence[Choice], Callable[[str], Any]], Any]


class CommandDispatcher:
    """Resolves command ids against one :class:`ActionTable`.

    Resolution is a table lookup followed by a switch on
    :attr:`ActionDescriptor.kind`; command ids are never parsed.
    """

    __slots__ = ("_table", "_bindings")

    def __init__(self, table: ActionTable, bindings: CommandBindings) -> None:
        self._table = table
        self._bindings = bindings

    @property
    def table(self) -> ActionTable:
        return self._table

    def activate(self, command_id: str) -> Any:
        """Run the behavior bound to ``command_id``.

        Unknown ids are logged and ignored; menu headers do nothing.
        """

        descriptor = self._table.get(command_id)
        if descriptor is None:
            LOGGER.warning("Activation of unknown command '%s' ignored", command_id)
            return None
        LOGGER.debug("Activating %s (%s)", command_id, descriptor.kind.value)
        if descriptor.kind is ActionKind.PROMPT:
            return self._bindings.start_proofread(_payload(descriptor))
        if descriptor.kind is ActionKind.MODEL:
            return self._bindings.select_model(_payload(descriptor))
        if descriptor.kind is ActionKind.DROPDOWN:
            return self._bindings.present_prompt_menu(self.prompt_choices(), self.activate)
        return None

    def prompt_choices(self) -> list[Choice]:
        """Return the prompt entries of the table, built fresh on every call."""

        return [
            (descriptor.command_id, descriptor.label or "")
            for descriptor in self._table.of_kind(ActionKind.PROMPT)
            if descriptor.command_id is not None
        ]


def _payload(descriptor: ActionDescriptor) -> str:
    return descriptor.payload or ""
