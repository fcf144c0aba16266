"""Owns the live :class:`ModelState` and its persistence."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable

from ..commands.models import ModelState
from ..errors import ConfigError

__all__ = ["ModelSelectionController"]

LOGGER = logging.getLogger(__name__)


class ModelSelectionController:
    """Mutates the selected model on the event-loop thread.

    ``save_model`` persists a choice and reports success as a bool;
    ``on_change`` is called after every accepted change so the caller can
    rebuild its command registry.
    """

    def __init__(
        self,
        state: ModelState,
        save_model: Callable[[str], bool],
        on_change: Callable[[ModelState], Any] | None = None,
    ) -> None:
        self._state = state
        self._save_model = save_model
        self._on_change = on_change

    @property
    def state(self) -> ModelState:
        return self._state

    def set_listener(self, on_change: Callable[[ModelState], Any] | None) -> None:
        self._on_change = on_change

    def select_model(self, model_id: str) -> ModelState:
        """Make ``model_id`` current, persist it and notify the listener.

        The in-memory selection stays in place even if persisting fails; the
        failure is reported by raising :class:`ConfigError` afterwards.
        """

        model_id = (model_id or "").strip()
        if not model_id:
            raise ValueError("Model id must be a non-empty string")
        previous = self._state.selected
        self._state = self._state.with_selected(model_id)
        LOGGER.info("Model changed from %s to %s", previous, model_id)

        saved = self._save_model(model_id)
        self._notify()
        if not saved:
            raise ConfigError(f"Failed to save model selection '{model_id}'")
        return self._state

    def update_available(self, models: Iterable[str]) -> ModelState:
        self._state = self._state.with_available(models)
        self._notify()
        return self._state

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self._state)
