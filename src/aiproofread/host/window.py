"""Minimal composer window: one plain-text document plus a File menu."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable

from PySide6.QtGui import QAction
from PySide6.QtWidgets import QFileDialog, QMainWindow, QMessageBox, QPlainTextEdit, QWidget

from .actions import COMPOSER_MENUS, MenuSpec, WindowAction, build_window_actions

__all__ = ["ComposerWindow"]

LOGGER = logging.getLogger(__name__)

_WINDOW_TITLE = "AI Proofread"


class ComposerWindow(QMainWindow):
    """Main window hosting the editable document.

    The AI menu and toolbar are not part of the window itself; they are
    installed and replaced by :class:`~aiproofread.host.qt_host.QtComposerHost`.
    """

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._editor = QPlainTextEdit(self)
        self._editor.setObjectName("composer-editor")
        self.setCentralWidget(self._editor)
        self._path: Path | None = None
        self._reload_handler: Callable[[], Any] | None = None
        self._refresh_models_handler: Callable[[], Any] | None = None
        self._window_actions = build_window_actions(
            {
                "file_open": self._prompt_open,
                "file_save_as": self._prompt_save_as,
                "prompts_reload": self._reload_prompts,
                "models_refresh": self._refresh_models,
                "file_quit": self.close,
            }
        )
        self._qt_actions = self._install_menus(self._window_actions, COMPOSER_MENUS)
        self.statusBar()
        self._update_title()

    @property
    def editor(self) -> QPlainTextEdit:
        return self._editor

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def window_actions(self) -> dict[str, WindowAction]:
        return dict(self._window_actions)

    @property
    def qt_actions(self) -> dict[str, QAction]:
        return dict(self._qt_actions)

    def set_reload_handler(self, handler: Callable[[], Any] | None) -> None:
        self._reload_handler = handler

    def set_refresh_models_handler(self, handler: Callable[[], Any] | None) -> None:
        self._refresh_models_handler = handler

    def open_document(self, path: Path | str) -> None:
        target = Path(path).expanduser()
        text = target.read_text(encoding="utf-8")
        self._editor.setPlainText(text)
        self._editor.document().setModified(False)
        self._path = target
        self._update_title()
        LOGGER.info("Opened %s (%d characters)", target, len(text))

    def save_document(self, path: Path | str | None = None) -> Path:
        target = Path(path).expanduser() if path is not None else self._path
        if target is None:
            raise ValueError("No path to save the document to")
        target.write_text(self._editor.toPlainText(), encoding="utf-8")
        self._editor.document().setModified(False)
        self._path = target
        self._update_title()
        LOGGER.info("Saved %s", target)
        return target

    def show_status(self, message: str, timeout_ms: int = 4000) -> None:
        self.statusBar().showMessage(message, timeout_ms)

    def _install_menus(
        self, actions: dict[str, WindowAction], menus: tuple[MenuSpec, ...]
    ) -> dict[str, QAction]:
        menubar = self.menuBar()
        qt_actions: dict[str, QAction] = {}
        for action in actions.values():
            qt_action = QAction(action.text, self)
            qt_action.setObjectName(action.name)
            if action.shortcut:
                qt_action.setShortcut(action.shortcut)
            if action.status_tip:
                qt_action.setStatusTip(action.status_tip)
            qt_action.triggered.connect(action.trigger)
            qt_actions[action.name] = qt_action

        for menu_spec in menus:
            menu = menubar.addMenu(menu_spec.title)
            menu.setObjectName(menu_spec.name)
            for action_name in menu_spec.actions:
                qt_action = qt_actions.get(action_name)
                if qt_action is not None:
                    menu.addAction(qt_action)
        return qt_actions

    def _prompt_open(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Open Document")
        if not path:
            return
        try:
            self.open_document(path)
        except (OSError, UnicodeDecodeError) as exc:
            LOGGER.warning("Unable to open %s: %s", path, exc)
            QMessageBox.warning(self, _WINDOW_TITLE, f"Unable to open {path}:\n{exc}")

    def _prompt_save_as(self) -> None:
        start = str(self._path) if self._path else ""
        path, _ = QFileDialog.getSaveFileName(self, "Save Document As", start)
        if not path:
            return
        try:
            self.save_document(path)
        except OSError as exc:
            LOGGER.warning("Unable to save %s: %s", path, exc)
            QMessageBox.warning(self, _WINDOW_TITLE, f"Unable to save {path}:\n{exc}")

    def _reload_prompts(self) -> None:
        if self._reload_handler is None:
            LOGGER.debug("Prompt reload requested before the extension started")
            return
        self._reload_handler()

    def _refresh_models(self) -> None:
        if self._refresh_models_handler is None:
            LOGGER.debug("Model refresh requested before the extension started")
            return
        self._refresh_models_handler()

    def _update_title(self) -> None:
        name = self._path.name if self._path else "Untitled"
        self.setWindowTitle(f"{name} - {_WINDOW_TITLE}")
