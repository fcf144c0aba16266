"""Tests for the composer window chrome."""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest
from PySide6.QtWidgets import QMenu

import aiproofread.host.window as window_module
from aiproofread.host.actions import COMPOSER_ACTIONS, build_window_actions
from aiproofread.host.window import ComposerWindow

pytestmark = pytest.mark.usefixtures("qtbot")


def test_file_menu_lists_window_actions() -> None:
    window = ComposerWindow()

    file_menu = window.menuBar().findChild(QMenu, "file")

    assert [action.objectName() for action in file_menu.actions()] == [
        "file_open",
        "file_save_as",
        "prompts_reload",
        "models_refresh",
        "file_quit",
    ]
    assert window.qt_actions["prompts_reload"].shortcut().toString() == "Ctrl+Shift+R"


def test_build_window_actions_requires_every_callback() -> None:
    callbacks = {definition.name: (lambda: None) for definition in COMPOSER_ACTIONS[:-1]}

    with pytest.raises(KeyError):
        build_window_actions(callbacks)


def test_open_and_save_document(tmp_path: Path) -> None:
    source = tmp_path / "draft.txt"
    source.write_text("teh cat sat", encoding="utf-8")
    window = ComposerWindow()

    window.open_document(source)
    window.editor.setPlainText("The cat sat.")
    saved = window.save_document(tmp_path / "final.txt")

    assert window.windowTitle() == "final.txt - AI Proofread"
    assert saved.read_text(encoding="utf-8") == "The cat sat."
    assert window.path == saved


def test_save_without_path_raises() -> None:
    with pytest.raises(ValueError):
        ComposerWindow().save_document()


def test_open_action_uses_file_dialog(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    source = tmp_path / "notes.txt"
    source.write_text("some notes", encoding="utf-8")

    def _get_open_file_name(*_: Any) -> tuple[str, str]:
        return str(source), ""

    monkeypatch.setattr(window_module, "QFileDialog", SimpleNamespace(getOpenFileName=_get_open_file_name))
    window = ComposerWindow()

    window.qt_actions["file_open"].trigger()

    assert window.editor.toPlainText() == "some notes"
    assert window.path == source


def test_reload_action_calls_handler() -> None:
    window = ComposerWindow()
    calls: list[str] = []

    window.qt_actions["prompts_reload"].trigger()
    window.set_reload_handler(lambda: calls.append("reload"))
    window.qt_actions["prompts_reload"].trigger()

    assert calls == ["reload"]


def test_refresh_models_action_calls_handler() -> None:
    window = ComposerWindow()
    calls: list[str] = []

    window.qt_actions["models_refresh"].trigger()
    window.set_refresh_models_handler(lambda: calls.append("refresh"))
    window.qt_actions["models_refresh"].trigger()

    assert calls == ["refresh"]
    assert window.qt_actions["models_refresh"].shortcut().toString() == "Ctrl+Shift+M"
