"""PySide6 implementation of :class:`~aiproofread.host.protocol.HostCapabilities`."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Sequence

from PySide6.QtCore import Qt
from PySide6.QtGui import QAction, QCursor, QIcon, QTextCursor
from PySide6.QtWidgets import (
    QMainWindow,
    QMenu,
    QMessageBox,
    QPlainTextEdit,
    QProgressDialog,
    QToolBar,
    QWidget,
)

from ..commands.models import ActionDescriptor, ActionKind, ActionTable, LayoutDocument, LayoutKind, LayoutNode
from ..errors import HostError
from .protocol import ContentMode, InsertMode

__all__ = ["QtComposerHost", "DIALOG_TITLE"]

LOGGER = logging.getLogger(__name__)

DIALOG_TITLE = "AI Proofreading"


class QtComposerHost:
    """Adapts a :class:`ComposerWindow` to the proofreading core.

    Menus, toolbars and actions created by :meth:`render_layout` are tracked
    so the next render can remove them before installing a new tree.
    """

    def __init__(self) -> None:
        self._installed_menus: list[QMenu] = []
        self._installed_toolbars: list[QToolBar] = []
        self._installed_actions: dict[str, QAction] = {}
        self._alerts: list[QMessageBox] = []
        self._choice_menu: QMenu | None = None

    @property
    def installed_actions(self) -> dict[str, QAction]:
        return dict(self._installed_actions)

    @property
    def installed_menus(self) -> list[QMenu]:
        return list(self._installed_menus)

    @property
    def installed_toolbars(self) -> list[QToolBar]:
        return list(self._installed_toolbars)

    @property
    def alerts(self) -> list[QMessageBox]:
        return list(self._alerts)

    @property
    def choice_menu(self) -> QMenu | None:
        return self._choice_menu

    # ------------------------------------------------------------------
    # Document access
    # ------------------------------------------------------------------
    async def fetch_content(self, editor: QPlainTextEdit | None, mode: ContentMode) -> str:
        await asyncio.sleep(0)
        if editor is None:
            raise HostError("No editor available")
        if mode is not ContentMode.PLAIN_TEXT:
            raise HostError(f"Unsupported content mode: {mode}")
        try:
            return editor.toPlainText()
        except RuntimeError as exc:
            raise HostError(f"Editor is no longer available: {exc}") from exc

    def insert_content(self, editor: QPlainTextEdit, text: str, mode: InsertMode) -> None:
        cursor = editor.textCursor()
        cursor.beginEditBlock()
        if mode is InsertMode.REPLACE_DOCUMENT:
            cursor.select(QTextCursor.SelectionType.Document)
        cursor.insertText(text)
        cursor.endEditBlock()
        editor.setTextCursor(cursor)

    # ------------------------------------------------------------------
    # Dialogs
    # ------------------------------------------------------------------
    def show_alert(self, window: QWidget | None, category: str, message: str) -> None:
        LOGGER.warning("%s: %s", category, message)
        box = QMessageBox(QMessageBox.Icon.Warning, DIALOG_TITLE, message, QMessageBox.StandardButton.Ok, window)
        box.setObjectName(category)
        box.setWindowModality(Qt.WindowModality.NonModal)
        box.setAttribute(Qt.WidgetAttribute.WA_DeleteOnClose)
        box.finished.connect(lambda _result, ref=box: self._forget_alert(ref))
        self._alerts.append(box)
        box.show()

    def show_modal_notice(self, window: QWidget | None, message: str) -> None:
        QMessageBox.information(window, DIALOG_TITLE, message)

    def show_progress(self, window: QWidget | None, message: str) -> QProgressDialog:
        dialog = QProgressDialog(message, "", 0, 0, window)
        dialog.setWindowTitle(DIALOG_TITLE)
        dialog.setWindowModality(Qt.WindowModality.WindowModal)
        dialog.setMinimumDuration(0)
        dialog.setCancelButton(None)
        dialog.show()
        return dialog

    def close_progress(self, handle: QProgressDialog) -> None:
        handle.close()
        handle.deleteLater()

    def present_choice_menu(
        self,
        window: QWidget | None,
        choices: Sequence[tuple[str, str]],
        on_select: Callable[[str], Any],
    ) -> None:
        if self._choice_menu is not None:
            self._choice_menu.deleteLater()
        menu = QMenu(window)
        menu.setObjectName("ai-proofread-choices")
        for command_id, label in choices:
            action = menu.addAction(label)
            action.setData(command_id)
        menu.triggered.connect(lambda action: on_select(str(action.data())))
        self._choice_menu = menu
        menu.popup(QCursor.pos())

    # ------------------------------------------------------------------
    # Layout rendering
    # ------------------------------------------------------------------
    def render_layout(
        self,
        window: QMainWindow,
        table: ActionTable,
        layout: LayoutDocument,
        on_activate: Callable[[str], Any],
    ) -> None:
        self.clear_layout(window)
        actions = {
            descriptor.command_id: self._create_action(window, descriptor, on_activate)
            for descriptor in table
            if descriptor.command_id is not None and descriptor.kind is not ActionKind.MENU_HEADER
        }
        self._installed_actions = actions
        for node in layout.root.children:
            if node.kind is LayoutKind.MENU:
                self._render_children(node, window.menuBar(), table, actions, top_level=True)
            elif node.kind is LayoutKind.TOOLBAR:
                toolbar = QToolBar(node.node_id or "", window)
                toolbar.setObjectName(node.node_id or "")
                window.addToolBar(toolbar)
                self._installed_toolbars.append(toolbar)
                self._render_children(node, toolbar, table, actions)
        LOGGER.debug(
            "Rendered %d action(s) into %d menu(s) and %d toolbar(s)",
            len(actions),
            len(self._installed_menus),
            len(self._installed_toolbars),
        )

    def clear_layout(self, window: QMainWindow) -> None:
        """Remove everything a previous :meth:`render_layout` installed."""

        menubar = window.menuBar()
        for menu in self._installed_menus:
            menubar.removeAction(menu.menuAction())
            menu.deleteLater()
        for toolbar in self._installed_toolbars:
            window.removeToolBar(toolbar)
            toolbar.deleteLater()
        for action in self._installed_actions.values():
            action.deleteLater()
        self._installed_menus = []
        self._installed_toolbars = []
        self._installed_actions = {}

    def _render_children(
        self,
        node: LayoutNode,
        container: Any,
        table: ActionTable,
        actions: dict[str, QAction],
        *,
        top_level: bool = False,
    ) -> None:
        for child in node.children:
            if child.kind is LayoutKind.PLACEHOLDER:
                self._render_children(child, container, table, actions, top_level=top_level)
            elif child.kind is LayoutKind.SEPARATOR:
                container.addSeparator()
            elif child.kind is LayoutKind.SUBMENU:
                descriptor = table.get(child.action or "")
                title = _menu_text(descriptor.label if descriptor else None)
                submenu = container.addMenu(title)
                submenu.setObjectName(child.action or "")
                submenu.setToolTipsVisible(True)
                if descriptor is not None and descriptor.tooltip:
                    submenu.menuAction().setToolTip(descriptor.tooltip)
                if top_level:
                    self._installed_menus.append(submenu)
                self._render_children(child, submenu, table, actions)
            elif child.kind is LayoutKind.ITEM:
                action = actions.get(child.action or "")
                if action is None:
                    LOGGER.warning("Layout references unknown action '%s'", child.action)
                    continue
                container.addAction(action)

    def _create_action(
        self, window: QWidget, descriptor: ActionDescriptor, on_activate: Callable[[str], Any]
    ) -> QAction:
        command_id = descriptor.command_id or ""
        text = descriptor.label or ""
        if descriptor.kind is ActionKind.DROPDOWN:
            text = _menu_text(text)
        else:
            text = text.replace("&", "&&")
        action = QAction(text, window)
        action.setObjectName(command_id)
        action.setData(command_id)
        if descriptor.tooltip:
            action.setToolTip(descriptor.tooltip)
            action.setStatusTip(descriptor.tooltip)
        if descriptor.icon_hint:
            action.setIcon(QIcon.fromTheme(descriptor.icon_hint))
        action.triggered.connect(lambda _checked=False, cid=command_id: on_activate(cid))
        return action

    def _forget_alert(self, box: QMessageBox) -> None:
        if box in self._alerts:
            self._alerts.remove(box)


def _menu_text(label: str | None) -> str:
    """Translate an ``_``-style mnemonic into Qt's ``&`` form."""

    text = (label or "").replace("&", "&&")
    return text.replace("_", "&", 1)
