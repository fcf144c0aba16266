"""Capabilities the proofreading core consumes from a document-editing host."""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Protocol, Sequence, runtime_checkable

from ..commands.models import ActionTable, LayoutDocument

__all__ = ["ContentMode", "InsertMode", "HostCapabilities", "ERROR_ALERT_CATEGORY"]

ERROR_ALERT_CATEGORY = "ai:error-proofreading"


class ContentMode(str, Enum):
    """Representation requested from :meth:`HostCapabilities.fetch_content`."""

    PLAIN_TEXT = "plain-text"


class InsertMode(str, Enum):
    """Where returned text lands in the document."""

    REPLACE_DOCUMENT = "replace-document"
    AT_CURSOR = "at-cursor"


@runtime_checkable
class HostCapabilities(Protocol):
    """Operations called only from the event-loop thread."""

    async def fetch_content(self, editor: Any, mode: ContentMode) -> str:
        """Return the editor's document content; raise ``HostError`` on failure."""
        ...

    def insert_content(self, editor: Any, text: str, mode: InsertMode) -> None:
        ...

    def show_alert(self, window: Any, category: str, message: str) -> None:
        ...

    def show_modal_notice(self, window: Any, message: str) -> None:
        ...

    def show_progress(self, window: Any, message: str) -> Any:
        ...

    def close_progress(self, handle: Any) -> None:
        ...

    def present_choice_menu(
        self,
        window: Any,
        choices: Sequence[tuple[str, str]],
        on_select: Callable[[str], Any],
    ) -> None:
        """Show a transient menu; ``on_select`` receives the chosen command id."""
        ...

    def render_layout(
        self,
        window: Any,
        table: ActionTable,
        layout: LayoutDocument,
        on_activate: Callable[[str], Any],
    ) -> None:
        """Replace previously rendered AI commands with ``layout``."""
        ...

    def clear_layout(self, window: Any) -> None:
        """Remove whatever :meth:`render_layout` installed last."""
        ...
