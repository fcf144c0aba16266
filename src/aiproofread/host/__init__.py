"""Host-side capabilities: the abstract protocol plus the PySide6 composer."""

from .protocol import ERROR_ALERT_CATEGORY, ContentMode, HostCapabilities, InsertMode

__all__ = ["ERROR_ALERT_CATEGORY", "ContentMode", "HostCapabilities", "InsertMode"]
