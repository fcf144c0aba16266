"""Error taxonomy shared by the proofreading core and its collaborators."""

from __future__ import annotations

__all__ = [
    "ProofreadError",
    "HostError",
    "ApiError",
    "ConfigError",
    "EmptyConfiguration",
    "RequestStateError",
]


class ProofreadError(Exception):
    """Base class for every error raised by the proofreading stack."""


class HostError(ProofreadError):
    """The editing host could not provide document content."""


class ApiError(ProofreadError):
    """The completion service call failed.

    ``str(error)`` is shown to the user verbatim, so collaborators should put
    the human-readable reason in the message.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ConfigError(ProofreadError):
    """Configuration could not be persisted."""


class EmptyConfiguration(ProofreadError):
    """A command registry was requested for an empty prompt list."""


class RequestStateError(ProofreadError):
    """A request pipeline invariant was violated (programming error)."""
