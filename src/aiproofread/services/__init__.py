"""Configuration and completion-service collaborators."""

from .completion import CompletionService, ServiceSettings
from .config import ConfigStore, ProofreadSettings

__all__ = ["CompletionService", "ConfigStore", "ProofreadSettings", "ServiceSettings"]
