"""Request pipeline: contexts, progress indicator, orchestrator, model selection."""

from .context import CompletionResult, ConfigSnapshot, RequestContext, RequestOutcome, RequestState
from .model_selection import ModelSelectionController
from .orchestrator import EMPTY_RESPONSE_NOTICE, ProofreadOrchestrator
from .progress import DEFAULT_PROGRESS_DELAY, ProgressScheduler

__all__ = [
    "CompletionResult",
    "ConfigSnapshot",
    "DEFAULT_PROGRESS_DELAY",
    "EMPTY_RESPONSE_NOTICE",
    "ModelSelectionController",
    "ProgressScheduler",
    "ProofreadOrchestrator",
    "RequestContext",
    "RequestOutcome",
    "RequestState",
]
