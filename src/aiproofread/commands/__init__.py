"""Command model, registry builder and dispatcher."""

from .dispatch import CommandBindings, CommandDispatcher
from .models import (
    DEFAULT_MODEL,
    ActionDescriptor,
    ActionKind,
    ActionTable,
    LayoutDocument,
    LayoutKind,
    LayoutNode,
    ModelState,
    Prompt,
    PromptList,
    build_prompt_list,
)
from .registry import RegistryBuild, build_registry, validate_descriptors

__all__ = [
    "DEFAULT_MODEL",
    "ActionDescriptor",
    "ActionKind",
    "ActionTable",
    "CommandBindings",
    "CommandDispatcher",
    "LayoutDocument",
    "LayoutKind",
    "LayoutNode",
    "ModelState",
    "Prompt",
    "PromptList",
    "RegistryBuild",
    "build_prompt_list",
    "build_registry",
    "validate_descriptors",
]
