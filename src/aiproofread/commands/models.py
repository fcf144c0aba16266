"""Data structures describing prompts, models and the generated command set."""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, Sequence

__all__ = [
    "DEFAULT_MODEL",
    "Prompt",
    "PromptList",
    "ModelState",
    "ActionKind",
    "ActionDescriptor",
    "ActionTable",
    "LayoutKind",
    "LayoutNode",
    "LayoutDocument",
    "slugify",
    "build_prompt_list",
]

DEFAULT_MODEL = "gpt-4o"
_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")
_FALLBACK_PROMPT_ID = "prompt"


def slugify(name: str) -> str:
    """Return a lower-case, dash-separated identifier derived from ``name``."""

    return _SLUG_PATTERN.sub("-", (name or "").strip().lower()).strip("-")


@dataclass(frozen=True, slots=True)
class Prompt:
    """A named instruction template sent alongside the document content."""

    id: str
    display_name: str
    instruction_text: str = ""


PromptList = tuple[Prompt, ...]


def build_prompt_list(entries: Iterable[tuple[str, str]]) -> PromptList:
    """Create prompts from ``(name, instruction)`` pairs with unique ids.

    Ids are slugs of the names (``prompt`` when a name has no usable
    characters). A slug already issued gets the first free ``-2``, ``-3``...
    suffix in input order, so the first occurrence keeps the plain id.
    """

    issued: set[str] = set()
    prompts: list[Prompt] = []
    for name, instruction in entries:
        base = slugify(name) or _FALLBACK_PROMPT_ID
        prompt_id = base
        suffix = 2
        while prompt_id in issued:
            prompt_id = f"{base}-{suffix}"
            suffix += 1
        issued.add(prompt_id)
        prompts.append(Prompt(id=prompt_id, display_name=name, instruction_text=instruction))
    return tuple(prompts)


@dataclass(frozen=True, slots=True)
class ModelState:
    """Currently selected model plus the models offered for selection."""

    selected: str = DEFAULT_MODEL
    available: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        selected = (self.selected or "").strip() or DEFAULT_MODEL
        unique = tuple(dict.fromkeys(m for m in self.available if m))
        object.__setattr__(self, "selected", selected)
        object.__setattr__(self, "available", unique)

    def with_selected(self, model_id: str) -> "ModelState":
        return ModelState(selected=model_id, available=self.available)

    def with_available(self, models: Iterable[str]) -> "ModelState":
        return ModelState(selected=self.selected, available=tuple(models))


class ActionKind(str, Enum):
    """Discriminates what an action does when activated."""

    PROMPT = "prompt"
    DROPDOWN = "dropdown"
    MODEL = "model"
    MENU_HEADER = "menu-header"


@dataclass(frozen=True, slots=True)
class ActionDescriptor:
    """One user-invocable command.

    ``payload`` carries the prompt id for :attr:`ActionKind.PROMPT`, the model
    id for :attr:`ActionKind.MODEL` and ``None`` for the other kinds.
    Optional fields may be ``None`` only until the registry's validation
    pass has run.
    """

    command_id: str | None
    label: str | None
    kind: ActionKind
    tooltip: str | None = ""
    payload: str | None = None
    icon_hint: str | None = None
    is_current: bool = False


class ActionTable(Sequence[ActionDescriptor]):
    """Ordered, immutable collection of descriptors with lookup by command id."""

    __slots__ = ("_descriptors", "_index")

    def __init__(self, descriptors: Iterable[ActionDescriptor]) -> None:
        self._descriptors: tuple[ActionDescriptor, ...] = tuple(descriptors)
        self._index: dict[str, ActionDescriptor] = {}
        for descriptor in self._descriptors:
            if descriptor.command_id is None:
                raise ValueError("ActionTable entries require a command id")
            if descriptor.command_id in self._index:
                raise ValueError(f"Duplicate command id '{descriptor.command_id}'")
            self._index[descriptor.command_id] = descriptor

    def __getitem__(self, index):  # type: ignore[override]
        return self._descriptors[index]

    def __len__(self) -> int:
        return len(self._descriptors)

    def __iter__(self) -> Iterator[ActionDescriptor]:
        return iter(self._descriptors)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ActionTable):
            return NotImplemented
        return self._descriptors == other._descriptors

    def __hash__(self) -> int:
        return hash(self._descriptors)

    def __repr__(self) -> str:
        return f"ActionTable({list(self.command_ids())!r})"

    def get(self, command_id: str) -> ActionDescriptor | None:
        return self._index.get(command_id)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, str):
            return item in self._index
        return item in self._descriptors

    def command_ids(self) -> tuple[str, ...]:
        return tuple(d.command_id for d in self._descriptors if d.command_id is not None)

    def of_kind(self, kind: ActionKind) -> tuple[ActionDescriptor, ...]:
        return tuple(d for d in self._descriptors if d.kind is kind)


class LayoutKind(str, Enum):
    """Node types understood by layout renderers."""

    ROOT = "eui"
    MENU = "menu"
    PLACEHOLDER = "placeholder"
    SUBMENU = "submenu"
    ITEM = "item"
    SEPARATOR = "separator"
    TOOLBAR = "toolbar"


@dataclass(frozen=True, slots=True)
class LayoutNode:
    """A node of the menu/toolbar tree.

    Container nodes (menu, placeholder, toolbar) are named by ``node_id``;
    submenus and items reference a command through ``action``.
    """

    kind: LayoutKind
    node_id: str | None = None
    action: str | None = None
    children: tuple["LayoutNode", ...] = field(default_factory=tuple)

    def walk(self) -> Iterator["LayoutNode"]:
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass(frozen=True, slots=True)
class LayoutDocument:
    """Serializable menu/toolbar layout referencing commands by id."""

    root: LayoutNode

    def referenced_command_ids(self) -> tuple[str, ...]:
        """Return every command id referenced, in document order."""

        return tuple(node.action for node in self.root.walk() if node.action is not None)

    def find(self, node_id: str) -> LayoutNode | None:
        for node in self.root.walk():
            if node.node_id == node_id:
                return node
        return None

    def to_xml(self) -> str:
        """Serialize the tree using the node kinds as element names."""

        return ET.tostring(_to_element(self.root), encoding="unicode")

    @classmethod
    def from_xml(cls, text: str) -> "LayoutDocument":
        return cls(root=_from_element(ET.fromstring(text)))


def _to_element(node: LayoutNode) -> ET.Element:
    element = ET.Element(node.kind.value)
    if node.node_id is not None:
        element.set("id", node.node_id)
    if node.action is not None:
        element.set("action", node.action)
    for child in node.children:
        element.append(_to_element(child))
    return element


def _from_element(element: ET.Element) -> LayoutNode:
    return LayoutNode(
        kind=LayoutKind(element.tag),
        node_id=element.get("id"),
        action=element.get("action"),
        children=tuple(_from_element(child) for child in element),
    )
