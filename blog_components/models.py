"""Data models used throughout the component manager."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Literal

from bs4 import Tag

ComponentType = Literal[
    "image", "layout", "gallery", "figure", "quote", "comparison", "hero"
]
ImageLayout = Literal["inline", "float-left", "float-right", "center", "figure"]
LayoutType = Literal["image-left", "image-right", "split-50-50", "custom"]

COMPONENT_TYPES = ("image", "layout", "gallery", "figure", "quote", "comparison", "hero")
IMAGE_LAYOUTS = ("inline", "float-left", "float-right", "center", "figure")
LAYOUT_TYPES = ("image-left", "image-right", "split-50-50", "custom")
GALLERY_COLUMNS = (2, 3)


class ComponentError(Exception):
    """Base class for component manager errors."""


class UnsupportedUpdateError(ComponentError):
    """Component type has no rule for patching its markup."""


@dataclass
class ComponentRecord:
    """Tracked state for one component in the editable root."""

    id: str
    type: ComponentType
    properties: Dict[str, Any]
    node: Tag


@dataclass
class MutationBatch:
    """Structural changes observed between two snapshots of the editable root."""

    added: List[Tag] = field(default_factory=list)
    removed: List[Tag] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.added or self.removed)


@dataclass
class Caret:
    """Collapsed cursor position: insert before child ``offset`` of ``container``."""

    container: Tag
    offset: int


@dataclass
class HiddenField:
    """Stand-in for the form field that receives the serialized editor markup."""

    name: str = "content"
    value: str = ""


ChangeListener = Callable[[str, ComponentRecord], None]
