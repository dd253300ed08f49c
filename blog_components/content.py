"""HTML parsing, component detection, and property extraction utilities."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup, Tag

from .config import (
    COMPARISON_CLASS,
    COMPONENT_CLASSES,
    DEFAULT_PARSER,
    FIGURE_CLASS,
    GALLERY_CLASS,
    HERO_CLASS,
    LAYOUT_CLASS,
    QUOTE_CLASS,
)
from .models import ComponentError, ComponentType, ImageLayout
from .utils import class_list, get_style, has_class

_TYPE_BY_CLASS = (
    (LAYOUT_CLASS, "layout"),
    (GALLERY_CLASS, "gallery"),
    (HERO_CLASS, "hero"),
    (QUOTE_CLASS, "quote"),
    (COMPARISON_CLASS, "comparison"),
)
_LAYOUT_TYPE_CLASSES = ("image-left", "image-right", "split-50-50")
_LAYOUT_TEXT_SELECTOR = "p, div:not(:has(img))"


def parse_document(html: str, parser: str = DEFAULT_PARSER) -> BeautifulSoup:
    return BeautifulSoup(html, parser)


def find_root(soup: BeautifulSoup, selector: Optional[str] = None) -> Tag:
    """Locate the editable root; ``<body>`` (or the whole document) without a selector."""
    if not selector:
        return soup.body or soup
    root = soup.select_one(selector)
    if root is None:
        raise ComponentError(f"Editable root not found for selector {selector!r}")
    return root


def serialize(root: Tag) -> str:
    """Return the inner markup of the editable root."""
    return root.decode_contents()


def is_component_element(node: Any) -> bool:
    """True for container nodes that form a component of their own."""
    if not isinstance(node, Tag):
        return False
    if node.name == "figure":
        return True
    classes = class_list(node)
    return any(name in classes for name in COMPONENT_CLASSES)


def is_image_element(node: Any) -> bool:
    return isinstance(node, Tag) and node.name == "img"


def detect_component_type(node: Tag) -> ComponentType:
    for class_name, component_type in _TYPE_BY_CLASS:
        if has_class(node, class_name):
            return component_type
    if has_class(node, FIGURE_CLASS) or node.name == "figure":
        return "figure"
    return "image"


def detect_image_layout(img: Tag) -> ImageLayout:
    for layout in ("float-left", "float-right", "center"):
        if has_class(img, layout):
            return layout
    if img.find_parent("figure") is not None:
        return "figure"
    return "inline"


def find_image(node: Tag) -> Optional[Tag]:
    """The node itself when it is an ``<img>``, else its first descendant image."""
    if node.name == "img":
        return node
    return node.find("img")


def _image_refs(node: Tag) -> List[Dict[str, str]]:
    return [
        {"src": img.get("src", ""), "alt": img.get("alt", "")}
        for img in node.find_all("img")
    ]


def extract_image_properties(img: Tag, default_width: str = "100%") -> Dict[str, Any]:
    return {
        "src": img.get("src", ""),
        "alt": img.get("alt", ""),
        "width": get_style(img, "width") or default_width,
        "layout": detect_image_layout(img),
    }


def extract_properties(
    node: Tag,
    component_type: ComponentType,
    default_width: str = "100%",
) -> Dict[str, Any]:
    """Derive the property bag for ``node``; missing children leave keys out."""
    props: Dict[str, Any] = {}

    if component_type == "image":
        img = find_image(node)
        if img is not None:
            props.update(extract_image_properties(img, default_width))

    elif component_type == "layout":
        props["layoutType"] = next(
            (name for name in _LAYOUT_TYPE_CLASSES if has_class(node, name)),
            "custom",
        )
        props["images"] = _image_refs(node)
        text_node = node.select_one(_LAYOUT_TEXT_SELECTOR)
        props["text"] = text_node.decode_contents() if text_node is not None else ""

    elif component_type == "gallery":
        columns = get_style(node, "grid-template-columns")
        props["columns"] = 3 if "3" in columns else 2
        props["images"] = _image_refs(node)

    elif component_type == "figure":
        img = node.find("img")
        caption = node.find("figcaption")
        if img is not None:
            props["src"] = img.get("src", "")
            props["alt"] = img.get("alt", "")
        if caption is not None:
            props["caption"] = caption.get_text()

    elif component_type == "quote":
        img = node.find("img")
        blockquote = node.find("blockquote")
        cite = node.find("cite")
        if img is not None:
            props["avatarSrc"] = img.get("src", "")
        if blockquote is not None:
            props["quote"] = blockquote.get_text()
        if cite is not None:
            props["author"] = cite.get_text()

    elif component_type == "comparison":
        images = node.find_all("img")
        captions = node.find_all("figcaption")
        if len(images) > 0:
            props["beforeImage"] = images[0].get("src", "")
        if len(images) > 1:
            props["afterImage"] = images[1].get("src", "")
        props["beforeLabel"] = (captions[0].get_text() if captions else "") or "Before"
        props["afterLabel"] = (
            captions[1].get_text() if len(captions) > 1 else ""
        ) or "After"

    return props
