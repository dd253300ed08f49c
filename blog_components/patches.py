"""Per-type rules that write component properties back into the markup.

Each rule first resolves every node it needs to touch and returns a list of
pending writes. Nothing is modified until the caller runs the whole list, so a
component with a missing child is left untouched instead of half-patched.
A rule returns ``None`` when a required child is absent.
"""

from __future__ import annotations

import copy
from functools import partial
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from bs4 import BeautifulSoup, Tag

from .config import EditorConfig
from .models import (
    GALLERY_COLUMNS,
    IMAGE_LAYOUTS,
    LAYOUT_TYPES,
    ComponentRecord,
    UnsupportedUpdateError,
)
from .utils import add_class, remove_classes, remove_styles, set_styles

Write = Callable[[], None]

IMAGE_KEYS = ("src", "alt", "width", "layout")
LAYOUT_CLASSES = ("float-left", "float-right", "center", "inline")

PATCHABLE_KEYS: Dict[str, tuple] = {
    "image": IMAGE_KEYS,
    "figure": ("src", "alt", "caption"),
    "quote": ("avatarSrc", "quote", "author"),
    "comparison": ("beforeImage", "afterImage", "beforeLabel", "afterLabel"),
    "gallery": ("columns", "images"),
    "layout": ("layoutType", "images", "text"),
}

# Stored property that each image attribute feeds, per component type.
IMAGE_PROPERTY_KEYS: Dict[str, Dict[str, str]] = {
    "image": {key: key for key in IMAGE_KEYS},
    "figure": {"src": "src", "alt": "alt"},
    "quote": {"src": "avatarSrc"},
    "comparison": {"src": "beforeImage"},
}


def check_keys(component_type: str, updates: Mapping[str, Any], allowed: Sequence[str]) -> None:
    unknown = sorted(set(updates) - set(allowed))
    if unknown:
        raise ValueError(
            f"Unknown {component_type} properties: {', '.join(unknown)}"
        )


def image_property_updates(component_type: str, updates: Mapping[str, Any]) -> Dict[str, Any]:
    """Translate image attribute updates into the record's own property names."""
    keys = IMAGE_PROPERTY_KEYS.get(component_type, {})
    return {keys[name]: value for name, value in updates.items() if name in keys}


def apply_image_layout(img: Tag, layout: str, config: EditorConfig) -> None:
    """Reset layout classes and float/display/margin styles, then apply ``layout``."""
    if layout not in IMAGE_LAYOUTS:
        raise ValueError(f"Unsupported image layout: {layout!r}")
    remove_classes(img, LAYOUT_CLASSES)
    remove_styles(img, ("float", "display", "margin"), prefixes=("margin-",))

    if layout == "float-left":
        add_class(img, layout)
        set_styles(
            img,
            float="left",
            margin_right=config.float_margin,
            margin_bottom=config.float_margin_bottom,
        )
    elif layout == "float-right":
        add_class(img, layout)
        set_styles(
            img,
            float="right",
            margin_left=config.float_margin,
            margin_bottom=config.float_margin_bottom,
        )
    elif layout == "center":
        add_class(img, layout)
        set_styles(img, display="block", margin=config.center_margin)


def _set_attr(tag: Tag, name: str, value: Any) -> None:
    tag[name] = "" if value is None else str(value)


def _set_text(tag: Tag, text: Any, keep: Optional[Tag] = None) -> None:
    """Replace the text of ``tag``; ``keep`` is re-appended when it was a child."""
    nested = keep is not None and keep.parent is tag
    if nested:
        keep.extract()
    tag.clear()
    tag.append("" if text is None else str(text))
    if nested:
        tag.append(keep)


def _set_markup(tag: Tag, markup: str, parser: str) -> None:
    fragment = BeautifulSoup(markup or "", parser)
    # lxml and html5lib wrap fragments in <html><body>
    source = fragment.body or fragment
    tag.clear()
    for child in list(source.contents):
        tag.append(child.extract())


def _append(parent: Tag, child: Tag) -> None:
    parent.append(child)


def plan_image_patch(img: Tag, updates: Mapping[str, Any], config: EditorConfig) -> List[Write]:
    check_keys("image", updates, IMAGE_KEYS)
    writes: List[Write] = []
    if "src" in updates:
        writes.append(partial(_set_attr, img, "src", updates["src"]))
    if "alt" in updates:
        writes.append(partial(_set_attr, img, "alt", updates["alt"]))
    if "width" in updates:
        writes.append(partial(set_styles, img, width=str(updates["width"])))
    if "layout" in updates:
        if updates["layout"] not in IMAGE_LAYOUTS:
            raise ValueError(f"Unsupported image layout: {updates['layout']!r}")
        writes.append(partial(apply_image_layout, img, updates["layout"], config))
    return writes


def _validate_image_refs(images: Any) -> List[Mapping[str, Any]]:
    if not isinstance(images, (list, tuple)):
        raise TypeError("images must be a list of {src, alt} mappings")
    for ref in images:
        if not isinstance(ref, Mapping) or "src" not in ref:
            raise ValueError(f"Invalid image reference: {ref!r}")
    return list(images)


def _sync_image_list(
    node: Tag,
    images: List[Mapping[str, Any]],
    factory: BeautifulSoup,
    marker_attribute: str,
) -> None:
    existing = node.find_all("img")
    last = existing[-1] if existing else None
    for index, ref in enumerate(images):
        if index < len(existing):
            img = existing[index]
        elif last is not None:
            img = copy.copy(last)
            if img.has_attr(marker_attribute):
                del img[marker_attribute]
            last.insert_after(img)
            last = img
        else:
            img = factory.new_tag("img")
            node.append(img)
            last = img
        img["src"] = str(ref.get("src", ""))
        img["alt"] = str(ref.get("alt", ""))
    for extra in existing[len(images):]:
        extra.extract()


def plan_component_patch(
    record: ComponentRecord,
    updates: Mapping[str, Any],
    config: EditorConfig,
    factory: BeautifulSoup,
) -> Optional[List[Write]]:
    """Resolve the writes for ``updates`` on ``record``; ``None`` if a child is missing."""
    node = record.node
    allowed = PATCHABLE_KEYS.get(record.type)
    if allowed is None:
        raise UnsupportedUpdateError(
            f"Components of type {record.type!r} cannot be updated through "
            "update_component; use update_image for their image"
        )
    check_keys(record.type, updates, allowed)
    writes: List[Write] = []

    if record.type == "image":
        img = node if node.name == "img" else node.find("img")
        if img is None:
            return None
        return plan_image_patch(img, updates, config)

    if record.type == "figure":
        img = node.find("img")
        if ("src" in updates or "alt" in updates) and img is None:
            return None
        if "src" in updates:
            writes.append(partial(_set_attr, img, "src", updates["src"]))
        if "alt" in updates:
            writes.append(partial(_set_attr, img, "alt", updates["alt"]))
        if "caption" in updates:
            caption = node.find("figcaption")
            if caption is None:
                caption = factory.new_tag("figcaption")
                writes.append(partial(_append, node, caption))
            writes.append(partial(_set_text, caption, updates["caption"]))
        return writes

    if record.type == "quote":
        img = node.find("img")
        blockquote = node.find("blockquote")
        cite = node.find("cite")
        if "avatarSrc" in updates:
            if img is None:
                return None
            writes.append(partial(_set_attr, img, "src", updates["avatarSrc"]))
        if "quote" in updates:
            if blockquote is None:
                return None
            writes.append(partial(_set_text, blockquote, updates["quote"], cite))
        if "author" in updates:
            if cite is None:
                cite = factory.new_tag("cite")
                writes.append(partial(_append, node, cite))
            writes.append(partial(_set_text, cite, updates["author"]))
        return writes

    if record.type == "comparison":
        images = node.find_all("img")
        captions = node.find_all("figcaption")
        targets = (
            ("beforeImage", images, 0, "src"),
            ("afterImage", images, 1, "src"),
            ("beforeLabel", captions, 0, None),
            ("afterLabel", captions, 1, None),
        )
        for key, found, index, attribute in targets:
            if key not in updates:
                continue
            if len(found) <= index:
                return None
            if attribute:
                writes.append(partial(_set_attr, found[index], attribute, updates[key]))
            else:
                writes.append(partial(_set_text, found[index], updates[key]))
        return writes

    if record.type == "gallery":
        if "columns" in updates:
            columns = updates["columns"]
            if columns not in GALLERY_COLUMNS:
                raise ValueError(f"Gallery columns must be 2 or 3, got {columns!r}")
            writes.append(
                partial(
                    set_styles,
                    node,
                    grid_template_columns=f"repeat({columns}, 1fr)",
                )
            )
        if "images" in updates:
            images = _validate_image_refs(updates["images"])
            writes.append(
                partial(_sync_image_list, node, images, factory, config.marker_attribute)
            )
        return writes

    # layout
    if "layoutType" in updates:
        layout_type = updates["layoutType"]
        if layout_type not in LAYOUT_TYPES:
            raise ValueError(f"Unsupported layout type: {layout_type!r}")
        writes.append(partial(remove_classes, node, LAYOUT_TYPES))
        if layout_type != "custom":
            writes.append(partial(add_class, node, layout_type))
    if "text" in updates:
        text_node = node.select_one("p, div:not(:has(img))")
        if text_node is None:
            return None
        writes.append(
            partial(_set_markup, text_node, updates["text"] or "", config.parser)
        )
    if "images" in updates:
        images = _validate_image_refs(updates["images"])
        writes.append(
            partial(_sync_image_list, node, images, factory, config.marker_attribute)
        )
    return writes


def run_writes(writes: List[Write]) -> None:
    for write in writes:
        write()
