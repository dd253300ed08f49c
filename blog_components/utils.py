"""Helpers for ids, inline styles, and class lists on bs4 tags."""

from __future__ import annotations

import re
import secrets
import string
import time
from typing import Container, Dict, Iterable, Optional

from bs4 import Tag

STYLE_DECLARATION = re.compile(r"\s*([-a-zA-Z]+)\s*:\s*([^;]+?)\s*(?:;|$)")
_BASE36 = string.digits + string.ascii_lowercase


def generate_component_id(prefix: str, issued: Optional[Container[str]] = None) -> str:
    """Return a ``prefix-<ms>-<9 chars>`` id that does not appear in ``issued``."""
    while True:
        suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
        candidate = f"{prefix}-{int(time.time() * 1000)}-{suffix}"
        if issued is None or candidate not in issued:
            return candidate


def parse_style(value: Optional[str]) -> Dict[str, str]:
    """Parse an inline ``style`` attribute into an ordered property map."""
    if not value:
        return {}
    return {
        match.group(1).lower(): match.group(2)
        for match in STYLE_DECLARATION.finditer(value)
    }


def format_style(declarations: Dict[str, str]) -> str:
    return "; ".join(f"{name}: {value}" for name, value in declarations.items())


def get_style(tag: Tag, name: str) -> str:
    return parse_style(tag.get("style")).get(name, "")


def set_styles(tag: Tag, **declarations: str) -> None:
    """Set inline style properties; underscores in keyword names become dashes."""
    styles = parse_style(tag.get("style"))
    for key, value in declarations.items():
        styles[key.replace("_", "-")] = value
    _write_style(tag, styles)


def remove_styles(tag: Tag, names: Iterable[str], prefixes: Iterable[str] = ()) -> None:
    """Drop inline style properties by exact name or by name prefix."""
    names = set(names)
    prefixes = tuple(prefixes)
    styles = {
        key: value
        for key, value in parse_style(tag.get("style")).items()
        if key not in names and not (prefixes and key.startswith(prefixes))
    }
    _write_style(tag, styles)


def _write_style(tag: Tag, styles: Dict[str, str]) -> None:
    if styles:
        tag["style"] = format_style(styles)
    elif tag.has_attr("style"):
        del tag["style"]


def class_list(tag: Tag) -> list:
    classes = tag.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    return list(classes)


def has_class(tag: Tag, name: str) -> bool:
    return name in class_list(tag)


def add_class(tag: Tag, name: str) -> None:
    classes = class_list(tag)
    if name not in classes:
        classes.append(name)
    tag["class"] = classes


def remove_classes(tag: Tag, names: Iterable[str]) -> None:
    names = set(names)
    classes = [cls for cls in class_list(tag) if cls not in names]
    if classes:
        tag["class"] = classes
    elif tag.has_attr("class"):
        del tag["class"]


def is_attached(node: Tag, root: Tag) -> bool:
    """True when ``node`` is ``root`` or sits somewhere beneath it."""
    if node is root:
        return True
    return any(parent is root for parent in node.parents)
