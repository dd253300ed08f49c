"""Configuration objects and constants for the component manager."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_MARKER_ATTRIBUTE = "data-component-id"
DEFAULT_ID_PREFIX = "cmp"
DEFAULT_PARSER = "html.parser"

# Class names that mark container components, in type-detection order.
LAYOUT_CLASS = "blog-layout"
GALLERY_CLASS = "blog-gallery"
HERO_CLASS = "blog-hero"
QUOTE_CLASS = "blog-quote"
COMPARISON_CLASS = "blog-comparison"
FIGURE_CLASS = "blog-figure"
IMAGE_WRAPPER_CLASS = "blog-image-wrapper"

COMPONENT_CLASSES = (
    LAYOUT_CLASS,
    GALLERY_CLASS,
    HERO_CLASS,
    QUOTE_CLASS,
    COMPARISON_CLASS,
    FIGURE_CLASS,
    IMAGE_WRAPPER_CLASS,
)

INSERTED_IMAGE_CLASSES = ("blog-image", "editable")


@dataclass
class EditorConfig:
    """Settings that control how components are stamped and rendered."""

    marker_attribute: str = DEFAULT_MARKER_ATTRIBUTE
    id_prefix: str = DEFAULT_ID_PREFIX
    parser: str = DEFAULT_PARSER
    default_image_width: str = "100%"
    float_margin: str = "1rem"
    float_margin_bottom: str = "0.5rem"
    center_margin: str = "1rem auto"
    wrapper_margin: str = "1rem 0"
