"""MCP server exposing component scan/insert tools."""

from __future__ import annotations

import json
import logging

from mcp.server.fastmcp import FastMCP

from .config import EditorConfig
from .content import find_root, parse_document
from .manager import create_component_manager
from .models import HiddenField

logger = logging.getLogger("blog_components.mcp")
logger.setLevel(logging.ERROR)

mcp = FastMCP(name="blog-components")


@mcp.tool()
def scan_components(html: str) -> str:
    """List the components in an HTML fragment as JSON (id, type, properties)."""
    config = EditorConfig()
    root = find_root(parse_document(html, config.parser))
    manager = create_component_manager(root, HiddenField(), config)
    return json.dumps(manager.describe())


@mcp.tool()
def insert_image(html: str, src: str, alt: str = "", layout: str = "inline") -> str:
    """Append an image component to an HTML fragment and return the new markup.

    Full documents get the image at the end of ``<body>`` and are returned
    whole; fragments come back as fragments.
    """
    config = EditorConfig()
    soup = parse_document(html, config.parser)
    manager = create_component_manager(find_root(soup), HiddenField(), config)
    component_id = manager.insert_image(src, alt, {"layout": layout})
    logger.debug("Inserted image component %s", component_id)
    return soup.decode()


def main() -> None:
    """Entry point for running the MCP server."""
    logging.basicConfig(level=logging.ERROR)
    mcp.run()


if __name__ == "__main__":
    main()
