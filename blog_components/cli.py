"""Command-line entry point for inspecting and editing component markup."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Iterable, Optional, Sequence, Tuple

from bs4 import BeautifulSoup

from .config import DEFAULT_MARKER_ATTRIBUTE, DEFAULT_PARSER, EditorConfig
from .content import find_root, parse_document
from .manager import ComponentManager, create_component_manager
from .models import IMAGE_LAYOUTS, ComponentError, HiddenField

logger = logging.getLogger("blog_components.cli")


def _ensure_command_prefix(argv: Sequence[str], commands: Iterable[str]) -> Sequence[str]:
    if not argv:
        return argv
    first = argv[0]
    if first in commands or first.startswith("-"):
        return argv
    return ("scan", *argv)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("path", type=Path, help="HTML file holding the editor content")
    parser.add_argument(
        "--root",
        default=None,
        help="CSS selector of the editable root (default: <body>, else the whole document)",
    )
    parser.add_argument(
        "--marker",
        default=DEFAULT_MARKER_ATTRIBUTE,
        help="Attribute used to stamp component ids",
    )
    parser.add_argument(
        "--parser",
        default=DEFAULT_PARSER,
        help="BeautifulSoup parser to use",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def _add_output_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Where to write the resulting HTML (default: STDOUT)",
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Track and edit rich-content components inside blog post HTML.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan_parser = subparsers.add_parser(
        "scan", help="List the components found in a document as JSON"
    )
    _add_common_arguments(scan_parser)

    stamp_parser = subparsers.add_parser(
        "stamp", help="Write the document back with component ids stamped"
    )
    _add_common_arguments(stamp_parser)
    _add_output_argument(stamp_parser)

    insert_parser = subparsers.add_parser(
        "insert-image", help="Append an image component to the editable root"
    )
    _add_common_arguments(insert_parser)
    _add_output_argument(insert_parser)
    insert_parser.add_argument("--src", required=True, help="Image URL")
    insert_parser.add_argument("--alt", default="", help="Alternative text")
    insert_parser.add_argument(
        "--layout",
        default="inline",
        choices=IMAGE_LAYOUTS,
        help="Image layout",
    )
    insert_parser.add_argument("--width", default=None, help="CSS width of the image")

    argv = list(sys.argv[1:] if argv is None else argv)
    argv = list(_ensure_command_prefix(argv, subparsers.choices.keys()))
    return parser.parse_args(argv)


def _load(args: argparse.Namespace) -> Tuple[BeautifulSoup, ComponentManager]:
    config = EditorConfig(marker_attribute=args.marker, parser=args.parser)
    html = args.path.read_text(encoding="utf-8")
    soup = parse_document(html, config.parser)
    root = find_root(soup, args.root)
    manager = create_component_manager(root, HiddenField(), config)
    return soup, manager


def _write(soup: BeautifulSoup, destination: Optional[Path]) -> None:
    html = soup.decode()
    if destination is None:
        sys.stdout.write(html if html.endswith("\n") else html + "\n")
        sys.stdout.flush()
        return
    destination.write_text(html, encoding="utf-8")
    logger.info("Saved HTML to %s", destination)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )

    if not args.path.is_file():
        logger.error("Input file does not exist: %s", args.path)
        return 1
    try:
        soup, manager = _load(args)
    except ComponentError as exc:
        logger.error("%s", exc)
        return 1
    logger.debug("Found %d component(s) in %s", len(manager), args.path)

    if args.command == "scan":
        json.dump(manager.describe(), sys.stdout, indent=2)
        sys.stdout.write("\n")
        sys.stdout.flush()
    elif args.command == "stamp":
        _write(soup, args.output)
    else:
        options = {"layout": args.layout}
        if args.width:
            options["width"] = args.width
        component_id = manager.insert_image(args.src, args.alt, options)
        logger.info("Inserted image component %s", component_id)
        _write(soup, args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
