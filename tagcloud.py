"""CLI entrypoint for generating a tag cloud HTML file from a text file."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Callable, Optional, Sequence

from tagcloud_core import (
    DEFAULT_STYLESHEET,
    MAX_FONT_SIZE,
    MIN_FONT_SIZE,
    TagCloudConfig,
    TagCloudError,
    dump_json,
    generate_tag_cloud_file,
)

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate an HTML tag cloud of the most frequent words in a text file.")
    parser.add_argument(
        "input_path",
        nargs="?",
        default=None,
        help="Path to the input text file (prompted for when omitted).",
    )
    parser.add_argument(
        "html_path",
        nargs="?",
        default=None,
        help="Destination HTML file path (prompted for when omitted).",
    )
    parser.add_argument("-n", "--words", dest="n", type=int, default=None, help="Number of words in the tag cloud.")
    parser.add_argument("--min-font", type=int, default=MIN_FONT_SIZE, help="Smallest font size class.")
    parser.add_argument("--max-font", type=int, default=MAX_FONT_SIZE, help="Largest font size class.")
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail instead of warning when the text has fewer distinct words than requested.",
    )
    parser.add_argument(
        "--stylesheet",
        type=str,
        default=DEFAULT_STYLESHEET,
        help="URL of the stylesheet linked from the page; pass an empty string to omit the link.",
    )
    parser.add_argument(
        "--no-inline-style",
        action="store_true",
        help="Do not embed the font size classes in the page.",
    )
    parser.add_argument(
        "--dump-json",
        type=Path,
        default=None,
        help="Optional path to dump the rendered word list as JSON alongside the HTML output.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def prompt_missing(args: argparse.Namespace, ask: Callable[[str], str] = input) -> argparse.Namespace:
    if args.input_path is None:
        args.input_path = ask("Input File: ").strip()
    if args.html_path is None:
        args.html_path = ask("Output File: ").strip()
    if args.n is None:
        raw = ask("Number of words in cloud tag: ").strip()
        try:
            args.n = int(raw)
        except ValueError:
            raise SystemExit(f"Number of words must be an integer: {raw!r}")
    return args


def main(argv: Optional[Sequence[str]] = None, ask: Callable[[str], str] = input) -> None:
    args = prompt_missing(parse_args(argv), ask)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    input_path = Path(args.input_path)
    html_path = Path(args.html_path)

    if not input_path.is_file():
        raise SystemExit(f"Input file not found: {input_path}")

    html_path.parent.mkdir(parents=True, exist_ok=True)

    config = TagCloudConfig(
        min_font_size=args.min_font,
        max_font_size=args.max_font,
        strict=args.strict,
        stylesheet_url=args.stylesheet or None,
        inline_style=not args.no_inline_style,
    )

    try:
        config.validate()
        result = generate_tag_cloud_file(input_path, html_path, args.n, config=config)
    except (TagCloudError, ValueError) as exc:
        raise SystemExit(f"Error: {exc}")

    if result.selection.insufficient:
        logger.warning(
            "Tag cloud has %d words instead of the requested %d",
            len(result.selection),
            result.selection.requested,
        )
    print(html_path)

    if args.dump_json:
        dump_json(result.entries, args.dump_json)


if __name__ == "__main__":
    main()
