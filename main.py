#!/usr/bin/env python3
"""Entry point for the Image Slicer.

    image-slicer [gui [PATH]]
    image-slicer export DOCUMENT DIRECTORY [--dry-run]
    image-slicer thumbnail DOCUMENT OUTPUT [--size 256]
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

import document
import preview
import slicer

logger = logging.getLogger(__name__)


def _run_gui(args: argparse.Namespace) -> int:
    from gui import App

    app = App(args.path)
    app.mainloop()
    return 0


def _run_export(args: argparse.Namespace) -> int:
    job = document.open_any(args.document)
    result = slicer.export_selections(job, args.directory, dry_run=args.dry_run)
    for path in result.created:
        print(path)
    for failure in result.failures:
        print(f"skipped {failure.selection.name!r}: {failure.reason}", file=sys.stderr)
    return 0 if result.ok else 2


def _run_thumbnail(args: argparse.Namespace) -> int:
    job = document.open_any(args.document)
    img = preview.render_preview(job, (args.size, args.size))
    img.save(args.output)
    return 0


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("size must be an integer") from exc
    if number <= 0:
        raise argparse.ArgumentTypeError("size must be positive")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="image-slicer",
        description="Cut an image into regions and export the marked ones as PNGs.",
    )
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="logging verbosity (default: WARNING)")
    sub = parser.add_subparsers(dest="command")

    p = sub.add_parser("gui", help="open the editor window")
    p.add_argument("path", nargs="?", help="image or document to open")
    p.set_defaults(func=_run_gui)

    p = sub.add_parser("export", help="export the marked regions of a document")
    p.add_argument("document", help=f"saved {document.DOCUMENT_SUFFIX} document")
    p.add_argument("directory", help="existing directory to write PNGs into")
    p.add_argument("--dry-run", action="store_true",
                   help="print the paths that would be written without writing them")
    p.set_defaults(func=_run_export)

    p = sub.add_parser("thumbnail", help="render a preview of a document")
    p.add_argument("document")
    p.add_argument("output", help="image file to write")
    p.add_argument("--size", type=_positive_int, default=256,
                   help="maximum width and height in pixels (default: 256)")
    p.set_defaults(func=_run_thumbnail)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    argv = sys.argv[1:] if argv is None else list(argv)
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level,
                        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    if args.command is None:
        args = parser.parse_args([*argv, "gui"])

    try:
        return args.func(args)
    except (slicer.SliceError, document.DocumentError, OSError) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"image-slicer: error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
