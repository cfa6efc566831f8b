"""mdr CLI entry point.

Allows running via `python -m mdr` and provides the console script
defined in `pyproject.toml`.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

from .graphics import IMAGE_MODES
from .version import get_version_string

USAGE = "Usage: mdr FILE [--images=auto|kitty|iterm2|blocks|off] [--no-watch] [--verbose] [--version]"


def configure_logging(verbose: bool) -> None:
    """Debug output to stderr with --verbose; otherwise stay silent over the UI."""
    root = logging.getLogger()
    if verbose:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("[mdr] %(name)s: %(message)s"))
        root.addHandler(handler)
        root.setLevel(logging.DEBUG)
    else:
        root.addHandler(logging.NullHandler())


def parse_args(args: list[str]) -> tuple[Optional[str], dict]:
    """Very small arg parsing: one positional file plus a few flags."""
    options = {"images": "auto", "watch": True, "verbose": False}
    filename = None
    for arg in args:
        if arg.startswith("--images="):
            mode = arg.split("=", 1)[1]
            if mode not in IMAGE_MODES:
                raise ValueError(f"unknown image mode '{mode}'")
            options["images"] = mode
        elif arg == "--no-watch":
            options["watch"] = False
        elif arg in ("--verbose", "-v"):
            options["verbose"] = True
        elif arg.startswith("-"):
            raise ValueError(f"unknown option '{arg}'")
        elif filename is None:
            filename = arg
        else:
            raise ValueError("only one file can be viewed")
    return filename, options


def main() -> None:
    args = sys.argv[1:]
    if args and args[0] in ("--version", "-V"):
        print(get_version_string())
        return
    if args and args[0] in ("--help", "-h"):
        print(USAGE)
        return

    try:
        filename, options = parse_args(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        print(USAGE, file=sys.stderr)
        sys.exit(2)
    if filename is None:
        print(USAGE, file=sys.stderr)
        sys.exit(2)
    if not Path(filename).is_file():
        print(f"Error: file '{filename}' not found", file=sys.stderr)
        sys.exit(1)

    configure_logging(options["verbose"])

    # Lazy import to avoid importing UI deps for --version
    from .viewer import Viewer
    viewer = Viewer(filename, image_mode=options["images"], watch=options["watch"])
    viewer.load()
    viewer.run()


if __name__ == "__main__":  # pragma: no cover
    main()
