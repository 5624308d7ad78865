"""Whisker CLI — whisker generate / whisker docs.

Entry point for the ``whisker`` command-line interface.
"""

from __future__ import annotations

import argparse
import sys


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the whisker CLI."""
    parser = argparse.ArgumentParser(
        prog="whisker",
        description="Keep a router schema, client artifacts and OpenAPI docs in sync.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # whisker generate
    generate_parser = subparsers.add_parser(
        "generate",
        help="Generate client artifacts from the router (once, or on every change)",
    )
    generate_parser.add_argument("root", nargs="?", default=".", help="Project root directory")
    generate_parser.add_argument("--output", default=None, help="Client artifact directory")
    generate_parser.add_argument(
        "--docs", action="store_true", default=None, help="Also generate openapi.json",
    )
    generate_parser.add_argument("--docs-output", default=None, help="OpenAPI output directory")
    generate_parser.add_argument(
        "--watch", action="store_true", help="Regenerate on every source change",
    )
    generate_parser.add_argument(
        "--interactive", action="store_true", default=None,
        help="Plain log lines instead of a spinner",
    )
    generate_parser.add_argument(
        "--debug", action="store_true", default=None, help="Print timings and dropped events",
    )

    # whisker docs
    docs_parser = subparsers.add_parser(
        "docs",
        help="Generate only the OpenAPI document",
    )
    docs_parser.add_argument("root", nargs="?", default=".", help="Project root directory")
    docs_parser.add_argument("--output", default=None, help="OpenAPI output directory")
    docs_parser.add_argument(
        "--ui", action="store_true", help="Also write an HTML API reference page",
    )

    return parser


def _get_version() -> str:
    """Get the package version."""
    from whisker import __version__

    return __version__


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    from whisker._errors import WhiskerError
    from whisker.app import docs, generate, watch
    from whisker.diagnostics import format_cycle_error

    try:
        if args.command == "generate":
            options = {
                "output": args.output,
                "docs": args.docs,
                "docs_output": args.docs_output,
                "interactive": args.interactive,
                "debug": args.debug,
            }
            if args.watch:
                watch(root=args.root, **options)
            else:
                generate(root=args.root, **options)
        elif args.command == "docs":
            docs(root=args.root, output=args.output, ui=args.ui)
    except WhiskerError as exc:
        print(format_cycle_error(exc), file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
