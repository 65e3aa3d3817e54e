"""
CLI entrypoint for clipfiles package.
"""
import argparse
import logging
import sys
from typing import Optional, Sequence

import pyperclip
from colorama import Fore, Style, init as colorama_init

from .core import (
    ClipboardError,
    ClipfilesError,
    ConfigurationError,
    build_configuration,
    collect,
)

EXAMPLES = """\
examples:
  clipfiles --dir ./ --ext .sh --ext .go
      Collect all .sh and .go files under the current directory.
  clipfiles --dir ./ --include Dockerfile --include Makefile
      Collect all Dockerfile and Makefile files.
  clipfiles --dir ./ --ext .yaml --include Dockerfile
      Collect all .yaml files and Dockerfiles.
  clipfiles --dir ./ --ext .js --exclude '**/dist/**' --include Makefile
      Collect .js files and Makefiles, excluding "dist" directories.
"""


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="clipfiles",
        usage="%(prog)s --dir <directory> [--ext <extension> ...] [--include <filename> ...]",
        description="Copy the contents of matching project files to the clipboard.",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument("-d", "--dir", required=True, help="Root directory to search in")
    p.add_argument(
        "-e",
        "--ext",
        action="extend",
        nargs="+",
        default=[],
        metavar="EXT",
        help="File extensions to include (e.g. .sh, .go, .yaml, .yml)",
    )
    p.add_argument(
        "-i",
        "--include",
        action="extend",
        nargs="+",
        default=[],
        metavar="NAME",
        help="Specific filenames or glob patterns to include (e.g. Dockerfile, Makefile)",
    )
    p.add_argument(
        "-x",
        "--exclude",
        action="extend",
        nargs="+",
        default=[],
        metavar="GLOB",
        help="Glob patterns to exclude (directories or files). Supports multiple values.",
    )
    p.add_argument(
        "--include-prompt",
        action="store_true",
        help="Prepend an initial LLM prompt to the output",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    return p.parse_args(argv)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="[clipfiles] %(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def _error(msg: str) -> None:
    print(Fore.RED + msg + Style.RESET_ALL, file=sys.stderr)


def copy_to_clipboard(text: str) -> None:
    try:
        pyperclip.copy(text)
    except pyperclip.PyperclipException as e:
        raise ClipboardError(f"Could not copy to clipboard: {e}") from e


def main(argv: Optional[Sequence[str]] = None) -> None:
    colorama_init()
    try:
        ns = _parse_args(argv)
        _configure_logging(ns.verbose)

        try:
            config = build_configuration(
                ns.dir,
                extensions=ns.ext,
                include_names=ns.include,
                exclude_patterns=ns.exclude,
                emit_prompt=ns.include_prompt,
            )
        except ConfigurationError as e:
            _error(f"Error: {e}")
            sys.exit(1)

        if ns.verbose:
            print(f"[clipfiles] Scanning {config.root} …", file=sys.stderr)

        try:
            aggregator = collect(config)
            copy_to_clipboard(aggregator.finalize())
        except ClipfilesError as e:
            _error(f"Error: {e}")
            sys.exit(1)

        print(
            Fore.GREEN
            + "All collected content has been copied to your clipboard!"
            + Style.RESET_ALL
        )
        msg = f"[clipfiles] {len(aggregator.paths)} files collected"
        if aggregator.skipped:
            msg += f", {len(aggregator.skipped)} skipped (unreadable)"
        print(msg + ".")

    except KeyboardInterrupt:
        _error("\nCancelled.")
        sys.exit(1)
    except Exception as e:
        _error(f"Unexpected error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
