"""
CLI entrypoint for codeclip package.
"""
import argparse
import sys
from pathlib import Path

from colorama import Fore, Style

from . import __version__
from .core import (
    MAX_BYTES,
    build_context,
    copy_to_clipboard,
    find_repo_root,
    human_size,
    ClipboardError,
    InvalidRootError,
)

PROMPT = "No git repository found in this directory. Continue? (y/n) "


def _parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="codeclip",
        description="Copy the text of every non-ignored file under the current directory to the clipboard.",
    )
    p.add_argument(
        "--max-bytes",
        type=int,
        default=MAX_BYTES,
        help=f"Total size cap for the copied text (default {human_size(MAX_BYTES)})",
    )
    p.add_argument(
        "-y",
        "--yes",
        action="store_true",
        help="Continue without asking when no git repository is found",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    ns = p.parse_args(argv)
    if ns.max_bytes <= 0:
        p.error("--max-bytes must be a positive integer")
    return ns


def _confirm(prompt: str) -> bool:
    try:
        answer = input(prompt)
    except EOFError:
        return False
    return answer.lower() == "y"


def main(argv=None) -> None:
    try:
        ns = _parse_args(argv)
        cwd = Path.cwd()

        repo_root = find_repo_root(cwd)
        if repo_root is None:
            if ns.verbose:
                print(f"[codeclip] No git repository above {cwd}")
            if not ns.yes and not _confirm(PROMPT):
                print("Operation cancelled.")
                return
        elif ns.verbose:
            print(f"[codeclip] Git repository root: {repo_root}")

        try:
            result = build_context(
                cwd,
                root=repo_root,
                max_bytes=ns.max_bytes,
                verbose=ns.verbose,
            )
        except InvalidRootError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)

        try:
            copy_to_clipboard(result.text)
        except ClipboardError as e:
            print(
                Fore.RED + f"Failed to write to clipboard: {e}" + Style.RESET_ALL,
                file=sys.stderr,
            )
            return

        if result.truncated:
            print(
                Fore.YELLOW
                + f"Output truncated at {human_size(ns.max_bytes)} limit. "
                "Partial codebase copied to clipboard."
                + Style.RESET_ALL
            )
        else:
            print(Fore.GREEN + "Codebase context copied to clipboard!" + Style.RESET_ALL)

    except KeyboardInterrupt:
        print("\nCancelled.", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
