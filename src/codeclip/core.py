"""
Core logic for codeclip package.
"""

from __future__ import annotations

import stat
from dataclasses import dataclass
from itertools import chain
from pathlib import Path
from typing import Iterator, List, NamedTuple, Optional, Union

import pathspec
import pyperclip
from colorama import Fore, Style, init as colorama_init

colorama_init()

# Exceptions
class CodeclipError(Exception): ...
class InvalidRootError(CodeclipError): ...
class ClipboardError(CodeclipError): ...

# Defaults & constants
MAX_BYTES = 5 * 1024 * 1024
GIT_DIR = ".git"
GITIGNORE = ".gitignore"
BINARY_MARKER = "[BINARY FILE SKIPPED]\n"

SAMPLE_SIZE = 8000
CONTROL_RATIO = 0.3
_ALLOWED_CONTROL = frozenset((9, 10, 13))

BINARY_EXTENSIONS = frozenset(
    [
        # executables & objects
        ".exe", ".dll", ".so", ".dylib", ".class", ".jar", ".pyc", ".o", ".obj",
        # images
        ".jpg", ".jpeg", ".png", ".gif", ".bmp", ".ico", ".webp", ".psd", ".tiff",
        # audio & video
        ".mp3", ".wav", ".flac", ".aac", ".ogg", ".mp4", ".avi", ".mov", ".mkv", ".flv",
        # documents
        ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx", ".odt",
        # archives
        ".zip", ".rar", ".7z", ".tar", ".gz", ".bz2", ".xz", ".tgz",
        # databases
        ".db", ".sqlite", ".mdb",
    ]
)


@dataclass
class Budget:
    """Byte accounting shared by every level of one traversal.

    Once ``limit_reached`` is set it stays set; callers check it before
    appending anything. ``reserved`` holds folder headers whose subtree is
    still being walked; they count against the cap until released.
    """

    max_bytes: int = MAX_BYTES
    current_size: int = 0
    reserved: int = 0
    limit_reached: bool = False

    def fits(self, size: int) -> bool:
        return self.current_size + self.reserved + size <= self.max_bytes

    def reserve(self, size: int) -> None:
        self.reserved += size

    def release(self, size: int) -> None:
        self.reserved -= size

    def commit(self, size: int) -> None:
        self.current_size += size

    def exhaust(self) -> None:
        self.limit_reached = True


class ContextResult(NamedTuple):
    text: str
    truncated: bool
    size: int


def _byte_len(text: str) -> int:
    return len(text.encode("utf-8"))


def _note(msg: str, colour: str = "") -> None:
    line = f"[codeclip] {msg}"
    if colour:
        line = colour + line + Style.RESET_ALL
    print(line)


def human_size(num_bytes: int) -> str:
    if num_bytes >= 1024 * 1024:
        return f"{num_bytes / (1024 * 1024):g}MB"
    return f"{num_bytes} bytes"


# Ancestor walking
def walk_ancestors(start: Path, stop: Optional[Path] = None) -> Iterator[Path]:
    """
    Yield *start* and then each parent directory, nearest first.

    With *stop* given the walk ends after yielding it. If *stop* is not
    *start* or one of its ancestors only *start* is yielded.
    """
    if stop is not None and stop != start and stop not in start.parents:
        yield start
        return
    for current in chain([start], start.parents):
        yield current
        if current == stop:
            return


def find_repo_root(start: Path) -> Optional[Path]:
    """Return the nearest directory at or above *start* holding a ``.git`` dir."""
    for current in walk_ancestors(start):
        try:
            if (current / GIT_DIR).is_dir():
                return current
        except OSError:
            continue
    return None


# Ignore-file utilities
def load_gitignore_rules(
    cwd: Path, root: Path, verbose: bool = False
) -> "pathspec.PathSpec":
    """
    Compile every ``.gitignore`` from *cwd* up to and including *root*.

    Patterns are collected innermost first. Missing or unreadable files are
    skipped.
    """
    lines: List[str] = []
    for current in walk_ancestors(cwd, stop=root):
        gitignore_path = current / GITIGNORE
        try:
            text = gitignore_path.read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            continue
        except OSError as e:
            if verbose:
                _note(f"! Could not read {gitignore_path}: {e}", Fore.YELLOW)
            continue
        lines.extend(text.splitlines())
        if verbose:
            _note(f"Loaded ignore rules from {gitignore_path}")
    return pathspec.PathSpec.from_lines("gitwildmatch", lines)


# Binary detection
def is_binary(data: bytes, path: Union[str, Path]) -> bool:
    if Path(path).suffix.lower() in BINARY_EXTENSIONS:
        return True
    if b"\0" in data:
        return True
    sample = data[:SAMPLE_SIZE]
    if not sample:
        return False
    control = sum(1 for b in sample if b < 32 and b not in _ALLOWED_CONTROL)
    return control / len(sample) > CONTROL_RATIO


# Traversal
def _limit_hit(budget: Budget, rel: str, verbose: bool) -> None:
    budget.exhaust()
    if verbose:
        _note(f"- Size limit reached at {rel}, stopping", Fore.YELLOW)


def process_directory(
    dir_path: Path,
    cwd: Path,
    rules: "pathspec.PathSpec",
    budget: Budget,
    verbose: bool = False,
) -> str:
    """
    Concatenate the eligible contents of *dir_path*, depth first.

    Paths in headers and rule lookups are relative to *cwd*. Returns the text
    for this subtree only; the caller owns the folder header.
    """
    output = ""

    try:
        entries = sorted(dir_path.iterdir(), key=lambda p: p.name)
    except OSError as e:
        if verbose:
            _note(f"! Could not list {dir_path}: {e}", Fore.YELLOW)
        return ""

    for entry in entries:
        if budget.limit_reached:
            return output

        name = entry.name
        if name.startswith(".") and name != GITIGNORE:
            continue

        try:
            mode = entry.lstat().st_mode
        except OSError:
            continue
        if stat.S_ISLNK(mode):
            continue

        rel = entry.relative_to(cwd).as_posix()

        if stat.S_ISDIR(mode):
            if rules.match_file(rel + "/"):
                continue
            header = f"\n--- Folder: {rel} ---\n"
            header_size = _byte_len(header)
            if not budget.fits(header_size):
                _limit_hit(budget, rel, verbose)
                return output

            budget.reserve(header_size)
            folder_output = process_directory(entry, cwd, rules, budget, verbose)
            budget.release(header_size)
            if folder_output:
                output += header + folder_output
                budget.commit(header_size)

        elif stat.S_ISREG(mode):
            if rules.match_file(rel):
                continue
            header = f"\n--- File: {rel} ---\n"
            if not budget.fits(_byte_len(header)):
                _limit_hit(budget, rel, verbose)
                return output

            try:
                raw = entry.read_bytes()
            except OSError as e:
                if verbose:
                    _note(f"! Could not read {rel}: {e}", Fore.YELLOW)
                continue

            if is_binary(raw, entry):
                if verbose:
                    _note(f"- Skipping binary {rel}", Fore.YELLOW)
                block = header + BINARY_MARKER
            else:
                block = header + raw.decode("utf-8", errors="replace")

            block_size = _byte_len(block)
            if not budget.fits(block_size):
                _limit_hit(budget, rel, verbose)
                return output

            output += block
            budget.commit(block_size)

    return output


def build_context(
    cwd: Path,
    root: Optional[Path] = None,
    max_bytes: int = MAX_BYTES,
    verbose: bool = False,
) -> ContextResult:
    """Render the root header plus everything under *cwd* within *max_bytes*."""
    try:
        cwd = cwd.resolve()
    except (OSError, RuntimeError) as e:
        raise InvalidRootError(f"Could not resolve directory '{cwd}': {e}")
    if not cwd.is_dir():
        raise InvalidRootError(f"'{cwd}' is not a directory")

    root = root.resolve() if root is not None else cwd
    rules = load_gitignore_rules(cwd, root, verbose=verbose)
    budget = Budget(max_bytes=max_bytes)

    text = f"--- Root Directory: {cwd.name} ---\n"
    budget.commit(_byte_len(text))
    text += process_directory(cwd, cwd, rules, budget, verbose)

    if verbose:
        _note(f"{budget.current_size} bytes collected from {cwd}", Fore.GREEN)
    return ContextResult(text, budget.limit_reached, budget.current_size)


# Clipboard sink
def copy_to_clipboard(text: str) -> None:
    try:
        pyperclip.copy(text)
    except (pyperclip.PyperclipException, OSError) as e:
        raise ClipboardError(str(e)) from e
