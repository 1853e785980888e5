"""
codeclip - Copy a codebase's text to the clipboard for LLM ingestion.

This package walks the current directory, honours every .gitignore between it
and the enclosing git repository root, skips binary files and dotfiles, and
places the concatenated file contents on the system clipboard under a total
size cap.
"""

__version__ = "0.1.0"
__author__ = "codeclip contributors"
