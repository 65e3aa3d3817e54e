"""
Clipfiles - A tool for collecting project files into a single LLM paste.

This package walks a directory tree, filters entries through built-in
exclusions, user glob patterns and the root ``.gitignore``, keeps the files
matching the requested extensions or names, and copies their contents to the
clipboard as one labeled text block.
"""

__version__ = "0.1.0"
__author__ = "Clipfiles Team"
