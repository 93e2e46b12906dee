"""
Utility functions for code_token_index.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

logger = logging.getLogger(__name__)


def compile_pattern(pattern: str | re.Pattern[str]) -> re.Pattern[str]:
    """
    Compile a regex pattern, passing compiled patterns through.

    Raises:
        ValueError: If the pattern is not a valid regular expression.
    """
    if isinstance(pattern, re.Pattern):
        return pattern
    try:
        return re.compile(pattern)
    except re.error as e:
        raise ValueError(f"Invalid pattern {pattern!r}: {e}") from e


def should_exclude(path: Path | str, exclude: re.Pattern[str]) -> bool:
    """
    Check if a path should be excluded.

    Args:
        path: Path to check (matched as a full path string).
        exclude: Compiled exclusion pattern, searched anywhere in the path.

    Returns:
        True if the path should be excluded.
    """
    return exclude.search(str(path)) is not None


def relative_path(file_path: str, base: Path | None = None) -> str:
    """
    Express a file path relative to a base directory.

    Args:
        file_path: Path to display.
        base: Base directory, defaults to the current working directory.

    Returns:
        Relative path using forward slashes, or the path unchanged if it
        can't be made relative (e.g. different drive).
    """
    base = base or Path.cwd()
    try:
        rel = os.path.relpath(file_path, base)
    except ValueError:
        return file_path
    return rel.replace(os.sep, "/")
